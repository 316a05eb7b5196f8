from datetime import datetime, timedelta, timezone

import pytest

from epi_core.history import HistoryStore
from epi_core.models import EvaluationResult
from epi_core.storage import HISTORY_KEY, STATS_KEY

T0 = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)


def _result(i, compliant=True, detected=("capacete",)):
    return EvaluationResult(
        timestamp=T0 + timedelta(seconds=i),
        detected_labels=list(detected),
        missing_labels=[] if compliant else ["óculos"],
        total_detections=len(detected),
        compliant=compliant,
    )


def test_record_counts_every_call(store):
    h = HistoryStore(store, limit=50)
    for i in range(7):
        h.record(_result(i, compliant=(i % 3 == 0)))
    st = h.stats
    assert st.total_evaluations == 7
    assert st.compliant_count == 3
    assert st.non_compliant_count == 4
    assert st.per_label_counts == {"capacete": 7}


def test_history_capped_stats_cumulative(store):
    h = HistoryStore(store, limit=5)
    for i in range(12):
        h.record(_result(i, detected=("capacete", "luvas")))
        assert len(h.history) <= 5
    assert [e.timestamp for e in h.history] == [T0 + timedelta(seconds=i) for i in range(7, 12)]
    assert h.stats.total_evaluations == 12
    assert h.stats.per_label_counts == {"capacete": 12, "luvas": 12}


def test_persisted_across_sessions(store):
    h = HistoryStore(store, limit=10)
    h.record(_result(0))
    h.record(_result(1, compliant=False, detected=()))
    again = HistoryStore(store, limit=10)
    assert again.history == h.history
    assert again.stats == h.stats
    assert again.recent(1)[0].compliant is False


def test_load_applies_smaller_cap(store):
    h = HistoryStore(store, limit=10)
    for i in range(8):
        h.record(_result(i))
    assert len(HistoryStore(store, limit=3).history) == 3


def test_clear_keeps_stats(store):
    h = HistoryStore(store)
    h.record(_result(0))
    h.clear()
    assert h.history == []
    assert store.get_raw(HISTORY_KEY) == []
    assert h.stats.total_evaluations == 1
    h.reset_stats()
    assert store.get_raw(STATS_KEY)["total_evaluations"] == 0


def test_corrupt_storage_defaults(store):
    store.path_for(HISTORY_KEY).write_text("garbage", encoding="utf-8")
    store.set(STATS_KEY, {"total_evaluations": "many"})
    h = HistoryStore(store)
    assert h.history == []
    assert h.stats.total_evaluations == 0
    h.record(_result(0))
    assert HistoryStore(store).stats.total_evaluations == 1


def test_recent_newest_first(store):
    h = HistoryStore(store)
    for i in range(4):
        h.record(_result(i))
    assert [e.timestamp for e in h.recent(2)] == [T0 + timedelta(seconds=3), T0 + timedelta(seconds=2)]
    assert h.recent(0) == []


def test_failed_write_leaves_memory_unchanged(store, monkeypatch):
    h = HistoryStore(store)
    h.record(_result(0))

    def full(key, value):
        raise OSError("disk full")
    monkeypatch.setattr(store, "set", full)
    with pytest.raises(OSError):
        h.record(_result(1))
    assert len(h.history) == 1
    assert h.stats.total_evaluations == 1
