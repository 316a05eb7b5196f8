
import random
from datetime import datetime, timezone

from epi_core.catalog import EPI_CLASSES, label_for
from epi_core.compliance import evaluate, group_by_label
from epi_core.models import Detection


def test_all_required_present(det):
    ev = evaluate([det(10), det(8)], ["capacete", "óculos"])
    assert set(ev.result.detected_labels) == {"capacete", "óculos"}
    assert ev.result.missing_labels == []
    assert ev.result.compliant is True


def test_missing_required(det):
    ev = evaluate([det(10)], ["capacete", "óculos", "máscara facial"])
    assert ev.result.missing_labels == ["óculos", "máscara facial"]
    assert ev.result.compliant is False


def test_nothing_detected(det):
    required = ["capacete", "óculos", "máscara facial"]
    ev = evaluate([], required)
    assert ev.result.detected_labels == []
    assert ev.result.missing_labels == required
    assert ev.result.compliant is False
    assert ev.nothing_detected
    assert ev.summaries == []


def test_grouping_counts_and_max_confidence(det):
    dets = [det(10, 0.6), det(10, 0.92), det(9, 0.7), det(10, 0.8)]
    groups = group_by_label(dets)
    assert list(groups) == ["capacete", "luvas"]
    assert groups["capacete"] == {"count": 3, "max_confidence": 0.92}

    ev = evaluate(dets, ["luvas"])
    summary = {s.label: s for s in ev.summaries}
    assert summary["capacete"].count == 3 and not summary["capacete"].required
    assert summary["luvas"].required
    assert ev.result.total_detections == 4


def test_unknown_class_fallback(det):
    assert label_for(99) == "Classe 99"
    ev = evaluate([det(99)], ["capacete"])
    assert ev.result.detected_labels == ["Classe 99"]
    assert ev.result.missing_labels == ["capacete"]


def test_input_not_mutated(det):
    dets = [det(10), det(8)]
    before = [d.model_dump() for d in dets]
    evaluate(dets, ["capacete"])
    assert [d.model_dump() for d in dets] == before


def test_timestamp_and_source(det):
    now = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    ev = evaluate([det(10)], ["capacete"], now=now, source="mock")
    assert ev.result.timestamp == now
    assert ev.source == "mock"


def test_partition_properties():
    rng = random.Random(7)
    ids = list(EPI_CLASSES) + [42]
    labels = list(EPI_CLASSES.values())
    for _ in range(200):
        dets = [
            Detection(class_id=rng.choice(ids), confidence=rng.random(), x=1, y=1, width=1, height=1)
            for _ in range(rng.randint(0, 8))
        ]
        required = rng.sample(labels, rng.randint(1, 5))
        res = evaluate(dets, required).result
        detected, missing = set(res.detected_labels), set(res.missing_labels)
        assert not (detected & missing)
        assert set(required) <= (detected | missing)
        assert res.compliant == (not missing)
        if not dets:
            assert res.compliant is False
