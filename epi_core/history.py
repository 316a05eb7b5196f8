"""
Capped evaluation history plus cumulative compliance statistics.
"""
from __future__ import annotations
import logging
from typing import Any, List

from epi_core.models import EvaluationResult, StatsAggregate
from epi_core.storage import HISTORY_KEY, STATS_KEY, JsonStore

logger = logging.getLogger(__name__)


def _validate_history(raw: Any) -> List[EvaluationResult]:
    if not isinstance(raw, list):
        raise ValueError("expected a JSON array")
    return [EvaluationResult.model_validate(e) for e in raw]


def _validate_stats(raw: Any) -> StatsAggregate:
    return StatsAggregate.model_validate(raw)


class HistoryStore:
    """
    Rolling log of evaluation results (oldest evicted beyond `limit`) and
    running counters that keep counting regardless of the cap.
    """

    def __init__(self, store: JsonStore, limit: int = 50) -> None:
        self.store = store
        self.limit = max(1, int(limit))
        self._history: List[EvaluationResult] = []
        self._stats = StatsAggregate()
        self.load()

    def load(self) -> None:
        self._history = self.store.load_or_default(HISTORY_KEY, list, _validate_history)
        if len(self._history) > self.limit:
            self._history = self._history[-self.limit:]
        self._stats = self.store.load_or_default(STATS_KEY, StatsAggregate, _validate_stats)
        logger.debug(f"[history] loaded entries={len(self._history)} total={self._stats.total_evaluations}")

    # ---- queries ----
    @property
    def history(self) -> List[EvaluationResult]:
        return list(self._history)

    @property
    def stats(self) -> StatsAggregate:
        return self._stats.model_copy(deep=True)

    def recent(self, n: int = 10) -> List[EvaluationResult]:
        """Newest first."""
        if n <= 0:
            return []
        return list(reversed(self._history[-n:]))

    # ---- mutations ----
    def record(self, result: EvaluationResult) -> None:
        """
        Append `result` and fold it into the counters. Memory is only updated
        once both documents were written.

        Raises:
            OSError: the state directory could not be written.
        """
        history = (self._history + [result])[-self.limit:]
        st = self._stats.model_copy(deep=True)
        st.total_evaluations += 1
        if result.compliant:
            st.compliant_count += 1
        else:
            st.non_compliant_count += 1
        for label in result.detected_labels:
            st.per_label_counts[label] = st.per_label_counts.get(label, 0) + 1

        self._save_history(history)
        self._save_stats(st)
        self._history, self._stats = history, st
        logger.debug(
            f"[history] recorded compliant={result.compliant} entries={len(self._history)} "
            f"total={st.total_evaluations}"
        )

    def clear(self) -> None:
        self._save_history([])
        self._history = []
        logger.info("[history] history cleared")

    def reset_stats(self) -> None:
        self._save_stats(StatsAggregate())
        self._stats = StatsAggregate()

    def _save_history(self, history: List[EvaluationResult]) -> None:
        self.store.set(HISTORY_KEY, [e.model_dump(mode="json") for e in history])

    def _save_stats(self, stats: StatsAggregate) -> None:
        self.store.set(STATS_KEY, stats.model_dump(mode="json"))
