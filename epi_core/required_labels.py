"""
User-editable set of required EPI labels.
"""
from __future__ import annotations
import logging
from typing import Any, Iterable, List, Optional

from epi_core.catalog import AVAILABLE_EPIS, DEFAULT_REQUIRED
from epi_core.storage import REQUIRED_KEY, JsonStore

logger = logging.getLogger(__name__)


def _ordered_unique(labels: Iterable[str]) -> List[str]:
    out: List[str] = []
    for label in labels:
        if label not in out:
            out.append(label)
    return out


def _validate_labels(raw: Any) -> List[str]:
    if not isinstance(raw, list) or not all(isinstance(x, str) for x in raw):
        raise ValueError("expected a JSON array of strings")
    return _ordered_unique(raw)


class RequiredLabels:
    """Ordered, persisted set of labels that must be present for compliance."""

    def __init__(self, store: JsonStore) -> None:
        self.store = store
        self._labels: Optional[List[str]] = None

    def load(self) -> List[str]:
        self._labels = self.store.load_or_default(
            REQUIRED_KEY, lambda: list(DEFAULT_REQUIRED), _validate_labels
        )
        return list(self._labels)

    @property
    def labels(self) -> List[str]:
        if self._labels is None:
            self.load()
        return list(self._labels)

    def save(self, labels: Iterable[str]) -> List[str]:
        """
        Validate and persist a new required set.

        Raises:
            ValueError: empty selection or a label that cannot be required.
        """
        selected = _ordered_unique(labels)
        if not selected:
            raise ValueError("Selecione pelo menos um EPI obrigatório!")
        allowed = set(AVAILABLE_EPIS.values())
        unknown = [s for s in selected if s not in allowed]
        if unknown:
            raise ValueError(f"EPI(s) desconhecido(s): {', '.join(unknown)}")
        self.store.set(REQUIRED_KEY, selected)
        self._labels = selected
        logger.info(f"[config] {len(selected)} EPI(s) obrigatório(s) configurado(s): {selected}")
        return list(selected)

    def select_all(self) -> List[str]:
        return self.save(AVAILABLE_EPIS.values())

    def reset(self) -> List[str]:
        return self.save(DEFAULT_REQUIRED)
