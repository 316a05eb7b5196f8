"""
Named key -> JSON document store used for settings, history and stats.
"""
from __future__ import annotations
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Optional, Set, TypeVar

from epi_core.errors import MalformedPersistedState

logger = logging.getLogger(__name__)

T = TypeVar("T")

REQUIRED_KEY = "requiredEPIs"
HISTORY_KEY = "detectionHistory"
STATS_KEY = "detectionStats"


class JsonStore:
    """Persist one JSON document per key under a root directory."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self._warned: Set[str] = set()

    def path_for(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def get_raw(self, key: str) -> Optional[Any]:
        """
        Parsed JSON for `key`, or None when nothing was stored.

        Raises:
            MalformedPersistedState: file exists but is unreadable or not JSON.
        """
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as exc:
            raise MalformedPersistedState(key, str(exc)) from exc

    def set(self, key: str, value: Any) -> None:
        path = self.path_for(key)
        fd, tmp = tempfile.mkstemp(dir=self.root, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(value, f, indent=2, ensure_ascii=False)
            os.replace(tmp, path)
        except Exception:
            try:
                os.unlink(tmp)
            except OSError:
                logger.warning(f"[storage] failed to cleanup tmp file: {tmp}")
            raise

    def delete(self, key: str) -> None:
        try:
            self.path_for(key).unlink()
        except FileNotFoundError:
            return

    def load_or_default(self, key: str, default: Callable[[], T], validate: Callable[[Any], T]) -> T:
        """
        Load `key` and validate it, falling back to `default()` on any problem.

        Missing keys return the default silently; corrupt or invalid documents
        are logged once per key and also return the default.
        """
        try:
            raw = self.get_raw(key)
            if raw is None:
                return default()
            try:
                return validate(raw)
            except (ValueError, TypeError, KeyError) as exc:
                raise MalformedPersistedState(key, str(exc)) from exc
        except MalformedPersistedState as exc:
            if key not in self._warned:
                self._warned.add(key)
                logger.warning(f"[storage] {exc}; using defaults")
            return default()
