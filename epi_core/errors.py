"""
Error taxonomy shared by the capture loop, the relay client and the relay endpoint.
"""
from __future__ import annotations
from typing import Iterable, Optional


class EPIError(RuntimeError):
    """Base class for every failure surfaced as a status message."""


class ConfigurationMissing(EPIError):
    """Upstream credentials/identifiers are not configured (operator-facing)."""

    def __init__(self, missing: Iterable[str]):
        self.missing = list(missing)
        super().__init__(f"Configuração do Roboflow não encontrada: {', '.join(self.missing)}")


class CaptureUnavailable(EPIError):
    """The camera could not be opened or did not deliver a frame."""


class UpstreamError(EPIError):
    """The relay or the hosted model answered with a non-success status."""

    def __init__(self, status: int, detail: Optional[str] = None):
        self.status = int(status)
        self.detail = detail or ""
        msg = f"Erro na API: HTTP {self.status}"
        if self.detail:
            msg += f" - {self.detail[:200]}"
        super().__init__(msg)


class NetworkError(EPIError):
    """The endpoint could not be reached (connection refused, DNS, timeout)."""


class MalformedPersistedState(EPIError):
    """A persisted key holds data that cannot be parsed or validated."""

    def __init__(self, key: str, reason: str = ""):
        self.key = key
        super().__init__(f"Estado persistido inválido em '{key}': {reason}" if reason else f"Estado persistido inválido em '{key}'")
