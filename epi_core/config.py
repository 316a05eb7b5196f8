"""
Configuration for capture, relay and persisted state.
"""
from pydantic import BaseModel
import os

from epi_core.errors import ConfigurationMissing

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def _env_bool(key: str, default: bool) -> bool:
    v = os.getenv(key)
    if v is None or v.strip() == "":
        return default
    return v.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """
    Runtime settings with environment-variable overrides.
    """
    # Upstream model (read by the relay's forwarding step only)
    ROBOFLOW_API_KEY: str | None = os.getenv("ROBOFLOW_API_KEY") or None
    ROBOFLOW_MODEL_ID: str | None = os.getenv("ROBOFLOW_MODEL_ID") or None
    ROBOFLOW_WORKSPACE: str | None = os.getenv("ROBOFLOW_WORKSPACE") or None
    ROBOFLOW_URL: str = os.getenv("ROBOFLOW_URL", "https://detect.roboflow.com")

    # Client side
    RELAY_URL: str = os.getenv("RELAY_URL", "http://localhost:8000/api/detect")
    REQUEST_TIMEOUT: float = float(os.getenv("REQUEST_TIMEOUT", "30"))
    CAMERA_INDEX: int = int(os.getenv("CAMERA_INDEX", "0"))
    CAPTURE_WIDTH: int = int(os.getenv("CAPTURE_WIDTH", "1280"))
    CAPTURE_HEIGHT: int = int(os.getenv("CAPTURE_HEIGHT", "720"))
    MAX_IMAGE_WIDTH: int = int(os.getenv("MAX_IMAGE_WIDTH", "1280"))
    JPEG_QUALITY: int = int(os.getenv("JPEG_QUALITY", "80"))
    AUTO_DETECT_INTERVAL: float = float(os.getenv("AUTO_DETECT_INTERVAL", "3"))

    # Persisted state
    HISTORY_LIMIT: int = int(os.getenv("HISTORY_LIMIT", "50"))
    STATE_DIR: str = os.getenv("STATE_DIR", "data/state")

    SOUND_ENABLED: bool = _env_bool("SOUND_ENABLED", True)
    MOCK_FALLBACK: bool = _env_bool("MOCK_FALLBACK", False)
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "DEBUG")

    def __init__(self, **data):
        super().__init__(**data)
        level = (self.LOG_LEVEL or "DEBUG").strip().upper()
        if level not in _LOG_LEVELS:
            level = "DEBUG"
        object.__setattr__(self, "LOG_LEVEL", level)
        object.__setattr__(self, "HISTORY_LIMIT", max(1, int(self.HISTORY_LIMIT)))
        object.__setattr__(self, "AUTO_DETECT_INTERVAL", max(0.5, float(self.AUTO_DETECT_INTERVAL)))
        object.__setattr__(self, "JPEG_QUALITY", max(1, min(100, int(self.JPEG_QUALITY))))

    def require_upstream(self) -> tuple[str, str, str]:
        """
        Return (workspace, model_id, api_key) for the hosted model.

        Raises:
            ConfigurationMissing: one or more upstream variables are unset.
        """
        values = {
            "ROBOFLOW_WORKSPACE": self.ROBOFLOW_WORKSPACE,
            "ROBOFLOW_MODEL_ID": self.ROBOFLOW_MODEL_ID,
            "ROBOFLOW_API_KEY": self.ROBOFLOW_API_KEY,
        }
        missing = [k for k, v in values.items() if not v]
        if missing:
            raise ConfigurationMissing(missing)
        return self.ROBOFLOW_WORKSPACE, self.ROBOFLOW_MODEL_ID, self.ROBOFLOW_API_KEY
