import pytest
import numpy as np

from epi_core.config import Settings
from epi_core.models import Detection, DetectionResponse, ImageSize
from epi_core.storage import JsonStore


class FakeCamera:
    """Duck-typed stand-in for CameraCapture."""
    def __init__(self, width=640, height=480, ready=True):
        self.width, self.height = width, height
        self.ready = ready
        self.reads = 0
        self.stopped = False

    @property
    def is_ready(self):
        return self.ready

    @property
    def native_size(self):
        return (self.width, self.height) if self.ready else None

    def start(self):
        self.ready = True

    def stop(self):
        self.ready = False
        self.stopped = True

    def read_frame(self):
        self.reads += 1
        return np.zeros((self.height, self.width, 3), dtype=np.uint8)


class FakeClient:
    """Returns a fixed response (or raises) for every detect() call."""
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = 0
        self.payloads = []

    def detect(self, image_bytes):
        self.calls += 1
        self.payloads.append(image_bytes)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def settings(tmp_path):
    return Settings(STATE_DIR=str(tmp_path / "state"), SOUND_ENABLED=False, HISTORY_LIMIT=50)


@pytest.fixture
def store(settings):
    return JsonStore(settings.STATE_DIR)


@pytest.fixture
def det():
    def make(class_id, confidence=0.9, x=100.0, y=100.0, width=40.0, height=40.0):
        return Detection(class_id=class_id, confidence=confidence, x=x, y=y, width=width, height=height)
    return make


@pytest.fixture
def response_for(det):
    def make(*class_ids, width=640, height=480):
        return DetectionResponse(
            predictions=[det(cid) for cid in class_ids],
            image=ImageSize(width=width, height=height),
            time=0.1,
        )
    return make


@pytest.fixture
def fake_camera():
    return FakeCamera()


@pytest.fixture
def fake_client_cls():
    return FakeClient
