
import cv2
import numpy as np
import pytest

import epi_core.capture as capture
from epi_core.capture import CameraCapture, encode_jpeg, load_image, to_data_uri
from epi_core.errors import CaptureUnavailable


class DummyCap:
    def __init__(self, opened=True, frames=3, shape=(720, 1280, 3)):
        self.opened = opened
        self.frames = frames
        self.shape = shape
        self.props = {}
        self.released = False
    def isOpened(self): return self.opened
    def set(self, prop, value):
        self.props[prop] = value
        return True
    def get(self, prop): return 0.0
    def read(self):
        if self.frames <= 0:
            return False, None
        self.frames -= 1
        return True, np.zeros(self.shape, dtype=np.uint8)
    def release(self): self.released = True


def test_camera_lifecycle(monkeypatch, settings):
    dummy = DummyCap()
    monkeypatch.setattr(capture.cv2, "VideoCapture", lambda idx: dummy)

    cam = CameraCapture(settings, camera_index=2)
    assert not cam.is_ready
    cam.start()
    assert dummy.props[cv2.CAP_PROP_FRAME_WIDTH] == settings.CAPTURE_WIDTH
    assert cam.native_size is None  # unknown until the first frame

    frame = cam.read_frame()
    assert frame.shape == (720, 1280, 3)
    assert cam.native_size == (1280, 720)
    assert cam.is_ready

    cam.stop()
    cam.stop()
    assert dummy.released
    assert not cam.is_open
    with pytest.raises(CaptureUnavailable):
        cam.read_frame()


def test_camera_unavailable(monkeypatch, settings):
    monkeypatch.setattr(capture.cv2, "VideoCapture", lambda idx: DummyCap(opened=False))
    with pytest.raises(CaptureUnavailable):
        CameraCapture(settings).start()


def test_read_failure(monkeypatch, settings):
    monkeypatch.setattr(capture.cv2, "VideoCapture", lambda idx: DummyCap(frames=0))
    with CameraCapture(settings) as cam:
        with pytest.raises(CaptureUnavailable):
            cam.read_frame()


def test_encode_jpeg_downscales():
    frame = np.full((1000, 2000, 3), 127, dtype=np.uint8)
    data = encode_jpeg(frame, max_width=1280, quality=80)
    decoded = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
    assert decoded.shape[:2] == (640, 1280)

    small = encode_jpeg(np.zeros((48, 64, 3), dtype=np.uint8), max_width=1280)
    assert cv2.imdecode(np.frombuffer(small, dtype=np.uint8), cv2.IMREAD_COLOR).shape[:2] == (48, 64)


def test_data_uri():
    assert to_data_uri(b"\xff\xd8") == "data:image/jpeg;base64,/9g="


def test_load_image(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_image(str(tmp_path / "none.jpg"))
    bad = tmp_path / "bad.jpg"
    bad.write_bytes(b"not an image")
    with pytest.raises(CaptureUnavailable):
        load_image(str(bad))
    good = tmp_path / "good.png"
    cv2.imwrite(str(good), np.zeros((10, 12, 3), dtype=np.uint8))
    assert load_image(str(good)).shape == (10, 12, 3)
