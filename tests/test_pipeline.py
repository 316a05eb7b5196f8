import cv2
import numpy as np
import pytest

from epi_core.controller import DetectionController
from epi_core.errors import NetworkError, UpstreamError
from epi_core.pipeline import analyze_image_pipeline


@pytest.fixture
def image_path(tmp_path):
    path = tmp_path / "worker.png"
    cv2.imwrite(str(path), np.full((240, 320, 3), 128, dtype=np.uint8))
    return str(path)


@pytest.fixture
def controller_with(settings, store, fake_camera, fake_client_cls):
    def make(**kw):
        return DetectionController(settings, camera=fake_camera, client=fake_client_cls(**kw), store=store)
    return make


def test_file_analysis(image_path, settings, controller_with, response_for):
    ctl = controller_with(response=response_for(10, 8, width=320, height=240))
    out = analyze_image_pipeline(image_path, settings, controller=ctl)

    assert ctl.client.calls == 1
    assert out["evaluation"]["source"] == "file"
    assert out["evaluation"]["result"]["missing_labels"] == ["máscara facial"]
    assert out["report"]["title"] == "EPIs Faltando"
    assert out["stats"]["total_evaluations"] == 1


def test_annotated_output(image_path, tmp_path, settings, controller_with, response_for):
    ctl = controller_with(response=response_for(10, width=320, height=240))
    target = tmp_path / "out" / "annotated.jpg"
    analyze_image_pipeline(image_path, settings, annotated_path=str(target), controller=ctl)
    img = cv2.imread(str(target))
    assert img is not None and img.shape[:2] == (240, 320)


def test_mock_mode_skips_relay(image_path, settings, controller_with):
    ctl = controller_with()
    out = analyze_image_pipeline(image_path, settings, use_mock=True, controller=ctl)
    assert ctl.client.calls == 0
    assert out["evaluation"]["source"] == "mock"


def test_relay_errors(image_path, settings, controller_with):
    ctl = controller_with(error=UpstreamError(401, "bad key"))
    with pytest.raises(UpstreamError):
        analyze_image_pipeline(image_path, settings, controller=ctl)
    assert ctl.history.history == []

    ctl = controller_with(error=NetworkError("offline"))
    out = analyze_image_pipeline(image_path, settings, mock_on_error=True, controller=ctl)
    assert out["evaluation"]["source"] == "mock"


def test_missing_file(tmp_path, settings):
    with pytest.raises(FileNotFoundError):
        analyze_image_pipeline(str(tmp_path / "nope.jpg"), settings)
