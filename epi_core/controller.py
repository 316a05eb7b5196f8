# epi_core/controller.py
"""
Application controller: owns capture, relay, evaluation, overlay and history state.

Commands:
- start_camera / stop_camera
- on_capture_requested(use_mock=False): one capture -> relay -> evaluate -> render cycle
- start_auto_detect / stop_auto_detect: periodic on_capture_requested via tick()
- update_required / select_all_required / reset_required
- clear_history / reset_stats

Events (listeners registered with add_status_listener / add_result_listener):
- status text after every state change worth showing
- (evaluation, report) after each completed cycle

Only one cycle runs at a time. The busy flag is a non-blocking lock because
the auto-detect timer runs on its own thread; it is always released when the
cycle ends, whatever the outcome.
"""
from __future__ import annotations

import logging
import random
import threading
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from epi_core.capture import CameraCapture, encode_jpeg
from epi_core.compliance import evaluate
from epi_core.config import Settings
from epi_core.errors import CaptureUnavailable, EPIError, NetworkError, UpstreamError
from epi_core.history import HistoryStore
from epi_core.mock import generate_mock_response
from epi_core.models import Detection, DetectionResponse, Evaluation, StatusReport
from epi_core.notify import play_notification
from epi_core.overlay import OverlayRenderer
from epi_core.relay_client import RelayClient
from epi_core.report import build_report, status_line
from epi_core.required_labels import RequiredLabels
from epi_core.storage import JsonStore

logger = logging.getLogger(__name__)

StatusListener = Callable[[str], None]
ResultListener = Callable[[Evaluation, StatusReport], None]


class CycleState(str, Enum):
    IDLE = "Idle"
    CAPTURING = "Capturing"
    AWAITING_RESPONSE = "AwaitingResponse"
    RENDERING = "Rendering"
    FAILED = "Failed"


def scale_detections(detections: Sequence[Detection],
                     source_size: Tuple[int, int],
                     target_size: Tuple[int, int]) -> List[Detection]:
    """Map boxes predicted on a (possibly downscaled) upload back to native pixels."""
    sw, sh = source_size
    tw, th = target_size
    if not sw or not sh or (sw, sh) == (tw, th):
        return list(detections)
    fx, fy = tw / float(sw), th / float(sh)
    return [
        d.model_copy(update={"x": d.x * fx, "y": d.y * fy, "width": d.width * fx, "height": d.height * fy})
        for d in detections
    ]


class DetectionController:
    """Single owner of the mutable application state."""

    def __init__(self,
                 settings: Settings,
                 camera: Optional[CameraCapture] = None,
                 client: Optional[RelayClient] = None,
                 store: Optional[JsonStore] = None,
                 renderer: Optional[OverlayRenderer] = None,
                 confirm_fallback: Optional[Callable[[EPIError], bool]] = None,
                 rng: Optional[random.Random] = None):
        self.s = settings
        store = store or JsonStore(settings.STATE_DIR)
        self.camera = camera or CameraCapture(settings)
        self.client = client or RelayClient(settings)
        self.required = RequiredLabels(store)
        self.required.load()
        self.history = HistoryStore(store, limit=settings.HISTORY_LIMIT)
        self.renderer = renderer or OverlayRenderer()
        self.confirm_fallback = confirm_fallback or (lambda err: settings.MOCK_FALLBACK)
        self._rng = rng or random.Random()

        self._busy = threading.Lock()
        self._state = CycleState.IDLE
        self._auto_stop = threading.Event()
        self._auto_thread: Optional[threading.Thread] = None

        self.status = ""
        self.last_evaluation: Optional[Evaluation] = None
        self.last_report: Optional[StatusReport] = None
        self._status_listeners: List[StatusListener] = []
        self._result_listeners: List[ResultListener] = []

    # ---- events ----
    def add_status_listener(self, fn: StatusListener) -> None:
        self._status_listeners.append(fn)

    def add_result_listener(self, fn: ResultListener) -> None:
        self._result_listeners.append(fn)

    def _emit_status(self, message: str) -> None:
        self.status = message
        logger.info(f"[controller] {message}")
        for fn in list(self._status_listeners):
            fn(message)

    # ---- state ----
    @property
    def state(self) -> CycleState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return self._busy.locked()

    @property
    def auto_detecting(self) -> bool:
        return self._auto_thread is not None and not self._auto_stop.is_set()

    # ---- camera ----
    def start_camera(self) -> bool:
        try:
            self.camera.start()
        except CaptureUnavailable as exc:
            logger.error(f"[controller] camera unavailable: {exc}")
            self._emit_status("Erro ao acessar a câmera. Verifique as permissões.")
            return False
        self._emit_status('Câmera ativada! Pressione "c" para capturar e analisar.')
        return True

    def stop_camera(self) -> None:
        self.stop_auto_detect()
        # an in-flight cycle must finish before its results are discarded
        acquired = self._busy.acquire(timeout=self.s.REQUEST_TIMEOUT + 1)
        if not acquired:
            logger.warning("[controller] capture cycle still running while stopping camera")
        try:
            self.camera.stop()
            self.renderer.clear()
            self.last_evaluation = None
            self.last_report = None
            self._emit_status("Câmera desativada.")
        finally:
            if acquired:
                self._busy.release()

    # ---- capture cycle ----
    def on_capture_requested(self, use_mock: bool = False) -> Optional[Evaluation]:
        """
        Run one capture/evaluate cycle.

        Returns:
            The evaluation, or None when the request was rejected (camera not
            ready, cycle already in flight) or the cycle failed.
        """
        if not use_mock and not self.camera.is_ready:
            self._emit_status("Câmera não está pronta.")
            return None
        if not self._busy.acquire(blocking=False):
            logger.debug("[controller] capture ignored: cycle already in flight")
            return None
        try:
            return self._run_cycle(use_mock)
        finally:
            self._state = CycleState.IDLE
            self._busy.release()

    def _run_cycle(self, use_mock: bool) -> Optional[Evaluation]:
        self._state = CycleState.CAPTURING
        self._emit_status("Analisando imagem...")
        try:
            if use_mock:
                response = generate_mock_response(self._rng)
                native = self.camera.native_size if self.camera.is_ready else None
                source = "mock"
            else:
                frame = self.camera.read_frame()
                h, w = frame.shape[:2]
                native = (w, h)
                payload = encode_jpeg(frame, self.s.MAX_IMAGE_WIDTH, self.s.JPEG_QUALITY)
                self._state = CycleState.AWAITING_RESPONSE
                response = self.client.detect(payload)
                source = "camera"
        except (UpstreamError, NetworkError) as exc:
            self._state = CycleState.FAILED
            self._emit_status(f"Erro ao processar imagem: {exc}")
            if not use_mock and self.confirm_fallback(exc):
                logger.info("[controller] falling back to simulated data")
                return self._run_cycle(use_mock=True)
            return None
        except CaptureUnavailable as exc:
            self._state = CycleState.FAILED
            self._emit_status(f"Erro ao capturar imagem: {exc}")
            return None

        self._state = CycleState.RENDERING
        return self.process_response(response, native, source=source)

    def process_response(self,
                         response: DetectionResponse,
                         native_size: Optional[Tuple[int, int]] = None,
                         source: str = "camera") -> Evaluation:
        """Evaluate a relay payload and hand it to on_evaluation_complete."""
        src_size = (response.image.width, response.image.height)
        target = native_size or src_size
        detections = scale_detections(response.predictions, src_size, target)
        evaluation = evaluate(detections, self.required.labels, source=source)
        self.on_evaluation_complete(evaluation, detections, target)
        return evaluation

    def on_evaluation_complete(self,
                               evaluation: Evaluation,
                               detections: Sequence[Detection] = (),
                               size: Optional[Tuple[int, int]] = None) -> StatusReport:
        if size and all(size):
            self.renderer.render(detections, size[0], size[1], required=self.required.labels)
        else:
            self.renderer.clear()

        try:
            self.history.record(evaluation.result)
            saved = True
        except OSError as exc:
            logger.error(f"[controller] could not persist history: {exc}")
            saved = False
        report = build_report(evaluation)
        self.last_evaluation = evaluation
        self.last_report = report
        self._emit_status(status_line(evaluation))
        if not saved:
            self._emit_status("Erro ao salvar histórico.")

        if not evaluation.nothing_detected:
            play_notification("success" if evaluation.result.compliant else "warning", self.s)
        for fn in list(self._result_listeners):
            fn(evaluation, report)
        return report

    # ---- periodic trigger ----
    def tick(self) -> Optional[Evaluation]:
        if self.is_busy or not self.camera.is_ready:
            return None
        return self.on_capture_requested()

    def start_auto_detect(self, interval: Optional[float] = None) -> None:
        self.stop_auto_detect()
        period = float(interval or self.s.AUTO_DETECT_INTERVAL)
        stop = threading.Event()
        self._auto_stop = stop

        def _loop():
            while not stop.wait(period):
                try:
                    self.tick()
                except Exception:
                    logger.exception("[controller] auto-detect tick failed")

        self._auto_thread = threading.Thread(target=_loop, daemon=True)
        self._auto_thread.start()
        self._emit_status(f"Modo de detecção contínua ativado (a cada {period:g} segundos)")

    def stop_auto_detect(self) -> None:
        thread = self._auto_thread
        if thread is None:
            return
        self._auto_stop.set()
        self._auto_thread = None
        if thread is not threading.current_thread():
            thread.join(timeout=self.s.REQUEST_TIMEOUT + 1)
        self._emit_status("Detecção contínua desativada")

    # ---- configuration / history ----
    def update_required(self, labels: Sequence[str]) -> List[str]:
        saved = self.required.save(labels)
        self._emit_status(f"Configuração salva! {len(saved)} EPI(s) obrigatório(s) configurado(s).")
        return saved

    def select_all_required(self) -> List[str]:
        saved = self.required.select_all()
        self._emit_status(f"Todos os {len(saved)} EPIs marcados como obrigatórios.")
        return saved

    def reset_required(self) -> List[str]:
        saved = self.required.reset()
        self._emit_status(f"EPIs obrigatórios restaurados: {', '.join(saved)}")
        return saved

    def clear_history(self) -> None:
        try:
            self.history.clear()
        except OSError as exc:
            logger.error(f"[controller] could not persist history: {exc}")
            self._emit_status("Erro ao salvar histórico.")
            return
        self._emit_status("Histórico limpo.")

    def reset_stats(self) -> None:
        try:
            self.history.reset_stats()
        except OSError as exc:
            logger.error(f"[controller] could not persist stats: {exc}")
            self._emit_status("Erro ao salvar histórico.")
            return
        self._emit_status("Estatísticas zeradas.")
