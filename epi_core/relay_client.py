"""
HTTP client for the relay endpoint that forwards frames to the detection model.
"""
from __future__ import annotations
import logging
from typing import Optional

import requests

from epi_core.capture import to_data_uri
from epi_core.config import Settings
from epi_core.errors import NetworkError, UpstreamError
from epi_core.models import DetectionResponse

logger = logging.getLogger(__name__)


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return (response.text or response.reason or "")[:500]
    if isinstance(body, dict):
        for key in ("details", "message", "error", "detail"):
            if body.get(key):
                return str(body[key])
    return str(body)[:500]


class RelayClient:
    """Send one encoded frame, get normalized detections back. Never retries."""

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None) -> None:
        self.s = settings
        self._session = session or requests.Session()

    def detect(self, image_bytes: bytes) -> DetectionResponse:
        """
        Post a JPEG frame as a data URI.

        Raises:
            UpstreamError: non-2xx status or undecodable success body.
            NetworkError: relay unreachable or timed out.
        """
        url = self.s.RELAY_URL
        logger.debug(f"[relay] POST {url} bytes={len(image_bytes)}")
        try:
            response = self._session.post(
                url,
                json={"image": to_data_uri(image_bytes)},
                timeout=self.s.REQUEST_TIMEOUT,
            )
        except requests.exceptions.RequestException as exc:
            logger.error(f"[relay] cannot reach {url}: {exc}")
            raise NetworkError(f"Cannot connect to relay at {url}") from exc

        if not response.ok:
            detail = _error_detail(response)
            logger.error(f"[relay] HTTP {response.status_code}: {detail[:200]}")
            raise UpstreamError(response.status_code, detail)

        try:
            payload = DetectionResponse.model_validate(response.json())
        except ValueError as exc:
            raise UpstreamError(response.status_code, f"Invalid response body: {exc}") from exc
        logger.debug(f"[relay] predictions={len(payload.predictions)} time={payload.time}")
        return payload
