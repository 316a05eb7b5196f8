"""
Server-side forwarding of a frame to the hosted Roboflow model.
"""
from __future__ import annotations
import base64
import binascii
import logging
from typing import Dict, Optional

import requests

from epi_core.config import Settings
from epi_core.errors import NetworkError, UpstreamError

logger = logging.getLogger(__name__)


def decode_image_payload(data: str) -> bytes:
    """
    Decode a data URI (`data:image/jpeg;base64,...`) or bare base64 string.

    Raises:
        ValueError: empty or not valid base64.
    """
    if not isinstance(data, str) or not data.strip():
        raise ValueError("Imagem não fornecida ou inválida")
    b64 = data.split(",", 1)[1] if "," in data else data
    try:
        out = base64.b64decode(b64.strip(), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Imagem não fornecida ou inválida") from exc
    if not out:
        raise ValueError("Imagem não fornecida ou inválida")
    return out


def normalize_response(data: Dict) -> Dict:
    image = data.get("image") or {}
    return {
        "success": True,
        "predictions": data.get("predictions") or [],
        "image": {
            "width": image.get("width") or 0,
            "height": image.get("height") or 0,
        },
        "time": data.get("time") or 0,
    }


class RoboflowForwarder:
    """Posts image bytes as multipart to `{ROBOFLOW_URL}/{workspace}/{model}`."""

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None) -> None:
        self.s = settings
        self._session = session or requests.Session()

    def forward(self, image_bytes: bytes) -> Dict:
        """
        Raises:
            ConfigurationMissing: upstream credentials are not set.
            UpstreamError: the model endpoint answered with a non-2xx status.
            NetworkError: the model endpoint is unreachable.
        """
        workspace, model_id, api_key = self.s.require_upstream()
        url = f"{self.s.ROBOFLOW_URL.rstrip('/')}/{workspace}/{model_id}"
        logger.debug(f"[upstream] POST {url} bytes={len(image_bytes)}")
        try:
            response = self._session.post(
                url,
                params={"api_key": api_key},
                files={"file": ("image.jpg", image_bytes, "image/jpeg")},
                timeout=self.s.REQUEST_TIMEOUT,
            )
        except requests.exceptions.RequestException as exc:
            logger.error(f"[upstream] cannot reach {url}: {exc}")
            raise NetworkError(f"Cannot connect to detection model at {url}") from exc

        if not response.ok:
            logger.error(f"[upstream] Erro na API do Roboflow: {response.text[:400]}")
            raise UpstreamError(response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamError(502, "Invalid JSON from detection model") from exc
        return normalize_response(data if isinstance(data, dict) else {})
