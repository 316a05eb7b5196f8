"""
REST endpoints: detection relay, required-EPI configuration, history and stats.
"""
import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from epi_core.catalog import AVAILABLE_EPIS
from epi_core.compliance import evaluate
from epi_core.config import Settings
from epi_core.errors import ConfigurationMissing, NetworkError, UpstreamError
from epi_core.history import HistoryStore
from epi_core.models import DetectionResponse
from epi_core.report import build_report
from epi_core.required_labels import RequiredLabels
from epi_core.storage import JsonStore
from epi_core.upstream import RoboflowForwarder, decode_image_payload

router = APIRouter()
settings = Settings()
logger = logging.getLogger(__name__)

INVALID_IMAGE = "Imagem não fornecida ou inválida"


class RequiredUpdate(BaseModel):
    labels: List[str]


def get_settings() -> Settings:
    return settings


def get_forwarder(cfg: Settings = Depends(get_settings)) -> RoboflowForwarder:
    return RoboflowForwarder(cfg)


def get_store(cfg: Settings = Depends(get_settings)) -> JsonStore:
    return JsonStore(cfg.STATE_DIR)


async def _read_image(request: Request) -> bytes:
    """
    Extract image bytes from JSON {image}, a JSON/text base64 string,
    multipart (file or image field) or a raw binary body.
    """
    ctype = (request.headers.get("content-type") or "").lower()
    if ctype.startswith("multipart/form-data"):
        form = await request.form()
        item = form.get("file") or form.get("image")
        if item is None:
            raise ValueError(INVALID_IMAGE)
        if isinstance(item, str):
            return decode_image_payload(item)
        return await item.read()

    body = await request.body()
    if not body:
        raise ValueError(INVALID_IMAGE)
    if "application/json" in ctype:
        try:
            payload = json.loads(body)
        except ValueError:
            raise ValueError(INVALID_IMAGE)
        if isinstance(payload, dict):
            payload = payload.get("image")
        if not isinstance(payload, str):
            raise ValueError(INVALID_IMAGE)
        return decode_image_payload(payload)
    if ctype.startswith("text/"):
        return decode_image_payload(body.decode("utf-8", errors="ignore"))
    return body


@router.post("/api/detect")
async def detect(request: Request, forwarder: RoboflowForwarder = Depends(get_forwarder)):
    """
    Forward a captured frame to the hosted detection model.

    Returns:
        JSONResponse: {success, predictions, image: {width, height}, time}
        or an error body {error, details|message} with the matching status.
    """
    try:
        image_bytes = await _read_image(request)
    except ValueError as e:
        return JSONResponse(status_code=400, content={"error": str(e) or INVALID_IMAGE})
    if not image_bytes:
        return JSONResponse(status_code=400, content={"error": INVALID_IMAGE})
    logger.debug(f"[api] /api/detect bytes={len(image_bytes)}")

    try:
        data = await run_in_threadpool(forwarder.forward, image_bytes)
    except ConfigurationMissing as e:
        logger.error(f"[api] {e}")
        return JSONResponse(status_code=500, content={
            "error": "Configuração do Roboflow não encontrada",
            "message": "Configure as variáveis de ambiente " + ", ".join(e.missing),
        })
    except UpstreamError as e:
        return JSONResponse(status_code=e.status, content={
            "error": "Erro ao processar imagem",
            "details": e.detail,
        })
    except NetworkError as e:
        return JSONResponse(status_code=502, content={
            "error": "Erro ao conectar com o modelo de detecção",
            "message": str(e),
        })
    except Exception as e:
        logger.exception("[api] /api/detect failed")
        return JSONResponse(status_code=500, content={
            "error": "Erro interno do servidor",
            "message": str(e),
        })
    logger.debug(f"[api] /api/detect predictions={len(data['predictions'])}")
    return JSONResponse(data)


@router.get("/config/required")
def get_required(store: JsonStore = Depends(get_store)) -> dict:
    return {"labels": RequiredLabels(store).labels}


@router.put("/config/required")
def put_required(body: RequiredUpdate, store: JsonStore = Depends(get_store)) -> dict:
    try:
        labels = RequiredLabels(store).save(body.labels)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"labels": labels}


@router.post("/config/required/all")
def select_all_required(store: JsonStore = Depends(get_store)) -> dict:
    return {"labels": RequiredLabels(store).select_all()}


@router.post("/config/required/reset")
def reset_required(store: JsonStore = Depends(get_store)) -> dict:
    return {"labels": RequiredLabels(store).reset()}


@router.get("/config/available")
def get_available() -> dict:
    return {"labels": list(AVAILABLE_EPIS.values())}


@router.get("/history")
def get_history(
    limit: Optional[int] = Query(default=None, ge=1),
    store: JsonStore = Depends(get_store),
    cfg: Settings = Depends(get_settings),
) -> list:
    history = HistoryStore(store, limit=cfg.HISTORY_LIMIT)
    entries = history.recent(limit or cfg.HISTORY_LIMIT)
    return [e.model_dump(mode="json") for e in entries]


@router.delete("/history", status_code=204)
def delete_history(store: JsonStore = Depends(get_store), cfg: Settings = Depends(get_settings)) -> None:
    HistoryStore(store, limit=cfg.HISTORY_LIMIT).clear()


@router.get("/stats")
def get_stats(store: JsonStore = Depends(get_store), cfg: Settings = Depends(get_settings)) -> dict:
    stats = HistoryStore(store, limit=cfg.HISTORY_LIMIT).stats
    payload = stats.model_dump(mode="json")
    payload["compliance_rate"] = stats.compliance_rate
    return payload


@router.delete("/stats", status_code=204)
def delete_stats(store: JsonStore = Depends(get_store), cfg: Settings = Depends(get_settings)) -> None:
    HistoryStore(store, limit=cfg.HISTORY_LIMIT).reset_stats()


@router.post("/evaluate")
def evaluate_response(
    body: DetectionResponse,
    store: JsonStore = Depends(get_store),
    cfg: Settings = Depends(get_settings),
) -> dict:
    """
    Evaluate an already-obtained relay payload against the stored required
    labels and record the outcome.
    """
    evaluation = evaluate(body.predictions, RequiredLabels(store).labels, source="api")
    HistoryStore(store, limit=cfg.HISTORY_LIMIT).record(evaluation.result)
    return {
        "evaluation": evaluation.model_dump(mode="json"),
        "report": build_report(evaluation).model_dump(mode="json"),
    }
