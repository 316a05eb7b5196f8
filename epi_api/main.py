"""
FastAPI application entrypoint.
"""
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from epi_api.routes import router, settings

logging.basicConfig(level=settings.LOG_LEVEL)
app = FastAPI(title="EPI Detection Relay", version="1.0.0")

# Capture clients run from other origins (browser pages, local scripts)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["POST", "GET", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type"],
)
app.include_router(router)

@app.get("/health")
def health() -> dict:
    """Liveness check; does not contact the detection model."""
    return {"status": "ok"}
