"""Run the live EPI check window.

Usage:
    uvicorn epi_api.main:app --reload   # (separate, the relay the window posts to)
    python scripts/live_monitor.py      # (camera window)

Keys: c capture, a auto-detect, t test mode, h clear history, l print history,
e select all EPIs, r default EPIs, z reset stats, q quit.
"""
from __future__ import annotations
import argparse
import logging

from epi_core.config import Settings
from epi_core.live import run_live_monitor

if __name__ == '__main__':
    p = argparse.ArgumentParser()
    p.add_argument("--camera", type=int, default=None, help="Camera index (default: CAMERA_INDEX)")
    args = p.parse_args()

    s = Settings()
    logging.basicConfig(level=s.LOG_LEVEL)
    run_live_monitor(s, camera_index=args.camera)
