# /reclaimarr.py
# Reclaimarr - delete-sync engine for Sonarr/Radarr libraries
# Copyright (c) 2025-2026 Reclaimarr
from __future__ import annotations

import os
import socket
import time

import uvicorn
from fastapi import FastAPI, Request

from _logging import log as _root_log
from api import register as register_api
from rc_platform.config_base import CONFIG_BASE, load_config

log = _root_log.child("APP")

# API
app = FastAPI(title="Reclaimarr")


@app.middleware("http")
async def error_access_logger(request: Request, call_next):
    t0 = time.time()
    try:
        response = await call_next(request)
    except Exception as e:
        log.error(f'"{request.method} {request.url.path}" failed: {e}')
        raise
    if response.status_code >= 400:
        dt_ms = int((time.time() - t0) * 1000)
        log.warn(f'"{request.method} {request.url.path}" {response.status_code} ({dt_ms} ms)')
    return response


@app.get("/healthz")
def healthz() -> dict[str, bool]:
    return {"ok": True}


register_api(app)


def get_primary_ip() -> str:
    s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        s.connect(("8.8.8.8", 80))
        return s.getsockname()[0]
    except OSError:
        return "127.0.0.1"
    finally:
        s.close()


# Entry point
def main(host: str = "0.0.0.0", port: int | None = None) -> None:
    port = int(port or os.getenv("RECLAIMARR_PORT") or 8788)
    ip = get_primary_ip()
    print("\nReclaimarr running:")
    print(f"  Local:   http://127.0.0.1:{port}")
    print(f"  Docker:  http://{ip}:{port}")
    print(f"  Config:  {CONFIG_BASE() / 'config.json'} (JSON)\n")

    cfg = load_config()
    debug = bool((cfg.get("runtime") or {}).get("debug"))
    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level=("debug" if debug else "warning"),
        access_log=debug,
    )


if __name__ == "__main__":
    main()
