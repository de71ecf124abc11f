# /api/deleteSyncAPI.py
# Reclaimarr - delete-sync trigger and status endpoints
# Copyright (c) 2025-2026 Reclaimarr
from __future__ import annotations

import threading
from typing import Any

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from _logging import log as _root_log
from rc_platform.reconcile import Collaborators, ConfigError, Reconciler

__all__ = ["router", "get_reconciler", "set_reconciler", "build_collaborators"]

router = APIRouter(prefix="/api", tags=["delete-sync"])
log = _root_log.child("API")

_LOCK = threading.Lock()
_RECONCILER: Reconciler | None = None


class RunRequest(BaseModel):
    dry_run: bool = False


def _env():
    from rc_platform.config_base import load_config
    return load_config


def build_collaborators(cfg: dict[str, Any], *, tagging: Any = None) -> Collaborators:
    from providers.arr import ArrInventory
    from providers.notify import build_notifiers
    from providers.watchlist import WatchlistStore
    from rc_platform.config_base import CONFIG_BASE

    protection = None
    if (cfg.get("delete_sync") or {}).get("protection_enabled"):
        from providers.plex import PlexProtection, PlexProtectionConfig
        protection = PlexProtection(PlexProtectionConfig.from_config(cfg))

    if (cfg.get("delete_sync") or {}).get("deletion_mode") == "tag-based" and tagging is None:
        log.warn(
            "Tag-based deletion is enabled but no tagging service is configured; "
            "removal tags will not be refreshed from watchlists before each run"
        )

    return Collaborators(
        inventory=ArrInventory.from_config(cfg),
        watchlist=WatchlistStore(CONFIG_BASE()),
        protection=protection,
        tagging=tagging,
        notifiers=build_notifiers(cfg),
    )


def set_reconciler(rec: Reconciler | None) -> None:
    global _RECONCILER
    with _LOCK:
        _RECONCILER = rec


def get_reconciler() -> Reconciler:
    global _RECONCILER
    with _LOCK:
        if _RECONCILER is None:
            cfg = _env()()
            _RECONCILER = Reconciler(cfg, build_collaborators(cfg))
        return _RECONCILER


@router.post("/delete-sync/run")
def api_run_delete_sync(payload: RunRequest | None = Body(default=None)) -> Any:
    payload = payload or RunRequest()
    rec = get_reconciler()
    if rec.running:
        return {"ok": False, "error": "Delete sync already running"}
    try:
        result = rec.run(dry_run=payload.dry_run)
    except ConfigError as e:
        log.error(f"Delete sync configuration error: {e}")
        return JSONResponse({"ok": False, "error": str(e)}, status_code=400)
    return {"ok": True, "dry_run": payload.dry_run, "result": result.to_dict()}


@router.get("/delete-sync/last")
def api_last_delete_sync() -> dict[str, Any]:
    rec = get_reconciler()
    if rec.last_result is None:
        return {"ok": True, "result": None, "finished_at": None}
    return {"ok": True, "result": rec.last_result.to_dict(), "finished_at": rec.last_run_at}


@router.get("/delete-sync/status")
def api_delete_sync_status() -> dict[str, Any]:
    rec = get_reconciler()
    policy = dict(rec.cfg.get("delete_sync") or {})
    return {
        "ok": True,
        "running": rec.running,
        "mode": policy.get("deletion_mode", "watchlist"),
        "last_run_at": rec.last_run_at,
    }
