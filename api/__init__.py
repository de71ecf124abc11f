from __future__ import annotations

from fastapi import FastAPI

from .deleteSyncAPI import router as delete_sync_router

__all__ = ["delete_sync_router", "register"]


def register(app: FastAPI) -> None:
    app.include_router(delete_sync_router)
