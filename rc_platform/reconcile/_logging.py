# rc_platform/reconcile/_logging.py
# progress events for delete-sync runs (JSON lines to an optional callback).
# Copyright (c) 2025-2026 Reclaimarr
from __future__ import annotations

import json
from typing import Any, Callable

from _logging import log as _root_log

log = _root_log.child("DELETE-SYNC")


class Emitter:
    """Sends progress to `cb` as compact JSON; a broken callback never breaks a run."""

    def __init__(self, cb: Callable[[str], None] | None, *, debug: bool = False):
        self.cb = cb
        self.debug = debug

    def emit(self, event: str, **data: Any) -> None:
        if not self.cb:
            return
        try:
            payload = {"event": event}
            payload.update(data)
            self.cb(json.dumps(payload, separators=(",", ":"), default=str))
        except Exception as e:
            log.debug(f"progress callback failed on {event}: {e}")

    def info(self, line: str) -> None:
        log.info(line)
        if not self.cb:
            return
        try:
            self.cb(line)
        except Exception as e:
            log.debug(f"progress callback failed: {e}")

    def dbg(self, msg: str, **fields: Any) -> None:
        if not self.debug:
            return
        if fields:
            self.emit("debug", msg=msg, **fields)
        else:
            log.debug(msg)
