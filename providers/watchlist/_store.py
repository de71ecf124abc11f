# /providers/watchlist/_store.py
# Reclaimarr - watchlist snapshot kept as JSON next to config.json
# Copyright (c) 2025-2026 Reclaimarr
from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from pathlib import Path
from collections.abc import Iterable, Mapping
from typing import Any

from _logging import log as _root_log
from rc_platform.config_base import _write_json_atomic
from rc_platform.guid_map import normalize_guid, parse_guids

__all__ = ["WatchlistStore"]

log = _root_log.child("WATCHLIST")


@dataclass
class WatchlistStore:
    """
    Read side of the watchlist snapshot written by the ingestion service.

    Layout of watchlist.json:
      users:   [{id, name, sync_enabled, is_primary}]
      movies:  [{title, guids, user_id}]
      shows:   [{title, guids, user_id}]
      tracked: [guid, ...]   content this app added (tracked-only deletion)
    """

    base_path: Path
    _data: dict[str, Any] | None = field(init=False, default=None, repr=False)
    _lock: threading.Lock = field(init=False, default_factory=threading.Lock, repr=False)

    @property
    def path(self) -> Path:
        return self.base_path / "watchlist.json"

    def _load(self) -> dict[str, Any]:
        p = self.path
        if not p.exists():
            raise FileNotFoundError(f"watchlist snapshot missing: {p}")
        data = json.loads(p.read_text("utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"watchlist snapshot is not an object: {p}")
        return data

    def _snapshot(self) -> dict[str, Any]:
        with self._lock:
            if self._data is None:
                self._data = self._load()
            return self._data

    # Refresh: re-read from disk; errors surface to the caller
    def refresh_self_watchlist(self) -> int:
        data = self._load()
        with self._lock:
            self._data = data
        primary = [u for u in data.get("users") or [] if isinstance(u, Mapping) and u.get("is_primary")]
        ids = {str(u.get("id")) for u in primary}
        n = sum(1 for it in self._entries("movies") + self._entries("shows") if str(it.get("user_id")) in ids)
        log.debug(f"Own watchlist: {n} entries")
        return n

    def refresh_others_watchlists(self) -> int:
        data = self._snapshot()
        users = [u for u in data.get("users") or [] if isinstance(u, Mapping) and not u.get("is_primary")]
        log.debug(f"Watchlists for {len(users)} other users loaded")
        return len(users)

    def _entries(self, key: str) -> list[dict[str, Any]]:
        rows = self._snapshot().get(key) or []
        out: list[dict[str, Any]] = []
        for r in rows:
            if not isinstance(r, Mapping):
                continue
            row = dict(r)
            row["guids"] = parse_guids(r.get("guids"))
            out.append(row)
        return out

    def get_all_movie_watchlist_items(self) -> list[dict[str, Any]]:
        return self._entries("movies")

    def get_all_show_watchlist_items(self) -> list[dict[str, Any]]:
        return self._entries("shows")

    def get_all_users(self) -> list[dict[str, Any]]:
        return [dict(u) for u in self._snapshot().get("users") or [] if isinstance(u, Mapping)]

    def tracked_guids(self) -> set[str]:
        return set(parse_guids(self._snapshot().get("tracked") or []))

    def remove_tracked_guids(self, guids: Iterable[str]) -> int:
        """Drop entries matching any of `guids` from the tracked list on disk; returns how many went."""
        drop = set(parse_guids(list(guids or ())))
        if not drop:
            return 0
        with self._lock:
            data = self._load()
            tracked = list(data.get("tracked") or [])
            kept = [g for g in tracked if normalize_guid(g) not in drop]
            removed = len(tracked) - len(kept)
            if removed:
                data["tracked"] = kept
                _write_json_atomic(self.path, data)
            self._data = data
        log.info(f"Removed {removed} deleted GUIDs from the tracked list")
        return removed
