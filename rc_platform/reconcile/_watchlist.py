# rc_platform/reconcile/_watchlist.py
# watchlist refresh (with retries) and inclusion-set construction.
# Copyright (c) 2025-2026 Reclaimarr
from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from ..guid_map import parse_guids
from ._logging import log
from ._types import Watchlist, WatchlistUnavailable

__all__ = ["refresh_watchlists", "watchlist_entries", "build_inclusion_set", "load_tracked_guids"]


def refresh_watchlists(
    watchlist: Watchlist,
    *,
    retries: int = 2,
    backoff: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Refresh own and others' watchlists together; WatchlistUnavailable once retries run out."""
    attempts = max(0, int(retries)) + 1
    for i in range(attempts):
        if i:
            log.info(f"Refreshing watchlists attempt {i + 1}/{attempts}")
        try:
            with ThreadPoolExecutor(max_workers=2) as pool:
                f_self = pool.submit(watchlist.refresh_self_watchlist)
                f_others = pool.submit(watchlist.refresh_others_watchlists)
                f_self.result()
                f_others.result()
            log.debug("Watchlists refreshed")
            return
        except Exception as e:
            if i == attempts - 1:
                log.error(f"Watchlist refresh failed after {attempts} attempts: {e}")
                raise WatchlistUnavailable(f"Failed to refresh watchlist data: {e}") from e
            wait = float(backoff) * (2 ** i)
            log.warn(f"Watchlist refresh failed ({e}); retrying in {wait:g}s")
            sleep(wait)


def _allowed_users(watchlist: Watchlist) -> set[str]:
    out: set[str] = set()
    for u in watchlist.get_all_users() or ():
        if not isinstance(u, Mapping):
            continue
        if bool(u.get("sync_enabled", True)):
            out.add(str(u.get("id")))
    return out


def watchlist_entries(watchlist: Watchlist, *, respect_user_sync: bool = False) -> list[Mapping[str, Any]]:
    items: list[Mapping[str, Any]] = []
    items.extend(watchlist.get_all_movie_watchlist_items() or ())
    items.extend(watchlist.get_all_show_watchlist_items() or ())
    if not respect_user_sync:
        return [it for it in items if isinstance(it, Mapping)]
    allowed = _allowed_users(watchlist)
    return [it for it in items if isinstance(it, Mapping) and str(it.get("user_id")) in allowed]


def build_inclusion_set(entries: Iterable[Mapping[str, Any]]) -> frozenset[str]:
    out: set[str] = set()
    for it in entries:
        out.update(parse_guids(it.get("guids")))
    return frozenset(out)


def load_tracked_guids(watchlist: Watchlist) -> frozenset[str]:
    fn = getattr(watchlist, "tracked_guids", None)
    if not callable(fn):
        raise WatchlistUnavailable("tracked_only is enabled but the watchlist store has no tracked content list")
    try:
        return frozenset(parse_guids(list(fn() or ())))
    except Exception as e:
        raise WatchlistUnavailable(f"Failed to load tracked content: {e}") from e
