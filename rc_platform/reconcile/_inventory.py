# rc_platform/reconcile/_inventory.py
# fetch Sonarr and Radarr inventories side by side.
# Copyright (c) 2025-2026 Reclaimarr
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from ._logging import log
from ._types import Inventory, TrackedItem


def fetch_inventory(inventory: Inventory) -> tuple[list[TrackedItem], list[TrackedItem]]:
    # bypass routing exclusions: deletion must see everything
    with ThreadPoolExecutor(max_workers=2) as pool:
        f_series = pool.submit(inventory.fetch_all_series, bypass_exclusions=True)
        f_movies = pool.submit(inventory.fetch_all_movies, bypass_exclusions=True)
        series = list(f_series.result() or ())
        movies = list(f_movies.result() or ())
    log.info(f"Found {len(series)} series in Sonarr and {len(movies)} movies in Radarr")
    return series, movies
