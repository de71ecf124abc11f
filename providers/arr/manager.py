# /providers/arr/manager.py
# Reclaimarr - every configured Sonarr/Radarr instance behind one inventory
# Copyright (c) 2025-2026 Reclaimarr
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Mapping, Sequence

from rc_platform.provider_instances import configured_instances
from rc_platform.reconcile import TrackedItem

from ._common import ArrConfig, log
from ._mod_RADARR import RadarrClient
from ._mod_SONARR import SonarrClient

__all__ = ["ArrInventory"]


class ArrInventory:
    """Fans inventory fetches out across instances; a failing instance is logged and left out."""

    def __init__(
        self,
        sonarr: Sequence[SonarrClient] = (),
        radarr: Sequence[RadarrClient] = (),
        *,
        max_workers: int = 8,
    ):
        self.sonarr: dict[str, SonarrClient] = {c.instance_id: c for c in sonarr}
        self.radarr: dict[str, RadarrClient] = {c.instance_id: c for c in radarr}
        self.max_workers = max(1, int(max_workers))

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> ArrInventory:
        rt = dict(cfg.get("runtime") or {})
        sonarr = [SonarrClient(ArrConfig.from_block(i, b, "Sonarr")) for i, b in configured_instances(cfg, "sonarr")]
        radarr = [RadarrClient(ArrConfig.from_block(i, b, "Radarr")) for i, b in configured_instances(cfg, "radarr")]
        log.info(f"Configured {len(sonarr)} Sonarr and {len(radarr)} Radarr instances")
        return cls(sonarr, radarr, max_workers=int(rt.get("inventory_workers") or 8))

    def _fan_out(self, label: str, clients: Mapping[str, Any], fetch: Callable[[Any], list[TrackedItem]]) -> list[TrackedItem]:
        if not clients:
            return []
        out: list[TrackedItem] = []
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(clients))) as pool:
            futs = {pool.submit(fetch, c): inst for inst, c in clients.items()}
            for fut in as_completed(futs):
                inst = futs[fut]
                try:
                    out.extend(fut.result())
                except Exception as e:
                    log.error(f"Error fetching {label} for instance {inst}: {e}")
        # stable order regardless of completion order
        order = {inst: n for n, inst in enumerate(clients)}
        out.sort(key=lambda it: order.get(it.instance_id, 0))
        return out

    def fetch_all_series(self, bypass_exclusions: bool = True) -> list[TrackedItem]:
        return self._fan_out("series", self.sonarr, lambda c: c.fetch_series(bypass_exclusions))

    def fetch_all_movies(self, bypass_exclusions: bool = True) -> list[TrackedItem]:
        return self._fan_out("movies", self.radarr, lambda c: c.fetch_movies(bypass_exclusions))

    def get_service(self, kind: str, instance_id: str) -> SonarrClient | RadarrClient | None:
        pool: Mapping[str, Any] = self.sonarr if kind == "show" else self.radarr
        return pool.get(str(instance_id))
