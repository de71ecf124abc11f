# /providers/arr/_mod_RADARR.py
# Reclaimarr - Radarr client (movie inventory, tags, deletion)
# Copyright (c) 2025-2026 Reclaimarr
from __future__ import annotations

from typing import Any, Mapping

from rc_platform.guid_map import extract_typed_id, guids_from_ids, has_matching_guids
from rc_platform.reconcile import TrackedItem

from ._common import ArrClientBase, ArrError, log

__VERSION__ = "1.0.0"
__all__ = ["RadarrClient", "movie_to_item"]


def movie_to_item(row: Mapping[str, Any], instance_id: str) -> TrackedItem:
    mid = int(row.get("id") or 0)
    return TrackedItem(
        title=str(row.get("title") or ""),
        guids=tuple(guids_from_ids(row, local=("radarr", mid) if mid else None)),
        instance_id=str(instance_id),
        item_id=mid,
        kind="movie",
        tags=tuple(int(t) for t in (row.get("tags") or []) if str(t).lstrip("-").isdigit()),
    )


class RadarrClient(ArrClientBase):
    kind = "movie"
    resource = "movie"

    def fetch_movies(self, bypass_exclusions: bool = False) -> list[TrackedItem]:
        rows = self.get("movie")
        items = [movie_to_item(r, self.instance_id) for r in (rows if isinstance(rows, list) else []) if isinstance(r, Mapping)]
        if not bypass_exclusions:
            items.extend(self.fetch_exclusions())
        return items

    def fetch_exclusions(self) -> list[TrackedItem]:
        rows = self.get("exclusions")
        out: list[TrackedItem] = []
        for r in rows if isinstance(rows, list) else []:
            if not isinstance(r, Mapping):
                continue
            out.append(TrackedItem(
                title=str(r.get("movieTitle") or r.get("title") or ""),
                guids=tuple(guids_from_ids({"tmdb": r.get("tmdbId")})),
                instance_id=self.instance_id,
                item_id=0,
                kind="movie",
            ))
        return out

    def get_item_detail(self, item_id: int) -> TrackedItem | None:
        row = self.get(f"movie/{int(item_id)}")
        if not isinstance(row, Mapping) or not row.get("id"):
            return None
        return movie_to_item(row, self.instance_id)

    def delete(self, item: TrackedItem, delete_files: bool) -> None:
        mid = extract_typed_id(item.guids, "radarr") or int(item.item_id or 0)
        if mid <= 0:
            tmdb = extract_typed_id(item.guids, "tmdb")
            if not tmdb:
                raise ArrError(f'No Radarr or TMDB id for "{item.title}"')
            match = next(
                (m for m in self.fetch_movies(bypass_exclusions=True) if has_matching_guids(m.guids, [f"tmdb:{tmdb}"])),
                None,
            )
            if match is None:
                raise ArrError(f"Could not find movie with TMDB ID: {tmdb}")
            mid = match.item_id
        self.delete_path(
            f"movie/{mid}",
            deleteFiles="true" if delete_files else "false",
            addImportExclusion="false",
        )
        log.info(f'Deleted "{item.title}" from {self.cfg.name}')
