# /providers/arr/_mod_SONARR.py
# Reclaimarr - Sonarr client (series inventory, tags, deletion)
# Copyright (c) 2025-2026 Reclaimarr
from __future__ import annotations

from typing import Any, Mapping

from rc_platform.guid_map import extract_typed_id, guids_from_ids, has_matching_guids
from rc_platform.reconcile import TrackedItem

from ._common import ArrClientBase, ArrError, log

__VERSION__ = "1.0.0"
__all__ = ["SonarrClient", "series_to_item"]


def _series_status(row: Mapping[str, Any]) -> str:
    ended = row.get("ended")
    if isinstance(ended, bool):
        return "ended" if ended else "continuing"
    return "ended" if str(row.get("status") or "").lower() == "ended" else "continuing"


def series_to_item(row: Mapping[str, Any], instance_id: str) -> TrackedItem:
    sid = int(row.get("id") or 0)
    return TrackedItem(
        title=str(row.get("title") or ""),
        guids=tuple(guids_from_ids(row, local=("sonarr", sid) if sid else None)),
        instance_id=str(instance_id),
        item_id=sid,
        kind="show",
        series_status=_series_status(row),
        tags=tuple(int(t) for t in (row.get("tags") or []) if str(t).lstrip("-").isdigit()),
    )


class SonarrClient(ArrClientBase):
    kind = "show"
    resource = "series"

    def fetch_series(self, bypass_exclusions: bool = False) -> list[TrackedItem]:
        rows = self.get("series")
        items = [series_to_item(r, self.instance_id) for r in (rows if isinstance(rows, list) else []) if isinstance(r, Mapping)]
        if not bypass_exclusions:
            items.extend(self.fetch_exclusions())
        return items

    def fetch_exclusions(self, page_size: int = 1000) -> list[TrackedItem]:
        """Import-list exclusions as placeholder items (item_id 0) so routing sees them as present."""
        out: list[TrackedItem] = []
        page = 1
        while True:
            data = self.get("importlistexclusion/paged", page=page, pageSize=page_size, sortDirection="ascending")
            records = data.get("records") if isinstance(data, Mapping) else None
            for r in records or []:
                out.append(TrackedItem(
                    title=str(r.get("title") or ""),
                    guids=tuple(guids_from_ids({"tvdb": r.get("tvdbId")})),
                    instance_id=self.instance_id,
                    item_id=0,
                    kind="show",
                    series_status="ended",
                ))
            total = int((data or {}).get("totalRecords") or 0) if isinstance(data, Mapping) else 0
            if not records or page * page_size >= total:
                return out
            page += 1

    def get_item_detail(self, item_id: int) -> TrackedItem | None:
        row = self.get(f"series/{int(item_id)}")
        if not isinstance(row, Mapping) or not row.get("id"):
            return None
        return series_to_item(row, self.instance_id)

    def delete(self, item: TrackedItem, delete_files: bool) -> None:
        sid = extract_typed_id(item.guids, "sonarr") or int(item.item_id or 0)
        if sid <= 0:
            tvdb = extract_typed_id(item.guids, "tvdb")
            if not tvdb:
                raise ArrError(f'No Sonarr or TVDB id for "{item.title}"')
            match = next(
                (s for s in self.fetch_series(bypass_exclusions=True) if has_matching_guids(s.guids, [f"tvdb:{tvdb}"])),
                None,
            )
            if match is None:
                raise ArrError(f"Could not find show with TVDB ID: {tvdb}")
            sid = match.item_id
        self.delete_path(
            f"series/{sid}",
            deleteFiles="true" if delete_files else "false",
            addImportListExclusion="false",
        )
        log.info(f'Deleted "{item.title}" from {self.cfg.name}')
