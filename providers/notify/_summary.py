# /providers/notify/_summary.py
# Reclaimarr - plain-text rendering of a delete-sync result
# Copyright (c) 2025-2026 Reclaimarr
from __future__ import annotations

from typing import Any, Mapping

MAX_LISTED = 10


def title_for(result: Mapping[str, Any], dry_run: bool) -> str:
    if result.get("safetyTriggered"):
        return "Delete Sync Aborted"
    return "Delete Sync Simulation" if dry_run else "Delete Sync Complete"


def description_for(result: Mapping[str, Any], dry_run: bool) -> str:
    if result.get("safetyTriggered"):
        return "A safety check stopped the run before anything was deleted."
    if dry_run:
        return "Dry run: the items below would have been deleted."
    return "The items below were removed from your library."


def summary_line(result: Mapping[str, Any]) -> str:
    t = result.get("total") or {}
    return (
        f"Deleted: {int(t.get('deleted', 0))} | Skipped: {int(t.get('skipped', 0))} | "
        f"Protected: {int(t.get('protected', 0))} | Processed: {int(t.get('processed', 0))}"
    )


def item_lines(bucket: Mapping[str, Any] | None, limit: int = MAX_LISTED) -> list[str]:
    items = list((bucket or {}).get("items") or [])
    lines = [f"- {it.get('title') or '?'}" for it in items[:limit]]
    extra = len(items) - limit
    if extra > 0:
        lines.append(f"...and {extra} more")
    return lines


def render_text(result: Mapping[str, Any], dry_run: bool) -> str:
    parts = [description_for(result, dry_run), summary_line(result)]
    if result.get("safetyMessage"):
        parts.append(f"Reason: {result['safetyMessage']}")
    for label, key in (("Movies", "movies"), ("Shows", "shows")):
        lines = item_lines(result.get(key))
        if lines:
            parts.append(f"{label}:\n" + "\n".join(lines))
    return "\n\n".join(parts)
