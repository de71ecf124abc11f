# rc_platform/reconcile/_result.py
# per-run counters and audit lists; to_dict() is the public JSON shape.
# Copyright (c) 2025-2026 Reclaimarr
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..guid_map import first_guid
from ._types import TrackedItem


@dataclass
class Bucket:
    deleted: int = 0
    skipped: int = 0
    protected: int = 0
    items: list[dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "deleted": self.deleted,
            "skipped": self.skipped,
            "protected": self.protected,
            "items": [dict(x) for x in self.items],
        }


@dataclass
class RunResult:
    movies: Bucket = field(default_factory=Bucket)
    shows: Bucket = field(default_factory=Bucket)
    safety_triggered: bool | None = None
    safety_message: str | None = None

    def bucket(self, item: TrackedItem) -> Bucket:
        return self.movies if item.kind == "movie" else self.shows

    def record_deleted(self, item: TrackedItem) -> None:
        b = self.bucket(item)
        b.deleted += 1
        b.items.append({
            "title": item.title,
            "guid": first_guid(item.guids),
            "instance": str(item.instance_id),
        })

    def record_skipped(self, item: TrackedItem) -> None:
        self.bucket(item).skipped += 1

    def record_protected(self, item: TrackedItem) -> None:
        self.bucket(item).protected += 1

    @property
    def total(self) -> dict[str, int]:
        deleted = self.movies.deleted + self.shows.deleted
        skipped = self.movies.skipped + self.shows.skipped
        protected = self.movies.protected + self.shows.protected
        return {
            "deleted": deleted,
            "skipped": skipped,
            "protected": protected,
            "processed": deleted + skipped + protected,
        }

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "movies": self.movies.to_dict(),
            "shows": self.shows.to_dict(),
            "total": self.total,
        }
        if self.safety_triggered is not None:
            out["safetyTriggered"] = self.safety_triggered
        if self.safety_message is not None:
            out["safetyMessage"] = self.safety_message
        return out


def empty_result() -> RunResult:
    return RunResult()


def safety_triggered_result(message: str, *, movies_count: int = 0, series_count: int = 0) -> RunResult:
    """Aborted run: nothing deleted, every fetched item reported as skipped."""
    return RunResult(
        movies=Bucket(skipped=max(0, int(movies_count))),
        shows=Bucket(skipped=max(0, int(series_count))),
        safety_triggered=True,
        safety_message=message,
    )
