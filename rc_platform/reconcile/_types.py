# rc_platform/reconcile/_types.py
# types, errors and collaborator protocols for the delete-sync engine.
# Copyright (c) 2025-2026 Reclaimarr
from __future__ import annotations

from dataclasses import dataclass, field
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Literal, Protocol

Kind = Literal["movie", "show"]
DeletionMode = Literal["watchlist", "tag-based"]

DELETION_MODES: tuple[str, ...] = ("watchlist", "tag-based")


class ReconcileError(RuntimeError):
    pass


class ConfigError(ReconcileError):
    pass


class ProtectionError(ReconcileError):
    pass


class WatchlistUnavailable(ReconcileError):
    pass


@dataclass(frozen=True)
class TrackedItem:
    title: str
    guids: tuple[str, ...]
    instance_id: str
    item_id: int
    kind: Kind
    series_status: str | None = None
    tags: tuple[int, ...] = ()

    @property
    def is_continuing(self) -> bool:
        # anything not explicitly ended still airs
        return self.series_status != "ended"


@dataclass
class DeletionPolicy:
    deletion_mode: str = "watchlist"
    delete_movie: bool = False
    delete_ended_show: bool = False
    delete_continuing_show: bool = False
    delete_files: bool = True
    max_deletion_prevention: Any = 10
    respect_user_sync_setting: bool = True
    tracked_only: bool = False
    cleanup_tracked: bool = False
    removal_tag_prefix: str = ""
    required_tag_regex: str = ""
    protection_enabled: bool = False
    protection_playlist: str = "Do Not Delete"
    notify: str = "none"
    notify_only_on_deletion: bool = False

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> DeletionPolicy:
        ds = dict((cfg or {}).get("delete_sync") or {})
        mode = str(ds.get("deletion_mode") or "watchlist").strip().lower()
        if mode not in DELETION_MODES:
            raise ConfigError(f"Unknown deletion_mode {mode!r} (expected one of {', '.join(DELETION_MODES)})")
        return cls(
            deletion_mode=mode,
            delete_movie=bool(ds.get("delete_movie", False)),
            delete_ended_show=bool(ds.get("delete_ended_show", False)),
            delete_continuing_show=bool(ds.get("delete_continuing_show", False)),
            delete_files=bool(ds.get("delete_files", True)),
            max_deletion_prevention=ds.get("max_deletion_prevention", 10),
            respect_user_sync_setting=bool(ds.get("respect_user_sync_setting", True)),
            tracked_only=bool(ds.get("tracked_only", False)),
            cleanup_tracked=bool(ds.get("cleanup_tracked", False)),
            removal_tag_prefix=str(ds.get("removal_tag_prefix") or ""),
            required_tag_regex=str(ds.get("required_tag_regex") or ""),
            protection_enabled=bool(ds.get("protection_enabled", False)),
            protection_playlist=str(ds.get("protection_playlist") or "Do Not Delete"),
            notify=str(ds.get("notify") or "none").strip().lower(),
            notify_only_on_deletion=bool(ds.get("notify_only_on_deletion", False)),
        )

    @property
    def any_enabled(self) -> bool:
        return self.delete_movie or self.delete_ended_show or self.delete_continuing_show

    def allows(self, item: TrackedItem) -> bool:
        if item.kind == "movie":
            return self.delete_movie
        return self.delete_continuing_show if item.is_continuing else self.delete_ended_show


# ── collaborators ─────────────────────────────────────────────────────────────

class ArrService(Protocol):
    def get_tags(self) -> list[dict[str, Any]]: ...
    def get_item_detail(self, item_id: int) -> TrackedItem | None: ...
    def delete(self, item: TrackedItem, delete_files: bool) -> None: ...
    def bulk_get_tags(self) -> dict[int, list[int]]: ...


class Inventory(Protocol):
    def fetch_all_series(self, bypass_exclusions: bool = True) -> list[TrackedItem]: ...
    def fetch_all_movies(self, bypass_exclusions: bool = True) -> list[TrackedItem]: ...
    def get_service(self, kind: Kind, instance_id: str) -> ArrService | None: ...


class Watchlist(Protocol):
    def refresh_self_watchlist(self) -> Any: ...
    def refresh_others_watchlists(self) -> Any: ...
    def get_all_movie_watchlist_items(self) -> Sequence[Mapping[str, Any]]: ...
    def get_all_show_watchlist_items(self) -> Sequence[Mapping[str, Any]]: ...
    def get_all_users(self) -> Sequence[Mapping[str, Any]]: ...


class Protection(Protocol):
    def get_or_create_protection_playlists(self, create_if_missing: bool = True) -> Mapping[str, str]: ...
    def get_protected_item_guids(self) -> set[str]: ...
    def clear_caches(self) -> None: ...


class Tagging(Protocol):
    def tag_content_with_current_watchlist_data(
        self,
        items: Iterable[TrackedItem],
        watchlist_items: Iterable[Mapping[str, Any]],
    ) -> Mapping[str, Any]: ...


class Notifier(Protocol):
    channel: str

    def send(self, result: Mapping[str, Any], *, dry_run: bool) -> bool: ...


@dataclass
class Collaborators:
    inventory: Inventory
    watchlist: Watchlist
    protection: Protection | None = None
    tagging: Tagging | None = None
    notifiers: list[Notifier] = field(default_factory=list)
