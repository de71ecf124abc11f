# rc_platform/reconcile/_tags.py
# run-scoped tag lookups: tag id -> lowercase label per (kind, instance).
# Copyright (c) 2025-2026 Reclaimarr
from __future__ import annotations

import re
import threading
from collections.abc import Iterable

from ._logging import log
from ._types import ConfigError, Inventory, Kind

__all__ = ["TagCache", "normalize_prefix"]


def normalize_prefix(prefix: str | None) -> str:
    return str(prefix or "").strip().lower()


def _compile(pattern: str) -> re.Pattern[str] | None:
    if not pattern.strip():
        return None
    try:
        return re.compile(pattern, re.I)
    except re.error as e:
        raise ConfigError(f"Invalid required_tag_regex {pattern!r}: {e}") from e


class TagCache:
    """
    Lazily fetches each instance's tag list once per run.

    A failed fetch yields an empty map and is not memoized, so a later lookup
    in the same run retries. With ``strict=True`` the failure is raised instead;
    the safety pre-check needs to tell "no tags" apart from "unknown".
    """

    def __init__(self, inventory: Inventory, *, removal_prefix: str = "", required_regex: str = ""):
        self._inventory = inventory
        self._prefix = normalize_prefix(removal_prefix)
        self._required = _compile(required_regex or "")
        self._maps: dict[tuple[str, str], dict[int, str]] = {}
        self._lock = threading.Lock()

    @property
    def removal_prefix(self) -> str:
        return self._prefix

    @property
    def requires_tag(self) -> bool:
        return self._required is not None

    def for_instance(self, kind: Kind, instance_id: str, *, strict: bool = False) -> dict[int, str]:
        key = (kind, str(instance_id))
        with self._lock:
            hit = self._maps.get(key)
        if hit is not None:
            return hit

        service = self._inventory.get_service(kind, str(instance_id))
        if service is None:
            log.warn(f"No {kind} service for instance {instance_id}; tag map empty")
            return {}
        try:
            raw = service.get_tags() or []
        except Exception as e:
            if strict:
                raise
            log.error(f"Tag fetch failed for {kind} instance {instance_id}: {e}")
            return {}

        tag_map: dict[int, str] = {}
        for t in raw:
            try:
                tag_map[int(t["id"])] = str(t.get("label") or "").strip().lower()
            except (KeyError, TypeError, ValueError):
                continue
        with self._lock:
            self._maps[key] = tag_map
        return tag_map

    def removal_tag_ids(self, kind: Kind, instance_id: str, *, strict: bool = False) -> set[int]:
        if not self._prefix:
            return set()
        labels = self.for_instance(kind, instance_id, strict=strict)
        return {tid for tid, label in labels.items() if label.startswith(self._prefix)}

    def has_removal_tag(self, kind: Kind, instance_id: str, tag_ids: Iterable[int]) -> bool:
        ids = set(tag_ids or ())
        if not ids or not self._prefix:
            return False
        return bool(ids & self.removal_tag_ids(kind, instance_id))

    def has_required_tag(self, kind: Kind, instance_id: str, tag_ids: Iterable[int]) -> bool:
        if self._required is None:
            return True
        labels = self.for_instance(kind, instance_id)
        return any(
            self._required.search(labels[tid]) is not None
            for tid in (tag_ids or ())
            if tid in labels
        )

    def clear(self) -> None:
        with self._lock:
            self._maps.clear()
