# rc_platform/reconcile/_context.py
# run-scoped state threaded through one delete-sync run.
# Copyright (c) 2025-2026 Reclaimarr
from __future__ import annotations

import threading
from dataclasses import dataclass, field

from ..guid_map import any_guid_in
from ._logging import Emitter, log
from ._result import RunResult
from ._tags import TagCache
from ._types import Collaborators, DeletionPolicy, TrackedItem

__all__ = ["RunContext"]


@dataclass
class RunContext:
    policy: DeletionPolicy
    dry_run: bool
    collab: Collaborators
    emitter: Emitter
    tags: TagCache
    threshold: float
    protected: frozenset[str] = frozenset()
    inclusion: frozenset[str] = frozenset()
    tracked: frozenset[str] | None = None
    detail_workers: int = 10
    instance_workers: int = 8
    result: RunResult = field(default_factory=RunResult)
    deleted_guids: set[str] = field(default_factory=set)
    _bulk_tags: dict[tuple[str, str], dict[int, list[int]]] = field(default_factory=dict, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @classmethod
    def start(
        cls,
        policy: DeletionPolicy,
        collab: Collaborators,
        emitter: Emitter,
        *,
        dry_run: bool,
        threshold: float,
        detail_workers: int = 10,
        instance_workers: int = 8,
    ) -> RunContext:
        tags = TagCache(
            collab.inventory,
            removal_prefix=policy.removal_tag_prefix,
            required_regex=policy.required_tag_regex,
        )
        return cls(
            policy=policy,
            dry_run=dry_run,
            collab=collab,
            emitter=emitter,
            tags=tags,
            threshold=threshold,
            detail_workers=max(1, int(detail_workers)),
            instance_workers=max(1, int(instance_workers)),
        )

    def is_protected(self, item: TrackedItem) -> bool:
        return self.policy.protection_enabled and any_guid_in(item.guids, self.protected)

    def is_tracked(self, item: TrackedItem) -> bool:
        if not self.policy.tracked_only:
            return True
        if self.tracked is None:
            # tracked list unknown: treat nothing as ours
            return False
        return any_guid_in(item.guids, self.tracked)

    def item_tags(self, item: TrackedItem) -> tuple[int, ...]:
        """Tags from the listing, else from the instance's bulk tag map (fetched once per run)."""
        if item.tags:
            return item.tags
        key = (item.kind, item.instance_id)
        with self._lock:
            cached = self._bulk_tags.get(key)
        if cached is None:
            service = self.collab.inventory.get_service(item.kind, item.instance_id)
            cached = {}
            if service is not None:
                try:
                    cached = dict(service.bulk_get_tags() or {})
                except Exception as e:
                    log.warn(f"Bulk tag lookup failed for {item.kind} instance {item.instance_id}: {e}")
            with self._lock:
                self._bulk_tags[key] = cached
        return tuple(cached.get(item.item_id) or ())

    def close(self) -> None:
        self.tags.clear()
        self.protected = frozenset()
        self.inclusion = frozenset()
        self.tracked = None
        with self._lock:
            self._bulk_tags.clear()
