# rc_platform/reconcile/facade.py
# delete-sync run lifecycle: single-flight guard, mode selection, safety, notification.
# Copyright (c) 2025-2026 Reclaimarr
from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from ..guid_map import any_guid_in
from ._context import RunContext
from ._inventory import fetch_inventory
from ._logging import Emitter, log
from ._notify import dispatch
from ._protection import ProtectionResolver
from ._result import RunResult, empty_result, safety_triggered_result
from ._safety import count_candidates, evaluate, validate_threshold
from ._strategy import run_strategy, strategy_for, tag_precheck
from ._tags import normalize_prefix
from ._types import (
    Collaborators,
    DeletionPolicy,
    ProtectionError,
    TrackedItem,
    WatchlistUnavailable,
)
from ._watchlist import (
    build_inclusion_set,
    load_tracked_guids,
    refresh_watchlists,
    watchlist_entries,
)

__all__ = ["Reconciler"]

_NO_WATCHLIST_MSG = (
    "No watchlist items found - this could be an error condition. "
    "Aborting delete sync to prevent mass deletion."
)


@dataclass
class Reconciler:
    config: Mapping[str, Any]
    collab: Collaborators
    on_progress: Callable[[str], None] | None = None
    sleep: Callable[[float], None] = time.sleep

    last_result: RunResult | None = field(init=False, default=None)
    last_run_at: float | None = field(init=False, default=None)

    # internal fields (set in __post_init__)
    debug: bool = field(init=False, default=False)
    emitter: Emitter = field(init=False)
    refresh_retries: int = field(init=False, default=2)
    refresh_backoff: float = field(init=False, default=1.0)
    inventory_workers: int = field(init=False, default=8)
    detail_workers: int = field(init=False, default=10)
    _guard: threading.Lock = field(init=False, default_factory=threading.Lock, repr=False)

    def __post_init__(self) -> None:
        self.cfg: dict[str, Any] = dict(self.config or {})
        rt = dict(self.cfg.get("runtime") or {})
        self.debug = bool(rt.get("debug", False))
        self.emitter = Emitter(self.on_progress, debug=self.debug)
        self.refresh_retries = int(rt.get("watchlist_refresh_retries", 2))
        self.refresh_backoff = float(rt.get("watchlist_refresh_backoff", 1.0))
        self.inventory_workers = int(rt.get("inventory_workers") or 8)
        self.detail_workers = int(rt.get("detail_workers") or 10)

    @property
    def running(self) -> bool:
        return self._guard.locked()

    # Public
    def run(self, dry_run: bool = False) -> RunResult:
        if not self._guard.acquire(blocking=False):
            log.warn("Delete sync already in progress; ignoring duplicate trigger")
            self.emitter.emit("run:skipped", reason="duplicate")
            return empty_result()
        try:
            result = self._run(bool(dry_run))
            self.last_result = result
            self.last_run_at = time.time()
            return result
        finally:
            self._guard.release()

    # Internals
    def _run(self, dry_run: bool) -> RunResult:
        policy = DeletionPolicy.from_config(self.cfg)
        mode = policy.deletion_mode
        self.emitter.emit("run:start", mode=mode, dry_run=dry_run)
        log.info(f"Starting delete sync in {mode} mode{' (DRY RUN)' if dry_run else ''}")

        if not policy.any_enabled:
            log.info("Delete sync is not enabled in configuration, skipping operation")
            return empty_result()

        threshold = validate_threshold(policy.max_deletion_prevention)
        if mode == "tag-based" and not normalize_prefix(policy.removal_tag_prefix):
            log.warn("Tag-based deletion needs a removal_tag_prefix; skipping operation")
            return empty_result()

        ctx = RunContext.start(
            policy,
            self.collab,
            self.emitter,
            dry_run=dry_run,
            threshold=threshold,
            detail_workers=self.detail_workers,
            instance_workers=self.inventory_workers,
        )
        resolver = ProtectionResolver(self.collab.protection, policy)
        resolver.clear()
        try:
            series, movies = fetch_inventory(self.collab.inventory)
            self.emitter.emit("inventory:done", series=len(series), movies=len(movies))
            result = self._reconcile(ctx, resolver, series, movies)
        finally:
            ctx.close()
            resolver.clear()

        dispatch(
            result,
            self.collab.notifiers,
            policy=policy.notify,
            only_on_deletion=policy.notify_only_on_deletion,
            dry_run=dry_run,
            emit=self.emitter.emit,
        )
        t = result.total
        self.emitter.emit("run:done", dry_run=dry_run, safety_triggered=bool(result.safety_triggered), **t)
        log.info(
            f"Delete sync {'(DRY RUN) ' if dry_run else ''}finished: {t['deleted']} deleted, "
            f"{t['skipped']} skipped, {t['protected']} protected of {t['processed']} processed"
        )
        return result

    def _reconcile(
        self,
        ctx: RunContext,
        resolver: ProtectionResolver,
        series: Sequence[TrackedItem],
        movies: Sequence[TrackedItem],
    ) -> RunResult:
        policy = ctx.policy

        def abort(message: str) -> RunResult:
            log.error(f"Delete sync aborted: {message}")
            return safety_triggered_result(message, movies_count=len(movies), series_count=len(series))

        if policy.deletion_mode == "tag-based":
            try:
                self._sync_tags(policy, series, movies)
            except Exception as e:
                return abort(f"Failed to update user tags: {e}")
            try:
                self._refresh()
            except WatchlistUnavailable as e:
                return abort(str(e))
        else:
            try:
                self._refresh()
                entries = watchlist_entries(self.collab.watchlist, respect_user_sync=policy.respect_user_sync_setting)
            except WatchlistUnavailable as e:
                return abort(str(e))
            except Exception as e:
                return abort(f"Failed to read watchlist data: {e}")
            ctx.inclusion = build_inclusion_set(entries)
            if not ctx.inclusion:
                return abort(_NO_WATCHLIST_MSG)
            log.info(
                f"Found {len(ctx.inclusion)} unique GUIDs across all watchlists"
                f"{' (respecting user sync settings)' if policy.respect_user_sync_setting else ''}"
            )

        if policy.tracked_only:
            try:
                ctx.tracked = load_tracked_guids(self.collab.watchlist)
            except WatchlistUnavailable as e:
                return abort(str(e))

        try:
            ctx.protected = resolver.resolve()
        except ProtectionError as e:
            return abort(f"Plex playlist protection failed: {e}")
        if resolver.enabled:
            self.emitter.emit("protection:resolved", guids=len(ctx.protected))

        if policy.deletion_mode == "tag-based":
            verdict = tag_precheck(ctx, series, movies)
        else:
            inclusion = ctx.inclusion
            considered, candidates = count_candidates(
                list(movies) + list(series),
                policy,
                lambda it: not any_guid_in(it.guids, inclusion),
                eligible=ctx.is_tracked,
            )
            verdict = evaluate(considered, candidates, ctx.threshold, emit=self.emitter.emit, scope="watchlist")
        if not verdict.safe:
            return abort(verdict.message)
        log.info(f"Safety check passed: {verdict.message}")

        strategy = strategy_for(policy.deletion_mode, ctx.inclusion)
        result = run_strategy(strategy, ctx, series, movies)
        if policy.cleanup_tracked and not ctx.dry_run and ctx.deleted_guids:
            self._cleanup_tracked(ctx.deleted_guids)
        return result

    def _refresh(self) -> None:
        refresh_watchlists(
            self.collab.watchlist,
            retries=self.refresh_retries,
            backoff=self.refresh_backoff,
            sleep=self.sleep,
        )

    def _cleanup_tracked(self, guids: set[str]) -> None:
        fn = getattr(self.collab.watchlist, "remove_tracked_guids", None)
        if not callable(fn):
            log.warn("cleanup_tracked is enabled but the watchlist store cannot edit its tracked list")
            return
        try:
            fn(sorted(guids))
        except Exception as e:
            # the deletes already happened; the run result stands
            log.error(f"Failed to remove deleted content from the tracked list: {e}")
            return
        self.emitter.emit("tracked:cleaned", guids=len(guids))

    def _sync_tags(self, policy: DeletionPolicy, series: Sequence[TrackedItem], movies: Sequence[TrackedItem]) -> None:
        tagging = self.collab.tagging
        if tagging is None:
            log.debug("No tagging collaborator configured; using removal tags as they are")
            return
        # a stale removal tag on re-watchlisted content would delete it, so failures propagate
        entries = watchlist_entries(self.collab.watchlist, respect_user_sync=policy.respect_user_sync_setting)
        tagging.tag_content_with_current_watchlist_data(list(series) + list(movies), entries)
        log.info("Updated user tags from current watchlist data")
