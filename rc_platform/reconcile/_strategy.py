# rc_platform/reconcile/_strategy.py
# deletion strategies (watchlist / tag-based) sharing one per-item executor.
# Copyright (c) 2025-2026 Reclaimarr
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from collections.abc import Callable, Iterable, Sequence
from typing import Literal, Union

from ..guid_map import any_guid_in
from ._context import RunContext
from ._logging import log
from ._result import RunResult
from ._safety import SafetyVerdict, evaluate
from ._types import ArrService, TrackedItem

__all__ = ["WatchlistMode", "TagMode", "Strategy", "TagCheckError", "strategy_for", "run_strategy", "tag_precheck"]


@dataclass(frozen=True)
class WatchlistMode:
    inclusion: frozenset[str]
    mode: Literal["watchlist"] = "watchlist"


@dataclass(frozen=True)
class TagMode:
    mode: Literal["tag-based"] = "tag-based"


Strategy = Union[WatchlistMode, TagMode]

# (ctx, service, listed item) -> item to act on, or None to leave it alone (uncounted)
Predicate = Callable[[RunContext, ArrService, TrackedItem], "TrackedItem | None"]


def strategy_for(mode: str, inclusion: Iterable[str] = ()) -> Strategy:
    if mode == "tag-based":
        return TagMode()
    return WatchlistMode(frozenset(inclusion))


# --- predicates ---------------------------------------------------------------

def _not_on_watchlist(inclusion: frozenset[str]) -> Predicate:
    def _pred(ctx: RunContext, service: ArrService, item: TrackedItem) -> TrackedItem | None:
        return None if any_guid_in(item.guids, inclusion) else item
    return _pred


def _detail_with_tags(ctx: RunContext, service: ArrService, item: TrackedItem) -> TrackedItem:
    # bulk listings do not carry tags reliably; the detail record does
    detail = service.get_item_detail(item.item_id)
    if detail is None:
        raise LookupError(f"{item.kind} {item.item_id} not found on instance {item.instance_id}")
    return detail


def _has_removal_tag(ctx: RunContext, service: ArrService, item: TrackedItem) -> TrackedItem | None:
    detail = _detail_with_tags(ctx, service, item)
    if not ctx.tags.has_removal_tag(item.kind, item.instance_id, detail.tags):
        return None
    return detail


def _predicate(strategy: Strategy) -> Predicate:
    if isinstance(strategy, WatchlistMode):
        return _not_on_watchlist(strategy.inclusion)
    if isinstance(strategy, TagMode):
        return _has_removal_tag
    raise TypeError(f"unknown strategy {strategy!r}")


# --- shared executor ----------------------------------------------------------

def _group_by_instance(items: Iterable[TrackedItem]) -> dict[tuple[str, str], list[TrackedItem]]:
    out: dict[tuple[str, str], list[TrackedItem]] = {}
    for it in items:
        out.setdefault((it.kind, it.instance_id), []).append(it)
    return out


def _label(item: TrackedItem) -> str:
    if item.kind == "movie":
        return "movie"
    return "continuing show" if item.is_continuing else "ended show"


def _process_one(ctx: RunContext, service: ArrService, item: TrackedItem, predicate: Predicate) -> None:
    res = ctx.result
    target = predicate(ctx, service, item)
    if target is None:
        return

    if ctx.tags.requires_tag and not ctx.tags.has_required_tag(item.kind, item.instance_id, ctx.item_tags(target)):
        log.debug(f'"{item.title}" lacks a tag matching required_tag_regex; leaving it')
        return

    if not ctx.is_tracked(target):
        log.debug(f'"{item.title}" is not tracked by this app; skipping')
        res.record_skipped(item)
        ctx.emitter.emit("item:skipped", title=item.title, instance=item.instance_id, reason="untracked")
        return

    if ctx.is_protected(target):
        log.info(
            f'Skipping deletion of {_label(item)} "{item.title}": protected by playlist '
            f'"{ctx.policy.protection_playlist}"'
        )
        res.record_protected(item)
        ctx.emitter.emit("item:protected", title=item.title, instance=item.instance_id)
        return

    if ctx.dry_run:
        log.dry_run(
            f'{_label(item).capitalize()} "{item.title}" identified for deletion from '
            f"{item.kind} instance {item.instance_id} (delete files: {ctx.policy.delete_files})"
        )
    else:
        service.delete(target, ctx.policy.delete_files)
        ctx.deleted_guids.update(target.guids)
        log.info(f'Deleted {_label(item)} "{item.title}" from {item.kind} instance {item.instance_id}')
    res.record_deleted(target)
    ctx.emitter.emit("item:deleted", title=item.title, instance=item.instance_id, dry_run=ctx.dry_run)


def _execute(ctx: RunContext, items: Sequence[TrackedItem], predicate: Predicate) -> None:
    for (kind, instance_id), group in _group_by_instance(items).items():
        service = ctx.collab.inventory.get_service(kind, instance_id)  # type: ignore[arg-type]
        # serial per instance: bounded load, precise failure attribution
        for item in group:
            if not ctx.policy.allows(item):
                continue
            if service is None:
                log.warn(f'No {kind} service for instance {instance_id}; skipping "{item.title}"')
                ctx.result.record_skipped(item)
                continue
            try:
                _process_one(ctx, service, item, predicate)
            except Exception as e:
                log.error(
                    f'Error {"processing (dry run)" if ctx.dry_run else "deleting"} {_label(item)} '
                    f'"{item.title}" on {kind} instance {instance_id}: {e}',
                    extra={"title": item.title, "instance": instance_id, "guids": list(item.guids)},
                )
                ctx.result.record_skipped(item)
                ctx.emitter.emit("item:skipped", title=item.title, instance=instance_id, reason="error")


def _summary(ctx: RunContext, mode: str) -> None:
    r = ctx.result
    tag = "Tag-based " if mode == "tag-based" else ""
    dry = "(DRY RUN) " if ctx.dry_run else ""

    def suffix(n: int) -> str:
        if not ctx.policy.protection_enabled:
            return ""
        return f', {n} protected by playlist "{ctx.policy.protection_playlist}"'

    log.info(f"{tag}movie deletion {dry}summary: {r.movies.deleted} identified for deletion, "
             f"{r.movies.skipped} skipped{suffix(r.movies.protected)}")
    log.info(f"{tag}show deletion {dry}summary: {r.shows.deleted} identified for deletion, "
             f"{r.shows.skipped} skipped{suffix(r.shows.protected)}")


def run_strategy(
    strategy: Strategy,
    ctx: RunContext,
    series: Sequence[TrackedItem],
    movies: Sequence[TrackedItem],
) -> RunResult:
    predicate = _predicate(strategy)
    if ctx.policy.delete_movie:
        _execute(ctx, movies, predicate)
    if ctx.policy.delete_ended_show or ctx.policy.delete_continuing_show:
        _execute(ctx, series, predicate)
    _summary(ctx, strategy.mode)
    return ctx.result


# --- tag-based safety pre-check -----------------------------------------------

class TagCheckError(RuntimeError):
    """Removal tags on an instance could not be verified; the count is unknown."""


def _count_tagged_on_instance(ctx: RunContext, kind: str, instance_id: str, group: list[TrackedItem]) -> int:
    service = ctx.collab.inventory.get_service(kind, instance_id)  # type: ignore[arg-type]
    if service is None:
        # the main pass skips these items too, so nothing here can be deleted
        log.warn(f"No {kind} service for instance {instance_id}; skipping tag count")
        return 0
    try:
        removal_ids = ctx.tags.removal_tag_ids(kind, instance_id, strict=True)  # type: ignore[arg-type]
    except Exception as e:
        raise TagCheckError(f"could not fetch tags for {kind} instance {instance_id}: {e}") from e
    if not removal_ids:
        return 0

    def _check(item: TrackedItem) -> bool:
        target = _has_removal_tag(ctx, service, item)
        if target is None:
            return False
        if ctx.tags.requires_tag:
            return ctx.tags.has_required_tag(item.kind, item.instance_id, ctx.item_tags(target))
        return True

    count = 0
    failed: list[str] = []
    with ThreadPoolExecutor(max_workers=ctx.detail_workers) as pool:
        futs = {pool.submit(_check, it): it for it in group}
        for fut in as_completed(futs):
            it = futs[fut]
            try:
                if fut.result():
                    count += 1
            except Exception as e:
                log.error(f'Error checking tags for "{it.title}" on {kind} instance {instance_id}: {e}')
                failed.append(it.title)
    if failed:
        raise TagCheckError(
            f"could not check tags of {len(failed)} of {len(group)} {kind} items on instance {instance_id}"
        )
    log.debug(f"Checked {len(group)} {kind} items on instance {instance_id}, {count} tagged for removal")
    return count


def tag_precheck(
    ctx: RunContext,
    series: Sequence[TrackedItem],
    movies: Sequence[TrackedItem],
) -> SafetyVerdict:
    """
    Count removal-tagged items per instance (concurrently) and apply the percentage rule.

    Any instance whose tags could not be verified makes the verdict unsafe.
    """
    eligible = [it for it in list(movies) + list(series) if ctx.policy.allows(it)]
    groups = _group_by_instance(eligible)

    tagged = 0
    errors: list[str] = []
    if groups:
        with ThreadPoolExecutor(max_workers=min(ctx.instance_workers, len(groups))) as pool:
            futs = {
                pool.submit(_count_tagged_on_instance, ctx, kind, inst, group): (kind, inst)
                for (kind, inst), group in groups.items()
            }
            for fut in as_completed(futs):
                kind, inst = futs[fut]
                try:
                    tagged += fut.result()
                except Exception as e:
                    log.error(f"Tag count failed for {kind} instance {inst}: {e}")
                    errors.append(str(e))

    if errors:
        msg = f"Safety check failed: could not verify removal tags ({'; '.join(sorted(errors))})"
        ctx.emitter.emit("safety:blocked", scope="tag-based", total=len(eligible), candidates=tagged,
                         unverified=len(errors), threshold=ctx.threshold)
        return SafetyVerdict(False, msg, len(eligible), tagged, 0.0)

    verdict = evaluate(len(eligible), tagged, ctx.threshold, emit=ctx.emitter.emit, scope="tag-based")
    log.info(f"Tag-based deletion would affect {tagged} items out of {len(eligible)} ({verdict.percentage:.2f}%)")
    return verdict
