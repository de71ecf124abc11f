# rc_platform/reconcile/_safety.py
# mass-delete guard: refuse runs whose deletion ratio exceeds the configured percentage.
# Copyright (c) 2025-2026 Reclaimarr
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from ._types import ConfigError, DeletionPolicy, TrackedItem

__all__ = ["SafetyVerdict", "validate_threshold", "evaluate", "count_candidates"]


@dataclass(frozen=True)
class SafetyVerdict:
    safe: bool
    message: str
    total: int = 0
    candidates: int = 0
    percentage: float = 0.0


def validate_threshold(value: Any) -> float:
    """Percentage as float. Anything not a finite number > 0 is a ConfigError, never defaulted."""
    bad = ConfigError(
        f'Invalid max_deletion_prevention value: "{value}". Set a percentage greater than 0.'
    )
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise bad
    try:
        pct = float(value)
    except ValueError:
        raise bad from None
    if math.isnan(pct) or math.isinf(pct) or pct <= 0:
        raise bad
    return pct


def evaluate(
    total: int,
    candidate_deletes: int,
    max_percentage: Any,
    *,
    emit: Callable[..., None] | None = None,
    scope: str = "watchlist",
) -> SafetyVerdict:
    pct_max = validate_threshold(max_percentage)
    total = int(total)
    candidate_deletes = int(candidate_deletes)

    if total <= 0:
        # nothing to compare against: unknown state is unsafe
        msg = "No content found in media servers"
        if emit:
            emit("safety:blocked", scope=scope, total=0, candidates=candidate_deletes, threshold=pct_max)
        return SafetyVerdict(False, msg, 0, candidate_deletes, 0.0)

    pct = candidate_deletes / total * 100.0
    if pct > pct_max:
        msg = (
            f"Safety check failed: Would delete {candidate_deletes} out of {total} items "
            f"({pct:.2f}%), which exceeds maximum allowed percentage of {pct_max:g}%."
        )
        if emit:
            emit("safety:blocked", scope=scope, total=total, candidates=candidate_deletes,
                 percentage=round(pct, 2), threshold=pct_max)
        return SafetyVerdict(False, msg, total, candidate_deletes, pct)

    msg = f"Would delete {candidate_deletes} out of {total} items ({pct:.2f}%)"
    return SafetyVerdict(True, msg, total, candidate_deletes, pct)


def count_candidates(
    items: Iterable[TrackedItem],
    policy: DeletionPolicy,
    should_delete: Callable[[TrackedItem], bool],
    *,
    eligible: Callable[[TrackedItem], bool] | None = None,
) -> tuple[int, int]:
    """(considered, candidates) over policy-enabled items, before protection."""
    considered = 0
    candidates = 0
    for it in items:
        if not policy.allows(it):
            continue
        considered += 1
        if should_delete(it) and (eligible is None or eligible(it)):
            candidates += 1
    return considered, candidates
