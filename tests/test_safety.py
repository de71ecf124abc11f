# Reclaimarr test scripts
from __future__ import annotations

import math

import pytest

from _fakes import movie, show
from rc_platform.reconcile import ConfigError, DeletionPolicy, evaluate, validate_threshold
from rc_platform.reconcile._safety import count_candidates


def test_empty_inventory_is_unsafe() -> None:
    v = evaluate(0, 0, 10)
    assert v.safe is False
    assert v.message == "No content found in media servers"


def test_ratio_at_or_below_threshold_is_safe() -> None:
    assert evaluate(100, 8, 10).safe is True
    assert evaluate(100, 10, 10).safe is True
    assert evaluate(100, 0, 10).safe is True


def test_ratio_above_threshold_is_blocked_with_message() -> None:
    v = evaluate(100, 15, 10)
    assert v.safe is False
    assert v.message == (
        "Safety check failed: Would delete 15 out of 100 items (15.00%), "
        "which exceeds maximum allowed percentage of 10%."
    )
    assert math.isclose(v.percentage, 15.0)


def test_threshold_above_hundred_never_blocks() -> None:
    assert evaluate(10, 10, 150).safe is True


def test_blocked_verdict_is_emitted() -> None:
    events: list[tuple[str, dict]] = []
    evaluate(20, 5, 10, emit=lambda ev, **kw: events.append((ev, kw)), scope="tag-based")
    assert events[0][0] == "safety:blocked"
    assert events[0][1]["scope"] == "tag-based"
    assert events[0][1]["candidates"] == 5


@pytest.mark.parametrize("bad", [0, -1, "", "ten", float("nan"), float("inf"), True, False, None, [10]])
def test_invalid_thresholds_raise(bad) -> None:
    with pytest.raises(ConfigError):
        validate_threshold(bad)


def test_numeric_strings_are_accepted() -> None:
    assert validate_threshold("12.5") == 12.5
    assert validate_threshold(5) == 5.0


def test_count_candidates_respects_flags_and_eligibility() -> None:
    policy = DeletionPolicy(delete_movie=True, delete_ended_show=True)
    items = [movie(1), movie(2), show(1, ended=True), show(2, ended=False)]

    considered, candidates = count_candidates(items, policy, lambda it: it.item_id == 1)
    assert (considered, candidates) == (3, 2)

    considered, candidates = count_candidates(
        items, policy, lambda it: True, eligible=lambda it: it.kind == "movie"
    )
    assert (considered, candidates) == (3, 2)
