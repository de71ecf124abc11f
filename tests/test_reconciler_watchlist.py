# Reclaimarr test scripts
from __future__ import annotations

import json

import pytest

from _fakes import (
    FakeInventory,
    FakeNotifier,
    FakeProtection,
    FakeWatchlist,
    delete_sync_cfg,
    movie,
    show,
    watch_entry,
)
from rc_platform.reconcile import Collaborators, ConfigError, Reconciler


def _library(n_movies: int = 100, on_watchlist: int = 92) -> tuple[FakeInventory, FakeWatchlist]:
    inv = FakeInventory(movies=[movie(i) for i in range(n_movies)])
    inv.service("movie")
    wl = FakeWatchlist(movies=[watch_entry(f"tmdb:{1000 + i}") for i in range(on_watchlist)])
    return inv, wl


def _reconciler(cfg, inv, wl, **collab) -> Reconciler:
    sleeps: list[float] = []
    rec = Reconciler(cfg, Collaborators(inventory=inv, watchlist=wl, **collab), sleep=sleeps.append)
    rec.sleeps = sleeps  # type: ignore[attr-defined]
    return rec


def test_deletes_items_missing_from_every_watchlist() -> None:
    inv, wl = _library(100, 92)
    res = _reconciler(delete_sync_cfg(), inv, wl).run()

    assert res.movies.deleted == 8
    assert res.movies.skipped == 0
    assert res.safety_triggered is None
    assert sorted(i for i, _ in inv.service("movie").deleted) == list(range(92, 100))
    assert res.movies.items[0] == {"title": "Movie 92", "guid": "tmdb:1092", "instance": "default"}
    assert res.total == {"deleted": 8, "skipped": 0, "protected": 0, "processed": 8}


def test_safety_threshold_aborts_before_any_delete() -> None:
    inv, wl = _library(100, 85)
    res = _reconciler(delete_sync_cfg(), inv, wl).run()

    assert res.safety_triggered is True
    assert "Would delete 15 out of 100 items (15.00%)" in res.safety_message
    assert "maximum allowed percentage of 10%" in res.safety_message
    assert res.movies.deleted == 0
    assert res.movies.skipped == 100
    assert inv.service("movie").deleted == []


def test_threshold_is_inclusive() -> None:
    inv, wl = _library(100, 90)
    res = _reconciler(delete_sync_cfg(), inv, wl).run()
    assert res.safety_triggered is None
    assert res.movies.deleted == 10


def test_dry_run_reports_the_same_counts_without_deleting() -> None:
    inv, wl = _library(100, 92)
    live_inv, live_wl = _library(100, 92)

    dry = _reconciler(delete_sync_cfg(), inv, wl).run(dry_run=True)
    live = _reconciler(delete_sync_cfg(), live_inv, live_wl).run(dry_run=False)

    assert inv.service("movie").deleted == []
    assert dry.to_dict() == live.to_dict()


def test_nothing_enabled_means_no_collaborator_calls() -> None:
    inv, wl = _library(10, 0)
    cfg = delete_sync_cfg(delete_movie=False)
    res = _reconciler(cfg, inv, wl).run()

    assert res.to_dict()["total"] == {"deleted": 0, "skipped": 0, "protected": 0, "processed": 0}
    assert inv.fetch_calls == 0
    assert wl.refresh_calls == 0


def test_empty_watchlist_aborts() -> None:
    inv, wl = _library(10, 0)
    res = _reconciler(delete_sync_cfg(), inv, wl).run()

    assert res.safety_triggered is True
    assert res.safety_message.startswith("No watchlist items found")
    assert res.movies.skipped == 10
    assert inv.service("movie").deleted == []


def test_users_with_sync_disabled_do_not_protect_items() -> None:
    inv, wl = _library(10, 0)
    wl.users = [{"id": 1, "sync_enabled": True}, {"id": 2, "sync_enabled": False}]
    wl.movies = [watch_entry(f"tmdb:{1000 + i}", user_id=1) for i in range(9)]
    wl.movies.append(watch_entry("tmdb:1009", user_id=2))
    cfg = delete_sync_cfg(max_deletion_prevention=50)

    res = _reconciler(cfg, inv, wl).run()
    assert [i["title"] for i in res.movies.items] == ["Movie 9"]

    inv2, wl2 = _library(10, 0)
    wl2.users, wl2.movies = wl.users, wl.movies
    cfg["delete_sync"]["respect_user_sync_setting"] = False
    assert _reconciler(cfg, inv2, wl2).run().movies.deleted == 0


def test_protected_items_are_counted_not_deleted() -> None:
    inv, wl = _library(100, 92)
    prot = FakeProtection(guids={"TMDB://1095"})
    cfg = delete_sync_cfg(protection_enabled=True)

    res = _reconciler(cfg, inv, wl, protection=prot).run()

    assert res.movies.deleted == 7
    assert res.movies.protected == 1
    assert 95 not in [i for i, _ in inv.service("movie").deleted]
    assert prot.cleared >= 2


def test_safety_ratio_ignores_protection() -> None:
    # 11 candidates (11%) before protection; 9 after. Still blocked.
    inv, wl = _library(100, 89)
    prot = FakeProtection(guids={"tmdb:1090", "tmdb:1091"})
    res = _reconciler(delete_sync_cfg(protection_enabled=True), inv, wl, protection=prot).run()

    assert res.safety_triggered is True
    assert "Would delete 11 out of 100" in res.safety_message


def test_protection_failure_fails_closed() -> None:
    inv, wl = _library(100, 95)
    prot = FakeProtection(error=RuntimeError("plex unreachable"))
    res = _reconciler(delete_sync_cfg(protection_enabled=True), inv, wl, protection=prot).run()

    assert res.safety_triggered is True
    assert res.safety_message.startswith("Plex playlist protection failed:")
    assert inv.service("movie").deleted == []


def test_protection_enabled_without_playlists_fails_closed() -> None:
    inv, wl = _library(100, 95)
    prot = FakeProtection(playlists={})
    res = _reconciler(delete_sync_cfg(protection_enabled=True), inv, wl, protection=prot).run()
    assert res.safety_triggered is True
    assert inv.service("movie").deleted == []


def test_refresh_is_retried_with_backoff() -> None:
    inv, wl = _library(100, 92)
    wl.fail_refresh = 2
    rec = _reconciler(delete_sync_cfg(), inv, wl)
    res = rec.run()

    assert res.movies.deleted == 8
    assert rec.sleeps == [1.0, 2.0]  # type: ignore[attr-defined]


def test_refresh_failure_after_retries_aborts() -> None:
    inv, wl = _library(100, 92)
    wl.fail_refresh = 3
    res = _reconciler(delete_sync_cfg(), inv, wl).run()

    assert res.safety_triggered is True
    assert res.safety_message.startswith("Failed to refresh watchlist data")
    assert inv.service("movie").deleted == []


def test_per_item_failure_is_skipped_and_run_continues() -> None:
    inv, wl = _library(100, 92)
    inv.service("movie").fail_on = {95}
    res = _reconciler(delete_sync_cfg(), inv, wl).run()

    assert res.movies.deleted == 7
    assert res.movies.skipped == 1
    assert "Movie 95" not in [i["title"] for i in res.movies.items]


def test_missing_service_counts_as_skipped() -> None:
    inv, wl = _library(20, 19)
    inv.movies.append(movie(50, instance="4k"))
    res = _reconciler(delete_sync_cfg(max_deletion_prevention=20), inv, wl).run()

    assert res.movies.deleted == 1
    assert res.movies.skipped == 1


def test_show_flags_follow_series_status() -> None:
    inv = FakeInventory(series=[show(1, ended=True), show(2, ended=False)])
    inv.service("show")
    wl = FakeWatchlist(shows=[watch_entry("tvdb:9999")])
    cfg = delete_sync_cfg(delete_movie=False, delete_ended_show=True, max_deletion_prevention=100)

    res = _reconciler(cfg, inv, wl).run()

    assert res.shows.deleted == 1
    assert res.shows.skipped == 0
    assert inv.service("show").deleted == [(1, True)]


def test_multiple_instances_are_processed() -> None:
    inv = FakeInventory(movies=[movie(1), movie(2, instance="4k"), movie(3, instance="4k")])
    inv.service("movie")
    inv.service("movie", "4k")
    wl = FakeWatchlist(movies=[watch_entry("tmdb:1003")])
    res = _reconciler(delete_sync_cfg(max_deletion_prevention=100), inv, wl).run()

    assert res.movies.deleted == 2
    assert inv.service("movie").deleted == [(1, True)]
    assert inv.service("movie", "4k").deleted == [(2, True)]
    assert {i["instance"] for i in res.movies.items} == {"default", "4k"}


def test_tracked_only_skips_content_added_elsewhere() -> None:
    inv, wl = _library(10, 5)
    wl.tracked = ["tmdb:1005", "tmdb:1006"]
    cfg = delete_sync_cfg(tracked_only=True, max_deletion_prevention=30)

    res = _reconciler(cfg, inv, wl).run()

    assert res.movies.deleted == 2
    assert res.movies.skipped == 3
    assert sorted(i for i, _ in inv.service("movie").deleted) == [5, 6]


def test_tracked_only_without_tracked_list_aborts() -> None:
    inv, wl = _library(10, 9)
    wl.tracked = None
    res = _reconciler(delete_sync_cfg(tracked_only=True), inv, wl).run()
    assert res.safety_triggered is True
    assert inv.service("movie").deleted == []


def test_cleanup_tracked_drops_deleted_content_after_live_run() -> None:
    inv, wl = _library(10, 5)
    wl.tracked = ["tmdb:1005", "tmdb:1006", "tmdb:1099"]
    cfg = delete_sync_cfg(tracked_only=True, cleanup_tracked=True, max_deletion_prevention=30)

    res = _reconciler(cfg, inv, wl).run()

    assert res.movies.deleted == 2
    assert wl.removed_calls == [{"tmdb:1005", "radarr:5", "tmdb:1006", "radarr:6"}]
    assert wl.tracked == ["tmdb:1099"]


def test_cleanup_tracked_is_skipped_on_dry_run_and_when_disabled() -> None:
    inv, wl = _library(10, 5)
    wl.tracked = ["tmdb:1005", "tmdb:1006"]
    cfg = delete_sync_cfg(tracked_only=True, cleanup_tracked=True, max_deletion_prevention=30)
    _reconciler(cfg, inv, wl).run(dry_run=True)
    assert wl.removed_calls == []

    _reconciler(delete_sync_cfg(tracked_only=True, max_deletion_prevention=30), inv, wl).run()
    assert wl.removed_calls == []
    assert wl.tracked == ["tmdb:1005", "tmdb:1006"]


def test_cleanup_tracked_failure_keeps_the_result() -> None:
    inv, wl = _library(10, 5)
    wl.tracked = None
    cfg = delete_sync_cfg(cleanup_tracked=True, max_deletion_prevention=50)

    res = _reconciler(cfg, inv, wl).run()

    assert res.safety_triggered is None
    assert res.movies.deleted == 5
    assert len(wl.removed_calls) == 1


@pytest.mark.parametrize("bad", [0, -5, "abc", float("nan"), True, None])
def test_invalid_threshold_raises_and_releases_guard(bad) -> None:
    inv, wl = _library(10, 9)
    rec = _reconciler(delete_sync_cfg(max_deletion_prevention=bad), inv, wl)

    with pytest.raises(ConfigError):
        rec.run()
    assert rec.running is False
    assert inv.service("movie").deleted == []


def test_unknown_mode_is_a_config_error() -> None:
    inv, wl = _library(10, 9)
    rec = _reconciler(delete_sync_cfg(deletion_mode="everything"), inv, wl)
    with pytest.raises(ConfigError):
        rec.run()
    assert rec.running is False


def test_notifications_follow_policy() -> None:
    inv, wl = _library(100, 92)
    hook, dm, apprise = FakeNotifier("webhook"), FakeNotifier("dm"), FakeNotifier("apprise")
    cfg = delete_sync_cfg(notify="discord-webhook")

    res = _reconciler(cfg, inv, wl, notifiers=[hook, dm, apprise]).run(dry_run=True)

    assert len(hook.sent) == 1
    payload, dry = hook.sent[0]
    assert dry is True
    assert payload == res.to_dict()
    assert dm.sent == [] and apprise.sent == []


def test_notifier_failure_does_not_change_result() -> None:
    inv, wl = _library(100, 92)
    broken = FakeNotifier("webhook", error=RuntimeError("discord 502"))
    res = _reconciler(delete_sync_cfg(notify="all"), inv, wl, notifiers=[broken]).run()
    assert res.movies.deleted == 8


def test_notify_only_on_deletion_suppresses_empty_runs() -> None:
    inv, wl = _library(10, 10)
    hook = FakeNotifier("webhook")
    cfg = delete_sync_cfg(notify="all", notify_only_on_deletion=True)
    _reconciler(cfg, inv, wl, notifiers=[hook]).run()
    assert hook.sent == []


def test_safety_abort_is_notified() -> None:
    inv, wl = _library(100, 50)
    hook = FakeNotifier("webhook")
    _reconciler(delete_sync_cfg(notify="webhook-only"), inv, wl, notifiers=[hook]).run()
    assert len(hook.sent) == 1
    assert hook.sent[0][0]["safetyTriggered"] is True


def test_progress_events_and_last_result() -> None:
    inv, wl = _library(100, 92)
    lines: list[str] = []
    rec = Reconciler(
        delete_sync_cfg(),
        Collaborators(inventory=inv, watchlist=wl),
        on_progress=lines.append,
        sleep=lambda s: None,
    )
    res = rec.run()

    events = [json.loads(x)["event"] for x in lines]
    assert events[0] == "run:start"
    assert events[-1] == "run:done"
    assert events.count("item:deleted") == 8
    assert rec.last_result is res
    assert rec.last_run_at is not None
