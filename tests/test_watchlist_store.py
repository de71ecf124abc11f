# Reclaimarr test scripts
from __future__ import annotations

import json
from pathlib import Path

import pytest

from providers.watchlist import WatchlistStore
from rc_platform.reconcile import WatchlistUnavailable
from rc_platform.reconcile._watchlist import build_inclusion_set, load_tracked_guids, watchlist_entries

SNAPSHOT = {
    "users": [
        {"id": 1, "name": "owner", "sync_enabled": True, "is_primary": True},
        {"id": 2, "name": "kid", "sync_enabled": False},
    ],
    "movies": [
        {"title": "Heat", "guids": '["TMDB://949", "imdb://tt0113277"]', "user_id": 1},
        {"title": "Cars", "guids": "tmdb:920", "user_id": 2},
    ],
    "shows": [{"title": "Severance", "guids": ["tvdb:371980"], "user_id": 1}],
    "tracked": ["tmdb:949", "TVDB://371980"],
}


def _write(base: Path, data: dict) -> None:
    (base / "watchlist.json").write_text(json.dumps(data), encoding="utf-8")


def test_reads_snapshot_and_normalizes_guids(config_base: Path) -> None:
    _write(config_base, SNAPSHOT)
    store = WatchlistStore(config_base)

    assert store.refresh_self_watchlist() == 2
    assert store.refresh_others_watchlists() == 1
    movies = store.get_all_movie_watchlist_items()
    assert movies[0]["guids"] == ["tmdb:949", "imdb:tt0113277"]
    assert store.tracked_guids() == {"tmdb:949", "tvdb:371980"}


def test_inclusion_respects_user_sync(config_base: Path) -> None:
    _write(config_base, SNAPSHOT)
    store = WatchlistStore(config_base)

    synced = build_inclusion_set(watchlist_entries(store, respect_user_sync=True))
    everyone = build_inclusion_set(watchlist_entries(store, respect_user_sync=False))
    assert "tmdb:920" not in synced
    assert "tmdb:920" in everyone
    assert {"tmdb:949", "imdb:tt0113277", "tvdb:371980"} <= synced


def test_refresh_picks_up_new_snapshot(config_base: Path) -> None:
    _write(config_base, SNAPSHOT)
    store = WatchlistStore(config_base)
    store.refresh_self_watchlist()

    _write(config_base, {**SNAPSHOT, "movies": []})
    store.refresh_self_watchlist()
    assert store.get_all_movie_watchlist_items() == []


def test_missing_snapshot_raises(config_base: Path) -> None:
    with pytest.raises(FileNotFoundError):
        WatchlistStore(config_base).refresh_self_watchlist()


def test_tracked_loader_wraps_errors(config_base: Path) -> None:
    with pytest.raises(WatchlistUnavailable):
        load_tracked_guids(WatchlistStore(config_base))

    class NoTracking:
        pass

    with pytest.raises(WatchlistUnavailable):
        load_tracked_guids(NoTracking())  # type: ignore[arg-type]


def test_remove_tracked_guids_rewrites_snapshot(config_base: Path) -> None:
    _write(config_base, SNAPSHOT)
    store = WatchlistStore(config_base)

    assert store.remove_tracked_guids(["tvdb:371980", "radarr:3"]) == 1
    on_disk = json.loads((config_base / "watchlist.json").read_text("utf-8"))
    assert on_disk["tracked"] == ["tmdb:949"]
    assert on_disk["movies"] == SNAPSHOT["movies"]
    assert store.tracked_guids() == {"tmdb:949"}
    assert not list(config_base.glob("*.tmp"))

    assert store.remove_tracked_guids([]) == 0
    assert store.remove_tracked_guids(["imdb:tt0000001"]) == 0
