# Reclaimarr test scripts
from __future__ import annotations

import pytest
import responses
from responses import matchers

from providers.arr import ArrAuthError, ArrConfig, ArrError, ArrInventory, RadarrClient, SonarrClient
from rc_platform.reconcile import TrackedItem

SONARR = "http://sonarr.local:8989"
RADARR = "http://radarr.local:7878"


def _sonarr(inst: str = "default", url: str = SONARR) -> SonarrClient:
    return SonarrClient(ArrConfig(inst, url, "sk", name="Sonarr", max_retries=1))


def _radarr(inst: str = "default", url: str = RADARR) -> RadarrClient:
    return RadarrClient(ArrConfig(inst, url, "rk", name="Radarr", max_retries=1))


@responses.activate
def test_sonarr_series_listing_maps_status_and_ids() -> None:
    responses.add(
        responses.GET,
        f"{SONARR}/api/v3/series",
        json=[
            {"id": 3, "title": "Lost", "tvdbId": 73739, "imdbId": "tt0411008", "ended": True, "tags": [1]},
            {"id": 4, "title": "Andor", "tvdbId": 393189, "status": "continuing"},
        ],
        match=[matchers.header_matcher({"X-Api-Key": "sk"})],
    )
    items = _sonarr().fetch_series(bypass_exclusions=True)

    assert [i.title for i in items] == ["Lost", "Andor"]
    lost, andor = items
    assert lost.series_status == "ended" and lost.is_continuing is False
    assert andor.is_continuing is True
    assert lost.guids == ("imdb:tt0411008", "tvdb:73739", "sonarr:3")
    assert lost.tags == (1,)
    assert lost.kind == "show"


@responses.activate
def test_sonarr_exclusions_are_appended_unless_bypassed() -> None:
    responses.add(responses.GET, f"{SONARR}/api/v3/series", json=[])
    responses.add(
        responses.GET,
        f"{SONARR}/api/v3/importlistexclusion/paged",
        json={"totalRecords": 1, "records": [{"title": "Excluded", "tvdbId": 5}]},
    )
    items = _sonarr().fetch_series(bypass_exclusions=False)
    assert [(i.title, i.item_id, i.guids) for i in items] == [("Excluded", 0, ("tvdb:5",))]


@responses.activate
def test_sonarr_delete_uses_series_id_and_flags() -> None:
    responses.add(
        responses.DELETE,
        f"{SONARR}/api/v3/series/3",
        match=[matchers.query_param_matcher({"deleteFiles": "true", "addImportListExclusion": "false"})],
        json={},
    )
    item = TrackedItem("Lost", ("tvdb:73739", "sonarr:3"), "default", 3, "show", "ended")
    _sonarr().delete(item, True)
    assert len(responses.calls) == 1


@responses.activate
def test_sonarr_delete_falls_back_to_tvdb_lookup() -> None:
    responses.add(responses.GET, f"{SONARR}/api/v3/series", json=[{"id": 8, "title": "Lost", "tvdbId": 73739}])
    responses.add(
        responses.DELETE,
        f"{SONARR}/api/v3/series/8",
        match=[matchers.query_param_matcher({"deleteFiles": "false", "addImportListExclusion": "false"})],
        json={},
    )
    _sonarr().delete(TrackedItem("Lost", ("tvdb:73739",), "default", 0, "show"), False)
    assert responses.calls[-1].request.method == "DELETE"


@responses.activate
def test_sonarr_delete_without_ids_raises() -> None:
    with pytest.raises(ArrError):
        _sonarr().delete(TrackedItem("Nothing", ("imdb:tt1",), "default", 0, "show"), True)


@responses.activate
def test_radarr_detail_and_delete() -> None:
    responses.add(responses.GET, f"{RADARR}/api/v3/movie/7", json={"id": 7, "title": "Heat", "tmdbId": 949, "tags": [2, 5]})
    responses.add(
        responses.DELETE,
        f"{RADARR}/api/v3/movie/7",
        match=[matchers.query_param_matcher({"deleteFiles": "true", "addImportExclusion": "false"})],
        json={},
    )
    client = _radarr()
    detail = client.get_item_detail(7)
    assert detail is not None
    assert detail.guids == ("tmdb:949", "radarr:7")
    assert detail.tags == (2, 5)
    client.delete(detail, True)


@responses.activate
def test_tags_and_bulk_tags() -> None:
    responses.add(responses.GET, f"{RADARR}/api/v3/tag", json=[{"id": 1, "label": "reclaimarr:removed"}])
    responses.add(responses.GET, f"{RADARR}/api/v3/movie", json=[{"id": 7, "tags": [1]}, {"id": "x"}])
    client = _radarr()
    assert client.get_tags() == [{"id": 1, "label": "reclaimarr:removed"}]
    assert client.bulk_get_tags() == {7: [1]}


@responses.activate
def test_bad_api_key_raises_auth_error() -> None:
    responses.add(responses.GET, f"{RADARR}/api/v3/movie", status=401)
    with pytest.raises(ArrAuthError):
        _radarr().fetch_movies()


@responses.activate
def test_inventory_skips_failing_instance() -> None:
    responses.add(responses.GET, f"{RADARR}/api/v3/movie", json=[{"id": 1, "title": "A", "tmdbId": 11}])
    responses.add(responses.GET, "http://radarr4k.local:7878/api/v3/movie", status=401)
    inv = ArrInventory(radarr=[_radarr(), _radarr("4k", "http://radarr4k.local:7878")])

    movies = inv.fetch_all_movies()
    assert [m.title for m in movies] == ["A"]
    assert inv.fetch_all_series() == []
    assert inv.get_service("movie", "4k") is not None
    assert inv.get_service("show", "default") is None


def test_inventory_from_config() -> None:
    cfg = {
        "sonarr": {"base_url": SONARR + "/", "api_key": "sk", "instances": {"anime": {"base_url": "http://a:8989", "api_key": "x"}}},
        "radarr": {"base_url": "", "api_key": ""},
    }
    inv = ArrInventory.from_config(cfg)
    assert sorted(inv.sonarr) == ["anime", "default"]
    assert inv.radarr == {}
    assert inv.sonarr["default"].cfg.base_url == SONARR
    assert inv.sonarr["anime"].cfg.name == "Sonarr (anime)"
