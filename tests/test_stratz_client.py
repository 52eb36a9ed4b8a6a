"""
GraphQL client tests against a fake HTTP session.

Overview
--------
Check request shape (headers, variables), response decoding, the error
contract (fetches return empty results, constants raise) and the league
pagination used to seed match-detail fetches.
"""

from __future__ import annotations

import pytest
import requests

from dota_advisor.core.exceptions import CatalogLoadError, ConfigurationError, UpstreamError
from dota_advisor.core.types import Position, Rank
from dota_advisor.data.stratz import DEFAULT_PATCH_ID, StratzClient
from dota_advisor.infra.config import Settings
from dota_advisor.infra.throttle import NoThrottle

from conftest import AXE, FakeResponse, FakeSession


def _client(session: FakeSession, **kwargs) -> StratzClient:
    kwargs.setdefault("throttle", NoThrottle())
    return StratzClient("secret", "https://stats.example/graphql", session=session, **kwargs)


def _stub(match_id: int, *, hero_id: int = AXE, position: str = "POSITION_3", patch: int = 179) -> dict:
    return {
        "id": match_id,
        "gameVersionId": patch,
        "players": [{"heroId": hero_id, "position": position}, {"heroId": 1, "position": "POSITION_1"}],
    }


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

def test_headers_and_request_body(fake_session: FakeSession) -> None:
    client = _client(fake_session, timeout=5.0)
    fake_session.queue_data({"heroStats": {"winDay": []}})
    client.fetch_hero_day_stats(Rank.LEGEND, Position.MID)

    assert fake_session.headers["Authorization"] == "Bearer secret"
    call = fake_session.calls[0]
    assert call["url"] == "https://stats.example/graphql"
    assert call["timeout"] == 5.0
    assert "winDay" in call["json"]["query"]
    assert fake_session.variables() == {
        "bracketIds": ["LEGEND"],
        "positionIds": ["POSITION_2"],
        "gameModeIds": ["ALL_PICK_RANKED"],
    }


@pytest.mark.parametrize(
    "response",
    [
        requests.ConnectionError("boom"),
        FakeResponse({"data": {}}, status_code=502),
        FakeResponse(invalid_json=True),
        FakeResponse(["not", "an", "object"]),
        FakeResponse({"errors": [{"message": "rate limited"}], "data": None}),
        FakeResponse({"data": None}),
    ],
)
def test_execute_failures_are_upstream_errors(fake_session: FakeSession, response) -> None:
    fake_session.queue(response)
    with pytest.raises(UpstreamError):
        _client(fake_session)._execute("query { x }")


def test_graphql_error_messages_are_kept(fake_session: FakeSession) -> None:
    fake_session.queue(FakeResponse({"errors": [{"message": "rate limited"}, "other"]}))
    with pytest.raises(UpstreamError) as excinfo:
        _client(fake_session)._execute("query { x }")
    assert "rate limited; other" in str(excinfo.value)


# ---------------------------------------------------------------------------
# Constants & patch
# ---------------------------------------------------------------------------

def test_fetch_constants(fake_session: FakeSession, raw_constants) -> None:
    fake_session.queue_data({"constants": raw_constants})
    assert _client(fake_session).fetch_constants()["heroes"][1]["displayName"] == "Axe"


def test_fetch_constants_failure_is_fatal(fake_session: FakeSession) -> None:
    fake_session.queue(FakeResponse(status_code=500))
    with pytest.raises(CatalogLoadError):
        _client(fake_session).fetch_constants()

    fake_session.queue_data({"constants": None})
    with pytest.raises(CatalogLoadError):
        _client(fake_session).fetch_constants()


def test_current_patch_is_latest_released(fake_session: FakeSession) -> None:
    fake_session.queue_data(
        {
            "constants": {
                "gameVersions": [
                    {"id": 178, "name": "7.38", "asOfDateTime": 1_740_000_000},
                    {"id": 179, "name": "7.38b", "asOfDateTime": 1_745_000_000},
                    {"id": 180, "name": "7.39", "asOfDateTime": 1_900_000_000},
                ]
            }
        }
    )
    assert _client(fake_session).fetch_current_patch_id(now=1_750_000_000) == 179


def test_current_patch_falls_back(fake_session: FakeSession) -> None:
    fake_session.queue(requests.Timeout("slow"))
    assert _client(fake_session).fetch_current_patch_id() == DEFAULT_PATCH_ID
    fake_session.queue_data({"constants": {"gameVersions": []}})
    assert _client(fake_session).fetch_current_patch_id() == DEFAULT_PATCH_ID


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------

def test_hero_day_stats(fake_session: FakeSession) -> None:
    rows = [{"heroId": 2, "matchCount": 120, "winCount": 66, "day": 19800}]
    fake_session.queue_data({"heroStats": {"winDay": rows}})
    assert _client(fake_session).fetch_hero_day_stats(Rank.ANCIENT, Position.OFFLANE) == rows


def test_hero_day_stats_failure_is_empty(fake_session: FakeSession) -> None:
    fake_session.queue(FakeResponse(status_code=503))
    assert _client(fake_session).fetch_hero_day_stats(Rank.ANCIENT, Position.OFFLANE) == []


def test_item_purchases(fake_session: FakeSession) -> None:
    fake_session.queue_data(
        {
            "heroStats": {
                "itemStartingPurchase": [
                    {"itemId": 44, "matchCount": 300, "winCount": 150, "wasGiven": False},
                    {"itemId": 16, "matchCount": 900, "winCount": 450, "wasGiven": True},
                ],
                "itemMidGamePurchase": [{"itemId": 63, "matchCount": 200, "winCount": 100, "time": 18}],
                "itemLateGamePurchase": None,
            }
        }
    )
    raw = _client(fake_session).fetch_item_purchases(AXE, Rank.DIVINE, Position.OFFLANE)

    assert raw.starting == [{"itemId": 44, "matchCount": 300, "winCount": 150, "wasGiven": False, "time": 0}]
    assert raw.mid_game == [{"itemId": 63, "matchCount": 200, "winCount": 100, "time": 18}]
    assert raw.late_game == []
    assert fake_session.variables() == {
        "heroId": AXE,
        "bracketBasicIds": ["DIVINE_IMMORTAL"],
        "positionIds": ["POSITION_3"],
    }


def test_item_purchases_failure_is_empty(fake_session: FakeSession) -> None:
    fake_session.queue(requests.ConnectionError("down"))
    raw = _client(fake_session).fetch_item_purchases(AXE, Rank.DIVINE, Position.OFFLANE)
    assert (raw.starting, raw.mid_game, raw.late_game) == ([], [], [])


# ---------------------------------------------------------------------------
# Matches
# ---------------------------------------------------------------------------

def test_match_details(fake_session: FakeSession, match_factory) -> None:
    fake_session.queue_data({"match": match_factory([5007, 5009])})
    detail = _client(fake_session).fetch_match_details(7000000001)
    assert detail.match_id == 7000000001
    assert detail.player_at(AXE, Position.OFFLANE) is not None


def test_match_details_keep_valid_entries(fake_session: FakeSession, match_factory) -> None:
    match = match_factory([5007, 5009])
    match["players"][0]["heroId"] = "not-a-hero"
    match["players"][1]["abilities"].append({"abilityId": None, "time": 500})
    fake_session.queue_data({"match": match})

    detail = _client(fake_session).fetch_match_details(7000000001)

    assert [p.hero_id for p in detail.players] == [AXE]
    assert [u.ability_id for u in detail.players[0].abilities] == [5007, 5009]


def test_match_details_missing_or_malformed(fake_session: FakeSession) -> None:
    client = _client(fake_session)
    fake_session.queue_data({"match": None}, {"match": {"id": 1}})
    assert client.fetch_match_details(1) is None
    assert client.fetch_match_details(1) is None
    fake_session.queue(FakeResponse(status_code=500))
    assert client.fetch_match_details(1) is None


def test_league_matches_drop_malformed_stubs(fake_session: FakeSession) -> None:
    fake_session.queue_data({"league": {"id": 10, "matches": [_stub(1), {"id": 2}]}})
    stubs = _client(fake_session).fetch_league_matches(10, [AXE], take=25, skip=0)
    assert [s.match_id for s in stubs] == [1]


def test_candidate_ids_paginate_and_filter(fake_session: FakeSession) -> None:
    client = _client(fake_session, page_size=2, max_pages=5)
    fake_session.queue_data(
        {"leagues": [{"id": 10, "name": "A"}, {"id": 11, "name": "B"}]},
        # league 10: full page, then short page
        {"league": {"matches": [_stub(1), _stub(2, patch=178)]}},
        {"league": {"matches": [_stub(3, position="POSITION_1")]}},
        # league 11
        {"league": {"matches": [_stub(4), _stub(1)]}},
        {"league": {"matches": [_stub(5)]}},
    )

    ids = client.list_candidate_match_ids(AXE, Position.OFFLANE, 179, limit=3)

    assert ids == [1, 4, 5]
    pages = [c["json"]["variables"] for c in fake_session.calls[1:]]
    assert [(p["leagueId"], p["take"], p["skip"]) for p in pages] == [
        (10, 2, 0),
        (10, 2, 2),
        (11, 2, 0),
        (11, 1, 2),
    ]


def test_candidate_ids_without_leagues(fake_session: FakeSession) -> None:
    fake_session.queue(FakeResponse(status_code=500))
    assert _client(fake_session).list_candidate_match_ids(AXE, Position.OFFLANE, 179, limit=5) == []


def test_league_pages_are_throttled(fake_session: FakeSession) -> None:
    class Counting:
        calls = 0

        def acquire(self) -> float:
            Counting.calls += 1
            return 0.0

    client = _client(fake_session, throttle=Counting())
    fake_session.queue_data(
        {"leagues": [{"id": 10}, {"id": 11}]},
        {"league": {"matches": []}},
        {"league": {"matches": []}},
    )
    client.list_candidate_match_ids(AXE, Position.OFFLANE, 179, limit=5)
    assert Counting.calls == 2


def test_recent_pro_matches(fake_session: FakeSession, match_factory) -> None:
    client = _client(fake_session, page_size=5)
    fake_session.queue_data(
        {"leagues": [{"id": 10}]},
        {"league": {"matches": [_stub(1), _stub(2), _stub(3)]}},
        {"match": match_factory([5007], match_id=1)},
        {"match": match_factory([5007], match_id=2, game_version_id=178)},
        {"match": match_factory([5007], match_id=3, position="POSITION_4")},
    )
    details = client.fetch_recent_pro_matches(AXE, Position.OFFLANE, 179, limit=3)
    assert [d.match_id for d in details] == [1]


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

def test_from_settings(fake_session: FakeSession) -> None:
    settings = Settings(
        stratz_api_token="tok",
        league_page_size=10,
        league_max_pages=2,
        league_window_start=1_700_000_000,
        league_window_days=1,
        request_timeout=3,
    )
    client = StratzClient.from_settings(settings, session=fake_session)
    assert fake_session.headers["Authorization"] == "Bearer tok"
    assert client.league_window == (1_700_000_000, 1_700_086_400)
    assert (client.page_size, client.max_pages, client.timeout) == (10, 2, 3)


def test_from_settings_requires_token() -> None:
    with pytest.raises(ConfigurationError):
        StratzClient.from_settings(Settings())
