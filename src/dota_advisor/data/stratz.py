"""
GraphQL client for the STRATZ statistics API.

Overview
--------
Thin, synchronous wrapper around ``requests`` that issues the handful of
queries the advisor needs:

- game constants (heroes, abilities, items) and game versions;
- hero win/day statistics per rank bracket and position;
- item purchase statistics for the starting, mid-game (15-35 min) and
  late-game (35-75 min) windows;
- professional leagues, their matches (paginated) and match details.

Design
------
- :meth:`StratzClient._execute` is the single transport point; every HTTP,
  decoding or GraphQL failure becomes an :class:`UpstreamError`.
- Caller-facing fetches log upstream failures and return an empty result
  (``[]``, empty :class:`RawItemBuildData`, ``None``). Only
  :meth:`fetch_constants` raises, as a :class:`CatalogLoadError`, because
  startup cannot continue without a catalog.
- League pagination is paced by an injectable throttle policy.
- No retries and no timeout unless one is configured.

Usage
-----
>>> client = StratzClient.from_settings(load_settings())  # doctest: +SKIP
>>> rows = client.fetch_hero_day_stats(Rank.LEGEND, Position.MID)  # doctest: +SKIP
"""

from __future__ import annotations

import time
from typing import Any, Final, Iterable, Optional

import requests

from dota_advisor.core.exceptions import CatalogLoadError, MalformedRecordError, UpstreamError
from dota_advisor.core.models import MatchDetail, MatchStub, RawItemBuildData, parse_record
from dota_advisor.core.types import HeroId, JsonDict, MatchId, Position, Rank
from dota_advisor.infra.config import DEFAULT_LEAGUE_WINDOW_START, DEFAULT_STRATZ_URL, SECONDS_PER_DAY, Settings
from dota_advisor.infra.logging import logger_for
from dota_advisor.infra.throttle import FixedIntervalThrottle, Throttle

__all__: Final[list[str]] = [
    "DEFAULT_PATCH_ID",
    "GAME_MODE_ALL_PICK_RANKED",
    "StratzClient",
]

DEFAULT_PATCH_ID: Final[int] = 179
GAME_MODE_ALL_PICK_RANKED: Final[str] = "ALL_PICK_RANKED"
LEAGUE_TIERS: Final[list[str]] = ["PROFESSIONAL"]
LEAGUE_TAKE: Final[int] = 250
USER_AGENT: Final[str] = "dota-build-advisor"


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------
CONSTANTS_QUERY: Final[str] = """
query Constants {
  constants {
    heroes {
      id
      displayName
      abilities {
        abilityId
        slot
        ability {
          name
          language { displayName }
          stat { hotKeyOverride isUltimate }
          isTalent
        }
      }
    }
    abilities {
      id
      name
      language { displayName }
      stat { hotKeyOverride isUltimate }
      isTalent
    }
    items { id displayName }
  }
}
"""

GAME_VERSIONS_QUERY: Final[str] = """
query GameVersions {
  constants {
    gameVersions { id name asOfDateTime }
  }
}
"""

HERO_WIN_DAY_QUERY: Final[str] = """
query HeroWinDay(
  $bracketIds: [RankBracket!],
  $positionIds: [MatchPlayerPositionType!],
  $gameModeIds: [GameModeEnumType!]
) {
  heroStats {
    winDay(take: 1, bracketIds: $bracketIds, positionIds: $positionIds, gameModeIds: $gameModeIds) {
      heroId
      matchCount
      winCount
      day
    }
  }
}
"""

ITEM_PURCHASES_QUERY: Final[str] = """
query ItemPurchases(
  $heroId: Short!,
  $bracketBasicIds: [RankBracketBasicEnum!],
  $positionIds: [MatchPlayerPositionType!]
) {
  heroStats {
    itemStartingPurchase(heroId: $heroId, bracketBasicIds: $bracketBasicIds, positionIds: $positionIds) {
      itemId
      matchCount
      winCount
      wasGiven
    }
    itemMidGamePurchase: itemFullPurchase(
      heroId: $heroId, minTime: 15, maxTime: 35,
      bracketBasicIds: $bracketBasicIds, positionIds: $positionIds, matchLimit: 0
    ) {
      itemId
      matchCount
      winCount
      time
    }
    itemLateGamePurchase: itemFullPurchase(
      heroId: $heroId, minTime: 35, maxTime: 75,
      bracketBasicIds: $bracketBasicIds, positionIds: $positionIds, matchLimit: 0
    ) {
      itemId
      matchCount
      winCount
      time
    }
  }
}
"""

LEAGUES_QUERY: Final[str] = """
query RecentLeagues($startDateTime: Long!, $endDateTime: Long!, $tiers: [LeagueTier!], $take: Int!) {
  leagues(request: {startDateTime: $startDateTime, endDateTime: $endDateTime, tiers: $tiers, take: $take}) {
    id
    name
  }
}
"""

LEAGUE_MATCHES_QUERY: Final[str] = """
query LeagueMatchesPage($leagueId: Int!, $heroIds: [Short!], $take: Int!, $skip: Int!) {
  league(id: $leagueId) {
    id
    matches(request: {heroIds: $heroIds, isParsed: true, isStats: true, take: $take, skip: $skip}) {
      id
      gameVersionId
      players { heroId position }
    }
  }
}
"""

MATCH_DETAILS_QUERY: Final[str] = """
query MatchDetails($matchId: Long!) {
  match(id: $matchId) {
    id
    gameVersionId
    players {
      heroId
      steamAccountId
      isRadiant
      isVictory
      position
      abilities { abilityId time level }
    }
  }
}
"""


def _section(data: JsonDict, *path: str) -> Any:
    """Walk nested ``data`` keys, returning ``None`` on any missing level."""

    node: Any = data
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


class StratzClient:
    """Synchronous STRATZ GraphQL client.

    Args:
        token: Bearer token.
        url: GraphQL endpoint.
        session: ``requests.Session``-like object (tests pass a fake).
        timeout: Per-request timeout in seconds; ``None`` keeps the transport default.
        throttle: Pacing policy applied before each league query.
        league_window: ``(start, end)`` UNIX seconds for the league lookup.
        page_size: Matches requested per league page.
        max_pages: Maximum pages requested per league.
    """

    def __init__(
        self,
        token: str,
        url: str = DEFAULT_STRATZ_URL,
        *,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        throttle: Optional[Throttle] = None,
        league_window: Optional[tuple[int, int]] = None,
        page_size: int = 25,
        max_pages: int = 5,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
                "User-Agent": USER_AGENT,
            }
        )
        self.throttle: Throttle = throttle or FixedIntervalThrottle(0.5, name="league_pages")
        self.league_window = league_window or (
            DEFAULT_LEAGUE_WINDOW_START,
            DEFAULT_LEAGUE_WINDOW_START + 60 * SECONDS_PER_DAY,
        )
        self.page_size = page_size
        self.max_pages = max_pages

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        session: Optional[requests.Session] = None,
        throttle: Optional[Throttle] = None,
    ) -> "StratzClient":
        """Build a client from :class:`Settings` (requires the token)."""

        return cls(
            settings.require_token(),
            settings.stratz_api_url,
            session=session,
            timeout=settings.request_timeout,
            throttle=throttle or FixedIntervalThrottle(settings.league_delay_seconds, name="league_pages"),
            league_window=(settings.league_window_start, settings.league_window_end),
            page_size=settings.league_page_size,
            max_pages=settings.league_max_pages,
        )

    # -------------------------
    # Transport
    # -------------------------
    def _execute(self, query: str, variables: Optional[JsonDict] = None) -> JsonDict:
        """POST one GraphQL operation and return its ``data`` object.

        Raises:
            UpstreamError: On network, HTTP, decoding or GraphQL errors.
        """

        try:
            resp = self.session.post(
                self.url,
                json={"query": query, "variables": variables or {}},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise UpstreamError("Request to statistics API failed", reason=str(exc)) from exc

        if resp.status_code >= 400:
            raise UpstreamError("Statistics API returned an HTTP error", status=resp.status_code)
        try:
            payload = resp.json()
        except ValueError as exc:
            raise UpstreamError("Statistics API returned invalid JSON", status=resp.status_code) from exc

        if not isinstance(payload, dict):
            raise UpstreamError("Statistics API returned an unexpected payload")
        errors = payload.get("errors")
        if errors:
            messages = [e.get("message", str(e)) if isinstance(e, dict) else str(e) for e in errors]
            raise UpstreamError("GraphQL query failed", errors="; ".join(messages))
        data = payload.get("data")
        if not isinstance(data, dict):
            raise UpstreamError("GraphQL response has no data")
        return data

    # -------------------------
    # Constants
    # -------------------------
    def fetch_constants(self) -> JsonDict:
        """Return the raw ``constants`` object.

        Raises:
            CatalogLoadError: When the payload cannot be fetched or has no constants.
        """

        log = logger_for(component="data.stratz", event="fetch_constants")
        try:
            data = self._execute(CONSTANTS_QUERY)
        except UpstreamError as exc:
            log.error("Constants request failed", error=str(exc))
            raise CatalogLoadError(reason=str(exc), source=self.url) from exc
        constants = data.get("constants")
        if not isinstance(constants, dict):
            log.error("Constants missing from response")
            raise CatalogLoadError(reason="response has no constants", source=self.url)
        return constants

    def fetch_current_patch_id(self, *, now: Optional[float] = None) -> int:
        """Return the id of the latest released game version.

        Falls back to :data:`DEFAULT_PATCH_ID` when versions are unavailable.
        """

        log = logger_for(component="data.stratz", event="fetch_patch")
        now = time.time() if now is None else now
        try:
            versions = _section(self._execute(GAME_VERSIONS_QUERY), "constants", "gameVersions") or []
        except UpstreamError as exc:
            log.warning("Game versions request failed; using default patch", error=str(exc), patch_id=DEFAULT_PATCH_ID)
            return DEFAULT_PATCH_ID

        released = [
            v for v in versions
            if isinstance(v, dict) and isinstance(v.get("id"), int)
            and isinstance(v.get("asOfDateTime"), (int, float)) and v["asOfDateTime"] <= now
        ]
        if not released:
            log.warning("No released game versions; using default patch", patch_id=DEFAULT_PATCH_ID)
            return DEFAULT_PATCH_ID
        latest = max(released, key=lambda v: v["asOfDateTime"])
        log.info("Current patch resolved", patch_id=latest["id"], name=latest.get("name"))
        return latest["id"]

    # -------------------------
    # Statistics
    # -------------------------
    def fetch_hero_day_stats(self, rank: Rank, position: Position) -> list[JsonDict]:
        """Return raw win/day rows for ranked All Pick games, ``[]`` on failure."""

        log = logger_for(component="data.stratz", event="fetch_hero_stats")
        variables = {
            "bracketIds": rank.brackets,
            "positionIds": [position.value],
            "gameModeIds": [GAME_MODE_ALL_PICK_RANKED],
        }
        try:
            data = self._execute(HERO_WIN_DAY_QUERY, variables)
        except UpstreamError as exc:
            log.error("Hero stats request failed", rank=rank.value, position=position.value, error=str(exc))
            return []
        rows = _section(data, "heroStats", "winDay") or []
        log.info("Hero stats fetched", rank=rank.value, position=position.value, rows=len(rows))
        return list(rows)

    def fetch_item_purchases(self, hero_id: HeroId, rank: Rank, position: Position) -> RawItemBuildData:
        """Return raw purchase events per category; empty categories on failure.

        Starting purchases the player was given (``wasGiven``) are dropped.
        """

        log = logger_for(component="data.stratz", event="fetch_item_purchases")
        variables = {
            "heroId": hero_id,
            "bracketBasicIds": [rank.bracket_basic],
            "positionIds": [position.value],
        }
        try:
            data = self._execute(ITEM_PURCHASES_QUERY, variables)
        except UpstreamError as exc:
            log.error("Item purchases request failed", hero_id=hero_id, rank=rank.value, error=str(exc))
            return RawItemBuildData()

        stats = _section(data, "heroStats") or {}
        starting = [
            {**e, "time": 0}
            for e in stats.get("itemStartingPurchase") or []
            if isinstance(e, dict) and not e.get("wasGiven")
        ]
        result = RawItemBuildData(
            starting=starting,
            mid_game=list(stats.get("itemMidGamePurchase") or []),
            late_game=list(stats.get("itemLateGamePurchase") or []),
        )
        log.info(
            "Item purchases fetched",
            hero_id=hero_id,
            starting=len(result.starting),
            mid_game=len(result.mid_game),
            late_game=len(result.late_game),
        )
        return result

    # -------------------------
    # Matches
    # -------------------------
    def fetch_leagues(self, start: int, end: int) -> list[int]:
        """Return professional league ids active in ``[start, end]``."""

        log = logger_for(component="data.stratz", event="fetch_leagues")
        variables = {"startDateTime": start, "endDateTime": end, "tiers": LEAGUE_TIERS, "take": LEAGUE_TAKE}
        try:
            data = self._execute(LEAGUES_QUERY, variables)
        except UpstreamError as exc:
            log.error("Leagues request failed", error=str(exc))
            return []
        leagues = data.get("leagues") or []
        ids = [lg["id"] for lg in leagues if isinstance(lg, dict) and isinstance(lg.get("id"), int)]
        log.info("Leagues fetched", leagues=len(ids))
        return ids

    def fetch_league_matches(self, league_id: int, hero_ids: Iterable[HeroId], take: int, skip: int) -> list[MatchStub]:
        """Return one page of a league's parsed matches involving ``hero_ids``."""

        log = logger_for(component="data.stratz", event="fetch_league_matches")
        variables = {"leagueId": league_id, "heroIds": list(hero_ids), "take": take, "skip": skip}
        try:
            data = self._execute(LEAGUE_MATCHES_QUERY, variables)
        except UpstreamError as exc:
            log.error("League matches request failed", league_id=league_id, skip=skip, error=str(exc))
            return []

        stubs: list[MatchStub] = []
        for raw in _section(data, "league", "matches") or []:
            try:
                stubs.append(parse_record(MatchStub, raw, kind="match_stub"))
            except MalformedRecordError as exc:
                log.warning("Dropped malformed match stub", league_id=league_id, error=str(exc))
        return stubs

    def fetch_match_details(self, match_id: MatchId) -> Optional[MatchDetail]:
        """Return a match's players and ability timelines, ``None`` on failure."""

        log = logger_for(component="data.stratz", event="fetch_match_details")
        try:
            data = self._execute(MATCH_DETAILS_QUERY, {"matchId": int(match_id)})
        except UpstreamError as exc:
            log.error("Match details request failed", match_id=match_id, error=str(exc))
            return None
        raw = data.get("match")
        if raw is None:
            log.warning("Match not found", match_id=match_id)
            return None
        try:
            return parse_record(MatchDetail, raw, kind="match_detail")
        except MalformedRecordError as exc:
            log.warning("Dropped malformed match", match_id=match_id, error=str(exc))
            return None

    def list_candidate_match_ids(
        self,
        hero_id: HeroId,
        position: Position,
        patch_id: int,
        limit: int,
    ) -> list[MatchId]:
        """List up to ``limit`` distinct pro match ids for a hero at a position.

        Leagues are queried one after another (paced by the throttle), each
        paginated up to ``max_pages`` pages of ``page_size``. Only matches on
        ``patch_id`` where the hero played ``position`` are kept.
        """

        log = logger_for(component="data.stratz", event="list_candidate_matches")
        league_ids = self.fetch_leagues(*self.league_window)
        found: dict[MatchId, None] = {}
        scanned = 0

        for league_id in league_ids:
            if len(found) >= limit:
                break
            self.throttle.acquire()
            skip = 0
            for _ in range(self.max_pages):
                take = min(self.page_size, limit - len(found))
                if take <= 0:
                    break
                page = self.fetch_league_matches(league_id, [hero_id], take, skip)
                scanned += len(page)
                for stub in page:
                    if stub.game_version_id == patch_id and stub.has_player(hero_id, position):
                        found.setdefault(stub.match_id, None)
                if len(page) < take:
                    break
                skip += len(page)

        ids = list(found)[:limit]
        log.info(
            "Candidate matches listed",
            hero_id=hero_id,
            position=position.value,
            patch_id=patch_id,
            leagues=len(league_ids),
            scanned=scanned,
            kept=len(ids),
        )
        return ids

    def fetch_recent_pro_matches(
        self,
        hero_id: HeroId,
        position: Position,
        patch_id: int,
        limit: int,
    ) -> list[MatchDetail]:
        """Fetch details of recent pro matches for a hero at a position."""

        log = logger_for(component="data.stratz", event="fetch_recent_pro_matches")
        details: list[MatchDetail] = []
        for match_id in self.list_candidate_match_ids(hero_id, position, patch_id, limit):
            detail = self.fetch_match_details(match_id)
            if detail is None:
                continue
            if detail.game_version_id != patch_id:
                log.info("Skipped match from another patch", match_id=match_id, game_version_id=detail.game_version_id)
                continue
            if detail.player_at(hero_id, position) is None:
                log.info("Skipped match without target player", match_id=match_id, hero_id=hero_id)
                continue
            details.append(detail)
        log.info("Pro matches fetched", hero_id=hero_id, position=position.value, matches=len(details))
        return details
