"""
Domain data models (Pydantic) for catalogs, upstream records and aggregates.

Overview
--------
Define strongly-typed, validated data structures for:
- the game catalog (heroes, items, abilities) built once at startup;
- raw upstream records (hero day stats, item purchase events, match details);
- derived, request-scoped aggregates (hero ranking rows, item categories,
  ability-leveling summaries) and the explicit "no data" result;
- the on-disk cache entry wrapping a leveling summary.

Design
------
- Pydantic v2 models. Fields are snake_case and accept the upstream camelCase
  names through aliases (``populate_by_name`` keeps both spellings valid).
- Raw-record models validate *one* record; aggregators validate records one by
  one so a malformed entry is dropped instead of failing the whole batch.
- ``GameCatalog`` is frozen: it is built once and passed explicitly into every
  aggregator instead of living in module-level state.
- Players and ability upgrades inside a match are validated entry by entry;
  a malformed entry is logged and dropped, the rest of the match survives.
- Only imports ``dota_advisor.core`` and ``infra.logging``; no aggregation
  logic lives here.

Usage
-----
>>> RawHeroDayStat.model_validate({"heroId": 1, "matchCount": 120, "winCount": 66}).match_count
120
"""

from __future__ import annotations

from typing import Final, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from dota_advisor.core.exceptions import MalformedRecordError
from dota_advisor.core.types import (
    AbilityId,
    AbilityType,
    CategoryStatus,
    HeroId,
    ItemCategory,
    ItemId,
    MatchId,
    Position,
)
from dota_advisor.infra.logging import logger_for

__all__: Final[list[str]] = [
    "HeroCatalogEntry",
    "ItemCatalogEntry",
    "AbilityCatalogEntry",
    "GameCatalog",
    "RawHeroDayStat",
    "AggregatedHeroStat",
    "RawItemPurchaseEvent",
    "RawItemBuildData",
    "AggregatedItemStat",
    "ItemCategoryResult",
    "ItemBuildSummary",
    "AbilityUpgrade",
    "MatchPlayer",
    "MatchDetail",
    "MatchStubPlayer",
    "MatchStub",
    "SkillPointEvent",
    "MatchSkillRecord",
    "LevelPopularity",
    "AbilityLevelingSummary",
    "NoData",
    "CacheEntry",
    "parse_record",
]

_M = TypeVar("_M", bound=BaseModel)


class _Record(BaseModel):
    """Base for models fed from upstream JSON (camelCase aliases accepted)."""

    model_config = ConfigDict(populate_by_name=True)


def parse_record(model: type[_M], raw: object, *, kind: str) -> _M:
    """Validate a single upstream record.

    Raises:
        MalformedRecordError: When ``raw`` is not a valid ``model``.
    """

    if isinstance(raw, model):
        return raw
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        first = exc.errors()[0]
        where = ".".join(str(p) for p in first["loc"]) or "<root>"
        raise MalformedRecordError(kind=kind, reason=f"{where}: {first['msg']}") from exc


def _drop_malformed(model: type[_M], raw: object, *, kind: str) -> object:
    """Validate list entries one by one, dropping (and logging) bad ones."""

    if raw is None:
        return []
    if not isinstance(raw, list):
        return raw
    kept: list[_M] = []
    for entry in raw:
        try:
            kept.append(parse_record(model, entry, kind=kind))
        except MalformedRecordError as exc:
            logger_for(component="core.models", event="drop_malformed").warning(
                "Dropped malformed entry", kind=kind, error=str(exc)
            )
    return kept


def _known_position(value: object) -> object:
    """Map upstream positions outside POSITION_1..5 (``UNKNOWN``...) to ``None``."""

    if isinstance(value, str) and value not in {p.value for p in Position}:
        return None
    return value


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------
class HeroCatalogEntry(_Record):
    hero_id: HeroId = Field(alias="heroId")
    display_name: str = Field(alias="displayName")


class ItemCatalogEntry(_Record):
    item_id: ItemId = Field(alias="itemId")
    display_name: str = Field(alias="displayName")


class AbilityCatalogEntry(_Record):
    """Describe one ability as the skill-build logic sees it.

    Attributes:
        ability_id: Upstream ability id.
        name: Internal name (e.g. ``"axe_berserkers_call"``), may be empty.
        display_name: Localized name shown to users.
        hotkey: ``"Q"``..``"F"``, ``"R"`` for ultimates, ``"Talent"`` or ``"N/A"``.
        slot: Position in the hero's ability list; ``None`` when only known
            from the global ability list.
        max_level: Number of points the ability accepts (>= 1).
    """

    ability_id: AbilityId = Field(alias="abilityId")
    name: str = ""
    display_name: str = Field(alias="displayName")
    hotkey: str = "N/A"
    is_ultimate: bool = Field(default=False, alias="isUltimate")
    is_talent: bool = Field(default=False, alias="isTalent")
    slot: Optional[int] = None
    max_level: int = Field(default=4, ge=1, alias="maxLevel")
    ability_type: AbilityType = Field(default=AbilityType.BASIC, alias="abilityType")

    @property
    def is_skillable(self) -> bool:
        """Whether the ability can appear in a leveling build."""

        return self.ability_type in (AbilityType.BASIC, AbilityType.ULTIMATE)


class GameCatalog(BaseModel):
    """Immutable lookup tables for heroes, items and abilities.

    Built once by :func:`dota_advisor.data.catalog.build_catalog` and replaced
    wholesale on re-initialization.
    """

    model_config = ConfigDict(frozen=True)

    heroes: dict[HeroId, HeroCatalogEntry] = Field(default_factory=dict)
    items: dict[ItemId, ItemCatalogEntry] = Field(default_factory=dict)
    abilities: dict[AbilityId, AbilityCatalogEntry] = Field(default_factory=dict)

    def hero_name(self, hero_id: HeroId) -> str:
        entry = self.heroes.get(hero_id)
        return entry.display_name if entry else f"Hero {hero_id}"

    def item_name(self, item_id: ItemId) -> str:
        entry = self.items.get(item_id)
        return entry.display_name if entry else f"Item {item_id}"

    def ability(self, ability_id: AbilityId) -> Optional[AbilityCatalogEntry]:
        return self.abilities.get(ability_id)

    def ability_label(self, ability_id: Optional[AbilityId]) -> str:
        """Return ``"Name (Q)"`` for an ability, or a placeholder."""

        if ability_id is None:
            return "-"
        entry = self.abilities.get(ability_id)
        if entry is None:
            return f"Ability {ability_id}"
        return f"{entry.display_name} ({entry.hotkey})"


# ---------------------------------------------------------------------------
# Hero statistics
# ---------------------------------------------------------------------------
class RawHeroDayStat(_Record):
    """One hero's win/loss counts for one day bucket."""

    hero_id: HeroId = Field(alias="heroId")
    match_count: int = Field(default=0, ge=0, alias="matchCount")
    win_count: int = Field(default=0, ge=0, alias="winCount")
    day: Optional[int] = None


class AggregatedHeroStat(_Record):
    """A ranked hero; ``win_rate`` is a 0-100 percentage for display."""

    hero_id: HeroId = Field(alias="heroId")
    match_count: int = Field(alias="matchCount")
    win_count: int = Field(alias="winCount")
    win_rate: float = Field(alias="winRate")
    bayesian_score: float = Field(alias="bayesianScore")
    day: Optional[int] = None


# ---------------------------------------------------------------------------
# Item statistics
# ---------------------------------------------------------------------------
class RawItemPurchaseEvent(_Record):
    item_id: ItemId = Field(alias="itemId", strict=True)
    match_count: int = Field(default=0, ge=0, alias="matchCount")
    win_count: int = Field(default=0, ge=0, alias="winCount")
    time: int = 0

    @field_validator("match_count", "win_count", mode="before")
    @classmethod
    def _v_counts(cls, v: object) -> object:
        # Upstream sends null for empty counters.
        return 0 if v is None else v

    @field_validator("time", mode="before")
    @classmethod
    def _v_time(cls, v: object) -> object:
        if v is None:
            return 0
        if isinstance(v, float):
            return round(v)
        return v


class RawItemBuildData(_Record):
    """Raw purchase events for the three categories, still unvalidated."""

    starting: list[object] = Field(default_factory=list)
    mid_game: list[object] = Field(default_factory=list, alias="midGame")
    late_game: list[object] = Field(default_factory=list, alias="lateGame")

    def events_for(self, category: ItemCategory) -> list[object]:
        return {
            ItemCategory.STARTING: self.starting,
            ItemCategory.MID_GAME: self.mid_game,
            ItemCategory.LATE_GAME: self.late_game,
        }[category]


class AggregatedItemStat(_Record):
    item_id: ItemId = Field(alias="itemId")
    name: str
    match_count: int = Field(alias="matchCount")
    win_count: int = Field(alias="winCount")
    win_rate: float = Field(alias="winRate")


class ItemCategoryResult(BaseModel):
    """Ranked items for one category, or the reason there are none."""

    category: ItemCategory
    status: CategoryStatus
    items: list[AggregatedItemStat] = Field(default_factory=list)


class ItemBuildSummary(BaseModel):
    starting: ItemCategoryResult
    mid_game: ItemCategoryResult
    late_game: ItemCategoryResult

    def categories(self) -> list[ItemCategoryResult]:
        return [self.starting, self.mid_game, self.late_game]

    @property
    def is_empty(self) -> bool:
        return all(c.status is not CategoryStatus.OK for c in self.categories())


# ---------------------------------------------------------------------------
# Matches
# ---------------------------------------------------------------------------
class AbilityUpgrade(_Record):
    """One raw skill-point spend; ``level`` is the upstream hero level."""

    ability_id: AbilityId = Field(alias="abilityId")
    time: int = 0
    level: Optional[int] = None


class MatchPlayer(_Record):
    hero_id: HeroId = Field(alias="heroId")
    steam_account_id: Optional[int] = Field(default=None, alias="steamAccountId")
    position: Optional[Position] = None
    is_radiant: Optional[bool] = Field(default=None, alias="isRadiant")
    is_victory: Optional[bool] = Field(default=None, alias="isVictory")
    abilities: list[AbilityUpgrade] = Field(default_factory=list)

    @field_validator("position", mode="before")
    @classmethod
    def _v_position(cls, v: object) -> object:
        return _known_position(v)

    @field_validator("abilities", mode="before")
    @classmethod
    def _v_abilities(cls, v: object) -> object:
        return _drop_malformed(AbilityUpgrade, v, kind="ability_upgrade")


class MatchDetail(_Record):
    match_id: MatchId = Field(alias="id")
    game_version_id: Optional[int] = Field(default=None, alias="gameVersionId")
    players: list[MatchPlayer]

    @field_validator("players", mode="before")
    @classmethod
    def _v_players(cls, v: object) -> object:
        return _drop_malformed(MatchPlayer, v, kind="match_player")

    def player_at(self, hero_id: HeroId, position: Position) -> Optional[MatchPlayer]:
        """Return the player who played ``hero_id`` at ``position``, if any."""

        for player in self.players:
            if player.hero_id == hero_id and player.position is position:
                return player
        return None


class MatchStubPlayer(_Record):
    hero_id: HeroId = Field(alias="heroId")
    position: Optional[Position] = None

    @field_validator("position", mode="before")
    @classmethod
    def _v_position(cls, v: object) -> object:
        return _known_position(v)


class MatchStub(_Record):
    """A match as listed by a league query: id, patch and hero positions."""

    match_id: MatchId = Field(alias="id")
    game_version_id: int = Field(alias="gameVersionId")
    players: list[MatchStubPlayer]

    def has_player(self, hero_id: HeroId, position: Position) -> bool:
        return any(p.hero_id == hero_id and p.position is position for p in self.players)


# ---------------------------------------------------------------------------
# Ability leveling
# ---------------------------------------------------------------------------
class SkillPointEvent(_Record):
    """A skill point spent at a 1-based sequential ``hero_level``."""

    hero_level: int = Field(ge=1, alias="heroLevel")
    ability_id: AbilityId = Field(alias="abilityId")
    time: int = 0


class MatchSkillRecord(_Record):
    match_id: MatchId = Field(alias="matchId")
    hero_id: HeroId = Field(alias="heroId")
    player_id: Optional[int] = Field(default=None, alias="playerId")
    skill_points: list[SkillPointEvent] = Field(default_factory=list, alias="skillPoints")


class LevelPopularity(_Record):
    """The build's pick at one level and how often it was picked there."""

    level: int = Field(ge=1)
    ability_id: Optional[AbilityId] = Field(default=None, alias="abilityId")
    count: int = 0
    total_at_level: int = Field(default=0, alias="totalAtLevel")


class AbilityLevelingSummary(_Record):
    """Most popular legal build and per-level popularity for a hero/position."""

    hero_id: HeroId = Field(alias="heroId")
    position: Position
    match_count: int = Field(ge=1, alias="matchCount")
    per_level_popularity: dict[int, dict[AbilityId, int]] = Field(
        default_factory=dict, alias="perLevelPopularity"
    )
    most_popular_build: list[Optional[AbilityId]] = Field(alias="mostPopularBuild")
    popularity_stats: list[LevelPopularity] = Field(default_factory=list, alias="popularityStats")


class NoData(BaseModel):
    """Explicit "nothing to show" result, distinct from an empty build."""

    reason: str
    hero_id: Optional[HeroId] = None
    position: Optional[Position] = None


class CacheEntry(_Record):
    """On-disk cache payload: a summary and its UNIX write time in seconds."""

    timestamp: float
    summary: AbilityLevelingSummary
