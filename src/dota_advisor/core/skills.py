"""
Ability-leveling reconstruction from raw skill-point timelines.

Overview
--------
Two stages turn match details into a recommended skill build for one
hero/position pair:

- **Per match** (:func:`reconstruct_match`): find the player on the target hero
  and position, sort their upgrades by time and renumber the real skill-point
  spends 1, 2, 3, ... Talents, known non-skillable ids and hidden abilities do
  not count. An ultimate that would land before level 6 is treated as
  anomalous data: it is discarded and does not consume a level. Spends after
  level 12 are ignored.
- **Across matches** (:func:`aggregate_skill_records`): tally picks per level,
  then walk levels 1-9 greedily. At each level the most picked ability that is
  still legal wins (not a talent/aspect, ultimates only from level 6, points
  below the ability's max level); otherwise the next most picked one is tried.
  Ties in pick count go to the lower ability id.

The greedy walk is a heuristic; it is intentionally not a global optimum.

Usage
-----
>>> summary = build_ability_leveling_summary(matches, 2, Position.OFFLANE, catalog)  # doctest: +SKIP
>>> summary.most_popular_build[:3]  # doctest: +SKIP
[5007, 5008, 5007]
"""

from __future__ import annotations

from collections import Counter
from typing import Final, Iterable, Optional

from dota_advisor.core.exceptions import MalformedRecordError
from dota_advisor.core.models import (
    AbilityCatalogEntry,
    AbilityLevelingSummary,
    GameCatalog,
    LevelPopularity,
    MatchDetail,
    MatchSkillRecord,
    NoData,
    SkillPointEvent,
    parse_record,
)
from dota_advisor.core.types import AbilityId, AbilityType, HeroId, Position
from dota_advisor.infra.logging import logger_for

__all__: Final[list[str]] = [
    "SKILL_LEVEL_CUTOFF",
    "BUILD_LEVELS",
    "ULTIMATE_UNLOCK_LEVEL",
    "NON_SKILLABLE_ABILITY_IDS",
    "HIDDEN_ABILITY_NAMES",
    "NO_MATCHES_REASON",
    "is_skill_point",
    "reconstruct_match",
    "aggregate_skill_records",
    "build_ability_leveling_summary",
]

SKILL_LEVEL_CUTOFF: Final[int] = 12
BUILD_LEVELS: Final[int] = 9
ULTIMATE_UNLOCK_LEVEL: Final[int] = 6

# Attribute bonus (old) and a deprecated hidden slot still reported as upgrades.
NON_SKILLABLE_ABILITY_IDS: Final[frozenset[AbilityId]] = frozenset({730, 1392})
HIDDEN_ABILITY_NAMES: Final[frozenset[str]] = frozenset({"generic_hidden"})

NO_MATCHES_REASON: Final[str] = "no recent matches with skill data"


def is_skill_point(ability_id: AbilityId, entry: Optional[AbilityCatalogEntry]) -> bool:
    """Whether an upgrade event represents an actual skill-point spend."""

    if entry is None or ability_id in NON_SKILLABLE_ABILITY_IDS:
        return False
    if entry.is_talent or entry.ability_type is AbilityType.TALENT:
        return False
    return entry.name not in HIDDEN_ABILITY_NAMES


# ---------------------------------------------------------------------------
# Per-match reconstruction
# ---------------------------------------------------------------------------

def reconstruct_match(
    match: MatchDetail | dict,
    target_hero_id: HeroId,
    position: Position,
    catalog: GameCatalog,
    *,
    thread_id: Optional[str] = None,
) -> Optional[MatchSkillRecord]:
    """Rebuild the sequential skill-point timeline of one match.

    Args:
        match: Match detail (model or upstream dict).
        target_hero_id: Hero whose player is analysed.
        position: Position the hero must have played.
        catalog: Game catalog with ability metadata.
        thread_id: Optional correlation ID for structured logging.

    Returns:
        The match's :class:`MatchSkillRecord`, or ``None`` when the match is
        malformed, lacks the player, or yields no qualifying skill point.
    """

    log = logger_for(component="core.skills", event="reconstruct_match", thread_id=thread_id)
    try:
        detail = parse_record(MatchDetail, match, kind="match_detail")
    except MalformedRecordError as exc:
        log.warning("Skipped malformed match", error=str(exc))
        return None

    player = detail.player_at(target_hero_id, position)
    if player is None:
        log.info(
            "Skipped match without target player",
            match_id=detail.match_id,
            hero_id=target_hero_id,
            position=position.value,
        )
        return None
    if not player.abilities:
        log.info("Skipped match without ability upgrades", match_id=detail.match_id, hero_id=target_hero_id)
        return None

    points: list[SkillPointEvent] = []
    spent = 0
    for upgrade in sorted(player.abilities, key=lambda u: u.time):
        entry = catalog.ability(upgrade.ability_id)
        if not is_skill_point(upgrade.ability_id, entry):
            continue
        level = spent + 1
        if entry.is_ultimate and level < ULTIMATE_UNLOCK_LEVEL:
            log.debug(
                "Discarded early ultimate",
                match_id=detail.match_id,
                ability_id=upgrade.ability_id,
                level=level,
                time=upgrade.time,
            )
            continue
        spent = level
        if spent > SKILL_LEVEL_CUTOFF:
            break
        points.append(SkillPointEvent(hero_level=spent, ability_id=upgrade.ability_id, time=upgrade.time))

    if not points:
        log.info("Skipped match without skill points", match_id=detail.match_id, hero_id=target_hero_id)
        return None
    return MatchSkillRecord(
        match_id=detail.match_id,
        hero_id=player.hero_id,
        player_id=player.steam_account_id,
        skill_points=points,
    )


# ---------------------------------------------------------------------------
# Cross-match aggregation
# ---------------------------------------------------------------------------

def _pick_for_level(
    level: int,
    counts: Counter[AbilityId],
    spent: Counter[AbilityId],
    catalog: GameCatalog,
) -> Optional[AbilityId]:
    """Return the most picked legal ability at ``level``, or ``None``."""

    for ability_id, _ in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0])):
        entry = catalog.ability(ability_id)
        if entry is None or not entry.is_skillable:
            continue
        if entry.is_ultimate and level < ULTIMATE_UNLOCK_LEVEL:
            continue
        if spent[ability_id] >= entry.max_level:
            continue
        return ability_id
    return None


def aggregate_skill_records(
    records: Iterable[MatchSkillRecord],
    target_hero_id: HeroId,
    position: Position,
    catalog: GameCatalog,
    *,
    thread_id: Optional[str] = None,
) -> AbilityLevelingSummary | NoData:
    """Aggregate per-match timelines into the most popular legal build.

    Args:
        records: Per-match records from :func:`reconstruct_match`.
        target_hero_id: Hero the records belong to.
        position: Position the records belong to.
        catalog: Game catalog with ability metadata.
        thread_id: Optional correlation ID for structured logging.

    Returns:
        An :class:`AbilityLevelingSummary`, or :class:`NoData` when no record
        was given.
    """

    log = logger_for(component="core.skills", event="aggregate", thread_id=thread_id)
    records = list(records)
    if not records:
        log.info("No skill records", hero_id=target_hero_id, position=position.value)
        return NoData(reason=NO_MATCHES_REASON, hero_id=target_hero_id, position=position)

    per_level: dict[int, Counter[AbilityId]] = {}
    for record in records:
        for point in record.skill_points:
            if point.hero_level <= SKILL_LEVEL_CUTOFF:
                per_level.setdefault(point.hero_level, Counter())[point.ability_id] += 1

    build: list[Optional[AbilityId]] = []
    stats: list[LevelPopularity] = []
    spent: Counter[AbilityId] = Counter()
    for level in range(1, BUILD_LEVELS + 1):
        counts = per_level.get(level, Counter())
        chosen = _pick_for_level(level, counts, spent, catalog)
        build.append(chosen)
        if chosen is not None:
            spent[chosen] += 1
        stats.append(
            LevelPopularity(
                level=level,
                ability_id=chosen,
                count=counts[chosen] if chosen is not None else 0,
                total_at_level=sum(counts.values()),
            )
        )

    summary = AbilityLevelingSummary(
        hero_id=target_hero_id,
        position=position,
        match_count=len(records),
        per_level_popularity={lvl: dict(c) for lvl, c in sorted(per_level.items())},
        most_popular_build=build,
        popularity_stats=stats,
    )
    log.info(
        "Skill build aggregated",
        hero_id=target_hero_id,
        position=position.value,
        matches=len(records),
        empty_levels=build.count(None),
    )
    return summary


def build_ability_leveling_summary(
    matches: Iterable[MatchDetail | dict],
    target_hero_id: HeroId,
    position: Position,
    catalog: GameCatalog,
    *,
    thread_id: Optional[str] = None,
) -> AbilityLevelingSummary | NoData:
    """Reconstruct every match and aggregate the contributing ones.

    Returns :class:`NoData` when no match contributes a skill point.
    """

    records = [
        record
        for record in (
            reconstruct_match(m, target_hero_id, position, catalog, thread_id=thread_id) for m in matches
        )
        if record is not None
    ]
    return aggregate_skill_records(records, target_hero_id, position, catalog, thread_id=thread_id)
