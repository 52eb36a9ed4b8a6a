"""
Game constants catalog builder for heroes, items and abilities.

Overview
--------
Turn the upstream ``constants`` payload (heroes with their embedded ability
lists, a flat global ability list, and items) into an immutable
:class:`~dota_advisor.core.models.GameCatalog`. The catalog is built once at
startup and handed to every aggregator.

Design
------
- The raw payload is validated with small private Pydantic models; a missing
  ``heroes`` / ``abilities`` / ``items`` array is a :class:`CatalogLoadError`
  (startup must abort), any other structural problem is a
  :class:`CatalogValidationError`.
- Abilities come from two sources: the hero-scoped lists (slot known) and the
  global list (slot unknown). :func:`merge_ability_sources` merges any number
  of ordered sources with a single rule: the first source that defines an id
  wins.
- :func:`classify_ability` is the one place that derives type, hotkey and max
  level; :data:`ABILITY_OVERRIDES` corrects known upstream gaps and is applied
  last for every source.

Integration
-----------
Used by :mod:`dota_advisor.services.advisor` at startup (payload fetched by
:class:`dota_advisor.data.stratz.StratzClient`) and by tests through
:func:`load_catalog_from_file`.

Usage
-----
>>> from dota_advisor.data.catalog import load_catalog_from_file
>>> catalog = load_catalog_from_file("tests/data/constants.yaml")
>>> catalog.hero_name(2)
'Axe'
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Iterable, Iterator, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from dota_advisor.core.exceptions import CatalogLoadError, CatalogValidationError
from dota_advisor.core.models import (
    AbilityCatalogEntry,
    GameCatalog,
    HeroCatalogEntry,
    ItemCatalogEntry,
)
from dota_advisor.core.types import SLOT_HOTKEYS, AbilityId, AbilityType
from dota_advisor.infra.logging import generate_thread_id, logger_for

__all__: Final[list[str]] = [
    "AbilityOverride",
    "ABILITY_OVERRIDES",
    "ASPECT_MARKERS",
    "classify_ability",
    "merge_ability_sources",
    "build_catalog",
    "load_catalog_from_file",
]

REQUIRED_SECTIONS: Final[tuple[str, ...]] = ("heroes", "abilities", "items")

# Case-insensitive substrings marking a facet/aspect ability ("вариант" is the
# Russian localization).
ASPECT_MARKERS: Final[tuple[str, ...]] = ("facet", "aspect", "вариант")

DEFAULT_MAX_LEVEL: Final[dict[AbilityType, int]] = {
    AbilityType.ULTIMATE: 3,
    AbilityType.TALENT: 1,
    AbilityType.BASIC: 4,
}


@dataclass(frozen=True, slots=True)
class AbilityOverride:
    """A manual correction for one ability id.

    ``None`` fields keep the derived value. ``fallback_name`` is used only when
    upstream provides no name at all.
    """

    hotkey: Optional[str] = None
    ability_type: Optional[AbilityType] = None
    max_level: Optional[int] = None
    fallback_name: Optional[str] = None


ABILITY_OVERRIDES: Final[dict[AbilityId, AbilityOverride]] = {
    # Wraith King / Phantom Assassin facet abilities missing from hero lists.
    5087: AbilityOverride(hotkey="W", ability_type=AbilityType.ASPECT, max_level=1, fallback_name="Bone Guard"),
    1282: AbilityOverride(hotkey="W", ability_type=AbilityType.ASPECT, max_level=1, fallback_name="Spectral Blade"),
    # Elder Titan: upstream slots do not match the in-game layout.
    5589: AbilityOverride(hotkey="Q"),
    5591: AbilityOverride(hotkey="W"),
    5592: AbilityOverride(hotkey="E"),
    5594: AbilityOverride(hotkey="R"),
}


# ---------------------------------------------------------------------------
# Raw payload models
# ---------------------------------------------------------------------------
class _RawLanguage(BaseModel):
    display_name: Optional[str] = Field(default=None, alias="displayName")


class _RawStat(BaseModel):
    hotkey_override: Optional[str] = Field(default=None, alias="hotKeyOverride")
    is_ultimate: Optional[bool] = Field(default=None, alias="isUltimate")
    max_level: Optional[int] = Field(default=None, alias="maxLevel")


class _RawAbility(BaseModel):
    id: Optional[int] = None
    name: Optional[str] = None
    language: Optional[_RawLanguage] = None
    stat: Optional[_RawStat] = None
    is_talent: Optional[bool] = Field(default=None, alias="isTalent")

    @property
    def display_name(self) -> Optional[str]:
        return self.language.display_name if self.language else None


class _RawHeroAbility(BaseModel):
    ability_id: Optional[int] = Field(default=None, alias="abilityId")
    slot: Optional[int] = None
    max_level: Optional[int] = Field(default=None, alias="maxLevel")
    type: Optional[str] = None
    ability: Optional[_RawAbility] = None


class _RawHero(BaseModel):
    id: int
    display_name: Optional[str] = Field(default=None, alias="displayName")
    abilities: Optional[list[_RawHeroAbility]] = None


class _RawItem(BaseModel):
    id: int
    display_name: Optional[str] = Field(default=None, alias="displayName")


class _RawConstants(BaseModel):
    heroes: list[_RawHero]
    abilities: list[_RawAbility]
    items: list[_RawItem]


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------
def _positive(value: Optional[int]) -> Optional[int]:
    return value if isinstance(value, int) and value > 0 else None


def _looks_like_aspect(*texts: Optional[str]) -> bool:
    lowered = [t.lower() for t in texts if t]
    return any(marker in text for text in lowered for marker in ASPECT_MARKERS)


def classify_ability(
    ability_id: AbilityId,
    *,
    display_name: Optional[str],
    name: Optional[str] = None,
    is_talent: bool = False,
    is_ultimate: bool = False,
    slot: Optional[int] = None,
    max_level: Optional[int] = None,
    stat_max_level: Optional[int] = None,
    hotkey_override: Optional[str] = None,
    source_type: Optional[str] = None,
) -> AbilityCatalogEntry:
    """Derive the catalog entry for one ability.

    Type precedence is talent > ultimate > aspect > basic. An ability is an
    aspect when its localized or internal name contains one of
    :data:`ASPECT_MARKERS`, or when the hero-ability ``source_type`` mentions a
    facet; aspects accept a single point. ``max_level`` is taken from the
    explicit value, then the stat value, then the per-type default.

    Args:
        ability_id: Upstream ability id.
        display_name: Localized name (falls back to ``name`` then ``Ability {id}``).
        name: Internal ability name.
        is_talent: Upstream talent flag.
        is_ultimate: Upstream ultimate flag.
        slot: Slot in the hero's ability list, ``None`` for global entries.
        max_level: Explicit max level from the hero-ability entry.
        stat_max_level: Max level from the ability's stat block.
        hotkey_override: Upstream hotkey override.
        source_type: Hero-ability ``type`` string, when present.

    Returns:
        The classified :class:`AbilityCatalogEntry`, with any
        :data:`ABILITY_OVERRIDES` correction applied.
    """

    override = ABILITY_OVERRIDES.get(ability_id)
    label = display_name or name or (override.fallback_name if override else None) or f"Ability {ability_id}"

    if is_talent:
        ability_type = AbilityType.TALENT
    elif is_ultimate:
        ability_type = AbilityType.ULTIMATE
    elif _looks_like_aspect(display_name, name) or (source_type and "facet" in source_type.lower()):
        ability_type = AbilityType.ASPECT
    else:
        ability_type = AbilityType.BASIC

    resolved_max = _positive(max_level) or _positive(stat_max_level)
    if resolved_max is None:
        if is_ultimate:
            resolved_max = DEFAULT_MAX_LEVEL[AbilityType.ULTIMATE]
        elif is_talent:
            resolved_max = DEFAULT_MAX_LEVEL[AbilityType.TALENT]
        else:
            resolved_max = DEFAULT_MAX_LEVEL[AbilityType.BASIC]
    if ability_type is AbilityType.ASPECT:
        resolved_max = 1

    if ability_type is AbilityType.TALENT:
        hotkey = "Talent"
    elif ability_type is AbilityType.ULTIMATE:
        hotkey = hotkey_override or "R"
    else:
        hotkey = hotkey_override or (SLOT_HOTKEYS.get(slot, "N/A") if slot is not None else "N/A")

    if override is not None:
        ability_type = override.ability_type or ability_type
        resolved_max = override.max_level or resolved_max
        hotkey = override.hotkey or hotkey

    return AbilityCatalogEntry(
        ability_id=ability_id,
        name=name or "",
        display_name=label,
        hotkey=hotkey,
        is_ultimate=is_ultimate,
        is_talent=is_talent,
        slot=slot,
        max_level=resolved_max,
        ability_type=ability_type,
    )


def _hero_ability_entries(heroes: Iterable[_RawHero]) -> Iterator[AbilityCatalogEntry]:
    """Pass 1: abilities embedded in hero lists (slot known)."""

    for hero in heroes:
        for hero_ability in hero.abilities or []:
            details = hero_ability.ability or _RawAbility()
            ability_id = hero_ability.ability_id or details.id
            if not ability_id:
                continue
            stat = details.stat or _RawStat()
            yield classify_ability(
                ability_id,
                display_name=details.display_name,
                name=details.name,
                is_talent=bool(details.is_talent),
                is_ultimate=bool(stat.is_ultimate),
                slot=hero_ability.slot,
                max_level=hero_ability.max_level,
                stat_max_level=stat.max_level,
                hotkey_override=stat.hotkey_override,
                source_type=hero_ability.type,
            )


def _global_ability_entries(abilities: Iterable[_RawAbility]) -> Iterator[AbilityCatalogEntry]:
    """Pass 2: the flat global list (slot unknown)."""

    for ability in abilities:
        if not ability.id:
            continue
        stat = ability.stat or _RawStat()
        yield classify_ability(
            ability.id,
            display_name=ability.display_name,
            name=ability.name,
            is_talent=bool(ability.is_talent),
            is_ultimate=bool(stat.is_ultimate),
            slot=None,
            stat_max_level=stat.max_level,
            hotkey_override=stat.hotkey_override,
        )


def merge_ability_sources(*sources: Iterable[AbilityCatalogEntry]) -> dict[AbilityId, AbilityCatalogEntry]:
    """Merge ordered ability sources; the first source defining an id wins.

    Within one source the first occurrence wins as well, so a hero-scoped
    entry shared by two heroes keeps the first hero's slot.
    """

    merged: dict[AbilityId, AbilityCatalogEntry] = {}
    for source in sources:
        for entry in source:
            merged.setdefault(entry.ability_id, entry)
    return merged


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------
def build_catalog(raw: Mapping[str, object], *, thread_id: Optional[str] = None) -> GameCatalog:
    """Build the immutable catalog from a raw ``constants`` payload.

    Args:
        raw: The ``constants`` object (``{"heroes": [...], "abilities": [...],
            "items": [...]}``).
        thread_id: Optional correlation ID for structured logging.

    Returns:
        A populated :class:`GameCatalog`.

    Raises:
        CatalogLoadError: When a required top-level array is missing.
        CatalogValidationError: When the payload structure is invalid.
    """

    log = logger_for(component="data.catalog", event="build", thread_id=thread_id)
    if not isinstance(raw, Mapping):
        log.error("Constants payload is not an object", type=type(raw).__name__)
        raise CatalogLoadError(reason="payload is not an object")
    missing = [key for key in REQUIRED_SECTIONS if not isinstance(raw.get(key), list)]
    if missing:
        log.error("Constants payload is missing sections", missing=missing)
        raise CatalogLoadError(reason=f"missing sections: {', '.join(missing)}")

    try:
        constants = _RawConstants.model_validate(raw)
    except ValidationError as exc:
        errors = [f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors()]
        log.error("Constants payload failed validation", errors=len(errors))
        raise CatalogValidationError(errors=errors) from exc

    heroes = {
        h.id: HeroCatalogEntry(hero_id=h.id, display_name=h.display_name or f"Hero {h.id}")
        for h in constants.heroes
    }
    items = {
        i.id: ItemCatalogEntry(item_id=i.id, display_name=i.display_name or f"Item {i.id}")
        for i in constants.items
    }
    abilities = merge_ability_sources(
        _hero_ability_entries(constants.heroes),
        _global_ability_entries(constants.abilities),
    )

    catalog = GameCatalog(heroes=heroes, items=items, abilities=abilities)
    log.info("Catalog built", heroes=len(heroes), items=len(items), abilities=len(abilities))
    return catalog


def load_catalog_from_file(path: str, *, thread_id: Optional[str] = None) -> GameCatalog:
    """Load a constants snapshot (YAML or JSON) from disk and build the catalog.

    The file may hold the ``constants`` object itself or wrap it as
    ``{"constants": {...}}`` (the raw GraphQL ``data`` shape).

    Raises:
        CatalogLoadError: When the file cannot be read or parsed, or lacks sections.
        CatalogValidationError: When the payload structure is invalid.
    """

    tid = thread_id or generate_thread_id()
    log = logger_for(component="data.catalog", event="load", thread_id=tid)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as exc:
        log.error("Constants snapshot not found", path=path)
        raise CatalogLoadError(reason="file not found", source=path) from exc
    except OSError as exc:
        log.error("Failed to open constants snapshot", path=path, error=str(exc))
        raise CatalogLoadError(reason=str(exc), source=path) from exc
    except yaml.YAMLError as exc:
        log.error("Invalid constants snapshot syntax", path=path, error=str(exc))
        raise CatalogLoadError(reason="invalid YAML/JSON", source=path) from exc

    if isinstance(data, dict) and isinstance(data.get("constants"), dict):
        data = data["constants"]
    log.info("Constants snapshot loaded", path=path)
    return build_catalog(data, thread_id=tid)
