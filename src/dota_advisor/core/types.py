"""
Shared type aliases, enums and lookup tables.

Overview
--------
Centralize the small vocabulary every other module uses:
- id aliases (heroes, abilities, items, matches);
- the ability classification (basic / ultimate / talent / aspect);
- player positions and rank brackets, with the upstream enum strings each one
  maps to;
- item purchase categories and their per-category status.

Design
------
- Stdlib only; safe to import from anywhere without cycles.
- Enums subclass ``str`` so they serialize as their upstream value in JSON
  (cache files, GraphQL variables).

Usage
-----
>>> Position.parse("pos_POSITION_2") is Position.MID
True
>>> Rank.LEGEND.bracket_basic
'LEGEND_ANCIENT'
"""

from __future__ import annotations

from enum import Enum
from typing import Final, TypeAlias

from dota_advisor.core.exceptions import NotFoundError

HeroId: TypeAlias = int
AbilityId: TypeAlias = int
ItemId: TypeAlias = int
MatchId: TypeAlias = int
JsonDict: TypeAlias = dict[str, object]

__all__: Final[list[str]] = [
    "HeroId",
    "AbilityId",
    "ItemId",
    "MatchId",
    "JsonDict",
    "AbilityType",
    "Position",
    "Rank",
    "ItemCategory",
    "CategoryStatus",
    "SLOT_HOTKEYS",
]


class AbilityType(str, Enum):
    """How an ability participates in skill builds."""

    BASIC = "basic"
    ULTIMATE = "ultimate"
    TALENT = "talent"
    ASPECT = "aspect"


# Slot index → default hotkey for basic abilities.
SLOT_HOTKEYS: Final[dict[int, str]] = {0: "Q", 1: "W", 2: "E", 3: "D", 4: "F"}


class Position(str, Enum):
    """Player positions as the upstream ``MatchPlayerPositionType`` names them."""

    CARRY = "POSITION_1"
    MID = "POSITION_2"
    OFFLANE = "POSITION_3"
    SOFT_SUPPORT = "POSITION_4"
    HARD_SUPPORT = "POSITION_5"

    @property
    def display_name(self) -> str:
        return _POSITION_NAMES[self]

    @classmethod
    def parse(cls, value: str) -> "Position":
        """Parse ``POSITION_n``, ``pos_POSITION_n`` or a member name.

        Raises:
            NotFoundError: If ``value`` names no position.
        """

        token = value.strip().upper()
        if token.startswith("POS_"):
            token = token[4:]
        for member in cls:
            if token in (member.value, member.name):
                return member
        raise NotFoundError(kind="position", identifier=value)


_POSITION_NAMES: Final[dict[Position, str]] = {
    Position.CARRY: "Carry",
    Position.MID: "Mid",
    Position.OFFLANE: "Offlane",
    Position.SOFT_SUPPORT: "Support",
    Position.HARD_SUPPORT: "Hard Support",
}


class Rank(str, Enum):
    """Rank medals a user can pick; values are the upstream ``RankBracket``."""

    HERALD = "HERALD"
    GUARDIAN = "GUARDIAN"
    CRUSADER = "CRUSADER"
    ARCHON = "ARCHON"
    LEGEND = "LEGEND"
    ANCIENT = "ANCIENT"
    DIVINE = "DIVINE"
    IMMORTAL = "IMMORTAL"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def brackets(self) -> list[str]:
        """``RankBracket`` values used by the hero win/day statistics."""

        return [self.value]

    @property
    def bracket_basic(self) -> str:
        """Paired ``RankBracketBasicEnum`` used by item and ability statistics."""

        return _BRACKET_BASIC[self]

    @property
    def rank_ids(self) -> list[int]:
        """Numeric medal ids (tier * 10 + star); Immortal is a single id."""

        if self is Rank.IMMORTAL:
            return [80]
        tier = list(Rank).index(self) + 1
        return [tier * 10 + star for star in range(1, 6)]

    @classmethod
    def parse(cls, value: str) -> "Rank":
        """Parse ``LEGEND``, ``KEY_LEGEND`` or ``Legend``.

        Raises:
            NotFoundError: If ``value`` names no rank.
        """

        token = value.strip().upper()
        if token.startswith("KEY_"):
            token = token[4:]
        try:
            return cls(token)
        except ValueError as exc:
            raise NotFoundError(kind="rank", identifier=value) from exc


_BRACKET_BASIC: Final[dict[Rank, str]] = {
    Rank.HERALD: "HERALD_GUARDIAN",
    Rank.GUARDIAN: "HERALD_GUARDIAN",
    Rank.CRUSADER: "CRUSADER_ARCHON",
    Rank.ARCHON: "CRUSADER_ARCHON",
    Rank.LEGEND: "LEGEND_ANCIENT",
    Rank.ANCIENT: "LEGEND_ANCIENT",
    Rank.DIVINE: "DIVINE_IMMORTAL",
    Rank.IMMORTAL: "DIVINE_IMMORTAL",
}


class ItemCategory(str, Enum):
    """Purchase windows items are grouped into."""

    STARTING = "starting"
    MID_GAME = "mid_game"
    LATE_GAME = "late_game"

    @property
    def display_name(self) -> str:
        return _CATEGORY_TITLES[self]


_CATEGORY_TITLES: Final[dict[ItemCategory, str]] = {
    ItemCategory.STARTING: "Starting items",
    ItemCategory.MID_GAME: "Mid-game items",
    ItemCategory.LATE_GAME: "Late-game items",
}


class CategoryStatus(str, Enum):
    """Outcome of aggregating one item category."""

    OK = "ok"
    NO_DATA = "no_data"
    NO_POPULAR_ITEMS = "no_popular_items"
