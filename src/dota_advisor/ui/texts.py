"""
UI text constants and fixed-width message formatting.

Overview
--------
Centralize user-facing strings and the pure helpers that render aggregated
results as chat messages: HTML with ``<b>`` titles and ``<pre>`` tables whose
columns are padded to fixed widths so they line up in monospace.

Design
------
- Pure functions only (no I/O, no logging, no Streamlit or network calls).
- Cells are padded/truncated first and HTML-escaped afterwards, so escaping
  never breaks column widths or cuts an entity in half.
- Column layout:
  - hero table: Hero 21 | WR 5 | Matches 7
  - hero info: Rank 9 | Role 18 | WR 5
  - item tables: Item 20 | WR 5 | Matches 7
  - skill table: Lvl 3 | Skill 28 | Picks 10, picks shown as ``count/total``

Usage
-----
>>> pad_string("Anti-Mage", 6)
'Anti..'
>>> pad_string("WR", 5)
'WR   '
"""

from __future__ import annotations

from html import escape
from typing import Final, Optional, Sequence

from dota_advisor.core.models import (
    AbilityLevelingSummary,
    AggregatedHeroStat,
    GameCatalog,
    ItemBuildSummary,
    ItemCategoryResult,
    NoData,
)
from dota_advisor.core.items import ITEMS_PER_CATEGORY, MIN_ABSOLUTE_MATCHES
from dota_advisor.core.skills import BUILD_LEVELS
from dota_advisor.core.types import CategoryStatus, Position, Rank

__all__: Final[list[str]] = [
    "APP_TITLE",
    "MSG_CHOOSE_RANK",
    "MSG_CHOOSE_POSITION",
    "MSG_STATE_LOST",
    "BTN_HOME",
    "BTN_BACK",
    "BTN_ITEMS",
    "BTN_SKILLS",
    "pad_string",
    "format_percentage",
    "format_hero_table",
    "format_no_heroes",
    "format_hero_info",
    "format_item_build",
    "format_skill_build",
    "format_no_skill_data",
]


# ---------------------------------------------------------------------------
# Titles, prompts & buttons
# ---------------------------------------------------------------------------
APP_TITLE: Final[str] = "Dota Build Advisor"

MSG_CHOOSE_RANK: Final[str] = "Choose your rank:"
MSG_CHOOSE_POSITION: Final[str] = "Rank <b>{rank}</b>. Choose your position:"
MSG_STATE_LOST: Final[str] = "Selection expired, please start again."
MSG_HERO_CHOSEN: Final[str] = (
    "You picked <b>{hero}</b>:\n\n{table}\n\n"
    "Press <b>Items</b> for the item build or <b>Skills</b> for the skill order."
)
MSG_UPSTREAM_HINT: Final[str] = "Try other filters or come back later."

BTN_HOME: Final[str] = "🏠 Home"
BTN_BACK: Final[str] = "⬅️ Back"
BTN_ITEMS: Final[str] = "🎒 Items"
BTN_SKILLS: Final[str] = "📘 Skills"

NO_DATA_CELL: Final[str] = "-no data-"

# ---------------------------------------------------------------------------
# Column widths
# ---------------------------------------------------------------------------
HERO_COL: Final[int] = 21
WR_COL: Final[int] = 5
MATCHES_COL: Final[int] = 7
INFO_RANK_COL: Final[int] = 9
INFO_ROLE_COL: Final[int] = 18
ITEM_COL: Final[int] = 20
LEVEL_COL: Final[int] = 4
SKILL_COL: Final[int] = 28
PICKS_COL: Final[int] = 10


# ---------------------------------------------------------------------------
# Primitives
# ---------------------------------------------------------------------------
def pad_string(value: object, width: int, fill: str = " ") -> str:
    """Pad ``value`` to ``width``; longer values are cut and end with ``..``."""

    text = str(value)
    if len(text) > width:
        if width < 2:
            return text[:width]
        return text[: width - 2] + ".."
    return text + fill * (width - len(text))


def format_percentage(value: float) -> str:
    """Format a 0-100 percentage with one decimal (e.g. ``'55.0%'``)."""

    return f"{value:.1f}%"


def _row(*cells: tuple[object, int]) -> str:
    return "|".join(escape(pad_string(v, w)) for v, w in cells)


def _rule(*widths: int) -> str:
    return "|".join("-" * w for w in widths)


def _pre(lines: Sequence[str]) -> str:
    return "<pre>" + "\n".join(lines) + "\n</pre>"


# ---------------------------------------------------------------------------
# Heroes
# ---------------------------------------------------------------------------
def format_hero_table(
    heroes: Sequence[AggregatedHeroStat],
    catalog: GameCatalog,
    rank: Rank,
    position: Position,
) -> str:
    """Render the ranked hero list for a rank and position."""

    title = f"<b>Best {escape(position.display_name)} heroes this patch at {escape(rank.display_name)}:</b>"
    lines = [
        _row(("Hero", HERO_COL), ("WR", WR_COL), ("Matches", MATCHES_COL)),
        _rule(HERO_COL, WR_COL, MATCHES_COL),
    ]
    for hero in heroes:
        lines.append(
            _row(
                (catalog.hero_name(hero.hero_id), HERO_COL),
                (format_percentage(hero.win_rate), WR_COL),
                (hero.match_count, MATCHES_COL),
            )
        )
    return f"{title}\n\n{_pre(lines)}\n"


def format_no_heroes(rank: Rank, position: Position) -> str:
    return (
        f"No hero data for <b>{escape(position.display_name)}</b> at "
        f"<b>{escape(rank.display_name)}</b>. {MSG_UPSTREAM_HINT}"
    )


def format_hero_info(
    hero_name: str,
    rank: Optional[Rank],
    position: Optional[Position],
    win_rate: Optional[float],
) -> str:
    """Render the one-row summary shown after a hero is picked."""

    table = _pre(
        [
            _row(("Rank", INFO_RANK_COL), ("Role", INFO_ROLE_COL), ("WR", WR_COL)),
            _rule(INFO_RANK_COL, INFO_ROLE_COL, WR_COL),
            _row(
                (rank.display_name if rank else "N/A", INFO_RANK_COL),
                (position.display_name if position else "N/A", INFO_ROLE_COL),
                (format_percentage(win_rate) if win_rate is not None else "N/A", WR_COL),
            ),
        ]
    )
    return MSG_HERO_CHOSEN.format(hero=escape(hero_name), table=table)


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------
def _format_item_category(result: ItemCategoryResult) -> str:
    title = f"<b>{escape(result.category.display_name)}:</b>"
    if result.status is CategoryStatus.NO_DATA:
        return f"{title}\n<pre>No data</pre>"
    if result.status is CategoryStatus.NO_POPULAR_ITEMS:
        return f"{title}\n<pre>No popular items ({MIN_ABSOLUTE_MATCHES}+ matches)</pre>"
    lines = [
        _row(("Item", ITEM_COL), ("WR", WR_COL), ("Matches", MATCHES_COL)),
        _rule(ITEM_COL, WR_COL, MATCHES_COL),
    ]
    for item in result.items[:ITEMS_PER_CATEGORY]:
        lines.append(
            _row(
                (item.name, ITEM_COL),
                (format_percentage(item.win_rate), WR_COL),
                (item.match_count, MATCHES_COL),
            )
        )
    return f"{title}\n{_pre(lines)}"


def format_item_build(
    summary: ItemBuildSummary,
    hero_name: str,
    rank: Optional[Rank] = None,
    position: Optional[Position] = None,
) -> str:
    """Render the three item categories; each explains its own missing data."""

    parts = [f"<b>🎒 Item build for {escape(hero_name)}</b>"]
    if rank is not None and position is not None:
        parts.append(f"<b>Rank: {escape(rank.display_name)}, Role: {escape(position.display_name)}</b>")
    parts.extend(_format_item_category(c) for c in summary.categories())
    return "\n\n".join(parts)


# ---------------------------------------------------------------------------
# Skills
# ---------------------------------------------------------------------------
def _skill_cell(ability_id: Optional[int], catalog: GameCatalog) -> str:
    if ability_id is None:
        return NO_DATA_CELL
    entry = catalog.ability(ability_id)
    if entry is None:
        return f"ID {ability_id}"
    if entry.hotkey and entry.hotkey != "N/A":
        return f"{entry.display_name} ({entry.hotkey})"
    return entry.display_name


def format_skill_build(
    summary: AbilityLevelingSummary,
    catalog: GameCatalog,
    hero_name: str,
    *,
    from_cache: bool = False,
) -> str:
    """Render the recommended skill order for levels 1-9."""

    header = (
        f"{pad_string('Lvl', LEVEL_COL - 1)} | {pad_string('Skill', SKILL_COL)} | "
        f"{pad_string('Picks', PICKS_COL)}"
    )
    rule = f"{'-' * LEVEL_COL}+{'-' * (SKILL_COL + 2)}+{'-' * (PICKS_COL + 1)}"
    lines = [escape(header), rule]
    for stat in summary.popularity_stats[:BUILD_LEVELS]:
        picks = f"{stat.count}/{stat.total_at_level}" if stat.ability_id is not None else "-"
        lines.append(
            " | ".join(
                escape(pad_string(v, w))
                for v, w in (
                    (stat.level, LEVEL_COL - 1),
                    (_skill_cell(stat.ability_id, catalog), SKILL_COL),
                    (picks, PICKS_COL),
                )
            )
        )

    cached = " (cached)" if from_cache else ""
    parts = [
        f"<b>📘 Recommended skill build for {escape(hero_name)}</b>",
        f"<b>Position: {escape(summary.position.display_name)}</b>",
        f"(Based on {summary.match_count} matches{cached})",
        f"<b>Most popular skills by level (1-{BUILD_LEVELS}):</b>",
        _pre(lines),
        "<i>Based on recent professional matches on the current patch.</i>",
    ]
    return "\n".join(parts)


def format_no_skill_data(no_data: NoData, hero_name: str) -> str:
    where = f" as {escape(no_data.position.display_name)}" if no_data.position else ""
    return (
        f"<b>🚫 No skill build data for {escape(hero_name)}{where}.</b>\n"
        f"Not enough recent matches were found ({escape(no_data.reason)})."
    )
