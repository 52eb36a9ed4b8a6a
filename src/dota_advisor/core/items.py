"""
Item build aggregation for starting, mid-game and late-game purchases.

Overview
--------
Each category is aggregated on its own:

1. validate events (numeric id known to the catalog), dropping the rest;
2. merge repeated item ids by summing matches and wins;
3. compute the win rate (0 when an item has no matches);
4. drop items under the absolute floor (10 matches) and under the relative
   floor (5% of the most bought item's matches);
5. sort by match count and keep six.

Popularity, not win rate, drives the order. A category with nothing to show
reports *why* through :class:`~dota_advisor.core.types.CategoryStatus` so the
UI can print a category-specific message.

Usage
-----
>>> summary = build_item_categories({"starting": [], "midGame": [], "lateGame": []}, catalog)
>>> summary.starting.status.value
'no_data'
"""

from __future__ import annotations

from typing import Final, Iterable, Optional

from dota_advisor.core.exceptions import MalformedRecordError
from dota_advisor.core.models import (
    AggregatedItemStat,
    GameCatalog,
    ItemBuildSummary,
    ItemCategoryResult,
    RawItemBuildData,
    RawItemPurchaseEvent,
    parse_record,
)
from dota_advisor.core.types import CategoryStatus, ItemCategory, ItemId
from dota_advisor.infra.logging import logger_for

__all__: Final[list[str]] = [
    "MIN_ABSOLUTE_MATCHES",
    "MIN_RELATIVE_SHARE",
    "ITEMS_PER_CATEGORY",
    "aggregate_item_category",
    "build_item_categories",
]

MIN_ABSOLUTE_MATCHES: Final[int] = 10
MIN_RELATIVE_SHARE: Final[float] = 0.05
ITEMS_PER_CATEGORY: Final[int] = 6


def aggregate_item_category(
    events: Iterable[RawItemPurchaseEvent | dict],
    category: ItemCategory,
    catalog: GameCatalog,
    *,
    thread_id: Optional[str] = None,
) -> ItemCategoryResult:
    """Aggregate one category of purchase events.

    Args:
        events: Raw purchase events (models or upstream dicts).
        category: Category the events belong to.
        catalog: Game catalog used to validate ids and resolve names.
        thread_id: Optional correlation ID for structured logging.

    Returns:
        ``OK`` with up to six items, ``NO_DATA`` when no valid event was given,
        or ``NO_POPULAR_ITEMS`` when nothing passed the popularity floors.
    """

    log = logger_for(component="core.items", event="aggregate_category", thread_id=thread_id)

    merged: dict[ItemId, list[int]] = {}
    dropped = 0
    for raw in events:
        try:
            event = parse_record(RawItemPurchaseEvent, raw, kind="item_purchase")
        except MalformedRecordError as exc:
            dropped += 1
            log.warning("Dropped malformed item event", category=category.value, error=str(exc))
            continue
        if event.item_id not in catalog.items:
            dropped += 1
            log.warning("Dropped unknown item", category=category.value, item_id=event.item_id)
            continue
        counts = merged.setdefault(event.item_id, [0, 0])
        counts[0] += event.match_count
        counts[1] += event.win_count

    if not merged:
        log.info("No item data", category=category.value, dropped=dropped)
        return ItemCategoryResult(category=category, status=CategoryStatus.NO_DATA)

    stats = [
        AggregatedItemStat(
            item_id=item_id,
            name=catalog.item_name(item_id),
            match_count=matches,
            win_count=wins,
            win_rate=(wins / matches) * 100 if matches else 0.0,
        )
        for item_id, (matches, wins) in merged.items()
    ]
    stats = [s for s in stats if s.match_count >= MIN_ABSOLUTE_MATCHES]
    if stats:
        top = max(s.match_count for s in stats)
        stats = [s for s in stats if s.match_count >= top * MIN_RELATIVE_SHARE]
    if not stats:
        log.info("No popular items", category=category.value, merged=len(merged))
        return ItemCategoryResult(category=category, status=CategoryStatus.NO_POPULAR_ITEMS)

    stats.sort(key=lambda s: (-s.match_count, s.item_id))
    top_items = stats[:ITEMS_PER_CATEGORY]
    log.info(
        "Item category aggregated",
        category=category.value,
        merged=len(merged),
        kept=len(top_items),
        dropped=dropped,
    )
    return ItemCategoryResult(category=category, status=CategoryStatus.OK, items=top_items)


def build_item_categories(
    raw: RawItemBuildData | dict,
    catalog: GameCatalog,
    *,
    thread_id: Optional[str] = None,
) -> ItemBuildSummary:
    """Aggregate all three categories independently.

    Args:
        raw: Raw events per category.
        catalog: Game catalog.
        thread_id: Optional correlation ID for structured logging.
    """

    data = raw if isinstance(raw, RawItemBuildData) else RawItemBuildData.model_validate(raw)
    results = {
        category: aggregate_item_category(data.events_for(category), category, catalog, thread_id=thread_id)
        for category in ItemCategory
    }
    return ItemBuildSummary(
        starting=results[ItemCategory.STARTING],
        mid_game=results[ItemCategory.MID_GAME],
        late_game=results[ItemCategory.LATE_GAME],
    )
