"""
Advisor service: the request-level entry points used by the chat front-end.

Overview
--------
Wire the upstream client, the immutable catalog and the aggregators together:

- :meth:`AdvisorService.top_heroes` ranks heroes for a rank and position;
- :meth:`AdvisorService.item_build` aggregates a hero's purchases;
- :meth:`AdvisorService.skill_build` returns the leveling summary, from the
  cache when fresh, otherwise recomputed from recent pro matches.

:func:`create_advisor` performs startup: fetch constants, build the catalog
(fatal on failure), resolve the current patch and open the cache.

Design
------
- Upstream failures never escape request methods: the client already turns
  them into empty input, which the aggregators turn into "no data" results.
- A cache write failure is logged and does not affect the returned result.
"""

from __future__ import annotations

from typing import Final, Optional

import requests

from dota_advisor.core.exceptions import CacheError
from dota_advisor.core.items import build_item_categories
from dota_advisor.core.models import (
    AbilityLevelingSummary,
    AggregatedHeroStat,
    GameCatalog,
    ItemBuildSummary,
    NoData,
)
from dota_advisor.core.ranking import DEFAULT_MIN_MATCHES, build_hero_ranking
from dota_advisor.core.skills import build_ability_leveling_summary
from dota_advisor.core.types import HeroId, Position, Rank
from dota_advisor.data.cache import SkillBuildCache
from dota_advisor.data.catalog import build_catalog
from dota_advisor.data.stratz import DEFAULT_PATCH_ID, StratzClient
from dota_advisor.infra.config import Settings
from dota_advisor.infra.logging import generate_thread_id, logger_for
from dota_advisor.infra.throttle import Throttle

__all__: Final[list[str]] = [
    "AdvisorService",
    "create_advisor",
]

SkillBuildResult = AbilityLevelingSummary | NoData


class AdvisorService:
    """Request-level operations over one catalog and one upstream client."""

    def __init__(
        self,
        client: StratzClient,
        catalog: GameCatalog,
        *,
        patch_id: int = DEFAULT_PATCH_ID,
        cache: Optional[SkillBuildCache] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.client = client
        self.catalog = catalog
        self.patch_id = patch_id
        self.cache = cache
        self.settings = settings or Settings()

    def top_heroes(
        self,
        rank: Rank,
        position: Position,
        *,
        min_matches: int = DEFAULT_MIN_MATCHES,
    ) -> list[AggregatedHeroStat]:
        """Return up to six heroes for ``rank`` at ``position``, best first."""

        tid = generate_thread_id()
        rows = self.client.fetch_hero_day_stats(rank, position)
        return build_hero_ranking(rows, min_matches, thread_id=tid)

    def item_build(self, hero_id: HeroId, rank: Rank, position: Position) -> ItemBuildSummary:
        tid = generate_thread_id()
        raw = self.client.fetch_item_purchases(hero_id, rank, position)
        return build_item_categories(raw, self.catalog, thread_id=tid)

    def compute_skill_build(self, hero_id: HeroId, position: Position) -> SkillBuildResult:
        """Recompute the leveling summary from recent pro matches (no cache)."""

        tid = generate_thread_id()
        matches = self.client.fetch_recent_pro_matches(
            hero_id, position, self.patch_id, self.settings.matches_to_analyze
        )
        return build_ability_leveling_summary(matches, hero_id, position, self.catalog, thread_id=tid)

    def refresh_skill_build(self, hero_id: HeroId, position: Position) -> SkillBuildResult:
        """Recompute a summary and store it when there is one.

        Raises:
            CacheError: When the summary cannot be written.
        """

        result = self.compute_skill_build(hero_id, position)
        if self.cache is not None and isinstance(result, AbilityLevelingSummary):
            self.cache.put(result)
        return result

    def skill_build(
        self,
        hero_id: HeroId,
        position: Position,
        *,
        use_cache: bool = True,
    ) -> tuple[SkillBuildResult, bool]:
        """Return ``(result, from_cache)`` for a hero at a position.

        Args:
            hero_id: Hero to analyse.
            position: Position the hero must have played.
            use_cache: Read a fresh cache entry before recomputing.
        """

        log = logger_for(component="services.advisor", event="skill_build")
        if use_cache and self.cache is not None:
            entry = self.cache.get(hero_id, position)
            if entry is not None:
                log.info("Skill build served from cache", hero_id=hero_id, position=position.value)
                return entry.summary, True

        result = self.compute_skill_build(hero_id, position)
        if self.cache is not None and isinstance(result, AbilityLevelingSummary):
            try:
                self.cache.put(result)
            except CacheError as exc:
                log.warning("Skill build not cached", hero_id=hero_id, position=position.value, error=str(exc))
        return result, False


def create_advisor(
    settings: Settings,
    *,
    session: Optional[requests.Session] = None,
    throttle: Optional[Throttle] = None,
) -> AdvisorService:
    """Build a ready-to-use :class:`AdvisorService`.

    Raises:
        ConfigurationError: When no API token is configured.
        CatalogLoadError: When constants cannot be fetched or lack sections.
        CatalogValidationError: When the constants payload is invalid.
    """

    log = logger_for(component="services.advisor", event="startup")
    client = StratzClient.from_settings(settings, session=session, throttle=throttle)
    catalog = build_catalog(client.fetch_constants())
    patch_id = client.fetch_current_patch_id()
    cache = SkillBuildCache(settings.cache_dir, settings.cache_ttl_seconds)
    log.info("Advisor ready", patch_id=patch_id, heroes=len(catalog.heroes), cache_dir=str(settings.cache_dir))
    return AdvisorService(client, catalog, patch_id=patch_id, cache=cache, settings=settings)
