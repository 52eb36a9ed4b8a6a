"""
Cache warmup: precompute skill builds for popular hero/position pairs.

Overview
--------
Run once a day by an external scheduler (see ``scripts/warmup_cache.py``):

1. :func:`warmup_targets` ranks heroes for every position (Immortal bracket,
   low match threshold) and keeps the top N per position;
2. :func:`warm_up_cache` recomputes and stores each pair's summary.

Calls are paced with the configured delays: between positions while
collecting targets, and between targets while warming. A failing target is
logged and the run continues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final, Iterable, Optional

from dota_advisor.core.exceptions import AdvisorError
from dota_advisor.core.models import AbilityLevelingSummary
from dota_advisor.core.ranking import WARMUP_MIN_MATCHES
from dota_advisor.core.types import HeroId, Position, Rank
from dota_advisor.infra.logging import generate_thread_id, logger_for
from dota_advisor.infra.throttle import FixedIntervalThrottle, Throttle
from dota_advisor.services.advisor import AdvisorService

__all__: Final[list[str]] = [
    "WARMUP_RANK",
    "WarmupTarget",
    "WarmupReport",
    "warmup_targets",
    "warm_up_cache",
]

WARMUP_RANK: Final[Rank] = Rank.IMMORTAL


@dataclass(frozen=True, slots=True)
class WarmupTarget:
    hero_id: HeroId
    position: Position


@dataclass(slots=True)
class WarmupReport:
    """Outcome of one warmup run.

    Attributes:
        cached: Targets whose summary was written.
        no_data: Targets without any contributing match.
        failed: Targets that raised, with the error message.
    """

    cached: list[WarmupTarget] = field(default_factory=list)
    no_data: list[WarmupTarget] = field(default_factory=list)
    failed: list[tuple[WarmupTarget, str]] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.cached) + len(self.no_data) + len(self.failed)


def warmup_targets(
    service: AdvisorService,
    rank: Rank = WARMUP_RANK,
    top_n: Optional[int] = None,
    *,
    throttle: Optional[Throttle] = None,
) -> list[WarmupTarget]:
    """Collect the top ``top_n`` heroes for every position, deduplicated.

    Args:
        service: Advisor used to rank heroes.
        rank: Bracket to rank in.
        top_n: Heroes per position; defaults to ``settings.warmup_top_n``.
        throttle: Pacing between positions; defaults to the configured delay.
    """

    log = logger_for(component="services.warmup", event="targets", thread_id=generate_thread_id())
    if top_n is None:
        top_n = service.settings.warmup_top_n
    pacing = throttle or FixedIntervalThrottle(
        service.settings.warmup_position_delay_seconds, name="warmup_positions"
    )

    seen: dict[WarmupTarget, None] = {}
    for position in Position:
        pacing.acquire()
        heroes = service.top_heroes(rank, position, min_matches=WARMUP_MIN_MATCHES)
        for hero in heroes[:top_n]:
            seen.setdefault(WarmupTarget(hero.hero_id, position), None)
        log.info("Position ranked", position=position.value, heroes=len(heroes))

    targets = list(seen)
    log.info("Warmup targets collected", rank=rank.value, targets=len(targets))
    return targets


def warm_up_cache(
    service: AdvisorService,
    targets: Iterable[WarmupTarget],
    *,
    throttle: Optional[Throttle] = None,
) -> WarmupReport:
    """Recompute and store the skill build of every target.

    Errors are recorded per target; the run never stops early.
    """

    log = logger_for(component="services.warmup", event="warm_up", thread_id=generate_thread_id())
    pacing = throttle or FixedIntervalThrottle(
        service.settings.warmup_target_delay_seconds, name="warmup_targets"
    )
    report = WarmupReport()

    for target in targets:
        pacing.acquire()
        try:
            result = service.refresh_skill_build(target.hero_id, target.position)
        except AdvisorError as exc:
            log.error(
                "Warmup target failed",
                hero_id=target.hero_id,
                position=target.position.value,
                error=str(exc),
            )
            report.failed.append((target, str(exc)))
            continue
        if isinstance(result, AbilityLevelingSummary):
            report.cached.append(target)
        else:
            report.no_data.append(target)
        log.info(
            "Warmup target done",
            hero_id=target.hero_id,
            position=target.position.value,
            cached=isinstance(result, AbilityLevelingSummary),
        )

    log.info(
        "Warmup finished",
        attempted=report.attempted,
        cached=len(report.cached),
        no_data=len(report.no_data),
        failed=len(report.failed),
    )
    return report
