"""
Hero ranking by Bayesian-smoothed win rate.

Overview
--------
Merge per-day hero win/loss rows into per-hero totals, drop heroes below a
minimum sample size, score the rest with a Bayesian average that pulls small
samples toward the global win rate, and keep the top six.

Design
------
- ``bayesian = (wr * n + M_avg * C) / (n + C)`` with ``C = 100``. ``M_avg`` is
  the pooled win rate of all input rows (0.5 when there are no matches) unless
  the caller pins it with ``global_mean``.
- Ordering uses the score only for ranking; ``win_rate`` (0-100) is what the
  UI shows. Ties fall back to match count (desc) then hero id (asc), so the
  output never depends on row order.
- Rows that fail validation are dropped and logged, never fatal.

Usage
-----
>>> rows = [{"heroId": 1, "matchCount": 120, "winCount": 66, "day": 19800}]
>>> [h.hero_id for h in build_hero_ranking(rows, 100, global_mean=0.5)]
[1]
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Iterable, Optional

from dota_advisor.core.exceptions import MalformedRecordError
from dota_advisor.core.models import AggregatedHeroStat, RawHeroDayStat, parse_record
from dota_advisor.core.types import HeroId
from dota_advisor.infra.logging import logger_for

__all__: Final[list[str]] = [
    "DEFAULT_MIN_MATCHES",
    "WARMUP_MIN_MATCHES",
    "TOP_HEROES",
    "SMOOTHING_CONSTANT",
    "bayesian_score",
    "build_hero_ranking",
]

DEFAULT_MIN_MATCHES: Final[int] = 100
WARMUP_MIN_MATCHES: Final[int] = 10
TOP_HEROES: Final[int] = 6
SMOOTHING_CONSTANT: Final[int] = 100
NEUTRAL_WIN_RATE: Final[float] = 0.5


@dataclass(slots=True)
class _HeroTotals:
    match_count: int = 0
    win_count: int = 0
    day: Optional[int] = None

    def add(self, row: RawHeroDayStat) -> None:
        self.match_count += row.match_count
        self.win_count += row.win_count
        if row.day is not None and (self.day is None or row.day > self.day):
            self.day = row.day


def bayesian_score(win_count: int, match_count: int, global_mean: float, smoothing: int = SMOOTHING_CONSTANT) -> float:
    """Return the smoothed win rate in ``[0, 1]``."""

    wr = win_count / match_count if match_count else 0.0
    return (wr * match_count + global_mean * smoothing) / (match_count + smoothing)


def build_hero_ranking(
    raw_stats: Iterable[RawHeroDayStat | dict],
    min_matches: int = DEFAULT_MIN_MATCHES,
    *,
    top_n: int = TOP_HEROES,
    smoothing: int = SMOOTHING_CONSTANT,
    global_mean: Optional[float] = None,
    thread_id: Optional[str] = None,
) -> list[AggregatedHeroStat]:
    """Rank heroes from per-day rows.

    Args:
        raw_stats: Day rows, as models or upstream dicts.
        min_matches: Heroes with fewer total matches are excluded.
        top_n: Maximum number of heroes returned.
        smoothing: Bayesian smoothing constant ``C``.
        global_mean: Prior win rate in ``[0, 1]``; derived from the rows when
            ``None``.
        thread_id: Optional correlation ID for structured logging.

    Returns:
        Up to ``top_n`` heroes, best first. An empty list is a valid "no data"
        result.
    """

    log = logger_for(component="core.ranking", event="build_hero_ranking", thread_id=thread_id)

    totals: dict[HeroId, _HeroTotals] = {}
    dropped = 0
    for raw in raw_stats:
        try:
            row = parse_record(RawHeroDayStat, raw, kind="hero_day_stat")
        except MalformedRecordError as exc:
            dropped += 1
            log.warning("Dropped malformed hero stat row", error=str(exc))
            continue
        totals.setdefault(row.hero_id, _HeroTotals()).add(row)

    all_matches = sum(t.match_count for t in totals.values())
    all_wins = sum(t.win_count for t in totals.values())
    if global_mean is not None:
        mean = global_mean
    else:
        mean = all_wins / all_matches if all_matches else NEUTRAL_WIN_RATE

    ranked: list[AggregatedHeroStat] = []
    for hero_id, t in totals.items():
        if t.match_count < min_matches or t.match_count == 0:
            continue
        wr = t.win_count / t.match_count
        ranked.append(
            AggregatedHeroStat(
                hero_id=hero_id,
                match_count=t.match_count,
                win_count=t.win_count,
                win_rate=round(wr * 100, 2),
                bayesian_score=bayesian_score(t.win_count, t.match_count, mean, smoothing),
                day=t.day,
            )
        )

    ranked.sort(key=lambda h: (-h.bayesian_score, -h.match_count, h.hero_id))
    result = ranked[:top_n]
    log.info(
        "Hero ranking built",
        heroes_seen=len(totals),
        qualified=len(ranked),
        returned=len(result),
        dropped=dropped,
        min_matches=min_matches,
        global_mean=round(mean, 4),
    )
    return result
