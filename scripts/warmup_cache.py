#!/usr/bin/env python3
"""Precompute skill builds for popular hero/position pairs.

Usage
-----
    python scripts/warmup_cache.py [--settings settings.yaml] [--top-n 2]

Meant to be run once a day by cron. The script ranks heroes for every position
in the chosen bracket, keeps the top N per position and writes a fresh skill
build summary for each pair into the cache directory. Failures are logged per
target; the exit code is 1 only when startup fails or every target failed.
"""

from __future__ import annotations

import argparse
from pathlib import Path
import sys
from typing import Optional, Sequence

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from dota_advisor.core.exceptions import AdvisorError, NotFoundError
from dota_advisor.core.types import Rank
from dota_advisor.infra.config import load_settings
from dota_advisor.infra.logging import generate_thread_id, logger_for, setup_logging
from dota_advisor.services.advisor import create_advisor
from dota_advisor.services.warmup import WARMUP_RANK, warm_up_cache, warmup_targets


def _rank(value: str) -> Rank:
    try:
        return Rank.parse(value)
    except NotFoundError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Warm up the skill build cache")
    parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="YAML settings file (default: environment / .env only)",
    )
    parser.add_argument(
        "--rank",
        type=_rank,
        default=WARMUP_RANK,
        help=f"Rank bracket used to pick popular heroes (default: {WARMUP_RANK.value})",
    )
    parser.add_argument(
        "--top-n",
        type=int,
        default=None,
        help="Heroes per position (default: warmup_top_n setting)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Collect and log targets without computing builds",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    thread_id = generate_thread_id()
    try:
        settings = load_settings(str(args.settings) if args.settings else None)
    except AdvisorError as exc:
        setup_logging()
        logger_for(component="scripts.warmup_cache", event="run", thread_id=thread_id).error(
            "Invalid settings", error=str(exc)
        )
        return 1
    setup_logging(settings.log_level, json=settings.log_json)
    log = logger_for(component="scripts.warmup_cache", event="run", thread_id=thread_id)

    try:
        service = create_advisor(settings)
    except AdvisorError as exc:
        log.error("Startup failed", error=str(exc))
        return 1

    targets = warmup_targets(service, args.rank, args.top_n)
    if args.dry_run:
        log.info("Dry run complete", targets=[f"{t.hero_id}-{t.position.value}" for t in targets])
        return 0

    report = warm_up_cache(service, targets)
    if targets and len(report.failed) == len(targets):
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
