"""
On-disk cache for ability-leveling summaries.

Overview
--------
One JSON file per hero/position pair (``{hero_id}-{POSITION_n}.json``) holding
a :class:`~dota_advisor.core.models.CacheEntry`: the summary and the time it
was written. Entries older than the freshness window (7 days by default) are
treated as misses.

Design
------
- Reads never raise: a missing, stale or unreadable file is a miss, logged for
  operators.
- Writes go to a temporary file in the same directory followed by
  ``os.replace`` so readers see either the old or the new file.
- No locking; concurrent writers to one key race and the last one wins.

Usage
-----
>>> cache = SkillBuildCache("cache", ttl_seconds=7 * 86400)  # doctest: +SKIP
>>> cache.get(2, Position.OFFLANE)  # doctest: +SKIP
"""

from __future__ import annotations

import os
import tempfile
import time
from pathlib import Path
from typing import Callable, Final, Optional

from pydantic import ValidationError

from dota_advisor.core.exceptions import CacheError
from dota_advisor.core.models import AbilityLevelingSummary, CacheEntry
from dota_advisor.core.types import HeroId, Position
from dota_advisor.infra.logging import logger_for

__all__: Final[list[str]] = [
    "DEFAULT_TTL_SECONDS",
    "SkillBuildCache",
]

DEFAULT_TTL_SECONDS: Final[float] = 7 * 24 * 60 * 60


class SkillBuildCache:
    """File-per-key JSON cache with a fixed freshness window."""

    def __init__(
        self,
        directory: str | Path,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.directory = Path(directory)
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def path_for(self, hero_id: HeroId, position: Position) -> Path:
        return self.directory / f"{hero_id}-{position.value}.json"

    def get(self, hero_id: HeroId, position: Position) -> Optional[CacheEntry]:
        """Return the fresh entry for a key, or ``None`` on any kind of miss."""

        log = logger_for(component="data.cache", event="get")
        path = self.path_for(hero_id, position)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            log.debug("Cache miss", path=str(path))
            return None
        except OSError as exc:
            log.warning("Cache file unreadable", path=str(path), error=str(exc))
            return None

        try:
            entry = CacheEntry.model_validate_json(text)
        except ValidationError as exc:
            log.warning("Cache file malformed", path=str(path), errors=exc.error_count())
            return None

        age = self._clock() - entry.timestamp
        if age > self.ttl_seconds:
            log.info("Cache entry stale", path=str(path), age_seconds=round(age))
            return None
        log.debug("Cache hit", path=str(path), age_seconds=round(age))
        return entry

    def put(self, summary: AbilityLevelingSummary) -> CacheEntry:
        """Write ``summary`` atomically and return the stored entry.

        Raises:
            CacheError: When the directory or file cannot be written.
        """

        log = logger_for(component="data.cache", event="put")
        path = self.path_for(summary.hero_id, summary.position)
        entry = CacheEntry(timestamp=self._clock(), summary=summary)
        payload = entry.model_dump_json(by_alias=True, indent=2)

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{path.stem}-", suffix=".tmp", dir=self.directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            log.error("Cache write failed", path=str(path), error=str(exc))
            raise CacheError(path=str(path), reason=str(exc)) from exc

        log.info("Cache entry written", path=str(path), matches=summary.match_count)
        return entry

