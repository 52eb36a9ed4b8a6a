"""
Skill build cache tests.

Overview
--------
Exercise the file-per-key JSON cache against a temporary directory with an
injected clock: hits, staleness, corrupt files and write failures.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from dota_advisor.core.exceptions import CacheError
from dota_advisor.core.models import AbilityLevelingSummary, LevelPopularity
from dota_advisor.core.types import Position
from dota_advisor.data.cache import DEFAULT_TTL_SECONDS, SkillBuildCache

from conftest import AXE, CALL, HELIX


class _Clock:
    def __init__(self, now: float = 1_750_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture()
def summary() -> AbilityLevelingSummary:
    return AbilityLevelingSummary(
        hero_id=AXE,
        position=Position.OFFLANE,
        match_count=3,
        per_level_popularity={1: {CALL: 2, HELIX: 1}},
        most_popular_build=[CALL, HELIX, CALL, None, None, None, None, None, None],
        popularity_stats=[LevelPopularity(level=1, ability_id=CALL, count=2, total_at_level=3)],
    )


def test_path_layout(tmp_path: Path) -> None:
    cache = SkillBuildCache(tmp_path)
    assert cache.path_for(AXE, Position.OFFLANE) == tmp_path / "2-POSITION_3.json"


def test_put_then_get(tmp_path: Path, summary: AbilityLevelingSummary) -> None:
    clock = _Clock()
    cache = SkillBuildCache(tmp_path / "nested", clock=clock)

    stored = cache.put(summary)
    assert stored.timestamp == clock.now

    entry = cache.get(AXE, Position.OFFLANE)
    assert entry is not None
    assert entry.summary == summary
    assert entry.summary.most_popular_build[3] is None


def test_file_uses_camel_case_keys(tmp_path: Path, summary: AbilityLevelingSummary) -> None:
    cache = SkillBuildCache(tmp_path, clock=_Clock())
    cache.put(summary)
    data = json.loads(cache.path_for(AXE, Position.OFFLANE).read_text(encoding="utf-8"))
    assert data["summary"]["heroId"] == AXE
    assert data["summary"]["mostPopularBuild"][:2] == [CALL, HELIX]
    assert data["summary"]["position"] == "POSITION_3"
    assert [p.name for p in tmp_path.iterdir()] == ["2-POSITION_3.json"]


def test_entries_expire_after_ttl(tmp_path: Path, summary: AbilityLevelingSummary) -> None:
    clock = _Clock()
    cache = SkillBuildCache(tmp_path, clock=clock)
    cache.put(summary)

    clock.now += DEFAULT_TTL_SECONDS
    assert cache.get(AXE, Position.OFFLANE) is not None
    clock.now += 1
    assert cache.get(AXE, Position.OFFLANE) is None


def test_missing_entry_is_a_miss(tmp_path: Path) -> None:
    assert SkillBuildCache(tmp_path).get(AXE, Position.MID) is None


def test_corrupt_entry_is_a_miss(tmp_path: Path) -> None:
    cache = SkillBuildCache(tmp_path)
    cache.path_for(AXE, Position.OFFLANE).write_text("{not json", encoding="utf-8")
    assert cache.get(AXE, Position.OFFLANE) is None

    cache.path_for(AXE, Position.MID).write_text('{"timestamp": 1}', encoding="utf-8")
    assert cache.get(AXE, Position.MID) is None


def test_rewrite_replaces_entry(tmp_path: Path, summary: AbilityLevelingSummary) -> None:
    clock = _Clock()
    cache = SkillBuildCache(tmp_path, clock=clock)
    cache.put(summary)

    clock.now += 60
    cache.put(summary.model_copy(update={"match_count": 7}))
    entry = cache.get(AXE, Position.OFFLANE)
    assert entry.summary.match_count == 7
    assert entry.timestamp == clock.now


def test_write_failure_raises_cache_error(tmp_path: Path, summary: AbilityLevelingSummary) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    cache = SkillBuildCache(blocker / "cache")

    with pytest.raises(CacheError) as excinfo:
        cache.put(summary)
    assert "2-POSITION_3.json" in str(excinfo.value)
