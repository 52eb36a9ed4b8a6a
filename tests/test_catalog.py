"""
Catalog construction tests.

Overview
--------
Validate how the constants payload becomes a :class:`GameCatalog`: hero and
item names, the two-pass ability merge, type/hotkey/max-level classification,
manual overrides and the startup failure modes.

Usage
-----
>>> pytest -q tests/test_catalog.py
"""

from __future__ import annotations

from pathlib import Path

import pytest

from dota_advisor.core.exceptions import CatalogLoadError, CatalogValidationError
from dota_advisor.core.types import AbilityType
from dota_advisor.data.catalog import (
    build_catalog,
    classify_ability,
    load_catalog_from_file,
    merge_ability_sources,
)

from conftest import AXE_ASPECT, AXE_TALENT, CALL, CONSTANTS_PATH, CULLING


# ---------------------------------------------------------------------------
# Names
# ---------------------------------------------------------------------------

def test_hero_and_item_names(catalog) -> None:
    assert catalog.hero_name(2) == "Axe"
    assert catalog.hero_name(103) == "Elder Titan"
    assert catalog.item_name(116) == "Black King Bar"


def test_missing_names_fall_back_to_ids(catalog) -> None:
    # Present without a display name
    assert catalog.hero_name(999) == "Hero 999"
    assert catalog.item_name(999) == "Item 999"
    # Absent altogether
    assert catalog.hero_name(4242) == "Hero 4242"
    assert catalog.item_name(4242) == "Item 4242"


# ---------------------------------------------------------------------------
# Ability classification
# ---------------------------------------------------------------------------

def test_basic_abilities_take_slot_hotkeys(catalog) -> None:
    call = catalog.ability(CALL)
    assert call is not None
    assert call.display_name == "Berserker's Call"
    assert call.hotkey == "Q"
    assert call.ability_type is AbilityType.BASIC
    assert call.max_level == 4
    assert call.is_skillable


def test_ultimate_defaults(catalog) -> None:
    ult = catalog.ability(CULLING)
    assert ult.ability_type is AbilityType.ULTIMATE
    assert ult.hotkey == "R"
    assert ult.max_level == 3
    assert ult.is_skillable


def test_talent_is_not_skillable(catalog) -> None:
    talent = catalog.ability(AXE_TALENT)
    assert talent.ability_type is AbilityType.TALENT
    assert talent.hotkey == "Talent"
    assert talent.max_level == 1
    assert not talent.is_skillable


@pytest.mark.parametrize("ability_id", [AXE_ASPECT, 7000, 7001])
def test_aspects_are_detected_by_name_and_capped(catalog, ability_id: int) -> None:
    entry = catalog.ability(ability_id)
    assert entry.ability_type is AbilityType.ASPECT
    assert entry.max_level == 1
    assert not entry.is_skillable


def test_explicit_max_level_wins(catalog) -> None:
    assert catalog.ability(5004).max_level == 5


def test_global_ultimate_uses_stat_values(catalog) -> None:
    ult = catalog.ability(7002)
    assert ult.hotkey == "T"
    assert ult.max_level == 4
    assert ult.slot is None


def test_global_only_basic_has_no_hotkey(catalog) -> None:
    assert catalog.ability(7003).hotkey == "N/A"
    assert catalog.ability_label(7003) == "Passive Thing (N/A)"


def test_hero_scoped_definition_wins_over_global(catalog) -> None:
    call = catalog.ability(CALL)
    assert call.display_name == "Berserker's Call"
    assert call.slot == 0


def test_overrides_fill_missing_facets(catalog) -> None:
    bone_guard = catalog.ability(5087)
    assert bone_guard.display_name == "Bone Guard"
    assert bone_guard.hotkey == "W"
    assert bone_guard.ability_type is AbilityType.ASPECT
    assert bone_guard.max_level == 1

    blade = catalog.ability(1282)
    assert blade.display_name == "Spectral Blade"
    assert blade.hotkey == "W"


def test_overrides_fix_elder_titan_hotkeys(catalog) -> None:
    hotkeys = [catalog.ability(i).hotkey for i in (5589, 5591, 5592, 5594)]
    assert hotkeys == ["Q", "W", "E", "R"]


def test_classify_ability_facet_source_type() -> None:
    entry = classify_ability(
        123,
        display_name="Mighty Swing",
        slot=1,
        source_type="FACET_ABILITY",
    )
    assert entry.ability_type is AbilityType.ASPECT
    assert entry.max_level == 1
    assert entry.hotkey == "W"


def test_classify_ability_talent_beats_ultimate() -> None:
    entry = classify_ability(321, display_name="+25 Damage", is_talent=True, is_ultimate=True)
    assert entry.ability_type is AbilityType.TALENT
    assert entry.hotkey == "Talent"


def test_classify_ability_label_fallbacks() -> None:
    assert classify_ability(11, display_name=None, name="x_inner").display_name == "x_inner"
    assert classify_ability(12, display_name=None).display_name == "Ability 12"


def test_merge_first_source_wins() -> None:
    first = classify_ability(1, display_name="First", slot=0)
    second = classify_ability(1, display_name="Second")
    other = classify_ability(2, display_name="Other")
    merged = merge_ability_sources([first], [second, other])
    assert merged[1].display_name == "First"
    assert set(merged) == {1, 2}


# ---------------------------------------------------------------------------
# Failure modes
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("section", ["heroes", "abilities", "items"])
def test_missing_section_aborts(raw_constants, section: str) -> None:
    del raw_constants[section]
    with pytest.raises(CatalogLoadError) as excinfo:
        build_catalog(raw_constants)
    assert section in str(excinfo.value)


def test_non_list_section_aborts(raw_constants) -> None:
    raw_constants["items"] = {"1": "Blink Dagger"}
    with pytest.raises(CatalogLoadError):
        build_catalog(raw_constants)


def test_non_mapping_payload_aborts() -> None:
    with pytest.raises(CatalogLoadError):
        build_catalog(["heroes"])  # type: ignore[arg-type]


def test_invalid_record_is_a_validation_error(raw_constants) -> None:
    raw_constants["heroes"].append({"displayName": "No Id"})
    with pytest.raises(CatalogValidationError):
        build_catalog(raw_constants)


# ---------------------------------------------------------------------------
# File loading
# ---------------------------------------------------------------------------

def test_load_catalog_from_file() -> None:
    catalog = load_catalog_from_file(str(CONSTANTS_PATH))
    assert catalog.hero_name(2) == "Axe"
    assert len(catalog.items) == 9


def test_load_catalog_unwraps_constants_key(tmp_path: Path) -> None:
    path = tmp_path / "wrapped.json"
    path.write_text(
        '{"constants": {"heroes": [{"id": 7, "displayName": "Earthshaker"}], "abilities": [], "items": []}}',
        encoding="utf-8",
    )
    assert load_catalog_from_file(str(path)).hero_name(7) == "Earthshaker"


def test_load_catalog_missing_file(tmp_path: Path) -> None:
    with pytest.raises(CatalogLoadError) as excinfo:
        load_catalog_from_file(str(tmp_path / "nope.yaml"))
    assert "file not found" in str(excinfo.value)


def test_load_catalog_bad_syntax(tmp_path: Path) -> None:
    path = tmp_path / "broken.yaml"
    path.write_text("heroes: [\n", encoding="utf-8")
    with pytest.raises(CatalogLoadError):
        load_catalog_from_file(str(path))
