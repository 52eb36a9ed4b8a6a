"""
Dota Build Advisor package initializer.

Overview
--------
Expose package metadata for the hero/item/skill statistics advisor. Subpackages
are not imported here so ``import dota_advisor`` stays free of side effects
(no logging setup, no network clients, no Streamlit import).

Usage
-----
>>> import dota_advisor
>>> dota_advisor.__version__
'0.3.0'
>>> dota_advisor.package_info()["name"]
'dota-build-advisor'
"""

from typing import Final

__version__: Final[str] = "0.3.0"
"""Semantic version of the package (kept in sync with ``pyproject.toml``)."""

UPSTREAM_NAME: Final[str] = "STRATZ"
"""Name of the statistics provider the advisor reads from."""

__all__: Final[list[str]] = ["__version__", "package_info"]


def package_info() -> dict[str, str]:
    """Return basic package information for diagnostics and the UI footer."""

    return {
        "name": "dota-build-advisor",
        "version": __version__,
        "upstream": UPSTREAM_NAME,
    }
