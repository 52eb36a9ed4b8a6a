"""
Logging setup tests.
"""

from __future__ import annotations

import warnings

import pytest

from dota_advisor.infra.logging import logger_for, reset_logging, setup_logging


@pytest.mark.parametrize("json", [False, True])
def test_setup_emits_no_deprecation_warnings(json: bool) -> None:
    reset_logging()
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            setup_logging("DEBUG", json=json)
            logger_for(component="tests", event="setup").info("Configured", renderer="json" if json else "console")
    finally:
        reset_logging()
        setup_logging("DEBUG", json=False)


def test_setup_is_idempotent() -> None:
    setup_logging("DEBUG", json=False)
    setup_logging("ERROR", json=True)
    logger_for(component="tests", event="idempotent").debug("Still configured")
