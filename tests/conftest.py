"""
Pytest configuration and shared fixtures.

Overview
--------
Provide test-wide fixtures for logging, the game catalog (built from a trimmed
constants snapshot), match payload builders and a fake HTTP session standing
in for ``requests.Session`` so no test talks to the network.

Design
------
- Load the constants snapshot from ``tests/data/constants.yaml`` once per
  session; tests that mutate the raw payload get a deep copy.
- Match builders return upstream-shaped dicts (camelCase), the same input the
  aggregators receive from the client.
- ``FakeSession`` replays queued responses and records every request.

Integration
-----------
Imported implicitly by pytest. No side effects beyond optional logging setup.

Usage
-----
>>> # Example (inside a test module)
>>> def test_axe_is_known(catalog):
...     assert catalog.hero_name(2) == "Axe"
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Callable, Final, Optional, Sequence

import pytest
import requests
import yaml

from dota_advisor.core.models import GameCatalog
from dota_advisor.data.catalog import build_catalog
from dota_advisor.infra.logging import generate_thread_id, setup_logging

# ---------------------------------------------------------------------------
# Repository paths for data files used in tests
# ---------------------------------------------------------------------------
DATA_DIR: Final[Path] = Path(__file__).parent / "data"
CONSTANTS_PATH: Final[Path] = DATA_DIR / "constants.yaml"

# Axe ability ids from the snapshot.
AXE: Final[int] = 2
CALL: Final[int] = 5007
HUNGER: Final[int] = 5008
HELIX: Final[int] = 5009
CULLING: Final[int] = 5010
AXE_ASPECT: Final[int] = 5011
AXE_TALENT: Final[int] = 6000


# ---------------------------------------------------------------------------
# Fake HTTP transport
# ---------------------------------------------------------------------------
class FakeResponse:
    """Minimal ``requests.Response`` stand-in."""

    def __init__(self, payload: Any = None, status_code: int = 200, *, invalid_json: bool = False) -> None:
        self._payload = payload
        self.status_code = status_code
        self._invalid_json = invalid_json

    def json(self) -> Any:
        if self._invalid_json:
            raise ValueError("Expecting value")
        return self._payload


class FakeSession:
    """Replay queued responses (or exceptions) and record each POST body."""

    def __init__(self, responses: Optional[Sequence[Any]] = None) -> None:
        self.headers: dict[str, str] = {}
        self.responses: list[Any] = list(responses or [])
        self.calls: list[dict[str, Any]] = []

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    def queue_data(self, *data: dict[str, Any]) -> None:
        self.responses.extend(FakeResponse({"data": d}) for d in data)

    def post(self, url: str, json: Any = None, timeout: Optional[float] = None) -> FakeResponse:
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        if not self.responses:
            raise requests.ConnectionError("no response queued")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def variables(self, index: int = -1) -> dict[str, Any]:
        return self.calls[index]["json"]["variables"]


# ---------------------------------------------------------------------------
# Session-scoped fixtures (logging and data)
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def thread_id() -> str:
    """Provide a session-wide correlation ID for structured logs."""

    return generate_thread_id()


@pytest.fixture(scope="session")
def logging_setup() -> None:
    """Initialize structlog so tests can emit structured logs if needed."""

    setup_logging("DEBUG", json=False)


@pytest.fixture(scope="session")
def _constants_snapshot() -> dict[str, Any]:
    with open(CONSTANTS_PATH, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


@pytest.fixture()
def raw_constants(_constants_snapshot: dict[str, Any]) -> dict[str, Any]:
    """Return a private deep copy of the constants snapshot."""

    return copy.deepcopy(_constants_snapshot)


@pytest.fixture(scope="session")
def catalog(logging_setup: None, thread_id: str, _constants_snapshot: dict[str, Any]) -> GameCatalog:
    """Build the catalog every aggregator test uses."""

    return build_catalog(copy.deepcopy(_constants_snapshot), thread_id=thread_id)


# ---------------------------------------------------------------------------
# Function-scoped fixtures (payload builders, transport)
# ---------------------------------------------------------------------------

@pytest.fixture()
def match_factory() -> Callable[..., dict[str, Any]]:
    """Return a factory for upstream-shaped match detail payloads.

    ``upgrades`` is a sequence of ability ids (spent one minute apart) or of
    ``(ability_id, time)`` pairs. A second player on another hero is always
    added so the target player has to be looked up.
    """

    def _make(
        upgrades: Sequence[Any] = (),
        *,
        match_id: int = 7000000001,
        hero_id: int = AXE,
        position: Optional[str] = "POSITION_3",
        game_version_id: int = 179,
        steam_account_id: int = 86745912,
    ) -> dict[str, Any]:
        abilities = []
        for i, up in enumerate(upgrades):
            ability_id, time = up if isinstance(up, tuple) else (up, 60 * (i + 1))
            abilities.append({"abilityId": ability_id, "time": time, "level": i + 1})
        return {
            "id": match_id,
            "gameVersionId": game_version_id,
            "players": [
                {
                    "heroId": 1,
                    "steamAccountId": 1,
                    "position": "POSITION_1",
                    "isRadiant": False,
                    "isVictory": False,
                    "abilities": [{"abilityId": 5003, "time": 60, "level": 1}],
                },
                {
                    "heroId": hero_id,
                    "steamAccountId": steam_account_id,
                    "position": position,
                    "isRadiant": True,
                    "isVictory": True,
                    "abilities": abilities,
                },
            ],
        }

    return _make


@pytest.fixture()
def fake_session() -> FakeSession:
    return FakeSession()
