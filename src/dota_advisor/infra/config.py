"""
Runtime settings for the advisor.

Overview
--------
One validated :class:`Settings` object carries everything that varies between
deployments: the upstream token and URL, cache location and freshness window,
pagination sizes and the pacing delays used against the upstream API.

Design
------
- ``Settings`` is a Pydantic model so bad values (negative delays, unknown log
  levels) fail at startup, not mid-request.
- :func:`load_settings` layers sources: defaults < YAML file < ``.env`` file
  < process environment. Environment keys are the field names upper-cased with
  the ``DOTA_ADVISOR_`` prefix; ``STRATZ_API_TOKEN`` is accepted for the token.
- The token is optional at load time (tests and offline tools do not need
  it); :meth:`Settings.require_token` enforces it where a client is built.

Usage
-----
>>> s = load_settings(env={"STRATZ_API_TOKEN": "t", "DOTA_ADVISOR_CACHE_TTL_DAYS": "3"})
>>> s.cache_ttl_days
3
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Final, Mapping, Optional

import yaml
from dotenv import dotenv_values
from pydantic import BaseModel, Field, ValidationError, field_validator

from dota_advisor.core.exceptions import ConfigurationError
from dota_advisor.infra.logging import logger_for

__all__: Final[list[str]] = [
    "ENV_PREFIX",
    "DEFAULT_STRATZ_URL",
    "Settings",
    "load_settings",
]

ENV_PREFIX: Final[str] = "DOTA_ADVISOR_"
TOKEN_ENV_ALIASES: Final[tuple[str, ...]] = ("STRATZ_API_TOKEN",)
DEFAULT_STRATZ_URL: Final[str] = "https://api.stratz.com/graphql"
# 2025-04-01 00:00:00 UTC; professional leagues are looked up from here on.
DEFAULT_LEAGUE_WINDOW_START: Final[int] = 1743532800
SECONDS_PER_DAY: Final[int] = 24 * 60 * 60

_LOG_LEVELS: Final[set[str]] = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class Settings(BaseModel):
    """Validated runtime configuration."""

    stratz_api_token: Optional[str] = None
    stratz_api_url: str = DEFAULT_STRATZ_URL
    request_timeout: Optional[float] = Field(default=None, gt=0)

    cache_dir: Path = Path("cache")
    cache_ttl_days: int = Field(default=7, ge=1)

    matches_to_analyze: int = Field(default=30, ge=1)
    league_window_start: int = DEFAULT_LEAGUE_WINDOW_START
    league_window_days: int = Field(default=60, ge=1)
    league_page_size: int = Field(default=25, ge=1)
    league_max_pages: int = Field(default=5, ge=1)
    league_delay_seconds: float = Field(default=0.5, ge=0)

    warmup_position_delay_seconds: float = Field(default=1.5, ge=0)
    warmup_target_delay_seconds: float = Field(default=3.0, ge=0)
    warmup_top_n: int = Field(default=2, ge=1)

    log_level: str = "INFO"
    log_json: bool = True

    @field_validator("stratz_api_token")
    @classmethod
    def _v_token(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("stratz_api_url")
    @classmethod
    def _v_url(cls, v: str) -> str:
        v = v.strip()
        if not (v.startswith("http://") or v.startswith("https://")):
            raise ValueError("stratz_api_url must start with http:// or https://")
        return v

    @field_validator("log_level")
    @classmethod
    def _v_log_level(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}")
        return v

    @property
    def league_window_end(self) -> int:
        return self.league_window_start + self.league_window_days * SECONDS_PER_DAY

    @property
    def cache_ttl_seconds(self) -> float:
        return float(self.cache_ttl_days * SECONDS_PER_DAY)

    def require_token(self) -> str:
        """Return the API token.

        Raises:
            ConfigurationError: When no token is configured.
        """

        if not self.stratz_api_token:
            raise ConfigurationError(
                "Missing upstream API token",
                hint=f"set STRATZ_API_TOKEN or {ENV_PREFIX}STRATZ_API_TOKEN",
            )
        return self.stratz_api_token


def _read_yaml(path: str) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigurationError("Cannot read settings file", path=path, reason=str(exc)) from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError("Invalid settings file", path=path, reason="invalid YAML") from exc
    if not isinstance(data, dict):
        raise ConfigurationError("Settings file must contain a mapping", path=path)
    return data


def _from_env(env: Mapping[str, Optional[str]]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for alias in TOKEN_ENV_ALIASES:
        if env.get(alias):
            values["stratz_api_token"] = env[alias]
    for name in Settings.model_fields:
        raw = env.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is not None and raw != "":
            values[name] = raw
    return values


def load_settings(
    path: Optional[str] = None,
    env: Optional[Mapping[str, Optional[str]]] = None,
    *,
    env_file: Optional[str] = ".env",
) -> Settings:
    """Build :class:`Settings` from defaults, a YAML file and the environment.

    Args:
        path: Optional YAML file whose keys mirror the ``Settings`` fields.
        env: Environment mapping; defaults to ``os.environ`` merged over the
            ``.env`` file.
        env_file: ``.env`` file read by python-dotenv when ``env`` is ``None``.

    Returns:
        The validated settings.

    Raises:
        ConfigurationError: When a source cannot be read or a value is invalid.
    """

    log = logger_for(component="infra.config", event="load_settings")
    values: dict[str, Any] = _read_yaml(path) if path else {}

    if env is None:
        merged: dict[str, Optional[str]] = {}
        if env_file and os.path.exists(env_file):
            merged.update(dotenv_values(env_file))
        merged.update(os.environ)
        env = merged
    values.update(_from_env(env))

    try:
        settings = Settings(**values)
    except ValidationError as exc:
        errors = "; ".join(f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors())
        log.error("Invalid settings", errors=errors)
        raise ConfigurationError("Invalid settings", errors=errors) from exc

    log.debug(
        "Settings loaded",
        source=path or "env",
        cache_dir=str(settings.cache_dir),
        has_token=settings.stratz_api_token is not None,
    )
    return settings
