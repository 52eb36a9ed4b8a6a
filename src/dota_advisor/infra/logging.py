"""
Structured logging for the advisor, built on structlog.

Overview
--------
Configure structlog once per process and hand out loggers that always carry
the three correlation fields the project relies on: ``component``, ``event``
and ``thread_id``. Aggregators log dropped records and skipped matches through
these loggers; the client logs upstream failures; the warmup job logs per
target progress.

Design
------
- ``setup_logging`` is idempotent and bridges stdlib logging so third-party
  libraries (requests/urllib3) end up in the same stream.
- JSON rendering by default (cron/warmup logs are machine-read); a console
  renderer can be selected for interactive runs.
- A processor backfills missing core fields instead of failing.

Usage
-----
>>> from dota_advisor.infra.logging import setup_logging, logger_for
>>> setup_logging("DEBUG", json=False)
>>> log = logger_for(component="core.ranking", event="build")
>>> log.info("Ranking built", heroes=6)
"""

from __future__ import annotations

import logging
import sys
import uuid
from typing import Any, Final

import structlog

DEFAULT_COMPONENT: Final[str] = "unspecified.component"
DEFAULT_EVENT: Final[str] = "unspecified.event"
DEFAULT_THREAD_ID: Final[str] = "no-thread-id"

__all__: Final[list[str]] = [
    "setup_logging",
    "logger_for",
    "generate_thread_id",
    "reset_logging",
]

_CONFIGURED: bool = False


def _ensure_core_fields(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Backfill ``component``, ``event`` and ``thread_id`` when absent."""

    event_dict.setdefault("component", DEFAULT_COMPONENT)
    event_dict.setdefault("event", DEFAULT_EVENT)
    event_dict.setdefault("thread_id", DEFAULT_THREAD_ID)
    return event_dict


def _resolve_level(level: int | str) -> int:
    """Resolve a logging level from an ``int`` or a case-insensitive name."""

    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(level: int | str = "INFO", *, json: bool = True) -> None:
    """Configure structlog and the stdlib logging bridge.

    Calling this more than once is a no-op; use :func:`reset_logging` in tests
    that need a different configuration.

    Args:
        level: Minimum level, e.g. ``"INFO"`` or ``logging.DEBUG``.
        json: Render JSON lines when ``True``, colourless console output otherwise.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    resolved_level = _resolve_level(level)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=resolved_level,
        force=True,
    )

    renderer: Any
    if json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False, pad_event_to=0)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _ensure_core_fields,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _CONFIGURED = True


def reset_logging() -> None:
    """Forget the current configuration so ``setup_logging`` runs again."""

    global _CONFIGURED
    structlog.reset_defaults()
    _CONFIGURED = False


def generate_thread_id() -> str:
    """Return a fresh hex correlation id for one request or job run."""

    return uuid.uuid4().hex


def logger_for(component: str, event: str, thread_id: str | None = None) -> structlog.BoundLogger:
    """Return a logger bound with ``component``, ``event`` and ``thread_id``.

    Args:
        component: Dotted component name, e.g. ``"data.stratz"``.
        event: Short action name, e.g. ``"fetch_hero_stats"``.
        thread_id: Correlation id; a new one is generated when omitted.
    """

    return structlog.get_logger().bind(
        component=component,
        event=event,
        thread_id=thread_id or generate_thread_id(),
    )
