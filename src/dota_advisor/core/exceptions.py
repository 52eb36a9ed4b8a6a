"""
Domain exceptions for the Dota Build Advisor.

Overview
--------
A small hierarchy covering the failure classes the advisor distinguishes:

- initialization failures (catalog cannot be built) abort startup;
- upstream failures (network, HTTP, GraphQL errors) are caught at the service
  boundary and turned into empty / "no data" results;
- malformed records are dropped by the aggregators and only logged;
- cache problems are logged and treated as cache misses.

Every exception keeps keyword context and renders it in ``str()``.

Usage
-----
>>> str(UpstreamError("hero stats query failed", status=502))
"hero stats query failed: status='502'"
"""

from __future__ import annotations

from typing import Final, Iterable

__all__: Final[list[str]] = [
    "AdvisorError",
    "ConfigurationError",
    "CatalogLoadError",
    "CatalogValidationError",
    "UpstreamError",
    "MalformedRecordError",
    "CacheError",
    "NotFoundError",
]


class AdvisorError(Exception):
    """Base class for all advisor errors.

    Subclasses set ``default_message`` and pass context as keyword arguments;
    ``None`` values are dropped from the rendered context.
    """

    default_message: str = "An error occurred"

    def __init__(self, message: str | None = None, **context: object) -> None:
        self.message = message or self.default_message
        self.context = {k: v for k, v in context.items() if v is not None}
        super().__init__(self.message)

    def __str__(self) -> str:
        if not self.context:
            return self.message
        kv = "; ".join(f"{k}='{v}'" for k, v in self.context.items())
        return f"{self.message}: {kv}"


class ConfigurationError(AdvisorError):
    """Invalid or missing configuration (e.g. no API token)."""

    default_message = "Invalid configuration"


class CatalogLoadError(AdvisorError):
    """The game constants catalog could not be fetched or is missing sections.

    Fatal: every aggregator depends on the catalog, so startup must abort.
    """

    default_message = "Failed to load game constants"

    def __init__(self, reason: str | None = None, *, source: str | None = None) -> None:
        super().__init__(reason=reason, source=source)


class CatalogValidationError(AdvisorError):
    """Catalog payload was present but structurally invalid."""

    default_message = "Invalid game constants payload"

    def __init__(self, errors: Iterable[str] | None = None) -> None:
        joined = "; ".join(errors) if errors else None
        super().__init__(errors=joined)


class UpstreamError(AdvisorError):
    """Network, HTTP or GraphQL failure while talking to the statistics API."""

    default_message = "Upstream request failed"


class MalformedRecordError(AdvisorError):
    """A single upstream record is missing required fields."""

    default_message = "Malformed upstream record"

    def __init__(self, kind: str, reason: str | None = None) -> None:
        super().__init__(kind=kind, reason=reason)


class CacheError(AdvisorError):
    """The on-disk skill build cache could not be read or written."""

    default_message = "Cache failure"

    def __init__(self, path: str, reason: str | None = None) -> None:
        super().__init__(path=path, reason=reason)


class NotFoundError(AdvisorError):
    """A requested entity (hero, rank, position) is unknown."""

    default_message = "Entity not found"

    def __init__(self, kind: str, identifier: object) -> None:
        super().__init__(kind=kind, identifier=identifier)
