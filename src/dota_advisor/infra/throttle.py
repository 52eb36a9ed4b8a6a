"""
Pacing policies for sequential upstream calls.

Overview
--------
The upstream API is queried in loops (league pages, warmup targets). Instead of
sleeping inline, callers hold a throttle and call :meth:`acquire` before each
request:

- :class:`FixedIntervalThrottle` keeps a minimum spacing between calls;
- :class:`TokenBucketThrottle` allows short bursts up to ``capacity`` and a
  sustained ``rate`` per second;
- :class:`NoThrottle` never waits (tests, offline tools).

Design
------
Synchronous and single-threaded, like the rest of the request pipeline. The
clock and sleep functions are injectable so tests can run without waiting.

Usage
-----
>>> throttle = FixedIntervalThrottle(0.5)
>>> throttle.acquire()  # first call never waits
0.0
"""

from __future__ import annotations

import time
from typing import Callable, Final, Optional, Protocol

from dota_advisor.infra.logging import logger_for

__all__: Final[list[str]] = [
    "Throttle",
    "NoThrottle",
    "FixedIntervalThrottle",
    "TokenBucketThrottle",
]

Clock = Callable[[], float]
Sleeper = Callable[[float], None]


class Throttle(Protocol):
    def acquire(self) -> float:
        """Block until the next call may proceed; return the seconds waited."""
        ...


class NoThrottle:
    """A throttle that never waits."""

    def acquire(self) -> float:
        return 0.0


class FixedIntervalThrottle:
    """Enforce at least ``interval`` seconds between successive acquisitions."""

    def __init__(
        self,
        interval: float,
        *,
        clock: Clock = time.monotonic,
        sleep: Sleeper = time.sleep,
        name: str = "fixed",
    ) -> None:
        if interval < 0:
            raise ValueError("interval must be >= 0")
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._last: Optional[float] = None
        self._log = logger_for(component="infra.throttle", event=name)

    def acquire(self) -> float:
        now = self._clock()
        waited = 0.0
        if self._last is not None:
            remaining = self.interval - (now - self._last)
            if remaining > 0:
                self._log.debug("Throttling", wait_seconds=round(remaining, 3))
                self._sleep(remaining)
                waited = remaining
                now = self._clock()
        self._last = now
        return waited

    def reset(self) -> None:
        self._last = None


class TokenBucketThrottle:
    """Token bucket: ``rate`` tokens per second, at most ``capacity`` stored."""

    def __init__(
        self,
        rate: float,
        capacity: int = 1,
        *,
        clock: Clock = time.monotonic,
        sleep: Sleeper = time.sleep,
        name: str = "token_bucket",
    ) -> None:
        if rate <= 0:
            raise ValueError("rate must be > 0")
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.rate = rate
        self.capacity = capacity
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(capacity)
        self._updated = clock()
        self._log = logger_for(component="infra.throttle", event=name)

    def _refill(self) -> None:
        now = self._clock()
        self._tokens = min(self.capacity, self._tokens + (now - self._updated) * self.rate)
        self._updated = now

    def acquire(self) -> float:
        self._refill()
        waited = 0.0
        if self._tokens < 1:
            waited = (1 - self._tokens) / self.rate
            self._log.debug("Throttling", wait_seconds=round(waited, 3))
            self._sleep(waited)
            self._refill()
            # Sleep may return marginally early on some platforms.
            self._tokens = max(self._tokens, 1.0)
        self._tokens -= 1
        return waited
