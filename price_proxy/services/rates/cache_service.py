"""Reference token rate cache.

Purpose:
    Hold the last known USD price of one symbol (POL by default) for a fixed
    validity window and refresh it lazily from a RateProvider.

Design:
    - Starts from a seed rate with no fetch timestamp, so the first read refreshes.
    - A read inside the window returns the cached value (cached=True).
    - A read past the window, or an explicit refresh(), asks the provider once.
      Success replaces value + timestamp. Failure keeps both untouched and the
      previous value is returned (fallback=True): an upstream outage never blocks
      price computation.
    - No background timer. Instances are owned by the application (app.state)
      and reach handlers through dependencies.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

from .base import RateProvider

logger = logging.getLogger("price_proxy.rates")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RateSnapshot:
    value: Decimal
    fetched_at: Optional[datetime]
    cached: bool
    fallback: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return {
            "price": float(self.value),
            "fetchedAt": self.fetched_at.isoformat() if self.fetched_at else None,
            "cached": self.cached,
            "fallback": self.fallback,
        }


class RateCache:
    """TTL-bound cache of a single exchange rate with fail-open refresh."""

    def __init__(
        self,
        provider: RateProvider,
        *,
        symbol: str,
        seed_rate: Decimal,
        ttl_seconds: int,
        clock: Callable[[], datetime] | None = None,
    ):
        if seed_rate <= 0:
            raise ValueError("seed rate must be positive")
        self._provider = provider
        self._symbol = symbol.upper()
        self._seed_rate = seed_rate
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock or _utcnow
        self._value = seed_rate
        self._fetched_at: Optional[datetime] = None
        # check-then-fetch-then-store runs as one step
        self._lock = threading.Lock()

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def seed_rate(self) -> Decimal:
        return self._seed_rate

    # Internal --------------------------------------------------
    def _is_valid(self, now: datetime) -> bool:
        return self._fetched_at is not None and now - self._fetched_at < self._ttl

    def _refresh_locked(self) -> RateSnapshot:
        result = self._provider.try_fetch(self._symbol)
        if result.ok:
            self._value = result.value_or(self._value)
            self._fetched_at = self._clock()
            logger.debug(
                "rate refreshed", extra={"symbol": self._symbol, "rate": str(self._value)}
            )
        else:
            logger.warning(
                "rate refresh failed, keeping last known value: %s",
                result.error,
                extra={"symbol": self._symbol, "rate": str(self._value)},
            )
        return RateSnapshot(
            value=result.value_or(self._value),
            fetched_at=self._fetched_at,
            cached=False,
            fallback=not result.ok,
        )

    # Public API -----------------------------------------------
    def get_rate(self) -> RateSnapshot:
        with self._lock:
            if self._is_valid(self._clock()):
                return RateSnapshot(
                    value=self._value, fetched_at=self._fetched_at, cached=True
                )
            return self._refresh_locked()

    def refresh(self) -> RateSnapshot:
        with self._lock:
            return self._refresh_locked()

    def peek(self) -> RateSnapshot:
        """Current value without touching the provider."""
        with self._lock:
            return RateSnapshot(
                value=self._value,
                fetched_at=self._fetched_at,
                cached=self._is_valid(self._clock()),
            )

    def remaining_validity(self) -> float:
        with self._lock:
            if self._fetched_at is None:
                return 0.0
            remaining = self._ttl - (self._clock() - self._fetched_at)
            return max(0.0, remaining.total_seconds())
