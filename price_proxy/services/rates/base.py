"""Rate provider abstraction.

Providers raise ``UpstreamUnavailable`` from ``fetch_usd_price``; callers that
must never fail use ``try_fetch`` and pick a fallback explicitly through
``FetchResult.value_or``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from price_proxy.core.errors import InvalidRate, UpstreamUnavailable


@dataclass(frozen=True)
class FetchResult:
    value: Optional[Decimal] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.value is not None

    def value_or(self, fallback: Decimal) -> Decimal:
        return self.value if self.value is not None else fallback


class RateProvider(ABC):
    name: str = "base"

    @abstractmethod
    def fetch_usd_price(self, symbol: str) -> Decimal:
        """Return USD per 1 unit of symbol; raise UpstreamUnavailable on failure."""
        raise NotImplementedError

    def try_fetch(self, symbol: str) -> FetchResult:
        try:
            value = self.fetch_usd_price(symbol)
        except (UpstreamUnavailable, InvalidRate) as e:
            return FetchResult(error=str(e))
        except Exception as e:  # any provider fault falls back to the last known rate
            return FetchResult(error=f"{self.name} failed: {e!r}")
        if not isinstance(value, Decimal) or not value.is_finite() or value <= 0:
            return FetchResult(error=f"{self.name} returned invalid price {value!r}")
        return FetchResult(value=value)
