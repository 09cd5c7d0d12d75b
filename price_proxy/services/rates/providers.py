"""Concrete rate providers and factory.

'static' always answers with the configured seed rate; 'coinmarketcap' queries
the CoinMarketCap latest-quotes endpoint for one symbol against USD.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Optional

from price_proxy.core.config import Settings
from price_proxy.core.errors import UpstreamUnavailable
from price_proxy.services.http_client import build_url, get_json, HttpError
from .base import RateProvider

CMC_QUOTES_PATH = "/v1/cryptocurrency/quotes/latest"
CMC_API_KEY_HEADER = "X-CMC_PRO_API_KEY"


class StaticRateProvider(RateProvider):
    name = "static"

    def __init__(self, rate: Decimal):
        self._rate = rate

    def fetch_usd_price(self, symbol: str) -> Decimal:  # type: ignore[override]
        return self._rate


class CoinMarketCapRateProvider(RateProvider):
    name = "coinmarketcap"

    def __init__(
        self,
        api_key: Optional[str],
        *,
        base_url: str = "https://pro-api.coinmarketcap.com",
        timeout: float = 5.0,
        retries: int = 1,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._retries = retries

    def fetch_usd_price(self, symbol: str) -> Decimal:  # type: ignore[override]
        if not self._api_key:
            raise UpstreamUnavailable("coinmarketcap api key not configured")
        symbol = symbol.upper()
        url = build_url(
            self._base_url + CMC_QUOTES_PATH, {"symbol": symbol, "convert": "USD"}
        )
        try:
            payload = get_json(
                url,
                headers={CMC_API_KEY_HEADER: self._api_key},
                timeout=self._timeout,
                retries=self._retries,
            )
        except HttpError as e:
            raise UpstreamUnavailable(str(e)) from e
        return extract_usd_price(payload, symbol)


def extract_usd_price(payload: Dict[str, Any], symbol: str) -> Decimal:
    """Pull data.<SYMBOL>.quote.USD.price; the v2-style list form is accepted too."""
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, dict):
        raise UpstreamUnavailable(f"unexpected quote response shape for {symbol}")
    entry: Any = data.get(symbol)
    if isinstance(entry, list):
        entry = entry[0] if entry else None
    try:
        raw = entry["quote"]["USD"]["price"]  # type: ignore[index]
    except (KeyError, TypeError) as e:
        raise UpstreamUnavailable(f"quote for {symbol} missing from response") from e
    if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
        raise UpstreamUnavailable(f"quote for {symbol} is not numeric: {raw!r}")
    try:
        return Decimal(str(raw))
    except InvalidOperation as e:
        raise UpstreamUnavailable(f"quote for {symbol} is not numeric: {raw!r}") from e


_PROVIDER_REGISTRY: Dict[str, Callable[[Settings], RateProvider]] = {
    "static": lambda s: StaticRateProvider(s.seed_rate),
    "coinmarketcap": lambda s: CoinMarketCapRateProvider(
        s.cmc_api_key,
        base_url=s.cmc_base_url,
        timeout=s.http_timeout_seconds,
        retries=s.http_retries,
    ),
}


def make_rate_provider(settings: Settings) -> RateProvider:
    factory = _PROVIDER_REGISTRY.get(settings.rate_provider)
    if not factory:
        raise ValueError(f"Unknown rate provider kind '{settings.rate_provider}'")
    return factory(settings)
