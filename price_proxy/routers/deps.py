"""Dependency helpers resolving the per-application service objects.

create_app() stores one instance of each service on app.state; handlers get
them from here so tests can build an app around fakes.
"""

from __future__ import annotations

from fastapi import Depends, Request

from price_proxy.core.config import Settings
from price_proxy.core.errors import Unauthorized
from price_proxy.services.admin import AdminGate
from price_proxy.services.price_store import PriceStore
from price_proxy.services.rates.cache_service import RateCache
from price_proxy.services.swap_relay import SwapQuoteRelay


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_rate_cache(request: Request) -> RateCache:
    return request.app.state.rate_cache


def get_price_store(request: Request) -> PriceStore:
    return request.app.state.price_store


def get_admin_gate(request: Request) -> AdminGate:
    return request.app.state.admin_gate


def get_swap_relay(request: Request) -> SwapQuoteRelay:
    return request.app.state.swap_relay


def require_admin(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    gate: AdminGate = Depends(get_admin_gate),
) -> bool:
    header = settings.admin_header_name
    if not gate.authorize(request.headers.get(header)):
        raise Unauthorized(f"missing or invalid {header} header")
    return True
