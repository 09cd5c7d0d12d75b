"""Prices router.

Reads serve the stored document as-is. Mutations (admin only) resolve the
reference token rate, convert the submitted USD prices into base units of both
tokens and replace the whole category in the store before answering.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable

from fastapi import APIRouter, Depends, Request

from price_proxy.core.config import Settings
from price_proxy.core.errors import InvalidAmount, MissingFields, utc_now_iso
from price_proxy.models.constants import CORE_ITEMS, CORES, PASS_TIERS, PASSES
from price_proxy.services.price_store import PriceStore
from price_proxy.services.rates.cache_service import RateCache, RateSnapshot
from price_proxy.services.rates.conversion import (
    convert_category,
    count_tiers,
    parse_fiat_category,
)
from .deps import get_app_settings, get_price_store, get_rate_cache, require_admin

router = APIRouter(prefix="/api/prices", tags=["prices"])
logger = logging.getLogger("price_proxy.prices")


async def _read_payload(request: Request) -> Dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError as e:
        raise InvalidAmount("request body must be a JSON object") from e
    if not isinstance(payload, dict):
        raise InvalidAmount("request body must be a JSON object")
    return payload


def _pick_fields(payload: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    missing = [f for f in fields if payload.get(f) is None]
    if missing:
        raise MissingFields(missing)
    return {f: payload[f] for f in fields}


def _resolve_rate(cache: RateCache, settings: Settings) -> RateSnapshot:
    if settings.refresh_rate_on_update:
        return cache.refresh()
    return cache.get_rate()


def _secondary_only(leaf: Dict[str, Any]) -> Dict[str, Any]:
    if "secondaryWei" in leaf:
        return {"secondaryWei": leaf["secondaryWei"]}
    return {tier: {"secondaryWei": pair["secondaryWei"]} for tier, pair in leaf.items()}


@router.get("/pol", summary="Reference token USD price (cached)")
async def get_reference_rate(cache: RateCache = Depends(get_rate_cache)):
    snapshot = cache.get_rate()
    return {**snapshot.as_dict(), "symbol": cache.symbol, "timestamp": utc_now_iso()}


@router.get("/all", summary="Full price document")
async def get_all_prices(store: PriceStore = Depends(get_price_store)):
    return store.read()


@router.get("/passes", summary="Pass prices in base units")
async def get_passes(store: PriceStore = Depends(get_price_store)):
    return store.read_category(PASSES)


@router.get("/passes/nova-only", summary="Pass prices in the fixed-rate token only")
async def get_passes_nova_only(store: PriceStore = Depends(get_price_store)):
    passes = store.read_category(PASSES)
    return {item: _secondary_only(leaf) for item, leaf in passes.items()}


@router.get("/cores", summary="Core prices in base units, including the boost tiers")
async def get_cores(store: PriceStore = Depends(get_price_store)):
    return store.read_category(CORES)


@router.post("/passes", summary="Replace pass prices from USD amounts")
async def update_passes(
    request: Request,
    _: bool = Depends(require_admin),
    settings: Settings = Depends(get_app_settings),
    cache: RateCache = Depends(get_rate_cache),
    store: PriceStore = Depends(get_price_store),
):
    payload = await _read_payload(request)
    fiat = parse_fiat_category(_pick_fields(payload, PASS_TIERS))
    rate = _resolve_rate(cache, settings)
    converted = convert_category(fiat, rate.value, settings.nova_price_usd)
    saved = store.write_category(PASSES, converted)
    logger.info("pass prices updated", extra={"rate": str(rate.value)})
    return {
        "success": True,
        "prices": saved,
        "rateUsed": float(rate.value),
        "timestamp": utc_now_iso(),
    }


@router.post("/cores", summary="Replace core prices (boost tiers, nft, point) from USD amounts")
async def update_cores(
    request: Request,
    _: bool = Depends(require_admin),
    settings: Settings = Depends(get_app_settings),
    cache: RateCache = Depends(get_rate_cache),
    store: PriceStore = Depends(get_price_store),
):
    payload = await _read_payload(request)
    fiat = parse_fiat_category(_pick_fields(payload, CORE_ITEMS))
    rate = _resolve_rate(cache, settings)
    converted = convert_category(fiat, rate.value, settings.nova_price_usd)
    saved = store.write_category(CORES, converted)
    logger.info("core prices updated", extra={"rate": str(rate.value)})
    return {
        "success": True,
        "prices": saved,
        "tierCount": count_tiers(fiat),
        "rateUsed": float(rate.value),
        "timestamp": utc_now_iso(),
    }


@router.post("/reset", summary="Restore the default price document")
async def reset_prices(
    _: bool = Depends(require_admin),
    store: PriceStore = Depends(get_price_store),
):
    prices = store.reset()
    logger.info("price document reset to defaults")
    return {"success": True, "prices": prices, "timestamp": utc_now_iso()}
