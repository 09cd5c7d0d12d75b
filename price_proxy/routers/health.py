import time

from fastapi import APIRouter, Depends, Request

from price_proxy.core.errors import utc_now_iso
from price_proxy.services.rates.cache_service import RateCache
from .deps import get_rate_cache

router = APIRouter(tags=["health"])


@router.get("/health", summary="Liveness plus rate cache state")
async def health(request: Request, cache: RateCache = Depends(get_rate_cache)):
    snapshot = cache.peek()
    return {
        "status": "ok",
        "cache": {
            "valid": snapshot.cached,
            "remainingSeconds": round(cache.remaining_validity(), 3),
            "fetchedAt": snapshot.fetched_at.isoformat() if snapshot.fetched_at else None,
        },
        "rate": float(snapshot.value),
        "symbol": cache.symbol,
        "swapRelayConfigured": request.app.state.swap_relay.configured,
        "uptimeSeconds": round(time.monotonic() - request.app.state.started_at, 3),
        "timestamp": utc_now_iso(),
    }
