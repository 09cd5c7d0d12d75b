from fastapi import APIRouter, Depends, Request

from price_proxy.core.errors import InvalidSwapRequest, utc_now_iso
from price_proxy.services.swap_relay import SwapQuoteRelay
from .deps import get_swap_relay

router = APIRouter(prefix="/api/swap", tags=["swap"])


@router.post("/quote", summary="Exact-input swap quote from the on-chain quoter")
async def swap_quote(request: Request, relay: SwapQuoteRelay = Depends(get_swap_relay)):
    try:
        payload = await request.json()
    except ValueError as e:
        raise InvalidSwapRequest("request body must be a JSON object") from e
    if not isinstance(payload, dict):
        raise InvalidSwapRequest("request body must be a JSON object")
    quote = relay.quote(payload)
    return {**quote.as_dict(), "timestamp": utc_now_iso()}
