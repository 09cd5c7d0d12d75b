"""Swap quote relay.

Forwards an exact-input quote request to a Uniswap V3 QuoterV2 contract over
the configured JSON-RPC endpoint. No routing logic lives here: the contract
answers, we validate inputs and reshape the result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from web3 import Web3

from price_proxy.core.errors import InvalidSwapRequest, SwapRelayError

logger = logging.getLogger("price_proxy.swap")

FEE_TIERS = (100, 500, 3000, 10000)

QUOTER_V2_ABI = [
    {
        "inputs": [
            {
                "components": [
                    {"internalType": "address", "name": "tokenIn", "type": "address"},
                    {"internalType": "address", "name": "tokenOut", "type": "address"},
                    {"internalType": "uint256", "name": "amountIn", "type": "uint256"},
                    {"internalType": "uint24", "name": "fee", "type": "uint24"},
                    {"internalType": "uint160", "name": "sqrtPriceLimitX96", "type": "uint160"},
                ],
                "internalType": "struct IQuoterV2.QuoteExactInputSingleParams",
                "name": "params",
                "type": "tuple",
            }
        ],
        "name": "quoteExactInputSingle",
        "outputs": [
            {"internalType": "uint256", "name": "amountOut", "type": "uint256"},
            {"internalType": "uint160", "name": "sqrtPriceX96After", "type": "uint160"},
            {"internalType": "uint32", "name": "initializedTicksCrossed", "type": "uint32"},
            {"internalType": "uint256", "name": "gasEstimate", "type": "uint256"},
        ],
        "stateMutability": "nonpayable",
        "type": "function",
    }
]


@dataclass(frozen=True)
class SwapQuoteRequest:
    token_in: str
    token_out: str
    amount_in: int
    fee: int


@dataclass(frozen=True)
class SwapQuote:
    request: SwapQuoteRequest
    amount_out: int
    gas_estimate: int

    def as_dict(self) -> Dict[str, Any]:
        return {
            "tokenIn": self.request.token_in,
            "tokenOut": self.request.token_out,
            "amountIn": str(self.request.amount_in),
            "amountOut": str(self.amount_out),
            "fee": self.request.fee,
            "gasEstimate": str(self.gas_estimate),
        }


def _checksum(value: Any, field: str) -> str:
    if not isinstance(value, str) or not Web3.is_address(value):
        raise InvalidSwapRequest(f"{field} must be a token address")
    return Web3.to_checksum_address(value)


def parse_swap_request(payload: Mapping[str, Any], default_fee: int) -> SwapQuoteRequest:
    missing = [f for f in ("tokenIn", "tokenOut", "amountIn") if payload.get(f) is None]
    if missing:
        raise InvalidSwapRequest(f"missing required fields: {', '.join(missing)}")
    token_in = _checksum(payload["tokenIn"], "tokenIn")
    token_out = _checksum(payload["tokenOut"], "tokenOut")
    if token_in == token_out:
        raise InvalidSwapRequest("tokenIn and tokenOut must differ")
    raw_amount = payload["amountIn"]
    if isinstance(raw_amount, bool) or not str(raw_amount).isdecimal():
        raise InvalidSwapRequest("amountIn must be a base-unit integer string")
    amount_in = int(str(raw_amount))
    if amount_in <= 0:
        raise InvalidSwapRequest("amountIn must be positive")
    fee = payload.get("fee", default_fee)
    if isinstance(fee, bool) or not isinstance(fee, int) or fee not in FEE_TIERS:
        raise InvalidSwapRequest(f"fee must be one of {FEE_TIERS}")
    return SwapQuoteRequest(token_in, token_out, amount_in, fee)


class SwapQuoteRelay:
    def __init__(
        self,
        rpc_url: Optional[str],
        quoter_address: str,
        *,
        default_fee: int = 3000,
        timeout: float = 5.0,
        quoter: Any = None,
    ):
        self._rpc_url = rpc_url
        self._quoter_address = quoter_address
        self._default_fee = default_fee
        self._timeout = timeout
        self._quoter = quoter

    @property
    def configured(self) -> bool:
        return self._quoter is not None or bool(self._rpc_url)

    def _get_quoter(self) -> Any:
        if self._quoter is None:
            if not self._rpc_url:
                raise SwapRelayError("swap relay RPC endpoint not configured", status_code=503)
            w3 = Web3(
                Web3.HTTPProvider(self._rpc_url, request_kwargs={"timeout": self._timeout})
            )
            self._quoter = w3.eth.contract(
                address=Web3.to_checksum_address(self._quoter_address), abi=QUOTER_V2_ABI
            )
        return self._quoter

    def quote(self, payload: Mapping[str, Any]) -> SwapQuote:
        request = parse_swap_request(payload, self._default_fee)
        quoter = self._get_quoter()
        try:
            result = quoter.functions.quoteExactInputSingle(
                {
                    "tokenIn": request.token_in,
                    "tokenOut": request.token_out,
                    "amountIn": request.amount_in,
                    "fee": request.fee,
                    "sqrtPriceLimitX96": 0,
                }
            ).call()
        except Exception as e:  # web3 surfaces RPC, ABI and revert errors with unrelated types
            logger.warning("quoter call failed: %s", e)
            raise SwapRelayError(f"quoter call failed: {e}") from e
        return SwapQuote(request=request, amount_out=int(result[0]), gas_estimate=int(result[3]))
