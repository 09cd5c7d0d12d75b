import pytest
from fastapi.testclient import TestClient
from web3 import Web3

from price_proxy.core.errors import InvalidSwapRequest, SwapRelayError
from price_proxy.main import create_app
from price_proxy.services.swap_relay import SwapQuoteRelay, parse_swap_request

WMATIC = "0x0d500b1d8e8ef31e21c99d1db9a6444d3adf1270"
USDC = "0x2791bca1f2de4661ed88a30c99a7a9449aa84174"


class FakeQuoter:
    """Stands in for the web3 contract object: quoter.functions.quoteExactInputSingle(p).call()."""

    def __init__(self, result=(1234, 0, 1, 90000), error=None):
        self.result = result
        self.error = error
        self.calls = []

    @property
    def functions(self):
        return self

    def quoteExactInputSingle(self, params):
        self.calls.append(params)
        return self

    def call(self):
        if self.error is not None:
            raise self.error
        return self.result


def _relay(quoter=None, rpc_url=None) -> SwapQuoteRelay:
    return SwapQuoteRelay(rpc_url, "0x61fFE014bA17989E743c5F6cB21bF9697530B21e", quoter=quoter)


class TestParseSwapRequest:
    def test_valid_request(self) -> None:
        req = parse_swap_request({"tokenIn": WMATIC, "tokenOut": USDC, "amountIn": "1000"}, 3000)
        assert req.amount_in == 1000
        assert req.fee == 3000
        assert req.token_in == Web3.to_checksum_address(WMATIC)

    @pytest.mark.parametrize(
        "payload",
        [
            {"tokenOut": USDC, "amountIn": "1"},
            {"tokenIn": "not-an-address", "tokenOut": USDC, "amountIn": "1"},
            {"tokenIn": WMATIC, "tokenOut": WMATIC, "amountIn": "1"},
            {"tokenIn": WMATIC, "tokenOut": USDC, "amountIn": "1.5"},
            {"tokenIn": WMATIC, "tokenOut": USDC, "amountIn": "0"},
            {"tokenIn": WMATIC, "tokenOut": USDC, "amountIn": "1", "fee": 42},
            {"tokenIn": WMATIC, "tokenOut": USDC, "amountIn": "1", "fee": True},
        ],
    )
    def test_invalid_requests(self, payload) -> None:
        with pytest.raises(InvalidSwapRequest):
            parse_swap_request(payload, 3000)


class TestRelay:
    def test_quote_passes_params_through(self) -> None:
        quoter = FakeQuoter()
        quote = _relay(quoter).quote(
            {"tokenIn": WMATIC, "tokenOut": USDC, "amountIn": "1000", "fee": 500}
        )
        assert quoter.calls[0]["amountIn"] == 1000
        assert quoter.calls[0]["fee"] == 500
        assert quoter.calls[0]["sqrtPriceLimitX96"] == 0
        assert quote.as_dict()["amountOut"] == "1234"
        assert quote.as_dict()["gasEstimate"] == "90000"

    def test_not_configured(self) -> None:
        relay = _relay()
        assert relay.configured is False
        with pytest.raises(SwapRelayError) as exc:
            relay.quote({"tokenIn": WMATIC, "tokenOut": USDC, "amountIn": "1"})
        assert exc.value.status_code == 503

    def test_quoter_failure_wrapped(self) -> None:
        relay = _relay(FakeQuoter(error=RuntimeError("execution reverted")))
        with pytest.raises(SwapRelayError) as exc:
            relay.quote({"tokenIn": WMATIC, "tokenOut": USDC, "amountIn": "1"})
        assert exc.value.status_code == 502


class TestSwapEndpoint:
    def test_quote_endpoint(self, settings, provider, clock) -> None:
        app = create_app(settings, rate_provider=provider, clock=clock, swap_relay=_relay(FakeQuoter()))
        resp = TestClient(app).post(
            "/api/swap/quote", json={"tokenIn": WMATIC, "tokenOut": USDC, "amountIn": "5"}
        )
        assert resp.status_code == 200
        assert resp.json()["amountOut"] == "1234"
        assert "timestamp" in resp.json()

    def test_unconfigured_relay_returns_503(self, client) -> None:
        resp = client.post(
            "/api/swap/quote", json={"tokenIn": WMATIC, "tokenOut": USDC, "amountIn": "5"}
        )
        assert resp.status_code == 503
        assert resp.json()["error"] == "swap_relay_unavailable"

    def test_bad_request_returns_400(self, client) -> None:
        resp = client.post("/api/swap/quote", json={"tokenIn": "x"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "invalid_swap_request"
