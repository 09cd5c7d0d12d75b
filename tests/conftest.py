from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from price_proxy.core.config import Settings
from price_proxy.core.errors import UpstreamUnavailable
from price_proxy.main import create_app
from price_proxy.services.rates.base import RateProvider

ADMIN_SECRET = "test-admin-secret"
ADMIN_HEADERS = {"X-Admin-Secret": ADMIN_SECRET}


class StubProvider(RateProvider):
    name = "stub"

    def __init__(self, rate: str = "0.2"):
        self.rate = Decimal(rate)
        self.calls = 0
        self.fail = False

    def fetch_usd_price(self, symbol: str) -> Decimal:
        self.calls += 1
        if self.fail:
            raise UpstreamUnavailable("stub provider down")
        return self.rate


class FakeClock:
    def __init__(self):
        self.now = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def settings(tmp_path) -> Settings:
    s = Settings(
        _env_file=None,
        data_dir=tmp_path / "data",
        rate_provider="static",
        admin_secret=ADMIN_SECRET,
        cmc_api_key=None,
        swap_rpc_url=None,
    )
    s.init_post_load()
    return s


@pytest.fixture
def provider() -> StubProvider:
    return StubProvider()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def app(settings, provider, clock):
    return create_app(settings, rate_provider=provider, clock=clock)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def admin_headers() -> dict:
    return dict(ADMIN_HEADERS)
