import importlib
from decimal import Decimal

import pytest
from pydantic import ValidationError

from price_proxy.core.config import Settings
from price_proxy.services.admin import AdminGate


def test_defaults_derive_prices_path(tmp_path) -> None:
    s = Settings(_env_file=None, data_dir=tmp_path / "d")
    s.init_post_load()
    assert s.prices_path == tmp_path / "d" / "prices.json"
    assert s.prices_path.parent.is_dir()
    assert s.rates_cache_ttl_seconds == 1800
    assert s.seed_rate == Decimal("0.45")
    assert s.nova_price_usd == Decimal("0.00007")
    assert s.port == 3001


def test_env_overrides(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("ADMIN_SECRET", "from-env")
    monkeypatch.setenv("RATE_SYMBOL", "matic")
    monkeypatch.setenv("SEED_RATE", "0.5")
    s = Settings(_env_file=None, data_dir=tmp_path)
    s.init_post_load()
    assert s.admin_secret == "from-env"
    assert s.rate_symbol == "MATIC"
    assert s.seed_rate == Decimal("0.5")


def test_unknown_provider_rejected(tmp_path) -> None:
    s = Settings(_env_file=None, data_dir=tmp_path, rate_provider="carrier-pigeon")
    with pytest.raises(ValueError):
        s.init_post_load()


@pytest.mark.parametrize("field", ["seed_rate", "nova_price_usd"])
def test_rates_must_be_positive(tmp_path, field) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, data_dir=tmp_path, **{field: "0"})


@pytest.mark.parametrize(
    "module",
    [
        "price_proxy.models.prices",
        "price_proxy.routers.deps",
        "price_proxy.routers.prices",
        "price_proxy.services.http_client",
        "price_proxy.services.price_store",
        "price_proxy.services.rates.base",
        "price_proxy.services.rates.cache_service",
        "price_proxy.services.rates.conversion",
        "price_proxy.services.rates.providers",
        "price_proxy.services.swap_relay",
    ],
)
def test_module_docstrings(module) -> None:
    assert importlib.import_module(module).__doc__


class TestAdminGate:
    def test_matching_secret(self) -> None:
        assert AdminGate("s3cret").authorize("s3cret") is True

    @pytest.mark.parametrize("provided", [None, "", "s3cre", "s3cret ", "S3CRET"])
    def test_mismatch(self, provided) -> None:
        assert AdminGate("s3cret").authorize(provided) is False

    def test_unconfigured_rejects_everything(self) -> None:
        gate = AdminGate(None)
        assert gate.enabled is False
        assert gate.authorize("") is False
        assert gate.authorize("anything") is False
