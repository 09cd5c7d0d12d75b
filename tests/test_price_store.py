import json
import os
from decimal import Decimal

import pytest

from price_proxy.core.errors import MalformedPersistedState, PersistenceFailure
from price_proxy.services.price_store import (
    PriceStore,
    build_default_document,
    load_default_fiat_spec,
    validate_document,
)
from price_proxy.services.rates.conversion import convert_category, parse_fiat_category


@pytest.fixture
def default_document():
    return build_default_document(
        load_default_fiat_spec(), Decimal("0.45"), Decimal("0.00007")
    )


@pytest.fixture
def store(tmp_path, default_document) -> PriceStore:
    s = PriceStore(tmp_path / "prices.json", default_document)
    s.ensure_initialized()
    return s


def _leftover_temp_files(directory):
    return [p for p in directory.iterdir() if p.name.endswith(".tmp")]


class TestDefaults:
    def test_packaged_defaults_shape(self, default_document) -> None:
        assert list(default_document) == ["passes", "cores"]
        assert list(default_document["passes"]) == ["basic", "premium", "ultimate"]
        assert list(default_document["cores"]["boost"]) == [str(i) for i in range(30)]

    def test_defaults_from_file(self, tmp_path) -> None:
        path = tmp_path / "defaults.json"
        path.write_text(json.dumps({"passes": {"basic": 10}, "cores": {"boost": {"0": 1}}}))
        spec = load_default_fiat_spec(path)
        assert list(spec) == ["passes", "cores"]

    def test_defaults_file_missing_category_rejected(self, tmp_path) -> None:
        path = tmp_path / "defaults.json"
        path.write_text(json.dumps({"passes": {"basic": 10}}))
        with pytest.raises(ValueError, match="cores"):
            load_default_fiat_spec(path)

    def test_store_requires_every_category(self, tmp_path, default_document) -> None:
        partial = {"passes": default_document["passes"]}
        with pytest.raises(MalformedPersistedState):
            PriceStore(tmp_path / "prices.json", partial)

    def test_defaults_file_must_be_object(self, tmp_path) -> None:
        path = tmp_path / "defaults.json"
        path.write_text("[1, 2]")
        with pytest.raises(ValueError):
            load_default_fiat_spec(path)


class TestRead:
    def test_initialization_writes_defaults(self, store, default_document) -> None:
        assert store.path.exists()
        assert store.read() == default_document

    def test_existing_file_not_overwritten(self, tmp_path, default_document) -> None:
        path = tmp_path / "prices.json"
        path.write_text("keep me")
        PriceStore(path, default_document).ensure_initialized()
        assert path.read_text() == "keep me"

    def test_missing_file_serves_defaults(self, tmp_path, default_document) -> None:
        s = PriceStore(tmp_path / "absent.json", default_document)
        assert s.read() == default_document
        assert not (tmp_path / "absent.json").exists()

    def test_invalid_json_serves_defaults_without_touching_file(
        self, store, default_document
    ) -> None:
        store.path.write_text("{not json")
        assert store.read() == default_document
        assert store.path.read_text() == "{not json"

    def test_legacy_usd_document_is_malformed(self, store, default_document) -> None:
        legacy = {"passes": {"basic": 50, "premium": 150, "ultimate": 300}, "cores": {}}
        store.path.write_text(json.dumps(legacy))
        assert store.read() == default_document

    def test_read_returns_copies(self, tmp_path, default_document) -> None:
        s = PriceStore(tmp_path / "absent.json", default_document)
        s.read()["passes"].clear()
        assert s.read()["passes"]

    @pytest.mark.parametrize(
        "doc",
        [
            [],
            {"passes": []},
            {"passes": {"basic": {"primaryWei": "1"}}},
            {"passes": {"basic": {"primaryWei": "1.5", "secondaryWei": "2"}}},
            {"passes": {"basic": {"primaryWei": "-1", "secondaryWei": "2"}}},
            {"passes": {"basic": {"primaryWei": 1, "secondaryWei": "2"}}},
            {"cores": {"boost": {"x": {"primaryWei": "1", "secondaryWei": "2"}}}},
            {"cores": {"boost": {}}},
        ],
    )
    def test_validate_rejects(self, doc) -> None:
        with pytest.raises(MalformedPersistedState):
            validate_document(doc)

    def test_validate_requires_categories(self) -> None:
        with pytest.raises(MalformedPersistedState):
            validate_document({"passes": {}}, required=("passes", "cores"))


class TestWrite:
    def _passes(self, basic=50):
        fiat = parse_fiat_category({"basic": basic, "premium": 150, "ultimate": 300})
        return convert_category(fiat, "0.2", "0.00007")

    def test_write_category_replaces_only_that_category(self, store, default_document) -> None:
        passes = self._passes()
        saved = store.write_category("passes", passes)
        assert saved == passes
        doc = store.read()
        assert doc["passes"] == passes
        assert doc["cores"] == default_document["cores"]

    def test_write_on_malformed_file_starts_from_defaults(self, store, default_document) -> None:
        store.path.write_text("garbage")
        store.write_category("passes", self._passes())
        assert store.read()["cores"] == default_document["cores"]

    def test_failed_replace_leaves_previous_document(self, store, monkeypatch) -> None:
        before = store.path.read_bytes()

        def broken_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", broken_replace)
        with pytest.raises(PersistenceFailure):
            store.write_category("passes", self._passes(basic=99))
        assert store.path.read_bytes() == before
        assert _leftover_temp_files(store.path.parent) == []

    def test_reset_restores_defaults_byte_for_byte(self, store, default_document) -> None:
        store.write_category("passes", self._passes())
        prices = store.reset()
        assert prices == default_document
        assert store.path.read_text(encoding="utf-8") == json.dumps(default_document, indent=2)
