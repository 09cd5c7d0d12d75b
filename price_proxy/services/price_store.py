"""JSON-file backed price document store.

The document holds every category of converted prices. Reads never fail: a
missing, unreadable or malformed file yields a copy of the default document
(computed once at startup) and leaves the file alone. Writes replace one
category (or the whole document on reset) through a temp file + os.replace so
a crash never leaves a half-written document behind.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import re
import threading
import uuid
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from price_proxy.core.errors import MalformedPersistedState, PersistenceFailure
from price_proxy.models.constants import CATEGORIES, DEFAULT_FIAT_PRICES
from price_proxy.models.prices import FiatPriceSpec, PriceDocument
from price_proxy.services.rates.conversion import convert_all, parse_fiat_spec

logger = logging.getLogger("price_proxy.store")

_BASE_UNITS = re.compile(r"^(0|[1-9][0-9]*)$")
_PAIR_KEYS = {"primaryWei", "secondaryWei"}


def _is_converted_pair(value: Any) -> bool:
    return (
        isinstance(value, dict)
        and set(value) == _PAIR_KEYS
        and all(isinstance(v, str) and _BASE_UNITS.match(v) for v in value.values())
    )


def _is_valid_leaf(value: Any) -> bool:
    if _is_converted_pair(value):
        return True
    return (
        isinstance(value, dict)
        and bool(value)
        and all(
            isinstance(k, str) and k.isdecimal() and _is_converted_pair(v)
            for k, v in value.items()
        )
    )


def validate_document(doc: Any, required: Iterable[str] = ()) -> PriceDocument:
    if not isinstance(doc, dict):
        raise MalformedPersistedState("price document is not an object")
    for name in required:
        if name not in doc:
            raise MalformedPersistedState(f"category '{name}' missing")
    for name, items in doc.items():
        if not isinstance(items, dict):
            raise MalformedPersistedState(f"category '{name}' is not an object")
        for item, leaf in items.items():
            if not _is_valid_leaf(leaf):
                raise MalformedPersistedState(f"'{name}.{item}' is not a converted price")
    return doc


def load_default_fiat_spec(path: Optional[Path] = None) -> FiatPriceSpec:
    """Fiat defaults from a JSON file when configured, else the packaged list."""
    if path is None:
        return parse_fiat_spec(DEFAULT_FIAT_PRICES)
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    if not isinstance(raw, dict):
        raise ValueError(f"default prices file {path} must hold a JSON object")
    missing = [name for name in CATEGORIES if name not in raw]
    if missing:
        raise ValueError(
            f"default prices file {path} is missing categories: {', '.join(missing)}"
        )
    return parse_fiat_spec(raw)


def build_default_document(
    fiat_spec: FiatPriceSpec, seed_rate: Decimal, secondary_rate: Decimal
) -> PriceDocument:
    return convert_all(fiat_spec, seed_rate, secondary_rate)


class PriceStore:
    def __init__(self, path: Path, default_document: PriceDocument):
        self._path = Path(path)
        self._default = validate_document(copy.deepcopy(default_document), CATEGORIES)
        self._required = tuple(self._default)
        # read-modify-persist runs as one step
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def default_document(self) -> PriceDocument:
        return copy.deepcopy(self._default)

    def ensure_initialized(self) -> None:
        if self._path.exists():
            return
        logger.info("price document %s missing; writing defaults", self._path)
        self._write(self._default)

    def read(self) -> PriceDocument:
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                doc = json.load(f)
        except FileNotFoundError:
            logger.warning("price document %s not found; serving defaults", self._path)
            return self.default_document
        except (OSError, ValueError) as e:
            logger.warning("price document %s unreadable (%s); serving defaults", self._path, e)
            return self.default_document
        try:
            return validate_document(doc, self._required)
        except MalformedPersistedState as e:
            logger.warning("price document %s malformed (%s); serving defaults", self._path, e)
            return self.default_document

    def read_category(self, name: str) -> Dict[str, Any]:
        return self.read()[name]

    def write_category(self, name: str, subtree: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            doc = self.read()
            doc[name] = copy.deepcopy(subtree)
            self._write(doc)
            return doc[name]

    def reset(self) -> PriceDocument:
        with self._lock:
            self._write(self._default)
        return self.default_document

    def _write(self, doc: PriceDocument) -> None:
        tmp_path = self._path.with_name(f".{self._path.name}.{uuid.uuid4().hex}.tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(doc, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self._path)
        except OSError as e:
            logger.exception("failed to persist price document %s", self._path)
            try:
                if tmp_path.exists():
                    tmp_path.unlink()
            except OSError:
                logger.warning("could not remove temp file %s", tmp_path)
            raise PersistenceFailure(f"could not persist price document: {e}") from e
