"""USD -> token base unit ("wei") conversion.

Both inputs are fixed at 6 fractional digits (scaled by 10^6, rounded half-up)
and the result is ``scaled_amount * 10^18 // scaled_price`` computed on Python
ints, so identical inputs always give the identical integer string. Floats are
only accepted at the edge, via ``Decimal(str(value))``.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping

from price_proxy.core.errors import InvalidAmount, InvalidRate
from price_proxy.models.prices import (
    ConvertedPrice,
    FiatCategory,
    FiatLeaf,
    FiatPriceSpec,
    PriceDocument,
    SingleAmount,
    TieredAmount,
)

FIXED_POINT_DIGITS = 6
FIXED_POINT_SCALE = 10**FIXED_POINT_DIGITS
BASE_UNITS_PER_TOKEN = 10**18
# USD amounts and token prices above this are rejected before any integer math
MAX_INPUT = Decimal(10) ** 15


def _to_decimal(value: Any) -> Decimal | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float, str)):
        try:
            return Decimal(str(value).strip())
        except InvalidOperation:
            return None
    return None


def parse_fiat_amount(value: Any) -> Decimal:
    amount = _to_decimal(value)
    if amount is None or not amount.is_finite():
        raise InvalidAmount(f"fiat amount must be a finite number, got {value!r}")
    if amount < 0:
        raise InvalidAmount(f"fiat amount must not be negative, got {value!r}")
    if amount > MAX_INPUT:
        raise InvalidAmount(f"fiat amount must not exceed {MAX_INPUT:f}, got {value!r}")
    return amount


def parse_rate(value: Any) -> Decimal:
    rate = _to_decimal(value)
    if rate is None or not rate.is_finite() or rate <= 0:
        raise InvalidRate(f"token price must be a positive finite number, got {value!r}")
    if rate > MAX_INPUT:
        raise InvalidRate(f"token price must not exceed {MAX_INPUT:f}, got {value!r}")
    return rate


def _scale(value: Decimal) -> int:
    """value * 10^6 rounded half-up, exact at any precision (no decimal context)."""
    sign, digits, exponent = value.as_tuple()
    coefficient = int("".join(map(str, digits)))
    if coefficient == 0:
        return 0
    shift = exponent + FIXED_POINT_DIGITS
    if shift >= 0:
        scaled = coefficient * 10**shift
    elif -shift > len(digits):
        # every significant digit sits below half a unit of the last kept place
        scaled = 0
    else:
        divisor = 10**-shift
        scaled, remainder = divmod(coefficient, divisor)
        if 2 * remainder >= divisor:
            scaled += 1
    return -scaled if sign else scaled


def to_base_units(fiat_amount: Any, token_unit_price: Any) -> str:
    """Convert a fiat amount into base units of a token priced at token_unit_price."""
    price = parse_rate(token_unit_price)
    amount = parse_fiat_amount(fiat_amount)
    scaled_price = _scale(price)
    if scaled_price <= 0:
        raise InvalidRate(
            f"token price {token_unit_price!r} is below the 6-digit fixed-point resolution"
        )
    return str(_scale(amount) * BASE_UNITS_PER_TOKEN // scaled_price)


def convert_price(amount: Decimal, rate: Decimal, secondary_rate: Decimal) -> ConvertedPrice:
    return ConvertedPrice(
        primary_wei=to_base_units(amount, rate),
        secondary_wei=to_base_units(amount, secondary_rate),
    )


# Fiat spec parsing -------------------------------------------------
def _parse_tier_index(key: Any) -> int:
    if isinstance(key, bool):
        raise InvalidAmount(f"tier index must be a non-negative integer, got {key!r}")
    if isinstance(key, int):
        index = key
    elif isinstance(key, str) and key.strip().isdecimal():
        index = int(key.strip())
    else:
        raise InvalidAmount(f"tier index must be a non-negative integer, got {key!r}")
    if index < 0:
        raise InvalidAmount(f"tier index must be a non-negative integer, got {key!r}")
    return index


def parse_leaf(raw: Any) -> FiatLeaf:
    """Mapping -> TieredAmount (tier order kept as given), anything else -> SingleAmount."""
    if isinstance(raw, Mapping):
        if not raw:
            raise InvalidAmount("tier schedule must contain at least one tier")
        tiers: Dict[int, Decimal] = {}
        for key, value in raw.items():
            index = _parse_tier_index(key)
            if index in tiers:
                raise InvalidAmount(f"duplicate tier index {index}")
            tiers[index] = parse_fiat_amount(value)
        return TieredAmount(tiers=tiers)
    return SingleAmount(amount=parse_fiat_amount(raw))


def parse_fiat_category(raw: Mapping[str, Any]) -> FiatCategory:
    return {str(item): parse_leaf(value) for item, value in raw.items()}


def parse_fiat_spec(raw: Mapping[str, Any]) -> FiatPriceSpec:
    spec: FiatPriceSpec = {}
    for category, items in raw.items():
        if not isinstance(items, Mapping):
            raise InvalidAmount(f"category '{category}' must be an object of prices")
        spec[str(category)] = parse_fiat_category(items)
    return spec


# Conversion walkers ----------------------------------------------
def convert_leaf(leaf: FiatLeaf, rate: Decimal, secondary_rate: Decimal) -> Dict[str, Any]:
    if isinstance(leaf, SingleAmount):
        return convert_price(leaf.amount, rate, secondary_rate).as_dict()
    if isinstance(leaf, TieredAmount):
        return {
            str(tier): convert_price(amount, rate, secondary_rate).as_dict()
            for tier, amount in leaf.tiers.items()
        }
    raise TypeError(f"unsupported price leaf {type(leaf).__name__}")


def convert_category(
    category: FiatCategory, rate: Any, secondary_rate: Any
) -> Dict[str, Any]:
    primary = parse_rate(rate)
    secondary = parse_rate(secondary_rate)
    return {item: convert_leaf(leaf, primary, secondary) for item, leaf in category.items()}


def convert_all(spec: FiatPriceSpec, rate: Any, secondary_rate: Any) -> PriceDocument:
    """Convert every leaf of a fiat spec, keeping category, item and tier keys in order."""
    primary = parse_rate(rate)
    secondary = parse_rate(secondary_rate)
    return {
        name: convert_category(category, primary, secondary)
        for name, category in spec.items()
    }


def count_tiers(category: FiatCategory) -> int:
    return sum(len(leaf.tiers) for leaf in category.values() if isinstance(leaf, TieredAmount))
