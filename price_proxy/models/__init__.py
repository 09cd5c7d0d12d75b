"""Domain types for the price proxy."""

from .constants import (
    CATEGORIES,
    CORES,
    PASSES,
    DEFAULT_FIAT_PRICES,
)  # re-export
from .prices import (
    ConvertedPrice,
    FiatLeaf,
    FiatPriceSpec,
    PriceDocument,
    SingleAmount,
    TieredAmount,
)

__all__ = [
    "CATEGORIES",
    "CORES",
    "PASSES",
    "DEFAULT_FIAT_PRICES",
    "ConvertedPrice",
    "FiatLeaf",
    "FiatPriceSpec",
    "PriceDocument",
    "SingleAmount",
    "TieredAmount",
]
