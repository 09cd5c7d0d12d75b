"""Price list domain types.

Fiat side: every leaf of a price spec is either a ``SingleAmount`` or a
``TieredAmount`` (tier index -> amount). Converted side: the persisted
``PriceDocument`` mirrors the spec with each amount replaced by a
``ConvertedPrice`` pair of base-unit integer strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Union


@dataclass(frozen=True)
class SingleAmount:
    amount: Decimal


@dataclass(frozen=True)
class TieredAmount:
    tiers: Dict[int, Decimal]


FiatLeaf = Union[SingleAmount, TieredAmount]
FiatCategory = Dict[str, FiatLeaf]
FiatPriceSpec = Dict[str, FiatCategory]


@dataclass(frozen=True)
class ConvertedPrice:
    primary_wei: str
    secondary_wei: str

    def as_dict(self) -> Dict[str, str]:
        return {"primaryWei": self.primary_wei, "secondaryWei": self.secondary_wei}


# JSON form: {"passes": {"basic": {"primaryWei": "...", "secondaryWei": "..."}},
#             "cores": {"boost": {"0": {...}, "1": {...}}, ...}}
PriceDocument = Dict[str, Dict[str, Any]]
