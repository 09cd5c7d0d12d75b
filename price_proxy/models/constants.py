from decimal import Decimal
from typing import Any, Dict

PASSES = "passes"
CORES = "cores"
CATEGORIES = (PASSES, CORES)

PASS_TIERS = ("basic", "premium", "ultimate")
CORE_ITEMS = ("boost", "nft", "point")
BOOST_TIER_COUNT = 30

# Packaged USD price list; deployments override it with Settings.default_prices_file.
DEFAULT_FIAT_PRICES: Dict[str, Dict[str, Any]] = {
    PASSES: {
        "basic": Decimal("50"),
        "premium": Decimal("150"),
        "ultimate": Decimal("300"),
    },
    CORES: {
        # boost tier n costs 1 USD plus 0.25 USD per tier step
        "boost": {
            tier: Decimal("1") + Decimal("0.25") * tier
            for tier in range(BOOST_TIER_COUNT)
        },
        "nft": Decimal("2"),
        "point": Decimal("3"),
    },
}
