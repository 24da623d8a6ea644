"""
Compiled-in fallback tables.

Served only when the price table store cannot be reached. Every price
resolved from these rows is tagged ``source="fallback"``.
"""
from .sources import PRODUCTS
from .tables import (
    BLANK_CAP, LOGO,
    PriceTierRow, ProductRow, LogoMethodRow,
)


def _prices(*values) -> dict:
    return dict(zip((48, 144, 576, 1152, 2880, 10000, 20000), values))


FALLBACK_PRICE_TIERS = [
    PriceTierRow(tier_name="Tier 1", prices=_prices(4.50, 3.20, 2.80, 2.60, 2.40, 2.20, 2.00)),
    PriceTierRow(tier_name="Tier 2", prices=_prices(5.20, 3.80, 3.40, 3.20, 3.00, 2.80, 2.60)),
]

FALLBACK_PRODUCTS = [
    ProductRow(
        name="Classic Snapback",
        price_tier="Tier 1",
        profile="High",
        bill_shape="Flat",
        panel_count=6,
        structure_type="Structured",
    ),
    ProductRow(
        name="Trucker Hat",
        price_tier="Tier 1",
        profile="Mid",
        bill_shape="Curved",
        panel_count=5,
        structure_type="Structured",
    ),
]

FALLBACK_LOGO_METHODS = [
    LogoMethodRow(
        name="3D Embroidery",
        application="Direct",
        size="Large",
        size_example="4 x 2.25",
        prices=_prices(1.40, 0.95, 0.82, 0.75, 0.70, 0.63, 0.63),
    ),
    LogoMethodRow(
        name="Flat Embroidery",
        application="Direct",
        size="Medium",
        size_example="3 x 2",
        prices=_prices(0.90, 0.65, 0.55, 0.52, 0.50, 0.45, 0.45),
    ),
    LogoMethodRow(
        name="Screen Print",
        application="Direct",
        size="Large",
        size_example="4 x 2.25",
        prices=_prices(1.20, 0.80, 0.70, 0.65, 0.60, 0.55, 0.55),
    ),
]

# Tables without an entry here have no fallback: an outage is fatal for them.
FALLBACK_TABLES = {
    BLANK_CAP: FALLBACK_PRICE_TIERS,
    PRODUCTS: FALLBACK_PRODUCTS,
    LOGO: FALLBACK_LOGO_METHODS,
}
