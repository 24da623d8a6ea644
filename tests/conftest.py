import os
import sys
from pathlib import Path

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from cap_pricing.config.settings import Settings
from cap_pricing.conversation import QuoteStateManager
from cap_pricing.data.sources import InMemoryPriceTableSource, PRODUCTS
from cap_pricing.data.tables import (
    BLANK_CAP, FABRIC, LOGO, CLOSURE, ACCESSORY, DELIVERY, MOLD, TIER_BREAKPOINTS, price_column,
)
from cap_pricing.engine import PricingEngine


def priced(*values) -> dict:
    """price_* columns for the seven brackets; None leaves a bracket blank."""
    return {price_column(t): "" if v is None else str(v) for t, v in zip(TIER_BREAKPOINTS, values)}


def make_tables() -> dict:
    return {
        BLANK_CAP: [
            {"tier_name": "Tier 1", **priced(3.60, 3.00, 2.90, 2.84, 2.68, 2.48, 2.28)},
            {"tier_name": "Tier 2", **priced(5.00, 4.25, 4.00, 3.90, 3.70, 3.50, None)},
        ],
        PRODUCTS: [
            {"name": "Classic Snapback", "price_tier": "Tier 1", "panel_count": "6",
             "closure_compatibility": "Snapback;Velcro"},
            {"name": "Dad Hat", "price_tier": "Tier 2", "panel_count": "6"},
        ],
        LOGO: [
            {"name": "3D Embroidery", "application": "Direct", "size": "Large",
             **priced(2.25, 1.80, 1.60, 1.50, 1.40, 1.30, 1.20)},
            {"name": "Flat Embroidery", "application": "Direct", "size": "Small",
             **priced(0.95, 0.75, 0.65, 0.60, 0.55, 0.50, 0.45)},
            {"name": "Rubber", "application": "Patch", "size": "Medium", "mold_charge_type": "Medium Mold Charge",
             **priced(2.00, 1.60, 1.40, 1.30, 1.20, 1.10, 1.00)},
            {"name": "Rubber", "application": "Patch", "size": "Large", "mold_charge_type": "Large Mold Charge",
             **priced(2.50, 2.00, 1.75, 1.60, 1.50, 1.40, 1.30)},
        ],
        MOLD: [
            {"size": "Small", "charge_amount": "50.00"},
            {"size": "Medium", "charge_amount": "80.00"},
            {"size": "Large", "charge_amount": "$120.00"},
        ],
        FABRIC: [
            {"name": "Chino Twill", "cost_type": "Free", **priced(0, 0, 0, 0, 0, 0, 0)},
            {"name": "Air Mesh", "cost_type": "Premium Fabric", **priced(1.25, 1.00, 0.90, 0.85, 0.80, 0.75, 0.70)},
            {"name": "Camo", "cost_type": "Premium Fabric", **priced(1.40, 1.15, 1.05, 0.95, 0.90, 0.85, 0.80)},
        ],
        CLOSURE: [
            {"name": "Snapback", **priced(0, 0, 0, 0, 0, 0, 0)},
            {"name": "Fitted", **priced(0.75, 0.60, 0.55, 0.50, 0.45, 0.40, 0.40)},
        ],
        ACCESSORY: [
            {"name": "Hang Tag", **priced(0.45, 0.35, 0.30, 0.28, 0.25, 0.22, 0.20)},
            {"name": "Sticker", **priced(0.15, 0.12, 0.10, 0.09, 0.08, 0.07, 0.06)},
        ],
        DELIVERY: [
            {"name": "Regular Delivery", "min_quantity": "0", **priced(3.00, 2.30, 2.20, 2.10, 2.00, 1.90, 1.80)},
            {"name": "Air Freight", "min_quantity": "2880", **priced(None, None, None, None, 1.20, 1.00, 0.90)},
        ],
    }


def make_settings(**overrides) -> Settings:
    values = dict(tables_dir=Path("unused"), cache_ttl_seconds=300.0, tier_policy="upper_inclusive")
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def tables():
    return make_tables()


@pytest.fixture
def source(tables):
    return InMemoryPriceTableSource(tables)


@pytest.fixture
def engine(source):
    return PricingEngine(settings=make_settings(), source=source)


@pytest.fixture
def legacy_engine(source):
    """Engine bracketing exact breakpoints the storefront way (q >= breakpoint)."""
    return PricingEngine(settings=make_settings(tier_policy="lower_inclusive"), source=source)


@pytest.fixture
def manager(engine):
    return QuoteStateManager(engine)
