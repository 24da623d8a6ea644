import pytest

from cap_pricing.data.provider import PriceTableProvider
from cap_pricing.data.sources import InMemoryPriceTableSource
from cap_pricing.data.tables import BLANK_CAP, FABRIC, LOGO, DELIVERY, MOLD
from cap_pricing.engine.cache import PricingCache
from cap_pricing.engine.models import LogoPlacement
from cap_pricing.engine.resolvers import ComponentCostResolvers
from cap_pricing.engine.tiers import TierResolver
from cap_pricing.errors import UnknownOptionError, OptionUnavailableError, InvalidQuantityError

from conftest import make_tables


@pytest.fixture
def resolvers(source):
    return ComponentCostResolvers(PriceTableProvider(source), TierResolver(), PricingCache())


def test_blank_cap_by_tier_or_product(resolvers):
    """A product name resolves through its tier family."""
    by_tier = resolvers.resolve(BLANK_CAP, "Tier 2", 144)
    by_product = resolvers.resolve(BLANK_CAP, "Dad Hat", 144)
    assert by_tier.unit_price == by_product.unit_price == 4.25
    assert resolvers.blank_cap.tier_family("dad hat") == "Tier 2"


def test_lookup_is_case_insensitive(resolvers):
    assert resolvers.resolve(FABRIC, "  AIR   mesh ", 576).unit_price == 0.90


def test_free_fabric_is_zero_priced(resolvers):
    """A free fabric is still resolved; it just costs nothing."""
    price = resolvers.resolve(FABRIC, "Chino Twill", 48)
    assert price.unit_price == 0.0
    assert price.source == "table"


def test_base_unit_price_is_smallest_bracket(resolvers):
    price = resolvers.resolve(LOGO, "3D Embroidery|Direct|Large", 2880)
    assert price.unit_price == 1.40
    assert price.base_unit_price == 2.25
    assert price.tier_used == 2880


def test_top_bracket_uses_10000_price_when_absent(resolvers):
    price = resolvers.resolve(BLANK_CAP, "Tier 2", 15000)
    assert price.unit_price == 3.50
    assert price.tier_used == 10000


def test_unknown_option_never_guessed(resolvers):
    """No default price is substituted for a name the tables do not have."""
    with pytest.raises(UnknownOptionError) as exc:
        resolvers.resolve(FABRIC, "Gold Lamé", 144)
    assert exc.value.category == FABRIC
    assert exc.value.key == "Gold Lamé"


def test_unknown_logo_names_its_parts(resolvers):
    with pytest.raises(UnknownOptionError) as exc:
        resolvers.logo.resolve_placement(LogoPlacement("Rubber", "Small", "Patch"), 144)
    assert exc.value.key == "Rubber / Patch / Small"


def test_delivery_below_minimum_unavailable(resolvers):
    """Bulk delivery below its minimum quantity is unavailable, not free."""
    with pytest.raises(OptionUnavailableError) as exc:
        resolvers.resolve(DELIVERY, "Air Freight", 1000)
    assert exc.value.tier == 1152

    assert resolvers.resolve(DELIVERY, "Air Freight", 2880).unit_price == 1.20


def test_invalid_quantity_propagates(resolvers):
    with pytest.raises(InvalidQuantityError):
        resolvers.resolve(FABRIC, "Air Mesh", 0)


def test_fallback_source_is_tagged():
    """Prices from compiled-in tables are marked as fallback."""
    source = InMemoryPriceTableSource(make_tables(), failing=(BLANK_CAP,))
    resolvers = ComponentCostResolvers(PriceTableProvider(source), TierResolver(), PricingCache())
    assert resolvers.resolve(BLANK_CAP, "Tier 1", 144).source == "fallback"
    assert resolvers.resolve(FABRIC, "Air Mesh", 144).source == "table"


def test_unknown_category(resolvers):
    with pytest.raises(UnknownOptionError):
        resolvers.for_category("embroidery")


def test_mold_charge_per_patch_placement(resolvers):
    """Each patch position gets its own flat charge; direct logos get none."""
    logos = {
        "Front": LogoPlacement("Rubber", "Medium", "Patch"),
        "Back": LogoPlacement("Rubber", "Medium", "Patch"),
        "Left": LogoPlacement("3D Embroidery", "Large", "Direct"),
    }
    charges = resolvers.mold.resolve(logos)

    assert len(charges) == 2
    assert all(c.category == MOLD and c.flat for c in charges)
    assert {c.unit_price for c in charges} == {80.0}
    assert {c.key.split(":")[0] for c in charges} == {"Front", "Back"}


def test_mold_charge_waived(resolvers):
    charges = resolvers.mold.resolve({"Front": LogoPlacement("Rubber", "Large", "Patch")}, waived=True)
    assert charges[0].waived
    assert charges[0].unit_price == 120.0
