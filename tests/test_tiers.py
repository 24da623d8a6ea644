import pytest

from cap_pricing.engine.tiers import TierResolver, TierBoundaryPolicy
from cap_pricing.errors import InvalidQuantityError


@pytest.fixture
def resolver():
    return TierResolver()


@pytest.mark.parametrize("quantity, expected", [
    (1, 48), (48, 48), (49, 144),
    (144, 144), (145, 576),
    (576, 576), (577, 1152),
    (1152, 1152), (1153, 2880),
    (2880, 2880), (2881, 10000),
    (10000, 10000), (10001, 20000),
    (250000, 20000),
])
def test_upper_inclusive_boundaries(resolver, quantity, expected):
    """An exact breakpoint belongs to its own bracket; one more moves up."""
    assert resolver.resolve_tier(quantity) == expected, f"qty {quantity} should resolve to {expected}"


@pytest.mark.parametrize("quantity, expected", [
    (1, 48), (143, 48), (144, 144), (288, 144), (575, 144), (576, 576),
    (2880, 2880), (9999, 2880), (10000, 10000), (20000, 20000),
])
def test_lower_inclusive_boundaries(quantity, expected):
    """The legacy storefront rule selects the largest breakpoint <= quantity."""
    resolver = TierResolver(TierBoundaryPolicy.LOWER_INCLUSIVE)
    assert resolver.resolve_tier(quantity) == expected


@pytest.mark.parametrize("quantity", [0, -1, -144, 1.5, "144", None, True])
def test_invalid_quantities_rejected(resolver, quantity):
    """Non-positive and non-integer quantities are errors, never a default bracket."""
    with pytest.raises(InvalidQuantityError):
        resolver.resolve_tier(quantity)


def test_resolution_is_monotonic(resolver):
    """A larger quantity never lands in a smaller bracket."""
    previous = 0
    for quantity in range(1, 12000, 7):
        tier = resolver.resolve_tier(quantity)
        assert tier >= previous, f"qty {quantity} fell back to bracket {tier}"
        previous = tier


def test_policy_accepts_setting_string():
    """Settings carry the policy as a plain string."""
    assert TierResolver("lower_inclusive").policy is TierBoundaryPolicy.LOWER_INCLUSIVE


def test_top_bracket_falls_back_to_10000_price(resolver):
    """Rows without a 20000 price use their 10000 price."""
    price, used = resolver.price_at({10000: 3.50}, 20000)
    assert (price, used) == (3.50, 10000)

    price, used = resolver.price_at({576: 2.0}, 144)
    assert price is None, "a missing mid bracket must not borrow a neighbour"
