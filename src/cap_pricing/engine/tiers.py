"""
Tier Resolver - maps an order quantity to its pricing bracket.

All component resolvers of an engine share one TierResolver so a quantity
always lands in the same bracket for blank caps, logos, fabrics, closures,
accessories and delivery.
"""
from enum import Enum
from typing import Optional

from ..data.tables import TIER_BREAKPOINTS
from ..errors import InvalidQuantityError

# Tables may omit the top bracket; it then shares the 10000 price.
TOP_TIER_FALLBACK = {20000: 10000}


class TierBoundaryPolicy(str, Enum):
    """How an exact-breakpoint quantity is bracketed."""

    # q <= 48 -> 48, 48 < q <= 144 -> 144, ..., q > 10000 -> 20000
    UPPER_INCLUSIVE = "upper_inclusive"
    # q >= breakpoint selects that breakpoint (legacy storefront rule)
    LOWER_INCLUSIVE = "lower_inclusive"


class TierResolver:
    """Resolves quantities to bracket breakpoints under a single policy."""

    def __init__(
        self,
        policy: TierBoundaryPolicy = TierBoundaryPolicy.UPPER_INCLUSIVE,
        breakpoints: tuple = TIER_BREAKPOINTS,
    ):
        self.policy = TierBoundaryPolicy(policy)
        self.breakpoints = tuple(sorted(breakpoints))

    def resolve_tier(self, quantity: int) -> int:
        """
        Return the breakpoint whose price applies to ``quantity``.

        Raises:
            InvalidQuantityError: quantity is not a positive integer
        """
        validate_quantity(quantity)

        if self.policy is TierBoundaryPolicy.LOWER_INCLUSIVE:
            selected = self.breakpoints[0]
            for bp in self.breakpoints:
                if quantity >= bp:
                    selected = bp
                else:
                    break
            return selected

        # Every breakpoint but the last closes its bracket from above; the
        # last one is open-ended.
        for bp in self.breakpoints[:-1]:
            if quantity <= bp:
                return bp
        return self.breakpoints[-1]

    def price_at(self, prices: dict, tier: int) -> tuple[Optional[float], int]:
        """
        Look up a tier price in a row's price map.

        Returns (price, tier_used). ``price`` is None when the row has no price
        for the bracket. A missing top bracket falls back to the one below it.
        """
        price = prices.get(tier)
        if price is None and tier in TOP_TIER_FALLBACK:
            lower = TOP_TIER_FALLBACK[tier]
            return prices.get(lower), lower
        return price, tier


def validate_quantity(quantity) -> int:
    # bool is an int subclass; True is not a quantity
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantityError(quantity)
    return quantity
