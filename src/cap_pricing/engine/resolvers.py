"""
Component cost resolvers - one per cost category.

Each resolver resolves the bracket once through the shared TierResolver,
looks its option up in the provider's table (through the PricingCache), and
returns the unit price at that bracket. An unknown option is an error; no
resolver ever substitutes a guessed or default price.

Prices read from fallback tables are not cached, so a recovered source is
used as soon as the provider rereads it.
"""
import logging
from typing import Optional

from ..data.provider import PriceTableProvider
from ..data.sources import PRODUCTS
from ..data.tables import normalize_key
from ..errors import PricingError, UnknownOptionError, OptionUnavailableError
from .cache import PricingCache
from .models import (
    BLANK_CAP, FABRIC, LOGO, CLOSURE, ACCESSORY, DELIVERY, MOLD,
    LogoPlacement, ResolvedPrice, ResolvedComponent, OptionPriceRequest, OptionPriceResult, logo_key,
)
from .tiers import TierResolver, TIER_BREAKPOINTS

logger = logging.getLogger(__name__)


class ComponentCostResolver:
    """Resolves unit prices for the options of one pricing table."""

    category: str = ""

    def __init__(self, provider: PriceTableProvider, tiers: TierResolver, cache: PricingCache):
        self.provider = provider
        self.tiers = tiers
        self.cache = cache

    @property
    def table_name(self) -> str:
        return self.category

    def resolve(self, option_key: str, quantity: int) -> ResolvedPrice:
        """
        Unit price of ``option_key`` at the bracket ``quantity`` falls in.

        Raises:
            InvalidQuantityError: quantity <= 0
            UnknownOptionError: option not in the table
            OptionUnavailableError: option has no price at the bracket
            DataSourceUnavailableError: table unreachable and no fallback
        """
        tier = self.tiers.resolve_tier(quantity)
        return self.resolve_at_tier(option_key, tier)

    def resolve_at_tier(self, option_key: str, tier: int) -> ResolvedPrice:
        key = (self.category, normalize_key(option_key), tier)
        return self.cache.get_or_compute(
            key,
            lambda: self._lookup(option_key, tier),
            cacheable=lambda price: price.source != "fallback",
        )

    def find_row(self, option_key: str):
        """Return (row, source) or raise UnknownOptionError."""
        table = self.provider.table(self.table_name)
        row = table.get(option_key)
        if row is None:
            raise UnknownOptionError(self.category, option_key)
        return row, table.source

    def unit_price(self, row, price: float) -> float:
        return price

    def _lookup(self, option_key: str, tier: int) -> ResolvedPrice:
        row, source = self.find_row(option_key)
        price, tier_used = self.tiers.price_at(row.prices, tier)
        if price is None:
            raise OptionUnavailableError(self.category, option_key, tier)

        base_price = row.prices.get(TIER_BREAKPOINTS[0])
        unit = self.unit_price(row, price)
        return ResolvedPrice(
            unit_price=unit,
            tier_used=tier_used,
            source=source,
            base_unit_price=self.unit_price(row, base_price) if base_price is not None else unit,
        )


class BlankCapResolver(ComponentCostResolver):
    """
    Base product cost. Accepts a tier family name ("Tier 2") or a product
    name, which is mapped to the product's tier family.
    """

    category = BLANK_CAP

    def find_row(self, option_key: str):
        tiers = self.provider.table(BLANK_CAP)
        row = tiers.get(option_key)
        if row is not None:
            return row, tiers.source

        products = self.provider.table(PRODUCTS)
        product = products.get(option_key)
        if product is None:
            raise UnknownOptionError(BLANK_CAP, option_key)

        row = tiers.get(product.price_tier)
        if row is None:
            raise UnknownOptionError(BLANK_CAP, product.price_tier)

        source = "fallback" if "fallback" in (tiers.source, products.source) else "table"
        return row, source

    def tier_family(self, option_key: str) -> str:
        row, _ = self.find_row(option_key)
        return row.tier_name


class FabricResolver(ComponentCostResolver):
    category = FABRIC

    def unit_price(self, row, price: float) -> float:
        # Free fabrics stay on the quote as a selected, zero-cost line
        return 0.0 if row.is_free else price


class LogoMethodResolver(ComponentCostResolver):
    """Logo options are keyed ``name|application|size``."""

    category = LOGO

    def resolve_placement(self, placement: LogoPlacement, quantity: int) -> ResolvedPrice:
        return self.resolve(placement.option_key, quantity)

    def find_row(self, option_key: str):
        table = self.provider.table(LOGO)
        row = table.get(option_key)
        if row is None:
            raise UnknownOptionError(LOGO, option_key.replace("|", " / "))
        return row, table.source


class ClosureResolver(ComponentCostResolver):
    category = CLOSURE


class AccessoryResolver(ComponentCostResolver):
    category = ACCESSORY


class DeliveryResolver(ComponentCostResolver):
    category = DELIVERY

    def resolve(self, option_key: str, quantity: int) -> ResolvedPrice:
        tier = self.tiers.resolve_tier(quantity)
        row, _ = self.find_row(option_key)
        if quantity < row.min_quantity:
            logger.debug("%s needs at least %d pcs, quote has %d", option_key, row.min_quantity, quantity)
            raise OptionUnavailableError(DELIVERY, option_key, tier)
        return self.resolve_at_tier(option_key, tier)


class MoldChargeResolver:
    """
    Flat, quantity-independent mold charges for patch logos.

    One charge per placement whose method is a Patch with a mold charge type.
    Bookkeeping is keyed by (position, method, size): two identical patches
    at different positions are two charges, and one placement is never
    charged twice.
    """

    category = MOLD

    def __init__(self, provider: PriceTableProvider, cache: PricingCache):
        self.provider = provider
        self.cache = cache

    def charge_for_size(self, size: str) -> tuple[float, str]:
        key = (MOLD, normalize_key(size), "flat")
        return self.cache.get_or_compute(
            key, lambda: self._lookup(size), cacheable=lambda charge: charge[1] != "fallback",
        )

    def _lookup(self, size: str) -> tuple[float, str]:
        table = self.provider.table(MOLD)
        row = table.get(size)
        if row is None:
            raise UnknownOptionError(MOLD, f"{size} Mold Charge")
        return row.charge_amount, table.source

    def resolve(self, logos: dict, waived: bool = False) -> list[ResolvedComponent]:
        charges: dict[tuple, ResolvedComponent] = {}
        logo_table = self.provider.table(LOGO)

        for position, placement in logos.items():
            method = logo_table.get(placement.option_key)
            if method is None:
                raise UnknownOptionError(LOGO, placement.option_key.replace("|", " / "))
            if not method.requires_mold:
                continue

            identity = (position, normalize_key(placement.method), normalize_key(placement.size))
            if identity in charges:
                continue

            amount, source = self.charge_for_size(method.mold_size)
            charges[identity] = ResolvedComponent(
                category=MOLD,
                key=f"{position}:{logo_key(placement.method, placement.application, placement.size)}",
                name=f"{method.mold_charge_type} ({position} {placement.method})",
                unit_price=amount,
                flat=True,
                source=source,
                waived=waived,
            )

        return list(charges.values())


class ComponentCostResolvers:
    """All category resolvers of one engine, sharing one TierResolver and cache."""

    def __init__(self, provider: PriceTableProvider, tiers: TierResolver, cache: PricingCache):
        self.tiers = tiers
        self.blank_cap = BlankCapResolver(provider, tiers, cache)
        self.fabric = FabricResolver(provider, tiers, cache)
        self.logo = LogoMethodResolver(provider, tiers, cache)
        self.closure = ClosureResolver(provider, tiers, cache)
        self.accessory = AccessoryResolver(provider, tiers, cache)
        self.delivery = DeliveryResolver(provider, tiers, cache)
        self.mold = MoldChargeResolver(provider, cache)

        self._by_category = {
            r.category: r
            for r in (self.blank_cap, self.fabric, self.logo, self.closure, self.accessory, self.delivery)
        }

    def for_category(self, category: str) -> ComponentCostResolver:
        resolver: Optional[ComponentCostResolver] = self._by_category.get(category)
        if resolver is None:
            raise UnknownOptionError("category", category)
        return resolver

    def resolve(self, category: str, option_key: str, quantity: int) -> ResolvedPrice:
        return self.for_category(category).resolve(option_key, quantity)

    def resolve_many(self, requests: list[OptionPriceRequest]) -> list[OptionPriceResult]:
        """
        Look up many options at once, in request order.

        A request that cannot be priced carries its error instead of a price;
        the other requests are unaffected.
        """
        results = []
        for request in requests:
            try:
                price = self.resolve(request.category, request.key, request.quantity)
            except PricingError as e:
                logger.debug("Batch lookup %s %r failed: %s", request.category, request.key, e.message)
                results.append(OptionPriceResult(request=request, error=e.to_dict()))
                continue
            results.append(OptionPriceResult(request=request, price=price))
        return results
