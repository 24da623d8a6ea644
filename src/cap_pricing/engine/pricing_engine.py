"""
Pricing Engine - resolves a QuoteSpecification into an authoritative CostBreakdown.

Resolution order:
1. Validate quantity and resolve its bracket once
2. Base product (blank cap) cost - mandatory
3. Fabrics, logo placements, closure, accessories, delivery - per unit
4. Mold charges for patch placements - flat, once per placement
5. Aggregate into a CostBreakdown

Every figure a caller shows comes from the breakdown; nothing downstream
recomputes or edits prices.
"""
import logging
from dataclasses import replace
from typing import Iterator, Optional

from ..config.settings import get_settings, Settings
from ..data.provider import PriceTableProvider
from ..data.sources import CsvPriceTableSource, PriceTableSource
from ..data.tables import normalize_key
from ..errors import (
    PricingError, MandatoryComponentMissingError, InvalidSpecificationError,
    OptionUnavailableError,
)
from .aggregator import CostAggregator
from .cache import PricingCache, CacheStore, InMemoryCacheStore
from .models import (
    BLANK_CAP, FABRIC, LOGO, CLOSURE, ACCESSORY, DELIVERY, MOLD, MAX_FABRICS,
    QuoteSpecification, ResolvedComponent, ResolvedPrice, CostBreakdown,
    QuantityQuote, OptionPriceRequest, OptionPriceResult,
)
from .resolvers import ComponentCostResolver, ComponentCostResolvers
from .tiers import TierResolver, TierBoundaryPolicy, validate_quantity

logger = logging.getLogger(__name__)

# Quantities compared when a caller names none
COMPARISON_QUANTITIES = (48, 144, 576, 1152, 2880, 10000)


class PricingEngine:
    """
    Core pricing engine for custom cap quotes.

    Args:
        settings: engine settings, defaults to the global settings
        source: price table store, defaults to the CSV tables directory
        cache_store: backing store for the pricing cache
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        source: Optional[PriceTableSource] = None,
        cache_store: Optional[CacheStore] = None,
    ):
        self.settings = settings or get_settings()
        self.source = source or CsvPriceTableSource(self.settings.tables_dir)

        self.provider = PriceTableProvider(
            self.source,
            use_fallback=self.settings.use_fallback_tables,
            strict=self.settings.strict_tables,
            fallback_retry_seconds=self.settings.fallback_retry_seconds,
        )
        self.tiers = TierResolver(TierBoundaryPolicy(self.settings.tier_policy))
        self.cache = PricingCache(
            store=cache_store if cache_store is not None else InMemoryCacheStore(),
            default_ttl=self.settings.cache_ttl_seconds,
            enabled=self.settings.cache_enabled,
        )
        self.resolvers = ComponentCostResolvers(self.provider, self.tiers, self.cache)
        self.aggregator = CostAggregator()

    def reload_data(self):
        """Re-read all pricing tables and drop every cached price."""
        self.provider.reload()
        self.cache.clear()

    def calculate_quote(self, spec: QuoteSpecification) -> CostBreakdown:
        """
        Price a complete specification.

        Raises:
            InvalidQuantityError, InvalidSpecificationError,
            MandatoryComponentMissingError, UnknownOptionError,
            OptionUnavailableError, DataSourceUnavailableError
        """
        quantity = validate_quantity(spec.quantity)
        tier = self.tiers.resolve_tier(quantity)
        self._check_selections(spec)

        components = [self._base_component(spec, quantity)]

        for name in spec.fabrics:
            price = self.resolvers.fabric.resolve(name, quantity)
            components.append(self._component(FABRIC, name, name, price))

        for position, placement in spec.logos.items():
            price = self.resolvers.logo.resolve_placement(placement, quantity)
            label = f"{placement.size} {placement.method} ({placement.application}) - {position}"
            components.append(self._component(LOGO, position, label, price))

        if spec.closure:
            price = self.resolvers.closure.resolve(spec.closure, quantity)
            components.append(self._component(CLOSURE, spec.closure, spec.closure, price))

        for name in spec.accessories:
            price = self.resolvers.accessory.resolve(name, quantity)
            components.append(self._component(ACCESSORY, name, name, price))

        if spec.delivery:
            price = self.resolvers.delivery.resolve(spec.delivery, quantity)
            components.append(self._component(DELIVERY, spec.delivery, spec.delivery, price))

        components.extend(
            self.resolvers.mold.resolve(spec.logos, waived=bool(spec.previous_order_number))
        )

        breakdown = self.aggregator.aggregate(components, quantity, tier)
        logger.debug(
            "Quote priced: qty=%d tier=%d lines=%d total=%.2f",
            quantity, tier, len(breakdown.lines), breakdown.total_cost,
        )
        if breakdown.uses_fallback:
            logger.warning("Quote priced with fallback tables; figures may be out of date")
        return breakdown

    def _check_selections(self, spec: QuoteSpecification):
        if len(spec.fabrics) > MAX_FABRICS:
            raise InvalidSpecificationError(
                f"At most {MAX_FABRICS} fabrics per cap, got {len(spec.fabrics)}",
                category=FABRIC,
                key=", ".join(spec.fabrics),
            )
        for category, names in ((FABRIC, spec.fabrics), (ACCESSORY, spec.accessories)):
            seen = set()
            for name in names:
                if normalize_key(name) in seen:
                    raise InvalidSpecificationError(f"{category} {name!r} selected twice", category=category, key=name)
                seen.add(normalize_key(name))
        positions = set()
        for position in spec.logos:
            if normalize_key(position) in positions:
                raise InvalidSpecificationError(f"Two logos at position {position!r}", category=LOGO, key=position)
            positions.add(normalize_key(position))

    def _base_component(self, spec: QuoteSpecification, quantity: int) -> ResolvedComponent:
        key = spec.product or spec.price_tier
        if not key:
            raise MandatoryComponentMissingError(
                "Quote names neither a product nor a price tier",
                category=BLANK_CAP,
            )
        try:
            price = self.resolvers.blank_cap.resolve(key, quantity)
            family = self.resolvers.blank_cap.tier_family(key)
        except PricingError as e:
            raise MandatoryComponentMissingError(
                f"Base product cost could not be resolved: {e.message}",
                category=e.category or BLANK_CAP,
                key=e.key or key,
            ) from e

        name = f"{spec.product} ({family})" if spec.product else family
        return self._component(BLANK_CAP, key, name, price)

    @staticmethod
    def _component(category: str, key: str, name: str, price: ResolvedPrice) -> ResolvedComponent:
        return ResolvedComponent(
            category=category,
            key=key,
            name=name,
            unit_price=price.unit_price,
            tier_used=price.tier_used,
            source=price.source,
            base_unit_price=price.base_unit_price,
        )

    # ------------------------------------------------------------------
    # Comparisons and batch lookups
    # ------------------------------------------------------------------

    def price_quantities(self, spec: QuoteSpecification, quantities: Optional[tuple] = None) -> list[QuantityQuote]:
        """
        Price ``spec`` at each of several quantities, everything else unchanged.

        A quantity that cannot be priced (e.g. a delivery method with a higher
        minimum) carries its error; the other quantities are still priced.
        """
        quotes = []
        for quantity in quantities or COMPARISON_QUANTITIES:
            try:
                breakdown = self.calculate_quote(replace(spec, quantity=quantity))
            except PricingError as e:
                logger.info("Quantity %s skipped in comparison: %s", quantity, e.message)
                quotes.append(QuantityQuote(quantity=quantity, error=e.to_dict()))
                continue
            quotes.append(QuantityQuote(quantity=quantity, breakdown=breakdown))
        return quotes

    def resolve_many(self, requests: list[OptionPriceRequest]) -> list[OptionPriceResult]:
        """Unit prices for many (category, option, quantity) lookups."""
        return self.resolvers.resolve_many(requests)

    # ------------------------------------------------------------------
    # Cache management
    # ------------------------------------------------------------------

    def prewarm(self, quantities: Optional[tuple] = None, background: bool = True):
        """
        Populate the cache for every option at the brackets of common quantities.

        Runs on a detached thread by default and returns it.
        """
        quantities = quantities or self.settings.prewarm_quantities
        tiers = sorted({self.tiers.resolve_tier(q) for q in quantities})
        return self.cache.prewarm(self._prewarm_jobs(tiers), background=background)

    def _prewarm_jobs(self, tiers: list) -> Iterator:
        for category in (BLANK_CAP, FABRIC, LOGO, CLOSURE, ACCESSORY, DELIVERY):
            resolver = self.resolvers.for_category(category)
            yield lambda r=resolver: self._prewarm_category(r, tiers)
        yield self._prewarm_molds

    def _prewarm_category(self, resolver: ComponentCostResolver, tiers: list):
        table = self.provider.table(resolver.table_name)
        for row in table:
            for tier in tiers:
                try:
                    resolver.resolve_at_tier(row.key, tier)
                except OptionUnavailableError:
                    continue

    def _prewarm_molds(self):
        for row in self.provider.table(MOLD):
            self.resolvers.mold.charge_for_size(row.size)

    def status(self) -> dict:
        return {
            "tier_policy": self.tiers.policy.value,
            "source": self.source.describe(),
            "tables": self.provider.status(),
            "cache": self.cache.stats().to_dict(),
            "cache_enabled": self.cache.enabled,
        }
