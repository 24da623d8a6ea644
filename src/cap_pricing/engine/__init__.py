"""Engine subpackage - core pricing logic and resolution."""
from .pricing_engine import PricingEngine
from .models import (
    LogoPlacement, QuoteSpecification, CostLine, CostBreakdown,
    QuantityQuote, OptionPriceRequest, OptionPriceResult,
)
from .tiers import TierBoundaryPolicy, TierResolver

__all__ = [
    'PricingEngine', 'LogoPlacement', 'QuoteSpecification', 'CostLine', 'CostBreakdown',
    'QuantityQuote', 'OptionPriceRequest', 'OptionPriceResult',
    'TierBoundaryPolicy', 'TierResolver',
]
