"""
Shared API state - one engine and one conversation manager per process.
"""
from ..conversation.state_manager import QuoteStateManager
from ..engine.pricing_engine import PricingEngine

engine = PricingEngine()
manager = QuoteStateManager(engine)
