"""
Cap Pricing Package

Tiered pricing and quote calculation for custom cap orders.
Resolves a quote specification through Quantity -> Bracket -> Unit Price for
every component, and keeps the quote consistent across conversational turns.
"""

__version__ = "1.0.0"
