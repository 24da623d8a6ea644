"""Pricing table sources, validation and the shared table provider."""
