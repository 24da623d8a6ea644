"""
Error taxonomy for the pricing engine.

Every error carries the offending category/key where one exists so the
calling layer can present an actionable message.
"""
from typing import Optional


class PricingError(Exception):
    """Base class for all pricing engine errors."""

    def __init__(self, message: str, category: Optional[str] = None, key: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.category = category
        self.key = key

    def to_dict(self) -> dict:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "category": self.category,
            "key": self.key,
        }


class InvalidQuantityError(PricingError):
    """Quantity is not a positive integer."""

    def __init__(self, quantity):
        super().__init__(f"Quantity must be a positive integer, got {quantity!r}", key=str(quantity))
        self.quantity = quantity


class UnknownOptionError(PricingError):
    """Referenced option name is not present in its pricing table."""

    def __init__(self, category: str, key: str):
        super().__init__(f"Unknown {category} option: {key!r}", category=category, key=key)


class OptionUnavailableError(PricingError):
    """Option exists but has no price at the resolved tier (e.g. delivery below its minimum)."""

    def __init__(self, category: str, key: str, tier: int):
        super().__init__(
            f"{category} option {key!r} is not available at the {tier} bracket",
            category=category,
            key=key,
        )
        self.tier = tier


class MandatoryComponentMissingError(PricingError):
    """The base product cost could not be resolved."""


class DataSourceUnavailableError(PricingError):
    """A price table could not be loaded and no fallback exists."""


class InvalidSpecificationError(PricingError):
    """A specification is malformed (duplicate options, too many fabrics)."""


class IncompleteSpecificationError(InvalidSpecificationError):
    """A specification lacks a field required to price it."""


class ConversationStateError(PricingError):
    """Illegal state transition for a conversation quote."""


class PriceTableValidationError(PricingError):
    """Raised by a strict load when any row fails validation."""

    def __init__(self, errors: list):
        super().__init__(f"{len(errors)} price table row(s) failed validation")
        self.errors = errors
