"""
Data models for conversational quote state.

A PartialSpecification carries only what one conversational turn mentioned.
``None`` always means "not mentioned"; clearing a value needs the explicit
REMOVE marker.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

from ..engine.models import LogoPlacement, QuoteSpecification, CostBreakdown
from ..errors import IncompleteSpecificationError


class _Remove:
    """Marker for "clear this field / delete this entry"."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "REMOVE"

    def __bool__(self) -> bool:
        return False


REMOVE = _Remove()

# Scalar fields a delta may overwrite or clear
SCALAR_FIELDS = ("quantity", "product", "price_tier", "colors", "closure", "delivery", "previous_order_number")
# Scalars that may be cleared with REMOVE
OPTIONAL_SCALARS = ("product", "price_tier", "colors", "closure", "delivery", "previous_order_number")


@dataclass(frozen=True)
class Removal:
    """Remove a fabric or accessory by name."""
    name: str


@dataclass(frozen=True)
class LogoPlacementDelta:
    """
    A change to one logo placement.

    With a position (compared ignoring case and spacing), the placement at
    that position is created, updated field by field, or removed. Without one, ``match_method`` and
    ``match_application`` select the existing placement to change; the
    delta must select exactly one.
    """
    position: Optional[str] = None
    method: Optional[str] = None
    size: Optional[str] = None
    application: Optional[str] = None
    match_method: Optional[str] = None
    match_application: Optional[str] = None
    remove: bool = False

    @property
    def has_changes(self) -> bool:
        return self.remove or any(v is not None for v in (self.method, self.size, self.application))


@dataclass(frozen=True)
class PartialSpecification:
    """The fields one conversational turn mentioned."""
    quantity: Optional[int] = None
    product: Union[str, _Remove, None] = None
    price_tier: Union[str, _Remove, None] = None
    colors: Union[tuple, _Remove, None] = None
    closure: Union[str, _Remove, None] = None
    delivery: Union[str, _Remove, None] = None
    previous_order_number: Union[str, _Remove, None] = None
    fabrics: tuple = ()       # names to add, or Removal(name)
    accessories: tuple = ()   # names to add, or Removal(name)
    logos: tuple = ()         # LogoPlacementDelta entries

    @property
    def is_empty(self) -> bool:
        return (
            all(getattr(self, name) is None for name in SCALAR_FIELDS)
            and not self.fabrics and not self.accessories and not self.logos
        )

    @property
    def is_complete(self) -> bool:
        """Enough to price from scratch: a quantity and a product or price tier."""
        has_base = any(
            isinstance(getattr(self, name), str) and getattr(self, name).strip()
            for name in ("product", "price_tier")
        )
        return self.quantity is not None and has_base

    def to_specification(self) -> QuoteSpecification:
        """Build a fresh specification from a complete delta."""
        def value(name):
            v = getattr(self, name)
            return None if v is None or v is REMOVE else v

        logos = {}
        for delta in self.logos:
            if delta.remove:
                continue
            if not delta.position or not delta.method or not delta.size:
                raise IncompleteSpecificationError(
                    "A new logo placement needs a position, a method and a size",
                    category="logo",
                    key=delta.position,
                )
            logos[delta.position] = LogoPlacement(
                method=delta.method,
                size=delta.size,
                application=delta.application or "Direct",
            )
        return QuoteSpecification(
            quantity=self.quantity,
            product=value("product"),
            price_tier=value("price_tier"),
            colors=tuple(value("colors") or ()),
            fabrics=tuple(f for f in self.fabrics if not isinstance(f, Removal)),
            logos=logos,
            accessories=tuple(a for a in self.accessories if not isinstance(a, Removal)),
            closure=value("closure"),
            delivery=value("delivery"),
            previous_order_number=value("previous_order_number"),
        )


@dataclass(frozen=True)
class ClarificationNeeded:
    """Returned instead of a new state when a delta cannot be applied unambiguously."""
    ambiguous_field: str
    candidates: tuple = ()
    message: str = ""

    def to_dict(self) -> dict:
        return {
            "status": "clarification_needed",
            "ambiguous_field": self.ambiguous_field,
            "candidates": list(self.candidates),
            "message": self.message,
        }


@dataclass(frozen=True)
class ConversationQuoteState:
    """Specification and breakdown of one conversation, replaced whole on each change."""
    conversation_id: str
    specification: QuoteSpecification
    breakdown: CostBreakdown
    version: int
    timestamp: datetime = field(compare=False)

    def to_dict(self) -> dict:
        return {
            "conversation_id": self.conversation_id,
            "version": self.version,
            "timestamp": self.timestamp.isoformat(),
            "specification": self.specification.to_dict(),
            "breakdown": self.breakdown.to_dict(),
        }
