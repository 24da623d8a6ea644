"""
Data models for the pricing engine.

Uses dataclasses for structured, type-safe data representation.
Specifications are frozen so a value carried forward between conversation
turns is the same object, never a re-derived copy.
"""
import json
from dataclasses import dataclass, field, asdict
from typing import Optional

from ..data.tables import (
    BLANK_CAP, FABRIC, LOGO, CLOSURE, ACCESSORY, DELIVERY, MOLD,
    PER_UNIT_CATEGORIES, logo_key,
)

MAX_FABRICS = 2


@dataclass(frozen=True)
class LogoPlacement:
    """A logo method + size applied at one cap position."""
    method: str
    size: str
    application: str = "Direct"

    @property
    def option_key(self) -> str:
        return logo_key(self.method, self.application, self.size)

    def to_dict(self) -> dict:
        return {"method": self.method, "size": self.size, "application": self.application}


@dataclass(frozen=True)
class QuoteSpecification:
    """The unit of conversational state: everything needed to price one order."""
    quantity: int
    product: Optional[str] = None        # product name, mapped to its tier family
    price_tier: Optional[str] = None     # tier family, used when no product is named
    colors: tuple = ()
    fabrics: tuple = ()                  # up to MAX_FABRICS names
    logos: dict = field(default_factory=dict)  # position -> LogoPlacement
    accessories: tuple = ()
    closure: Optional[str] = None
    delivery: Optional[str] = None
    previous_order_number: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "quantity": self.quantity,
            "product": self.product,
            "price_tier": self.price_tier,
            "colors": list(self.colors),
            "fabrics": list(self.fabrics),
            "logos": {pos: p.to_dict() for pos, p in self.logos.items()},
            "accessories": list(self.accessories),
            "closure": self.closure,
            "delivery": self.delivery,
            "previous_order_number": self.previous_order_number,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'QuoteSpecification':
        logos = {
            pos: LogoPlacement(
                method=p["method"],
                size=p["size"],
                application=p.get("application") or "Direct",
            )
            for pos, p in (data.get("logos") or {}).items()
        }
        return cls(
            quantity=data["quantity"],
            product=data.get("product"),
            price_tier=data.get("price_tier"),
            colors=tuple(data.get("colors") or ()),
            fabrics=tuple(data.get("fabrics") or ()),
            logos=logos,
            accessories=tuple(data.get("accessories") or ()),
            closure=data.get("closure"),
            delivery=data.get("delivery"),
            previous_order_number=data.get("previous_order_number"),
        )


@dataclass(frozen=True)
class ResolvedPrice:
    """A unit price looked up for one option at one bracket."""
    unit_price: float
    tier_used: int
    source: str  # "table" or "fallback"
    base_unit_price: float  # price at the smallest bracket, for savings


@dataclass
class ResolvedComponent:
    """One priced component handed to the aggregator."""
    category: str
    key: str
    name: str
    unit_price: float
    quantity: Optional[int] = None  # None for flat charges
    flat: bool = False
    tier_used: Optional[int] = None
    source: str = "table"
    base_unit_price: Optional[float] = None
    waived: bool = False


@dataclass
class CostLine:
    """A single line in a cost breakdown."""
    category: str
    key: str
    name: str
    unit_price: float
    quantity: Optional[int]
    flat: bool
    line_total: float
    tier_used: Optional[int]
    source: str
    savings: float = 0.0
    discount_percent: float = 0.0  # vs. the 48 bracket, 0-100
    waived: bool = False


@dataclass
class CostBreakdown:
    """Authoritative cost of a specification. Derived, never hand-edited."""
    quantity: int
    tier: int
    lines: list[CostLine] = field(default_factory=list)
    total_cost: float = 0.0
    total_savings: float = 0.0

    @property
    def total_units(self) -> int:
        return self.quantity

    @property
    def uses_fallback(self) -> bool:
        return any(line.source == "fallback" for line in self.lines)

    def lines_for(self, category: str) -> list[CostLine]:
        return [line for line in self.lines if line.category == category]

    def line(self, category: str, key: str) -> Optional[CostLine]:
        for line in self.lines:
            if line.category == category and line.key == key:
                return line
        return None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["total_units"] = self.total_units
        data["uses_fallback"] = self.uses_fallback
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)


@dataclass
class QuantityQuote:
    """One row of a quantity comparison: a breakdown, or why there is none."""
    quantity: int
    breakdown: Optional[CostBreakdown] = None
    error: Optional[dict] = None

    @property
    def cost_per_unit(self) -> Optional[float]:
        if self.breakdown is None:
            return None
        return round(self.breakdown.total_cost / self.quantity, 4)

    def to_dict(self) -> dict:
        return {
            "quantity": self.quantity,
            "tier": self.breakdown.tier if self.breakdown else None,
            "total_cost": self.breakdown.total_cost if self.breakdown else None,
            "cost_per_unit": self.cost_per_unit,
            "breakdown": self.breakdown.to_dict() if self.breakdown else None,
            "error": self.error,
        }


@dataclass(frozen=True)
class OptionPriceRequest:
    """One entry of a batch lookup."""
    category: str
    key: str
    quantity: int


@dataclass
class OptionPriceResult:
    request: OptionPriceRequest
    price: Optional[ResolvedPrice] = None
    error: Optional[dict] = None

    def to_dict(self) -> dict:
        data = {
            "category": self.request.category,
            "key": self.request.key,
            "quantity": self.request.quantity,
            "error": self.error,
        }
        if self.price is not None:
            data.update(
                unit_price=self.price.unit_price,
                tier_used=self.price.tier_used,
                source=self.price.source,
                total_price=round(self.price.unit_price * self.request.quantity, 2),
            )
        return data
