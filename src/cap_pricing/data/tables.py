"""
Typed pricing table rows and the validated in-memory snapshot built from them.
"""
import re
from dataclasses import dataclass, field
from typing import Optional


# Cost categories. The string values double as cache-key prefixes.
BLANK_CAP = "blank_cap"
FABRIC = "fabric"
LOGO = "logo"
CLOSURE = "closure"
ACCESSORY = "accessory"
DELIVERY = "delivery"
MOLD = "mold"

PER_UNIT_CATEGORIES = (BLANK_CAP, FABRIC, LOGO, CLOSURE, ACCESSORY, DELIVERY)

TIER_BREAKPOINTS = (48, 144, 576, 1152, 2880, 10000, 20000)


def price_column(tier: int) -> str:
    """Column name holding the unit price for a bracket, e.g. ``price_144``."""
    return f"price_{tier}"


def logo_key(method: str, application: str, size: str) -> str:
    """Identity of a logo method row: ``name|application|size``."""
    return f"{method}|{application}|{size}"


_MOLD_SUFFIX = re.compile(r"\s*mold\s+charge\s*$", re.IGNORECASE)


def normalize_key(key: str) -> str:
    """Case- and whitespace-insensitive identity for option names."""
    return " ".join(str(key).split()).casefold()


@dataclass(frozen=True)
class PriceTierRow:
    tier_name: str
    prices: dict  # breakpoint -> unit price (absent brackets omitted)

    @property
    def key(self) -> str:
        return self.tier_name


@dataclass(frozen=True)
class ProductRow:
    name: str
    price_tier: str
    code: str = ""
    profile: str = ""
    bill_shape: str = ""
    panel_count: Optional[int] = None
    structure_type: str = ""
    closure_compatibility: tuple = ()

    @property
    def key(self) -> str:
        return self.name


@dataclass(frozen=True)
class LogoMethodRow:
    name: str
    application: str
    size: str
    prices: dict
    size_example: str = ""
    mold_charge_type: Optional[str] = None

    @property
    def key(self) -> str:
        return logo_key(self.name, self.application, self.size)

    @property
    def requires_mold(self) -> bool:
        return normalize_key(self.application) == "patch" and bool(self.mold_charge_type)

    @property
    def mold_size(self) -> Optional[str]:
        """``"Medium Mold Charge"`` -> ``"Medium"``."""
        if not self.mold_charge_type:
            return None
        return _MOLD_SUFFIX.sub("", self.mold_charge_type).strip() or None


@dataclass(frozen=True)
class MoldChargeRow:
    size: str
    charge_amount: float
    size_example: str = ""

    @property
    def key(self) -> str:
        return self.size


@dataclass(frozen=True)
class FabricRow:
    name: str
    prices: dict
    cost_type: str = "Premium Fabric"
    color_note: str = ""

    @property
    def key(self) -> str:
        return self.name

    @property
    def is_free(self) -> bool:
        return normalize_key(self.cost_type) == "free"


@dataclass(frozen=True)
class ClosureRow:
    name: str
    prices: dict
    closure_type: str = ""

    @property
    def key(self) -> str:
        return self.name


@dataclass(frozen=True)
class AccessoryRow:
    name: str
    prices: dict

    @property
    def key(self) -> str:
        return self.name


@dataclass(frozen=True)
class DeliveryMethodRow:
    name: str
    prices: dict
    delivery_type: str = ""
    delivery_days: str = ""
    min_quantity: int = 0

    @property
    def key(self) -> str:
        return self.name


@dataclass
class CategoryTable:
    """Rows of one pricing table, indexed by normalized key."""
    category: str
    rows: dict = field(default_factory=dict)
    source: str = "table"  # "table" or "fallback"

    @classmethod
    def from_rows(cls, category: str, rows: list, source: str = "table") -> 'CategoryTable':
        return cls(category=category, rows={normalize_key(r.key): r for r in rows}, source=source)

    def get(self, key: str):
        return self.rows.get(normalize_key(key))

    def __contains__(self, key: str) -> bool:
        return normalize_key(key) in self.rows

    def __iter__(self):
        return iter(self.rows.values())

    def __len__(self) -> int:
        return len(self.rows)
