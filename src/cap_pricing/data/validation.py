"""
Typed, validated load step for raw price table rows.

Each raw row either becomes a typed row or produces itemized RowErrors; a bad
cell is never coerced to zero or NaN. Checks per row:
- required fields present
- numeric fields parse and are not negative
- unit prices are non-increasing as the bracket grows (volume discount)
- keys are unique within a table
- patch logos name an existing mold charge size
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Optional

from .sources import PRODUCTS
from .tables import (
    BLANK_CAP, FABRIC, LOGO, CLOSURE, ACCESSORY, DELIVERY, MOLD,
    TIER_BREAKPOINTS, price_column,
    PriceTierRow, ProductRow, LogoMethodRow, MoldChargeRow, FabricRow,
    ClosureRow, AccessoryRow, DeliveryMethodRow, normalize_key,
)

logger = logging.getLogger(__name__)

# Brackets every non-delivery table must price. The top bracket is optional.
REQUIRED_BRACKETS = TIER_BREAKPOINTS[:-1]


@dataclass
class RowError:
    """One validation failure, pointing at a table row and field."""
    table: str
    row_number: int  # 1-based, header excluded
    field: str
    message: str
    value: Optional[str] = None

    def __str__(self) -> str:
        text = f"{self.table} row {self.row_number}: {self.field} {self.message}"
        if self.value is not None:
            text += f" (got {self.value!r})"
        return text


@dataclass
class ValidationReport:
    table: str
    rows: list = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


class _RowRejected(Exception):
    pass


class _RowContext:
    """Collects errors for a single raw row."""

    def __init__(self, table: str, row_number: int, raw: dict):
        self.table = table
        self.row_number = row_number
        self.raw = raw
        self.errors: list[RowError] = []

    def fail(self, field_name: str, message: str, value=None):
        self.errors.append(RowError(
            table=self.table,
            row_number=self.row_number,
            field=field_name,
            message=message,
            value=None if value is None else str(value),
        ))

    def text(self, field_name: str, required: bool = True) -> str:
        value = self.raw.get(field_name)
        if _is_blank(value):
            if required:
                self.fail(field_name, "is required")
            return ""
        return str(value).strip()

    def number(self, field_name: str, required: bool = True) -> Optional[float]:
        value = self.raw.get(field_name)
        if _is_blank(value):
            if required:
                self.fail(field_name, "is required")
            return None
        parsed = _parse_number(value)
        if parsed is None:
            self.fail(field_name, "is not a number", value)
        elif parsed < 0:
            self.fail(field_name, "must not be negative", value)
            return None
        return parsed

    def integer(self, field_name: str, required: bool = False) -> Optional[int]:
        number = self.number(field_name, required=required)
        if number is None:
            return None
        if not float(number).is_integer():
            self.fail(field_name, "must be a whole number", self.raw.get(field_name))
            return None
        return int(number)

    def prices(self, required: tuple = REQUIRED_BRACKETS) -> dict:
        prices = {}
        for tier in TIER_BREAKPOINTS:
            value = self.number(price_column(tier), required=tier in required)
            if value is not None:
                prices[tier] = value

        if not required and not prices:
            self.fail("prices", "at least one bracket must be priced")

        # Volume discount: a larger bracket never costs more per unit
        previous_tier, previous_price = None, None
        for tier in TIER_BREAKPOINTS:
            if tier not in prices:
                continue
            if previous_price is not None and prices[tier] > previous_price:
                self.fail(
                    price_column(tier),
                    f"breaks volume discount: {prices[tier]} > {price_column(previous_tier)} {previous_price}",
                    prices[tier],
                )
            previous_tier, previous_price = tier, prices[tier]
        return prices

    def finish(self):
        if self.errors:
            raise _RowRejected()


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def _parse_number(value) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        cleaned = str(value).strip().replace("$", "").replace(",", "")
        try:
            number = float(cleaned)
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _split_list(value: str) -> tuple:
    return tuple(part.strip() for part in value.replace(";", ",").split(",") if part.strip())


# ----------------------------------------------------------------------------
# Row builders
# ----------------------------------------------------------------------------

def _price_tier(ctx: _RowContext) -> PriceTierRow:
    name = ctx.text("tier_name")
    prices = ctx.prices()
    ctx.finish()
    return PriceTierRow(tier_name=name, prices=prices)


def _product(ctx: _RowContext) -> ProductRow:
    name = ctx.text("name")
    tier = ctx.text("price_tier")
    panel_count = ctx.integer("panel_count")
    ctx.finish()
    return ProductRow(
        name=name,
        price_tier=tier,
        code=ctx.text("code", required=False),
        profile=ctx.text("profile", required=False),
        bill_shape=ctx.text("bill_shape", required=False),
        panel_count=panel_count,
        structure_type=ctx.text("structure_type", required=False),
        closure_compatibility=_split_list(ctx.text("closure_compatibility", required=False)),
    )


def _logo_method(ctx: _RowContext) -> LogoMethodRow:
    name = ctx.text("name")
    application = ctx.text("application")
    size = ctx.text("size")
    prices = ctx.prices()
    ctx.finish()
    return LogoMethodRow(
        name=name,
        application=application,
        size=size,
        prices=prices,
        size_example=ctx.text("size_example", required=False),
        mold_charge_type=ctx.text("mold_charge_type", required=False) or None,
    )


def _mold_charge(ctx: _RowContext) -> MoldChargeRow:
    size = ctx.text("size")
    amount = ctx.number("charge_amount")
    ctx.finish()
    return MoldChargeRow(
        size=size,
        charge_amount=amount,
        size_example=ctx.text("size_example", required=False),
    )


def _fabric(ctx: _RowContext) -> FabricRow:
    name = ctx.text("name")
    prices = ctx.prices()
    ctx.finish()
    return FabricRow(
        name=name,
        prices=prices,
        cost_type=ctx.text("cost_type", required=False) or "Premium Fabric",
        color_note=ctx.text("color_note", required=False),
    )


def _closure(ctx: _RowContext) -> ClosureRow:
    name = ctx.text("name")
    prices = ctx.prices()
    ctx.finish()
    return ClosureRow(name=name, prices=prices, closure_type=ctx.text("closure_type", required=False))


def _accessory(ctx: _RowContext) -> AccessoryRow:
    name = ctx.text("name")
    prices = ctx.prices()
    ctx.finish()
    return AccessoryRow(name=name, prices=prices)


def _delivery_method(ctx: _RowContext) -> DeliveryMethodRow:
    name = ctx.text("name")
    # Delivery may be "not applicable" below some quantity: every bracket optional
    prices = ctx.prices(required=())
    min_quantity = ctx.integer("min_quantity")
    ctx.finish()
    return DeliveryMethodRow(
        name=name,
        prices=prices,
        delivery_type=ctx.text("delivery_type", required=False),
        delivery_days=ctx.text("delivery_days", required=False),
        min_quantity=min_quantity or 0,
    )


ROW_BUILDERS = {
    BLANK_CAP: _price_tier,
    PRODUCTS: _product,
    LOGO: _logo_method,
    MOLD: _mold_charge,
    FABRIC: _fabric,
    CLOSURE: _closure,
    ACCESSORY: _accessory,
    DELIVERY: _delivery_method,
}


def validate_rows(table: str, raw_rows: list[dict], mold_sizes: Optional[set] = None) -> ValidationReport:
    """
    Validate raw rows for one table.

    Invalid rows are rejected and reported; valid rows are returned typed.
    With ``mold_sizes`` (normalized), a logo row whose mold charge type names
    no mold charge row is rejected too.
    """
    builder = ROW_BUILDERS[table]
    report = ValidationReport(table=table)
    seen: dict[str, int] = {}

    for index, raw in enumerate(raw_rows, start=1):
        ctx = _RowContext(table, index, raw)
        try:
            row = builder(ctx)
        except _RowRejected:
            report.errors.extend(ctx.errors)
            continue

        key = normalize_key(row.key)
        if key in seen:
            report.errors.append(RowError(
                table=table,
                row_number=index,
                field="key",
                message=f"duplicates row {seen[key]}",
                value=row.key,
            ))
            continue
        if mold_sizes is not None and getattr(row, "requires_mold", False):
            size = row.mold_size
            if size is None or normalize_key(size) not in mold_sizes:
                report.errors.append(RowError(
                    table=table,
                    row_number=index,
                    field="mold_charge_type",
                    message="names no mold charge row",
                    value=row.mold_charge_type,
                ))
                continue
        seen[key] = index
        report.rows.append(row)

    for error in report.errors:
        logger.error("Rejected price table row: %s", error)

    return report
