"""
Cost Aggregator - combines resolved components into one CostBreakdown.
"""
from ..errors import MandatoryComponentMissingError
from .models import BLANK_CAP, CostBreakdown, CostLine, ResolvedComponent


def _money(value: float) -> float:
    return round(value + 0.0, 2)


class CostAggregator:
    """
    Sums per-unit lines (unit price x quantity) and flat charges (once each).

    Options that were not selected are simply not in the component list, so
    "not selected" (no line) stays distinguishable from "selected but free"
    (a line with a zero total).
    """

    def aggregate(self, components: list[ResolvedComponent], quantity: int, tier: int) -> CostBreakdown:
        if not any(c.category == BLANK_CAP for c in components):
            raise MandatoryComponentMissingError(
                "Base product cost is missing from the quote",
                category=BLANK_CAP,
            )

        breakdown = CostBreakdown(quantity=quantity, tier=tier)
        total = 0.0
        savings_total = 0.0

        for component in components:
            line = self._line(component, quantity)
            breakdown.lines.append(line)
            total += line.line_total
            savings_total += line.savings

        breakdown.total_cost = _money(total)
        breakdown.total_savings = _money(savings_total)
        return breakdown

    def _line(self, component: ResolvedComponent, quantity: int) -> CostLine:
        if component.flat:
            return CostLine(
                category=component.category,
                key=component.key,
                name=component.name,
                unit_price=component.unit_price,
                quantity=None,
                flat=True,
                line_total=0.0 if component.waived else _money(component.unit_price),
                tier_used=None,
                source=component.source,
                waived=component.waived,
            )

        units = component.quantity if component.quantity is not None else quantity
        savings = discount = 0.0
        base = component.base_unit_price
        if base is not None:
            savings = max(0.0, _money((base - component.unit_price) * units))
            if base > 0:
                discount = max(0.0, round((base - component.unit_price) / base * 100, 2))

        return CostLine(
            category=component.category,
            key=component.key,
            name=component.name,
            unit_price=component.unit_price,
            quantity=units,
            flat=False,
            line_total=_money(component.unit_price * units),
            tier_used=component.tier_used,
            source=component.source,
            savings=savings,
            discount_percent=discount,
        )
