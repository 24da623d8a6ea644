"""
Delta merge - applies a PartialSpecification to a stored QuoteSpecification.

Merging is field level. Anything the delta does not mention is carried into
the result as the very same value object, so repeating a turn with an empty
delta yields an equal specification.
"""
import logging
from dataclasses import replace
from typing import Optional, Union

from ..data.tables import normalize_key
from ..engine.models import FABRIC, ACCESSORY, LOGO, MAX_FABRICS, LogoPlacement, QuoteSpecification
from ..errors import IncompleteSpecificationError
from .models import (
    REMOVE, SCALAR_FIELDS, OPTIONAL_SCALARS,
    ClarificationNeeded, LogoPlacementDelta, PartialSpecification, Removal,
)

logger = logging.getLogger(__name__)

MergeResult = Union[QuoteSpecification, ClarificationNeeded]


class _Clarify(Exception):
    """Unwinds a merge that needs a question answered first."""

    def __init__(self, clarification: ClarificationNeeded):
        super().__init__(clarification.message)
        self.clarification = clarification


def merge_delta(spec: QuoteSpecification, delta: PartialSpecification) -> MergeResult:
    """
    Return the merged specification, or a ClarificationNeeded describing
    which field could not be applied. ``spec`` is never modified.

    Raises:
        IncompleteSpecificationError: a new logo placement lacks its method or size
    """
    if delta.is_empty:
        return spec

    try:
        changes = _merge_scalars(spec, delta)
        if delta.fabrics:
            changes["fabrics"] = _merge_names(FABRIC, spec.fabrics, delta.fabrics, limit=MAX_FABRICS)
        if delta.accessories:
            changes["accessories"] = _merge_names(ACCESSORY, spec.accessories, delta.accessories)
        if delta.logos:
            changes["logos"] = _merge_logos(spec.logos, delta.logos)
    except _Clarify as c:
        logger.info("Delta needs clarification on %s: %s", c.clarification.ambiguous_field, c.clarification.message)
        return c.clarification

    return replace(spec, **changes) if changes else spec


def _merge_scalars(spec: QuoteSpecification, delta: PartialSpecification) -> dict:
    changes = {}
    for name in SCALAR_FIELDS:
        value = getattr(delta, name)
        if value is None:
            continue
        if value is REMOVE:
            if name not in OPTIONAL_SCALARS:
                raise IncompleteSpecificationError(f"{name} cannot be removed", key=name)
            changes[name] = () if name == "colors" else None
        elif name == "colors":
            changes[name] = tuple(value)
        else:
            changes[name] = value

    # A product outranks a price tier, so choosing a tier alone drops the old product
    if isinstance(delta.price_tier, str) and delta.product is None and spec.product:
        changes["product"] = None
    return changes


def _merge_names(category: str, current: tuple, items: tuple, limit: Optional[int] = None) -> tuple:
    """Apply removals first, then additions. Identity is the normalized name."""
    result = list(current)

    for item in items:
        if not isinstance(item, Removal):
            continue
        index = _index_of(result, item.name)
        if index is None:
            raise _Clarify(ClarificationNeeded(
                ambiguous_field=category,
                candidates=tuple(result),
                message=f"No {category} named {item.name!r} is on the quote",
            ))
        del result[index]

    for item in items:
        if isinstance(item, Removal) or _index_of(result, item) is not None:
            continue
        result.append(item)

    if limit is not None and len(result) > limit:
        raise _Clarify(ClarificationNeeded(
            ambiguous_field=category,
            candidates=tuple(current),
            message=f"A cap takes at most {limit} fabrics; which one should be replaced?",
        ))
    return tuple(result)


def _index_of(names: list, name: str):
    wanted = normalize_key(name)
    for i, existing in enumerate(names):
        if normalize_key(existing) == wanted:
            return i
    return None


def _merge_logos(current: dict, deltas: tuple) -> dict:
    result = dict(current)
    for delta in deltas:
        if delta.position:
            position = _existing_position(result, delta.position)
        else:
            position = _select_position(result, delta)

        if delta.remove:
            if position not in result:
                raise _Clarify(ClarificationNeeded(
                    ambiguous_field=LOGO,
                    candidates=tuple(result),
                    message=f"There is no logo at {position!r} to remove",
                ))
            del result[position]
            continue

        existing = result.get(position)
        if existing is None:
            if not delta.method or not delta.size:
                raise IncompleteSpecificationError(
                    f"New logo at {position!r} needs a method and a size",
                    category=LOGO,
                    key=position,
                )
            result[position] = LogoPlacement(
                method=delta.method,
                size=delta.size,
                application=delta.application or "Direct",
            )
        elif delta.has_changes:
            result[position] = LogoPlacement(
                method=delta.method or existing.method,
                size=delta.size or existing.size,
                application=delta.application or existing.application,
            )
    return result


def _existing_position(logos: dict, position: str) -> str:
    """The stored key that names ``position``, or ``position`` itself if none does."""
    wanted = normalize_key(position)
    for existing in logos:
        if normalize_key(existing) == wanted:
            return existing
    return position


def _select_position(logos: dict, delta: LogoPlacementDelta) -> str:
    """Position of the one placement the delta's selectors match."""
    matches = [
        position for position, placement in logos.items()
        if _matches(placement.method, delta.match_method)
        and _matches(placement.application, delta.match_application)
    ]
    if len(matches) == 1:
        return matches[0]

    if matches:
        message = "Several logos match; which position did you mean?"
    else:
        message = "No logo on the quote matches; which position did you mean?"
    raise _Clarify(ClarificationNeeded(
        ambiguous_field=LOGO,
        candidates=tuple(matches or logos),
        message=message,
    ))


def _matches(value: str, selector) -> bool:
    return selector is None or normalize_key(value) == normalize_key(selector)
