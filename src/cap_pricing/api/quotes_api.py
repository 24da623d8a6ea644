"""
Quotes API - FastAPI router for stateless quotes and conversational quotes.
"""
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ..conversation.models import (
    REMOVE, Removal, ClarificationNeeded, LogoPlacementDelta, PartialSpecification,
)
from ..engine.models import QuoteSpecification, OptionPriceRequest
from ..errors import PricingError
from .errors import http_error, not_found
from .state import engine, manager

router = APIRouter(tags=["quotes"])

MAX_BULK_REQUESTS = 100


# Pydantic models for API
class LogoPlacementIn(BaseModel):
    method: str
    size: str
    application: str = "Direct"


class SpecificationIn(BaseModel):
    """Request model for a complete specification."""
    quantity: int
    product: Optional[str] = None
    price_tier: Optional[str] = None
    colors: List[str] = []
    fabrics: List[str] = []
    logos: Dict[str, LogoPlacementIn] = {}
    accessories: List[str] = []
    closure: Optional[str] = None
    delivery: Optional[str] = None
    previous_order_number: Optional[str] = None

    def to_specification(self) -> QuoteSpecification:
        return QuoteSpecification.from_dict(self.model_dump())


class QuantityComparisonIn(BaseModel):
    """A specification priced at several quantities; its own quantity is ignored."""
    specification: SpecificationIn
    quantities: Optional[List[int]] = None


class OptionPriceIn(BaseModel):
    category: str
    key: str
    quantity: int


class BulkPricingIn(BaseModel):
    requests: List[OptionPriceIn]


class NamedItemDelta(BaseModel):
    name: str
    remove: bool = False


class LogoDeltaIn(BaseModel):
    position: Optional[str] = None
    method: Optional[str] = None
    size: Optional[str] = None
    application: Optional[str] = None
    match_method: Optional[str] = None
    match_application: Optional[str] = None
    remove: bool = False


class DeltaIn(BaseModel):
    """
    Request model for a conversational delta.

    Omitted fields are unchanged; a scalar sent as null is cleared.
    """
    quantity: Optional[int] = None
    product: Optional[str] = None
    price_tier: Optional[str] = None
    colors: Optional[List[str]] = None
    closure: Optional[str] = None
    delivery: Optional[str] = None
    previous_order_number: Optional[str] = None
    fabrics: List[NamedItemDelta] = []
    accessories: List[NamedItemDelta] = []
    logos: List[LogoDeltaIn] = []

    def to_partial(self) -> PartialSpecification:
        sent = self.model_dump(exclude_unset=True)
        scalars = {}
        for name in ("quantity", "product", "price_tier", "colors", "closure", "delivery", "previous_order_number"):
            if name in sent:
                value = sent[name]
                if value is None:
                    scalars[name] = REMOVE
                else:
                    scalars[name] = tuple(value) if name == "colors" else value

        def items(deltas):
            return tuple(Removal(d.name) if d.remove else d.name for d in deltas)

        return PartialSpecification(
            fabrics=items(self.fabrics),
            accessories=items(self.accessories),
            logos=tuple(LogoPlacementDelta(**d.model_dump()) for d in self.logos),
            **scalars,
        )


# Endpoints

@router.post("/calculate")
async def calculate_quote(spec: SpecificationIn):
    """Price a complete specification without storing it."""
    try:
        return engine.calculate_quote(spec.to_specification()).to_dict()
    except PricingError as e:
        raise http_error(e) from e


@router.post("/calculate/quantities")
async def compare_quantities(request: QuantityComparisonIn):
    """Price one specification at several quantities."""
    quantities = tuple(request.quantities) if request.quantities else None
    quotes = engine.price_quantities(request.specification.to_specification(), quantities)
    return {
        "quotes": [q.to_dict() for q in quotes],
        "priced": sum(1 for q in quotes if q.breakdown is not None),
    }


@router.post("/pricing/bulk")
async def bulk_pricing(request: BulkPricingIn):
    """Unit prices for many options in one call; failures are reported per entry."""
    if not request.requests:
        raise HTTPException(status_code=400, detail="No pricing requests given")
    if len(request.requests) > MAX_BULK_REQUESTS:
        raise HTTPException(status_code=400, detail=f"At most {MAX_BULK_REQUESTS} requests per batch")

    results = engine.resolve_many([OptionPriceRequest(**r.model_dump()) for r in request.requests])
    failed = sum(1 for r in results if r.error is not None)
    return {
        "results": [r.to_dict() for r in results],
        "summary": {"total": len(results), "successful": len(results) - failed, "failed": failed},
    }


@router.post("/conversations/{conversation_id}/quote")
async def start_conversation_quote(conversation_id: str, spec: SpecificationIn):
    """Start a conversation's quote from a complete specification."""
    try:
        state = manager.start_quote(conversation_id, spec.to_specification())
    except PricingError as e:
        raise http_error(e) from e
    return state.to_dict()


@router.post("/conversations/{conversation_id}/delta")
async def apply_conversation_delta(conversation_id: str, delta: DeltaIn):
    """Merge a delta into a conversation's quote and reprice it."""
    try:
        result = manager.apply_delta(conversation_id, delta.to_partial())
    except PricingError as e:
        raise http_error(e) from e

    if isinstance(result, ClarificationNeeded):
        return result.to_dict()
    return {"status": "updated", **result.to_dict()}


@router.get("/conversations/{conversation_id}/quote")
async def get_conversation_quote(conversation_id: str):
    """Current state of a conversation's quote."""
    state = manager.get_state(conversation_id)
    if state is None:
        raise not_found(conversation_id)
    return state.to_dict()


@router.delete("/conversations/{conversation_id}/quote")
async def discard_conversation_quote(conversation_id: str):
    """Forget a conversation's quote."""
    if not manager.discard(conversation_id):
        raise not_found(conversation_id)
    return {"success": True, "message": f"Conversation '{conversation_id}' discarded"}
