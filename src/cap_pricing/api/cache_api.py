"""
Cache API - FastAPI router for pricing cache administration.
"""
from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ..engine.models import PER_UNIT_CATEGORIES, MOLD
from .state import engine

router = APIRouter(prefix="/cache", tags=["cache"])


class PrewarmRequest(BaseModel):
    """Request model for a prewarm run."""
    quantities: Optional[List[int]] = None
    background: bool = True


@router.get("/stats")
async def get_cache_stats():
    """Hit/miss statistics of the pricing cache."""
    return engine.cache.stats().to_dict()


@router.post("/clear")
async def clear_cache():
    """Drop every cached price."""
    engine.cache.clear()
    return {"success": True}


@router.post("/invalidate/{category}")
async def invalidate_category(category: str):
    """Drop the cached prices of one cost category."""
    if category not in PER_UNIT_CATEGORIES + (MOLD,):
        raise HTTPException(status_code=404, detail=f"Unknown cost category '{category}'")
    return {"success": True, "category": category, "evicted": engine.cache.invalidate_by_category(category)}


@router.post("/prewarm")
async def prewarm_cache(request: Optional[PrewarmRequest] = None):
    """Resolve common options ahead of time, on a background thread by default."""
    request = request or PrewarmRequest()
    if request.quantities and any(q <= 0 for q in request.quantities):
        raise HTTPException(status_code=422, detail="Prewarm quantities must be positive")
    thread = engine.prewarm(
        tuple(request.quantities) if request.quantities else None,
        background=request.background,
    )
    return {"success": True, "background": thread is not None}
