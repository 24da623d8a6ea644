from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..errors import PricingError
from .cache_api import router as cache_router
from .errors import http_error
from .quotes_api import router as quotes_router
from .state import engine

app = FastAPI(
    title="Cap Pricing API",
    description="Tiered pricing and conversational quotes for custom caps",
    version=__version__,
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(quotes_router)
app.include_router(cache_router)


@app.get("/")
async def root():
    return {"status": "online", "message": "Cap Pricing API Active"}


@app.get("/system/status")
async def get_status():
    return {"engine_active": True, **engine.status()}


@app.post("/system/reload")
async def reload_tables():
    """Re-read the pricing tables and clear the cache."""
    engine.reload_data()
    try:
        errors = engine.provider.load_all()
    except PricingError as e:
        raise http_error(e) from e
    return {"success": not any(errors.values()), "errors": errors, "tables": engine.provider.status()}
