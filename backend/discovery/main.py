# backend/discovery/main.py
"""
FastAPI application for the listing search and discovery engine.

Run with:
    uvicorn discovery.main:app --reload
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI

from .core.config import settings
from .database import init_db
from .routes.v1 import discovery as discovery_v1
from .routes.v1 import health as health_v1
from .routes.v1 import locations as locations_v1
from .routes.v1 import search as search_v1
from .services.search.config import get_search_config

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    logger.info(f"Discovery API starting up (environment: {settings.environment})")
    init_db()
    logger.info(f"Search configuration: {get_search_config().to_dict()}")
    logger.info(f"Geocoding provider: {settings.geocoding_provider}")

    yield

    logger.info("Discovery API shutting down...")


app = FastAPI(
    title="Listing Discovery API",
    description="Search, suggestions and discovery sections for nearby listings and offers",
    version=API_VERSION,
    lifespan=app_lifespan,
)

# API v1 - no prefixes on the routers themselves
api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(search_v1.router, prefix="/search")
api_v1.include_router(discovery_v1.router, prefix="/discovery")
api_v1.include_router(locations_v1.router, prefix="/locations")

app.include_router(api_v1)
app.include_router(health_v1.router)


@app.get("/")
def read_root() -> dict:
    return {"message": "Listing Discovery API", "version": API_VERSION, "docs": "/docs"}
