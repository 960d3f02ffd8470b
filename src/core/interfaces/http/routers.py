"""API router configuration."""

from fastapi import APIRouter

from src.modules.catalog.interfaces.router import router as catalog_router
from src.modules.streams.interfaces.router import router as streams_router

api_router = APIRouter()

# Manifest / catalog / meta
api_router.include_router(catalog_router)

# Streams and relay entry points
api_router.include_router(streams_router)
