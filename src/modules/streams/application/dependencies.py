"""Streams module application dependencies."""

from typing import NoReturn

from fastapi import Depends

from src.modules.catalog.application.dependencies import get_catalog_service
from src.modules.catalog.application.services import CatalogService
from src.modules.streams.application.playlist_proxy import PlaylistProxyService
from src.modules.streams.application.services import StreamResolutionService
from src.modules.streams.application.stream_router import StreamRouter


def _missing_dependency(name: str) -> NoReturn:
    raise RuntimeError(f"Missing dependency override for {name}")


async def get_stream_router() -> StreamRouter:
    _missing_dependency("StreamRouter")


async def get_playlist_proxy_service() -> PlaylistProxyService:
    _missing_dependency("PlaylistProxyService")


async def get_stream_resolution_service(
    catalog_service: CatalogService = Depends(get_catalog_service),
    stream_router: StreamRouter = Depends(get_stream_router),
) -> StreamResolutionService:
    return StreamResolutionService(catalog_service, stream_router)
