"""Catalog module application dependencies."""

from typing import NoReturn

from fastapi import Depends

from src.modules.catalog.application.origin_cache import OriginDataCache
from src.modules.catalog.application.services import CatalogService
from src.modules.catalog.domain.ports import CuratedChannelSource


def _missing_dependency(name: str) -> NoReturn:
    raise RuntimeError(f"Missing dependency override for {name}")


async def get_origin_data_cache() -> OriginDataCache:
    _missing_dependency("OriginDataCache")


async def get_curated_channel_source() -> CuratedChannelSource:
    _missing_dependency("CuratedChannelSource")


async def get_catalog_service(
    cache: OriginDataCache = Depends(get_origin_data_cache),
    curated_source: CuratedChannelSource = Depends(get_curated_channel_source),
) -> CatalogService:
    return CatalogService(cache, curated_source)
