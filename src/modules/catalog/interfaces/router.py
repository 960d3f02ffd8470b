"""Catalog API routes (manifest / catalog / meta)."""

from urllib.parse import parse_qsl

from fastapi import APIRouter, Depends

from src.core.config import settings
from src.modules.catalog.application.dependencies import get_catalog_service
from src.modules.catalog.application.services import CatalogService
from src.modules.catalog.domain.entities import ChannelRecord
from src.modules.catalog.interfaces.schemas import (
    CatalogDefinition,
    CatalogExtra,
    CatalogResponse,
    ManifestResponse,
    MetaPreview,
    MetaResponse,
)

router = APIRouter(tags=["catalog"])

ADDON_ID = "org.romanian-tv"
ADDON_VERSION = "1.0.0"
CATALOG_ID = f"{settings.CHANNEL_ID_PREFIX}all"


def strip_channel_prefix(addon_id: str) -> str:
    prefix = settings.CHANNEL_ID_PREFIX
    return addon_id[len(prefix) :] if addon_id.startswith(prefix) else addon_id


async def _to_meta(channel: ChannelRecord, service: CatalogService) -> MetaPreview:
    poster = await service.get_poster(channel)

    description_parts = ["Romania"]
    if channel.categories:
        description_parts.append(", ".join(sorted(channel.categories)))
    if channel.network:
        description_parts.append(f"Network: {channel.network}")
    if channel.languages:
        description_parts.append(f"Languages: {', '.join(channel.languages)}")

    return MetaPreview(
        id=f"{settings.CHANNEL_ID_PREFIX}{channel.id}",
        name=channel.name,
        poster=poster,
        background=poster,
        logo=poster,
        description=" • ".join(description_parts),
    )


@router.get("/manifest.json", response_model=ManifestResponse)
async def get_manifest(
    service: CatalogService = Depends(get_catalog_service),
) -> ManifestResponse:
    """Add-on manifest."""
    genres = await service.list_genres()
    return ManifestResponse(
        id=ADDON_ID,
        name="Romanian TV",
        version=ADDON_VERSION,
        description="Live Romanian IPTV channels",
        resources=["catalog", "meta", "stream"],
        types=["tv"],
        idPrefixes=[settings.CHANNEL_ID_PREFIX],
        catalogs=[
            CatalogDefinition(
                id=CATALOG_ID,
                name="Romanian TV",
                extra=[
                    CatalogExtra(name="search"),
                    CatalogExtra(name="genre", options=genres),
                    CatalogExtra(name="skip"),
                ],
            )
        ],
    )


@router.get("/catalog/{type}/{catalog_id}.json", response_model=CatalogResponse)
async def get_catalog(
    type: str,
    catalog_id: str,
    service: CatalogService = Depends(get_catalog_service),
) -> CatalogResponse:
    """Catalog without extras (first page)."""
    return await _list_catalog(service, {})


@router.get(
    "/catalog/{type}/{catalog_id}/{extra}.json", response_model=CatalogResponse
)
async def get_catalog_with_extra(
    type: str,
    catalog_id: str,
    extra: str,
    service: CatalogService = Depends(get_catalog_service),
) -> CatalogResponse:
    """Catalog with `search=`, `genre=`, `skip=` extras."""
    return await _list_catalog(service, dict(parse_qsl(extra)))


async def _list_catalog(service: CatalogService, params: dict[str, str]) -> CatalogResponse:
    try:
        skip = int(params.get("skip") or 0)
    except ValueError:
        skip = 0

    channels = await service.list_channels(
        search=params.get("search") or None,
        genre=params.get("genre") or None,
        skip=skip,
    )
    return CatalogResponse(metas=[await _to_meta(c, service) for c in channels])


@router.get("/meta/{type}/{meta_id}.json", response_model=MetaResponse)
async def get_meta(
    type: str,
    meta_id: str,
    service: CatalogService = Depends(get_catalog_service),
) -> MetaResponse:
    """Single channel meta; empty object when the channel is unknown."""
    channel = await service.find_channel(strip_channel_prefix(meta_id))
    if channel is None:
        return MetaResponse(meta={})
    return MetaResponse(meta=await _to_meta(channel, service))
