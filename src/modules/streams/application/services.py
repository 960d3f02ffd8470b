"""Stream resolution service."""

from src.core.infrastructure.logging import BusinessEvents
from src.modules.catalog.application.services import CatalogService
from src.modules.streams.application.stream_router import StreamRouter
from src.modules.streams.domain.entities import ResolvedStream


class StreamResolutionService:
    """频道 -> 有序 {url, title} 列表。

    注册表不可达且无缓存时 DataUnavailableError 直接上抛；
    未知频道或无可用源时返回空列表。
    """

    def __init__(self, catalog_service: CatalogService, stream_router: StreamRouter):
        self.catalog_service = catalog_service
        self.stream_router = stream_router

    async def resolve_channel(self, channel_id: str, base_url: str) -> list[ResolvedStream]:
        catalog = await self.catalog_service.get_catalog()
        channel = catalog.find(channel_id)
        if channel is None:
            return []

        resolved = self.stream_router.resolve_streams(channel, catalog.streams, base_url)
        BusinessEvents.stream_resolved(channel_id=channel_id, relay_count=len(resolved))
        return resolved
