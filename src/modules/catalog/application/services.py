"""Catalog application services."""

from loguru import logger

from src.core.config import settings
from src.modules.catalog.application.models import MergedCatalog
from src.modules.catalog.application.origin_cache import OriginDataCache
from src.modules.catalog.domain.entities import ChannelRecord, LogoEntry
from src.modules.catalog.domain.exceptions import DataUnavailableError
from src.modules.catalog.domain.merge import merge_channels
from src.modules.catalog.domain.ports import CuratedChannelSource


class CatalogService:
    """频道目录查询服务。

    职责：
    - 合并精选频道与注册表频道
    - 目录过滤（搜索/分类/优先频道分页）
    - 海报选择
    """

    def __init__(
        self,
        cache: OriginDataCache,
        curated_source: CuratedChannelSource,
        priority_channels: list[str] | None = None,
    ):
        self.cache = cache
        self.curated_source = curated_source
        self.priority_channels = [
            p.lower() for p in (priority_channels or settings.PRIORITY_CHANNELS)
        ]

    async def get_catalog(self) -> MergedCatalog:
        """获取合并后的目录（注册表不可达且无缓存时抛 DataUnavailableError）。"""
        snapshot = await self.cache.get()
        curated = self.curated_source.load()
        channels = merge_channels(curated.channels, snapshot.channels, curated.exclusions)
        return MergedCatalog(channels=channels, streams=snapshot.streams)

    async def find_channel(self, channel_id: str) -> ChannelRecord | None:
        catalog = await self.get_catalog()
        return catalog.find(channel_id)

    async def list_genres(self) -> list[str]:
        catalog = await self.get_catalog()
        return sorted({g for c in catalog.channels for g in c.categories})

    async def list_channels(
        self,
        *,
        search: str | None = None,
        genre: str | None = None,
        skip: int = 0,
    ) -> list[ChannelRecord]:
        """列出目录频道。

        无过滤条件时：首页（skip=0）只返回优先频道并按优先级排序，
        翻页（skip>0）返回其余非优先频道。
        """
        catalog = await self.get_catalog()
        results = [c for c in catalog.channels if catalog.has_playable_source(c)]

        if genre:
            results = [c for c in results if genre in c.categories]
        if search:
            query = search.lower()
            results = [c for c in results if query in c.name.lower()]

        if search or genre:
            return results

        if skip == 0:
            prioritized = [c for c in results if self._priority_index(c) is not None]
            return sorted(prioritized, key=lambda c: self._priority_index(c))
        return [c for c in results if self._priority_index(c) is None]

    async def get_poster(self, channel: ChannelRecord) -> str:
        """选择海报：最宽的横版非 SVG logo > 频道 logo > 默认模板 > 兜底图。"""
        logos = await self._safe_logos()
        candidates = [
            logo
            for logo in logos
            if logo.channel_id == channel.id
            and "horizontal" in logo.tags
            and (logo.format or "").lower() != "svg"
        ]
        if candidates:
            return max(candidates, key=lambda logo: logo.width).url

        if channel.logo_url and not channel.logo_url.lower().endswith(".svg"):
            return channel.logo_url

        if channel.id:
            return settings.LOGO_FALLBACK_URL_TEMPLATE.format(channel_id=channel.id)

        return settings.DEFAULT_POSTER_URL

    def _priority_index(self, channel: ChannelRecord) -> int | None:
        name = channel.name.lower()
        return next(
            (i for i, p in enumerate(self.priority_channels) if p in name),
            None,
        )

    async def _safe_logos(self) -> list[LogoEntry]:
        try:
            return await self.cache.get_logos()
        except DataUnavailableError as e:
            logger.warning(f"Logos unavailable, using fallback posters: {e}")
            return []
