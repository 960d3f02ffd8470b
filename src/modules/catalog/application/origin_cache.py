"""Origin data cache.

缓存第三方注册表数据：
- 频道 + 流：TTL 过期后先做轻量新鲜度探测，标签未变则直接续期
- Logo：独立缓存，TTL 更长，不做探测
- 首次冷启动失败直接抛 DataUnavailableError；已有缓存时刷新失败降级返回旧数据

并发刷新不加锁，允许少量重复请求。
"""

from dataclasses import replace

from loguru import logger

from src.core.config import settings
from src.core.domain.ports.clock import Clock
from src.core.infrastructure.logging import BusinessEvents
from src.modules.catalog.domain.entities import (
    CacheEntry,
    LogoEntry,
    RegistrySnapshot,
)
from src.modules.catalog.domain.exceptions import (
    DataUnavailableError,
    RegistryFetchError,
)
from src.modules.catalog.domain.ports import ChannelRegistry


class OriginDataCache:
    """Time-bounded cache of the registry snapshot and logos."""

    def __init__(
        self,
        registry: ChannelRegistry,
        clock: Clock,
        *,
        data_ttl_sec: int | None = None,
        logo_ttl_sec: int | None = None,
    ):
        self.registry = registry
        self.clock = clock
        self.data_ttl_ms = (data_ttl_sec or settings.DATA_TTL_SEC) * 1000
        self.logo_ttl_ms = (logo_ttl_sec or settings.LOGO_TTL_SEC) * 1000
        self._data: CacheEntry[RegistrySnapshot] | None = None
        self._logos: CacheEntry[list[LogoEntry]] | None = None

    @property
    def data_entry(self) -> CacheEntry[RegistrySnapshot] | None:
        return self._data

    def data_age_sec(self) -> float | None:
        """距上次成功拉取（或续期）的秒数；未加载时为 None。"""
        if self._data is None:
            return None
        return max(0.0, (self.clock.now_ms() - self._data.fetched_at_ms) / 1000)

    def is_data_stale(self) -> bool:
        age = self.data_age_sec()
        return age is not None and age * 1000 >= self.data_ttl_ms

    async def get(self) -> RegistrySnapshot:
        """获取频道与流快照。

        Raises:
            DataUnavailableError: 注册表不可达且没有任何缓存
        """
        now = self.clock.now_ms()
        entry = self._data

        if entry is not None and now - entry.fetched_at_ms < self.data_ttl_ms:
            return entry.value

        if entry is not None and await self._is_unchanged(entry):
            self._data = replace(entry, fetched_at_ms=now)
            BusinessEvents.catalog_revalidated(validation_tag=entry.validation_tag or "")
            return entry.value

        try:
            channels = await self.registry.fetch_channels()
            streams, tag = await self.registry.fetch_streams()
        except RegistryFetchError as e:
            if entry is None:
                logger.error(f"Registry cold fetch failed: {e}")
                raise DataUnavailableError(f"Channel registry is unavailable: {e}") from e
            logger.warning(f"Registry refresh failed, serving stale data: {e}")
            BusinessEvents.feature_degraded(feature="registry_refresh", reason=str(e))
            return entry.value

        snapshot = RegistrySnapshot(channels=channels, streams=streams)
        self._data = CacheEntry(value=snapshot, fetched_at_ms=now, validation_tag=tag)
        BusinessEvents.catalog_refreshed(
            channel_count=len(channels),
            stream_count=len(streams),
            validation_tag=tag,
        )
        return snapshot

    async def get_logos(self) -> list[LogoEntry]:
        """获取 Logo 列表（无探测）。"""
        now = self.clock.now_ms()
        entry = self._logos

        if entry is not None and now - entry.fetched_at_ms < self.logo_ttl_ms:
            return entry.value

        try:
            logos = await self.registry.fetch_logos()
        except RegistryFetchError as e:
            if entry is None:
                raise DataUnavailableError(f"Logo registry is unavailable: {e}") from e
            logger.warning(f"Logo refresh failed, serving stale data: {e}")
            return entry.value

        self._logos = CacheEntry(value=logos, fetched_at_ms=now)
        return logos

    async def _is_unchanged(self, entry: CacheEntry[RegistrySnapshot]) -> bool:
        """新鲜度探测；探测失败视为已变化（走全量刷新）。"""
        if not entry.validation_tag:
            return False
        try:
            tag = await self.registry.probe_streams_tag()
        except RegistryFetchError as e:
            logger.warning(f"Registry freshness probe failed: {e}")
            return False
        return tag is not None and tag == entry.validation_tag
