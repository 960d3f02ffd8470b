"""Catalog module infrastructure dependencies.

缓存对象进程内只构建一次，跨请求共享。
"""

from src.core.infrastructure.clock import SystemClock
from src.modules.catalog.application.origin_cache import OriginDataCache
from src.modules.catalog.infrastructure.curated_loader import JsonCuratedChannelSource
from src.modules.catalog.infrastructure.registry_client import IptvOrgRegistryClient

origin_data_cache = OriginDataCache(IptvOrgRegistryClient(), SystemClock())
curated_channel_source = JsonCuratedChannelSource()


async def get_origin_data_cache() -> OriginDataCache:
    return origin_data_cache


async def get_curated_channel_source() -> JsonCuratedChannelSource:
    return curated_channel_source
