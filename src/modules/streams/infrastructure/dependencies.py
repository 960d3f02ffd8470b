"""Streams module infrastructure dependencies.

Token 缓存进程内只构建一次，跨请求共享。
"""

from src.core.config import settings
from src.core.infrastructure.clock import SystemClock
from src.modules.streams.application.playlist_proxy import PlaylistProxyService
from src.modules.streams.application.stream_router import StreamRouter
from src.modules.streams.application.token_manager import TokenManager
from src.modules.streams.domain.classifier import RoutingPolicy
from src.modules.streams.infrastructure.token_issuer import HttpTokenIssuer
from src.modules.streams.infrastructure.upstream import HttpxUpstreamFetcher


def build_routing_policy() -> RoutingPolicy:
    return RoutingPolicy(
        token_aggregator_hosts=frozenset(settings.TOKEN_AGGREGATOR_HOSTS),
        token_origin_hosts=frozenset(h.lower() for h in settings.TOKEN_ORIGINS),
        header_spoof_hosts=frozenset(h.lower() for h in settings.HEADER_PROFILES),
        proxy_required_hosts=frozenset(settings.PROXY_REQUIRED_HOSTS),
    )


stream_router = StreamRouter(build_routing_policy())
token_manager = TokenManager(
    HttpTokenIssuer(),
    SystemClock(),
)
playlist_proxy_service = PlaylistProxyService(
    HttpxUpstreamFetcher(),
    token_manager,
)


async def get_stream_router() -> StreamRouter:
    return stream_router


async def get_playlist_proxy_service() -> PlaylistProxyService:
    return playlist_proxy_service
