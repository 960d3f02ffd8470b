"""Playlist proxy.

单次请求状态机：
Fetch -> 重定向结果检查（死链哨兵域名）-> 内容分类 -> 播放列表校验 -> 改写 -> 交付

- 播放列表：整体读入文本，校验 #EXTM3U 后改写所有引用行
- 分片：不缓冲，原样分块转发；客户端断开时由调用方关闭上游
"""

from dataclasses import dataclass
from enum import StrEnum
from urllib.parse import urlsplit

from loguru import logger

from src.core.config import HeaderProfile, settings
from src.core.domain.exceptions import DomainException
from src.core.infrastructure.logging import BusinessEvents
from src.modules.streams.application.token_manager import (
    TokenManager,
    append_token_to_url,
    token_cache_key,
)
from src.modules.streams.domain.classifier import host_matches
from src.modules.streams.domain.entities import TokenRecord
from src.modules.streams.domain.exceptions import StreamUnavailableError, UpstreamError
from src.modules.streams.domain.playlist import (
    RewritePolicy,
    is_playlist_response,
    rewrite_playlist,
    validate_playlist,
)
from src.modules.streams.domain.ports import UpstreamFetcher, UpstreamResponse
from src.modules.streams.domain.relay_url import (
    HLS_PROXY,
    TOKEN_PROXY,
    WRAP_PROXY,
    build_relay_url,
)

PLAYLIST_CONTENT_TYPE = "application/vnd.apple.mpegurl"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Range, Content-Type",
}


class ProxyMode(StrEnum):
    GENERIC = HLS_PROXY
    WRAP = WRAP_PROXY
    TOKEN = TOKEN_PROXY


@dataclass(frozen=True)
class PlaylistDelivery:
    body: str
    final_url: str
    content_type: str = PLAYLIST_CONTENT_TYPE


@dataclass(frozen=True)
class SegmentDelivery:
    """Opened upstream response; the caller streams and closes it."""

    upstream: UpstreamResponse
    content_type: str


ProxyOutcome = PlaylistDelivery | SegmentDelivery


class PlaylistProxyService:
    """Fetches, validates and rewrites manifests; pipes segments."""

    def __init__(
        self,
        upstream: UpstreamFetcher,
        token_manager: TokenManager,
        *,
        header_profiles: dict[str, HeaderProfile] | None = None,
        dead_stream_hosts: list[str] | None = None,
        user_agent: str | None = None,
    ):
        self.upstream = upstream
        self.token_manager = token_manager
        self.header_profiles = {
            host.lower(): profile
            for host, profile in (
                header_profiles if header_profiles is not None else settings.HEADER_PROFILES
            ).items()
        }
        self.dead_stream_hosts = frozenset(
            h.lower()
            for h in (dead_stream_hosts if dead_stream_hosts is not None else settings.DEAD_STREAM_HOSTS)
        )
        self.user_agent = user_agent or settings.PROXY_USER_AGENT

    async def handle(self, target_url: str, mode: ProxyMode, base_url: str) -> ProxyOutcome:
        """处理一次中继请求。

        Raises:
            DomainException: StreamUnavailable / InvalidFormat / Upstream* / TokenFetchFailed
        """
        try:
            return await self._handle(target_url, mode, base_url)
        except DomainException as e:
            BusinessEvents.stream_rejected(
                target_url=target_url,
                reason=e.error_code,
                mode=mode.value,
            )
            raise

    async def _handle(self, target_url: str, mode: ProxyMode, base_url: str) -> ProxyOutcome:
        token: TokenRecord | None = None
        fetch_url = target_url
        if mode is ProxyMode.TOKEN:
            token = await self.token_manager.get_valid_token(token_cache_key(target_url))
            fetch_url = append_token_to_url(target_url, token)

        response = await self.upstream.open(fetch_url, self._build_headers(target_url, mode))
        handed_off = False
        try:
            final_url = response.final_url
            logger.debug(f"Proxying {target_url} -> {final_url}")

            if host_matches(urlsplit(final_url).hostname, self.dead_stream_hosts):
                logger.error(f"Stream redirected to error page: {final_url}")
                raise StreamUnavailableError(final_url)

            if response.status_code >= 400:
                raise UpstreamError(
                    f"Upstream responded with HTTP {response.status_code}",
                    upstream_status=response.status_code,
                )

            if not is_playlist_response(response.content_type, target_url):
                handed_off = True
                return SegmentDelivery(
                    upstream=response,
                    content_type=response.content_type or "application/octet-stream",
                )

            body = await response.read_text()
            validate_playlist(body)
            policy = self._rewrite_policy(mode, base_url, token)
            return PlaylistDelivery(
                body=rewrite_playlist(body, final_url, policy),
                final_url=final_url,
            )
        finally:
            if not handed_off:
                await response.close()

    def _build_headers(self, target_url: str, mode: ProxyMode) -> dict[str, str]:
        headers = {"User-Agent": self.user_agent}
        parts = urlsplit(target_url)
        profile = next(
            (
                p
                for host, p in self.header_profiles.items()
                if host_matches(parts.hostname, frozenset({host}))
            ),
            None,
        )
        if profile is None and mode is ProxyMode.WRAP:
            origin = f"{parts.scheme}://{parts.netloc}"
            profile = HeaderProfile(referer=f"{origin}/", origin=origin)

        if profile is not None:
            headers["Referer"] = profile.referer
            if profile.origin:
                headers["Origin"] = profile.origin
        return headers

    @staticmethod
    def _rewrite_policy(
        mode: ProxyMode, base_url: str, token: TokenRecord | None
    ) -> RewritePolicy:
        def relay(url: str) -> str:
            return build_relay_url(base_url, mode.value, url)

        if token is None:
            return RewritePolicy(relay=relay)

        def sign(url: str) -> str:
            return append_token_to_url(url, token)

        return RewritePolicy(relay=relay, sign_segment=sign)
