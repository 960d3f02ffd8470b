"""Streams API routes (stream listing + relay entry points)."""

from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import StreamingResponse

from src.core.config import settings
from src.modules.catalog.interfaces.router import strip_channel_prefix
from src.modules.streams.application.dependencies import (
    get_playlist_proxy_service,
    get_stream_resolution_service,
)
from src.modules.streams.application.playlist_proxy import (
    CORS_HEADERS,
    PlaylistDelivery,
    PlaylistProxyService,
    ProxyMode,
)
from src.modules.streams.application.services import StreamResolutionService
from src.modules.streams.domain.ports import UpstreamResponse
from src.modules.streams.domain.relay_url import decode_relay_target
from src.modules.streams.interfaces.schemas import StreamItem, StreamsResponse

router = APIRouter(tags=["streams"])


def public_base_url(request: Request) -> str:
    """对外可见的服务根地址，用于拼装中继 URL。"""
    if settings.PUBLIC_BASE_URL:
        return settings.PUBLIC_BASE_URL.rstrip("/")
    host = request.headers.get("host") or request.url.netloc
    return f"{request.url.scheme}://{host}"


@router.get("/stream/{type}/{stream_id}.json", response_model=StreamsResponse)
async def get_streams(
    type: str,
    stream_id: str,
    request: Request,
    service: StreamResolutionService = Depends(get_stream_resolution_service),
) -> StreamsResponse:
    """Ordered playable streams for a channel."""
    resolved = await service.resolve_channel(
        strip_channel_prefix(stream_id), public_base_url(request)
    )
    return StreamsResponse(
        streams=[StreamItem(url=s.url, title=s.title, name=s.title) for s in resolved]
    )


async def _pipe(upstream: UpstreamResponse) -> AsyncIterator[bytes]:
    try:
        async for chunk in upstream.iter_bytes(settings.PROXY_CHUNK_SIZE):
            yield chunk
    finally:
        await upstream.close()


async def _relay(request: Request, mode: ProxyMode, service: PlaylistProxyService) -> Response:
    raw_path = request.scope.get("raw_path", b"").decode("latin-1")
    target_url = decode_relay_target(raw_path, mode.value)

    outcome = await service.handle(target_url, mode, public_base_url(request))
    if isinstance(outcome, PlaylistDelivery):
        return Response(
            content=outcome.body,
            media_type=outcome.content_type,
            headers=CORS_HEADERS,
        )

    return StreamingResponse(
        _pipe(outcome.upstream),
        status_code=outcome.upstream.status_code,
        media_type=outcome.content_type,
        headers=CORS_HEADERS,
    )


@router.get("/hls-proxy/{target:path}")
async def hls_proxy(
    target: str,
    request: Request,
    service: PlaylistProxyService = Depends(get_playlist_proxy_service),
) -> Response:
    """Generic relay: rewrite manifests, pipe segments."""
    return await _relay(request, ProxyMode.GENERIC, service)


@router.get("/wrap-proxy/{target:path}")
async def wrap_proxy(
    target: str,
    request: Request,
    service: PlaylistProxyService = Depends(get_playlist_proxy_service),
) -> Response:
    """Relay with spoofed Referer/Origin."""
    return await _relay(request, ProxyMode.WRAP, service)


@router.get("/token-proxy/{target:path}")
async def token_proxy(
    target: str,
    request: Request,
    service: PlaylistProxyService = Depends(get_playlist_proxy_service),
) -> Response:
    """Relay for token-signed origins."""
    return await _relay(request, ProxyMode.TOKEN, service)
