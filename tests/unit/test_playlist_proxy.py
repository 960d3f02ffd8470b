"""Tests for the playlist proxy service over a mocked upstream."""

from unittest.mock import AsyncMock, MagicMock
from urllib.parse import unquote

import httpx
import pytest

from src.core.config import HeaderProfile
from src.modules.streams.application.playlist_proxy import (
    PlaylistDelivery,
    PlaylistProxyService,
    ProxyMode,
    SegmentDelivery,
)
from src.modules.streams.domain.entities import TokenRecord
from src.modules.streams.domain.exceptions import (
    InvalidFormatError,
    StreamUnavailableError,
    TokenFetchFailedError,
    UpstreamError,
    UpstreamRefusedError,
    UpstreamTimeoutError,
)
from src.modules.streams.infrastructure.upstream import HttpxUpstreamFetcher

pytestmark = pytest.mark.anyio

BASE = "https://relay.example"

PLAYLIST = "#EXTM3U\n#EXTINF:6.0,\nsegment1.ts\n"


def _token_manager() -> MagicMock:
    manager = MagicMock()
    manager.get_valid_token = AsyncMock(
        return_value=TokenRecord(
            source_base_url="https://live.example/protv/index.m3u8",
            token="t0k",
            remote_constraint="no_check_ip",
            expires_at_ms=2_000_000_000_000,
        )
    )
    return manager


def _service(handler, token_manager: MagicMock | None = None, **kwargs) -> PlaylistProxyService:
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), follow_redirects=True, max_redirects=5
    )
    return PlaylistProxyService(
        HttpxUpstreamFetcher(client),
        token_manager or _token_manager(),
        header_profiles=kwargs.pop("header_profiles", {}),
        dead_stream_hosts=["google.com", "yahoo.com", "bing.com"],
        user_agent="test-agent",
    )


async def test_playlist_is_rewritten_against_final_url() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "old.example":
            return httpx.Response(302, headers={"location": "https://cdn.example/path/index.m3u8"})
        return httpx.Response(
            200, text=PLAYLIST, headers={"content-type": "application/vnd.apple.mpegurl"}
        )

    outcome = await _service(handler).handle(
        "https://old.example/live.m3u8", ProxyMode.GENERIC, BASE
    )

    assert isinstance(outcome, PlaylistDelivery)
    assert outcome.final_url == "https://cdn.example/path/index.m3u8"
    relayed = outcome.body.splitlines()[2]
    assert relayed.startswith(f"{BASE}/hls-proxy/")
    assert unquote(relayed.removeprefix(f"{BASE}/hls-proxy/")) == (
        "https://cdn.example/path/segment1.ts"
    )


async def test_redirect_to_dead_host_is_stream_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "dead.example":
            return httpx.Response(302, headers={"location": "https://www.google.com/"})
        return httpx.Response(200, text="<html>search</html>", headers={"content-type": "text/html"})

    with pytest.raises(StreamUnavailableError) as exc_info:
        await _service(handler).handle("https://dead.example/live.m3u8", ProxyMode.GENERIC, BASE)
    assert exc_info.value.details == {"final_url": "https://www.google.com/"}


async def test_html_error_page_is_invalid_format() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<!DOCTYPE html><p>blocked</p>")

    with pytest.raises(InvalidFormatError) as exc_info:
        await _service(handler).handle("https://cdn.example/live.m3u8", ProxyMode.GENERIC, BASE)
    assert exc_info.value.reason == InvalidFormatError.HTML_ERROR_PAGE


async def test_upstream_error_status_is_reported() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403)

    with pytest.raises(UpstreamError) as exc_info:
        await _service(handler).handle("https://cdn.example/live.m3u8", ProxyMode.GENERIC, BASE)
    assert exc_info.value.upstream_status == 403


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (httpx.ConnectTimeout("slow"), UpstreamTimeoutError),
        (httpx.ConnectError("refused"), UpstreamRefusedError),
    ],
)
async def test_transport_errors_are_classified(error, expected) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise error

    with pytest.raises(expected):
        await _service(handler).handle("https://cdn.example/live.m3u8", ProxyMode.GENERIC, BASE)


async def test_segment_is_handed_off_unbuffered() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"\x47" * 1024, headers={"content-type": "video/mp2t"})

    outcome = await _service(handler).handle(
        "https://cdn.example/path/segment1.ts", ProxyMode.GENERIC, BASE
    )

    assert isinstance(outcome, SegmentDelivery)
    assert outcome.content_type == "video/mp2t"
    chunks = [chunk async for chunk in outcome.upstream.iter_bytes(256)]
    await outcome.upstream.close()
    assert b"".join(chunks) == b"\x47" * 1024


async def test_token_mode_signs_fetch_and_segments() -> None:
    seen: list[httpx.URL] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url)
        return httpx.Response(
            200,
            text="#EXTM3U\n#EXTINF:6,\nseg1.ts\nhd/index.m3u8\n",
            headers={"content-type": "application/x-mpegurl"},
        )

    outcome = await _service(handler).handle(
        "https://live.example/protv/index.m3u8", ProxyMode.TOKEN, BASE
    )

    assert seen[0].params["token"] == "t0k"
    lines = outcome.body.splitlines()
    assert lines[2] == "https://live.example/protv/seg1.ts?token=t0k&remote=no_check_ip"
    assert lines[3].startswith(f"{BASE}/token-proxy/")


async def test_token_failure_aborts_before_fetch() -> None:
    handler = MagicMock()
    manager = _token_manager()
    manager.get_valid_token.side_effect = TokenFetchFailedError("origin down")

    with pytest.raises(TokenFetchFailedError):
        await _service(handler, manager).handle(
            "https://live.example/protv/index.m3u8", ProxyMode.TOKEN, BASE
        )
    handler.assert_not_called()


async def test_wrap_mode_spoofs_referer_and_origin() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text=PLAYLIST, headers={"content-type": "audio/mpegurl"})

    await _service(handler).handle("https://cdn.antena.example/a1/index.m3u8", ProxyMode.WRAP, BASE)

    assert seen[0].headers["referer"] == "https://cdn.antena.example/"
    assert seen[0].headers["origin"] == "https://cdn.antena.example"
    assert seen[0].headers["user-agent"] == "test-agent"


async def test_header_profile_applies_to_matching_host() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text=PLAYLIST, headers={"content-type": "audio/mpegurl"})

    service = _service(
        handler,
        header_profiles={"antena.example": HeaderProfile(referer="https://antena.example/")},
    )
    await service.handle("https://cdn.antena.example/a1/index.m3u8", ProxyMode.GENERIC, BASE)

    assert seen[0].headers["referer"] == "https://antena.example/"
    assert "origin" not in seen[0].headers


async def test_redirect_loop_fails_fast_with_upstream_error() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(302, headers={"location": str(request.url)})

    with pytest.raises(UpstreamError) as exc_info:
        await _service(handler).handle("https://loop.example/live.m3u8", ProxyMode.GENERIC, BASE)

    assert exc_info.value.error_code == "UPSTREAM_ERROR"
    assert exc_info.value.http_status_code == 502
    assert calls <= 6
