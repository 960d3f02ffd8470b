"""httpx upstream fetcher.

流式打开上游地址（跟随有限次重定向，有超时），把 httpx 异常映射为领域异常。
响应体由调用方决定是整体读取（播放列表）还是分块转发（分片）。
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
from loguru import logger

from src.core.infrastructure.http import http_client_provider
from src.modules.streams.domain.exceptions import (
    UpstreamError,
    UpstreamRefusedError,
    UpstreamTimeoutError,
)
from src.modules.streams.domain.ports import UpstreamFetcher, UpstreamResponse


class HttpxUpstreamResponse(UpstreamResponse):
    """Adapter over a streamed httpx.Response."""

    def __init__(self, response: httpx.Response):
        self._response = response

    @property
    def final_url(self) -> str:
        return str(self._response.url)

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def content_type(self) -> str | None:
        return self._response.headers.get("content-type")

    async def read_text(self) -> str:
        try:
            await self._response.aread()
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(f"Timed out reading {self.final_url}") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Failed reading {self.final_url}: {e}") from e
        return self._response.text

    async def iter_bytes(self, chunk_size: int) -> AsyncIterator[bytes]:
        async for chunk in self._response.aiter_bytes(chunk_size=chunk_size):
            yield chunk

    async def close(self) -> None:
        await self._response.aclose()


class HttpxUpstreamFetcher(UpstreamFetcher):
    """Opens upstream URLs on the shared AsyncClient."""

    def __init__(self, client: httpx.AsyncClient | None = None):
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        """注入的客户端，缺省使用进程共享客户端。"""
        return self._client or http_client_provider.client

    async def open(self, url: str, headers: dict[str, str]) -> HttpxUpstreamResponse:
        request = self.client.build_request("GET", url, headers=headers)
        try:
            response = await self.client.send(request, stream=True)
        except httpx.TimeoutException as e:
            logger.warning(f"Upstream timeout for {url}: {e}")
            raise UpstreamTimeoutError(f"Upstream timed out: {url}") from e
        except httpx.ConnectError as e:
            logger.warning(f"Upstream refused connection for {url}: {e}")
            raise UpstreamRefusedError(f"Upstream refused connection: {url}") from e
        except httpx.TooManyRedirects as e:
            raise UpstreamError(f"Too many redirects: {url}") from e
        except httpx.HTTPError as e:
            logger.warning(f"Upstream error for {url}: {e}")
            raise UpstreamError(f"Upstream request failed: {e}") from e
        return HttpxUpstreamResponse(response)
