"""Shared httpx client.

进程内共享一个 AsyncClient（连接池复用），在 lifespan 中关闭。
"""

from __future__ import annotations

import httpx
from loguru import logger

from src.core.config import settings


class HttpClientProvider:
    """httpx.AsyncClient 封装类。"""

    def __init__(
        self,
        *,
        timeout_sec: float | None = None,
        max_redirects: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """初始化。

        Args:
            timeout_sec: 单次请求超时，默认 PROXY_TIMEOUT_SEC
            max_redirects: 最大重定向跳数，默认 PROXY_MAX_REDIRECTS
            transport: 自定义 transport（测试中注入 MockTransport）
        """
        self._timeout_sec = timeout_sec or settings.PROXY_TIMEOUT_SEC
        self._max_redirects = max_redirects or settings.PROXY_MAX_REDIRECTS
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """获取 AsyncClient 实例（延迟初始化）。"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout_sec,
                follow_redirects=True,
                max_redirects=self._max_redirects,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """关闭连接池。"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.debug("Shared HTTP client closed")


http_client_provider = HttpClientProvider()
