"""HTTP token issuer.

请求格式：GET {issuer_url}?source={source_url}，带伪装的 Referer/Origin。
响应格式：{"token": str, "remote": str?, "expires": epoch 秒}
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlsplit

import httpx
from loguru import logger

from src.core.config import TokenOriginConfig, settings
from src.core.infrastructure.http import http_client_provider
from src.modules.streams.domain.classifier import host_matches
from src.modules.streams.domain.entities import TokenRecord
from src.modules.streams.domain.exceptions import TokenFetchFailedError
from src.modules.streams.domain.ports import TokenIssuer


class HttpTokenIssuer(TokenIssuer):
    """Token issuer backed by per-origin HTTP endpoints."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        origins: dict[str, TokenOriginConfig] | None = None,
        *,
        timeout_sec: float | None = None,
        default_remote: str | None = None,
    ) -> None:
        self._client = client
        self.origins = {
            host.lower(): config
            for host, config in (origins if origins is not None else settings.TOKEN_ORIGINS).items()
        }
        self.timeout_sec = timeout_sec or settings.TOKEN_FETCH_TIMEOUT_SEC
        self.default_remote = default_remote or settings.TOKEN_DEFAULT_REMOTE

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client or http_client_provider.client

    async def issue(self, source_base_url: str) -> TokenRecord:
        config = self._config_for(source_base_url)

        headers = {"User-Agent": settings.PROXY_USER_AGENT, "Referer": config.referer}
        if config.origin:
            headers["Origin"] = config.origin

        try:
            response = await self.client.get(
                config.issuer_url,
                params={"source": source_base_url},
                headers=headers,
                timeout=self.timeout_sec,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise TokenFetchFailedError(
                f"Token origin returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.warning(f"Token origin unreachable for {source_base_url}: {e}")
            raise TokenFetchFailedError(f"Token origin unreachable: {e}") from e
        except ValueError as e:
            raise TokenFetchFailedError("Token origin returned invalid JSON") from e

        return self._parse_token_payload(payload, source_base_url, self.default_remote)

    def _config_for(self, source_url: str) -> TokenOriginConfig:
        host = urlsplit(source_url).hostname
        for origin_host, config in self.origins.items():
            if host_matches(host, frozenset({origin_host})):
                return config
        raise TokenFetchFailedError(f"No token issuer configured for host {host!r}")

    @staticmethod
    def _parse_token_payload(
        payload: Any, source_base_url: str, default_remote: str
    ) -> TokenRecord:
        if not isinstance(payload, dict):
            raise TokenFetchFailedError("Token response must be a JSON object")

        token = payload.get("token")
        if not isinstance(token, str) or not token:
            raise TokenFetchFailedError("Token response has no token field")

        try:
            expires_sec = float(payload["expires"])
        except (KeyError, TypeError, ValueError) as e:
            raise TokenFetchFailedError("Token response has no valid expiry") from e

        remote = payload.get("remote")
        return TokenRecord(
            source_base_url=source_base_url,
            token=token,
            remote_constraint=remote if isinstance(remote, str) and remote else default_remote,
            expires_at_ms=int(expires_sec * 1000),
        )
