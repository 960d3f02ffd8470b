"""iptv-org registry client.

拉取频道/流/Logo 三个 JSON 数组，并用 HEAD 请求做新鲜度探测（ETag / Last-Modified）。
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.core.config import settings
from src.modules.catalog.domain.entities import ChannelRecord, LogoEntry, StreamEntry
from src.modules.catalog.domain.exceptions import RegistryFetchError
from src.modules.catalog.domain.ports import ChannelRegistry


class IptvOrgRegistryClient(ChannelRegistry):
    """Registry client backed by the public iptv-org API."""

    def __init__(
        self,
        *,
        channels_url: str | None = None,
        streams_url: str | None = None,
        logos_url: str | None = None,
        country: str | None = None,
        timeout_sec: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.channels_url = channels_url or settings.IPTV_CHANNELS_URL
        self.streams_url = streams_url or settings.IPTV_STREAMS_URL
        self.logos_url = logos_url or settings.IPTV_LOGOS_URL
        self.country = (country or settings.CATALOG_COUNTRY).upper()
        self.timeout_sec = timeout_sec or settings.REGISTRY_FETCH_TIMEOUT_SEC
        self._transport = transport

    async def fetch_channels(self) -> list[ChannelRecord]:
        payload, _ = await self._get_json(self.channels_url)
        channels = self._parse_channels(payload, self.country)
        logger.info(f"Loaded {len(channels)} registry channels for {self.country}")
        return channels

    async def fetch_streams(self) -> tuple[list[StreamEntry], str | None]:
        payload, tag = await self._get_json(self.streams_url)
        return self._parse_streams(payload), tag

    async def fetch_logos(self) -> list[LogoEntry]:
        payload, _ = await self._get_json(self.logos_url)
        return self._parse_logos(payload)

    async def probe_streams_tag(self) -> str | None:
        """HEAD 请求获取流注册表的 ETag/Last-Modified。"""
        try:
            async with self._client() as client:
                response = await client.head(self.streams_url)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise RegistryFetchError(f"Probe failed for {self.streams_url}: {e}") from e
        return self._extract_tag(response)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout_sec,
            follow_redirects=True,
            transport=self._transport,
            headers={"Accept": "application/json"},
        )

    async def _get_json(self, url: str) -> tuple[Any, str | None]:
        try:
            response = await self._get_with_retry(url)
            return response.json(), self._extract_tag(response)
        except httpx.HTTPError as e:
            raise RegistryFetchError(f"GET {url} failed: {e}") from e
        except ValueError as e:
            raise RegistryFetchError(f"GET {url} returned invalid JSON: {e}") from e

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(settings.REGISTRY_FETCH_MAX_ATTEMPTS),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    async def _get_with_retry(self, url: str) -> httpx.Response:
        async with self._client() as client:
            response = await client.get(url)
            response.raise_for_status()
            return response

    @staticmethod
    def _extract_tag(response: httpx.Response) -> str | None:
        return response.headers.get("etag") or response.headers.get("last-modified")

    @staticmethod
    def _parse_channels(payload: Any, country: str) -> list[ChannelRecord]:
        if not isinstance(payload, list):
            raise RegistryFetchError("Channel registry payload must be a JSON array")

        channels: list[ChannelRecord] = []
        for raw in payload:
            if not isinstance(raw, dict):
                continue
            if str(raw.get("country") or "").upper() != country:
                continue
            channel_id = raw.get("id")
            name = raw.get("name")
            if not isinstance(channel_id, str) or not isinstance(name, str):
                continue

            logo = raw.get("logo")
            network = raw.get("network")
            channels.append(
                ChannelRecord(
                    id=channel_id,
                    name=name,
                    categories=frozenset(raw.get("categories") or []),
                    network=network if isinstance(network, str) else None,
                    languages=tuple(raw.get("languages") or []),
                    logo_url=logo if isinstance(logo, str) else None,
                )
            )
        return channels

    @staticmethod
    def _parse_streams(payload: Any) -> list[StreamEntry]:
        if not isinstance(payload, list):
            raise RegistryFetchError("Stream registry payload must be a JSON array")

        streams: list[StreamEntry] = []
        for raw in payload:
            if not isinstance(raw, dict):
                continue
            channel_id = raw.get("channel")
            url = raw.get("url")
            if not isinstance(channel_id, str) or not isinstance(url, str):
                continue
            streams.append(
                StreamEntry(
                    channel_id=channel_id,
                    url=url,
                    title=raw.get("title") or None,
                    feed=raw.get("feed") or None,
                    quality=raw.get("quality") or None,
                )
            )
        return streams

    @staticmethod
    def _parse_logos(payload: Any) -> list[LogoEntry]:
        if not isinstance(payload, list):
            raise RegistryFetchError("Logo registry payload must be a JSON array")

        logos: list[LogoEntry] = []
        for raw in payload:
            if not isinstance(raw, dict):
                continue
            channel_id = raw.get("channel")
            url = raw.get("url")
            if not isinstance(channel_id, str) or not isinstance(url, str):
                continue
            width = raw.get("width")
            logos.append(
                LogoEntry(
                    channel_id=channel_id,
                    url=url,
                    format=raw.get("format") or None,
                    width=width if isinstance(width, int) else 0,
                    tags=tuple(raw.get("tags") or []),
                )
            )
        return logos
