"""Catalog ports."""

from typing import Protocol

from src.modules.catalog.domain.entities import (
    ChannelRecord,
    CuratedCatalog,
    LogoEntry,
    StreamEntry,
)


class ChannelRegistry(Protocol):
    """Port for the third-party channel/stream/logo registry."""

    async def fetch_channels(self) -> list[ChannelRecord]: ...

    async def fetch_streams(self) -> tuple[list[StreamEntry], str | None]:
        """Return streams plus the freshness tag of the stream payload."""
        ...

    async def probe_streams_tag(self) -> str | None:
        """Cheap freshness probe of the stream registry."""
        ...

    async def fetch_logos(self) -> list[LogoEntry]: ...


class CuratedChannelSource(Protocol):
    """Port for loading the locally curated channel set."""

    def load(self) -> CuratedCatalog: ...
