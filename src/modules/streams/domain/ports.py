"""Streams ports."""

from collections.abc import AsyncIterator
from typing import Protocol

from src.modules.streams.domain.entities import TokenRecord


class TokenIssuer(Protocol):
    """Port for the token-issuing origin."""

    async def issue(self, source_base_url: str) -> TokenRecord:
        """Fetch a fresh token.

        Raises:
            TokenFetchFailedError: origin unreachable or malformed response
        """
        ...


class UpstreamResponse(Protocol):
    """An opened (not yet consumed) upstream response."""

    @property
    def final_url(self) -> str: ...

    @property
    def status_code(self) -> int: ...

    @property
    def content_type(self) -> str | None: ...

    async def read_text(self) -> str: ...

    def iter_bytes(self, chunk_size: int) -> AsyncIterator[bytes]: ...

    async def close(self) -> None: ...


class UpstreamFetcher(Protocol):
    """Port for opening upstream URLs with bounded redirects and timeout."""

    async def open(self, url: str, headers: dict[str, str]) -> UpstreamResponse:
        """Open a streamed GET.

        Raises:
            UpstreamTimeoutError, UpstreamRefusedError, UpstreamError
        """
        ...
