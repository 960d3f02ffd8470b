"""Streams domain entities."""

from dataclasses import dataclass
from enum import StrEnum


class RelayStrategy(StrEnum):
    """How a stream source is relayed to the client."""

    DIRECT = "direct"
    GENERIC_PROXY = "generic_proxy"
    TOKEN_PLAYLIST = "token_playlist"
    EXTERNAL_WRAP = "external_wrap"


@dataclass(frozen=True)
class RelayDescriptor:
    """Per-request relay decision; never cached."""

    strategy: RelayStrategy
    target_url: str
    display_title: str


@dataclass(frozen=True)
class TokenRecord:
    """Short-lived signed token for one source base URL."""

    source_base_url: str
    token: str
    remote_constraint: str
    expires_at_ms: int

    def is_fresh(self, now_ms: int, refresh_lead_ms: int) -> bool:
        return self.expires_at_ms - now_ms > refresh_lead_ms


@dataclass(frozen=True)
class ResolvedStream:
    """Client-facing stream entry."""

    url: str
    title: str
