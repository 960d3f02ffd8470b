"""Relay URL codec.

目标地址整体百分号编码后作为末尾路径段：
    {base}/{entry_point}/{quote(target)}
编码字符集与 encodeURIComponent 一致；解码只做一次，保证多层嵌套时幂等。
"""

from urllib.parse import quote, unquote, urlsplit

from src.modules.streams.domain.entities import RelayDescriptor, RelayStrategy
from src.modules.streams.domain.exceptions import InvalidRelayTargetError

HLS_PROXY = "hls-proxy"
WRAP_PROXY = "wrap-proxy"
TOKEN_PROXY = "token-proxy"

ENTRY_POINTS: dict[RelayStrategy, str] = {
    RelayStrategy.GENERIC_PROXY: HLS_PROXY,
    RelayStrategy.EXTERNAL_WRAP: WRAP_PROXY,
    RelayStrategy.TOKEN_PLAYLIST: TOKEN_PROXY,
}

_URI_COMPONENT_SAFE = "!~*'()"


def encode_target(url: str) -> str:
    return quote(url, safe=_URI_COMPONENT_SAFE)


def build_relay_url(base_url: str, entry_point: str, target_url: str) -> str:
    return f"{base_url.rstrip('/')}/{entry_point}/{encode_target(target_url)}"


def relay_url_for(descriptor: RelayDescriptor, base_url: str) -> str:
    """Client-facing URL for a relay decision."""
    if descriptor.strategy is RelayStrategy.DIRECT:
        return descriptor.target_url
    return build_relay_url(base_url, ENTRY_POINTS[descriptor.strategy], descriptor.target_url)


def decode_relay_target(raw_path: str, entry_point: str) -> str:
    """Extract and percent-decode the target URL from a raw request path.

    Raises:
        InvalidRelayTargetError: no encoded segment, or not an absolute http(s) URL
    """
    marker = f"/{entry_point}/"
    raw_path = raw_path.split("?", 1)[0]
    index = raw_path.find(marker)
    if index < 0:
        raise InvalidRelayTargetError(f"Path does not contain /{entry_point}/")

    target = unquote(raw_path[index + len(marker) :])
    try:
        parsed = urlsplit(target)
    except ValueError as e:
        raise InvalidRelayTargetError(f"Malformed target URL: {e}") from e
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise InvalidRelayTargetError("Relay target must be an absolute http(s) URL")
    return target
