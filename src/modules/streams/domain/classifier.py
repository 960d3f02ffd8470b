"""Relay strategy classification.

纯函数：只看 URL 和路由策略配置，不做任何网络 I/O。
"""

from dataclasses import dataclass, field
from urllib.parse import urlsplit, urlunsplit

from src.modules.streams.domain.entities import RelayStrategy


@dataclass(frozen=True)
class RoutingPolicy:
    """Host lists driving relay classification."""

    token_aggregator_hosts: frozenset[str] = field(default_factory=frozenset)
    token_origin_hosts: frozenset[str] = field(default_factory=frozenset)
    header_spoof_hosts: frozenset[str] = field(default_factory=frozenset)
    proxy_required_hosts: frozenset[str] = field(default_factory=frozenset)


def host_matches(host: str | None, candidates: frozenset[str]) -> bool:
    """host 等于候选域名或为其子域名。"""
    if not host:
        return False
    host = host.lower()
    return any(host == c or host.endswith(f".{c}") for c in candidates)


def classify_curated_source(url: str, policy: RoutingPolicy) -> tuple[RelayStrategy, str]:
    """Classify a curated source URL.

    聚合站路径首段为需签名的源站域名时（如 ``https://agg/origin.host/live/index.m3u8``），
    改走 token 流程，目标为嵌套的源站地址。

    Raises:
        ValueError: URL 无法解析
    """
    parts = urlsplit(url)
    host = parts.hostname

    if host_matches(host, policy.token_aggregator_hosts):
        nested = _nested_origin_url(parts.scheme, parts.path, parts.query)
        if nested is not None and host_matches(
            urlsplit(nested).hostname, policy.token_origin_hosts
        ):
            return RelayStrategy.TOKEN_PLAYLIST, nested

    if host_matches(host, policy.header_spoof_hosts):
        return RelayStrategy.EXTERNAL_WRAP, url

    return RelayStrategy.GENERIC_PROXY, url


def classify_registry_stream(url: str, policy: RoutingPolicy) -> RelayStrategy:
    """Registry streams play directly unless their host is on the deny-list."""
    host = urlsplit(url).hostname
    if host_matches(host, policy.proxy_required_hosts):
        return RelayStrategy.GENERIC_PROXY
    return RelayStrategy.DIRECT


def _nested_origin_url(scheme: str, path: str, query: str) -> str | None:
    segments = path.lstrip("/").split("/", 1)
    nested_host = segments[0]
    if "." not in nested_host:
        return None
    rest = "/" + segments[1] if len(segments) > 1 else "/"
    return urlunsplit((scheme or "https", nested_host, rest, query, ""))
