"""Token manager.

按源站基础地址缓存短期 token：
- 距过期超过 refresh lead（默认 30s）直接复用
- 否则同步向签发方请求新 token，整体替换旧记录
- 读方永远拿不到即将过期的 token

并发刷新不加锁，允许重复请求。
"""

from urllib.parse import quote, urlencode, urlsplit, urlunsplit

from loguru import logger

from src.core.config import settings
from src.core.domain.ports.clock import Clock
from src.core.infrastructure.logging import BusinessEvents
from src.modules.streams.domain.entities import TokenRecord
from src.modules.streams.domain.exceptions import TokenFetchFailedError
from src.modules.streams.domain.ports import TokenIssuer

_TOKEN_PARAMS = ("token", "remote")


def token_cache_key(url: str) -> str:
    """Cache key of a token-gated URL: the URL without query and fragment."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def append_token_to_url(url: str, record: TokenRecord) -> str:
    """Append ``token`` and ``remote`` query parameters.

    已有查询串按原样保留（仅替换旧的 token/remote），URL 解析失败时退化为字符串拼接。
    """
    params = urlencode({"token": record.token, "remote": record.remote_constraint})
    try:
        parts = urlsplit(url)
        kept = [
            pair
            for pair in parts.query.split("&")
            if pair and pair.split("=", 1)[0] not in _TOKEN_PARAMS
        ]
        query = "&".join([*kept, params])
        return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))
    except ValueError:
        separator = "&" if "?" in url else "?"
        return (
            f"{url}{separator}token={quote(record.token, safe='')}"
            f"&remote={quote(record.remote_constraint, safe='')}"
        )


class TokenManager:
    """Per-source token cache in front of a TokenIssuer."""

    def __init__(
        self,
        issuer: TokenIssuer,
        clock: Clock,
        *,
        refresh_lead_sec: int | None = None,
    ):
        self.issuer = issuer
        self.clock = clock
        lead = settings.TOKEN_REFRESH_LEAD_SEC if refresh_lead_sec is None else refresh_lead_sec
        self.refresh_lead_ms = lead * 1000
        self._records: dict[str, TokenRecord] = {}

    async def get_valid_token(self, source_base_url: str) -> TokenRecord:
        """返回可用 token，必要时刷新。

        Raises:
            TokenFetchFailedError: 签发方不可达、响应缺字段或签发的 token 已临近过期
        """
        cached = self._records.get(source_base_url)
        if cached is not None and cached.is_fresh(self.clock.now_ms(), self.refresh_lead_ms):
            return cached

        try:
            record = await self.issuer.issue(source_base_url)
        except TokenFetchFailedError as e:
            BusinessEvents.token_fetch_failed(source_base_url=source_base_url, error=e.message)
            raise

        if not record.is_fresh(self.clock.now_ms(), self.refresh_lead_ms):
            logger.warning(f"Issued token for {source_base_url} expires too soon")
            raise TokenFetchFailedError("Token origin issued an already-expiring token")

        self._records[source_base_url] = record
        BusinessEvents.token_refreshed(
            source_base_url=source_base_url,
            expires_at_ms=record.expires_at_ms,
        )
        return record
