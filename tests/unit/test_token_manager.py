"""Tests for token manager and HTTP token issuer."""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from src.core.config import TokenOriginConfig
from src.modules.streams.application.token_manager import (
    TokenManager,
    append_token_to_url,
    token_cache_key,
)
from src.modules.streams.domain.entities import TokenRecord
from src.modules.streams.domain.exceptions import TokenFetchFailedError
from src.modules.streams.infrastructure.token_issuer import HttpTokenIssuer

pytestmark = pytest.mark.anyio

SOURCE = "https://live.protv.example.net/protv/index.m3u8"


def _record(expires_at_ms: int, token: str = "abc") -> TokenRecord:
    return TokenRecord(
        source_base_url=SOURCE,
        token=token,
        remote_constraint="no_check_ip",
        expires_at_ms=expires_at_ms,
    )


def _issuer(*records: TokenRecord) -> MagicMock:
    issuer = MagicMock()
    issuer.issue = AsyncMock(side_effect=list(records))
    return issuer


class TestTokenManager:
    async def test_reuses_token_within_window(self, fake_clock) -> None:
        issuer = _issuer(_record(fake_clock.now_ms() + 300_000))
        manager = TokenManager(issuer, fake_clock, refresh_lead_sec=30)

        first = await manager.get_valid_token(SOURCE)
        fake_clock.advance(200)
        second = await manager.get_valid_token(SOURCE)

        assert second is first
        issuer.issue.assert_awaited_once_with(SOURCE)

    async def test_refreshes_exactly_once_inside_lead_window(self, fake_clock) -> None:
        now = fake_clock.now_ms()
        issuer = _issuer(_record(now + 300_000, "old"), _record(now + 900_000, "new"))
        manager = TokenManager(issuer, fake_clock, refresh_lead_sec=30)

        await manager.get_valid_token(SOURCE)
        fake_clock.advance(275)
        refreshed = await manager.get_valid_token(SOURCE)
        again = await manager.get_valid_token(SOURCE)

        assert refreshed.token == "new"
        assert again is refreshed
        assert issuer.issue.await_count == 2

    async def test_issuer_failure_propagates(self, fake_clock) -> None:
        issuer = MagicMock()
        issuer.issue = AsyncMock(side_effect=TokenFetchFailedError("origin down"))
        manager = TokenManager(issuer, fake_clock)

        with pytest.raises(TokenFetchFailedError):
            await manager.get_valid_token(SOURCE)

    async def test_already_expiring_token_is_rejected(self, fake_clock) -> None:
        issuer = _issuer(_record(fake_clock.now_ms() + 10_000))
        manager = TokenManager(issuer, fake_clock, refresh_lead_sec=30)

        with pytest.raises(TokenFetchFailedError):
            await manager.get_valid_token(SOURCE)


class TestTokenUrls:
    def test_cache_key_drops_query_and_fragment(self) -> None:
        assert token_cache_key(f"{SOURCE}?token=x#frag") == SOURCE

    def test_append_token_keeps_query_and_replaces_old_token(self) -> None:
        url = append_token_to_url(f"{SOURCE}?a=1&token=stale&b=2", _record(0, "fresh"))
        assert url == f"{SOURCE}?a=1&b=2&token=fresh&remote=no_check_ip"

    def test_append_token_to_plain_url(self) -> None:
        assert append_token_to_url(SOURCE, _record(0)) == f"{SOURCE}?token=abc&remote=no_check_ip"

    def test_append_token_falls_back_on_unparseable_url(self) -> None:
        url = append_token_to_url("https://[broken/seg.ts?x=1", _record(0, "a b"))
        assert url == "https://[broken/seg.ts?x=1&token=a%20b&remote=no_check_ip"


class TestHttpTokenIssuer:
    ORIGINS = {
        "live.protv.example.net": TokenOriginConfig(
            issuer_url="https://live.protv.example.net/api/token",
            referer="https://live.protv.example.net/",
            origin="https://live.protv.example.net",
        )
    }

    def _issuer(self, handler) -> HttpTokenIssuer:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return HttpTokenIssuer(client, self.ORIGINS, timeout_sec=1)

    async def test_issue_parses_payload_and_sends_spoofed_headers(self) -> None:
        seen: dict[str, httpx.Request] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["request"] = request
            return httpx.Response(
                200, json={"token": "t0k", "remote": "1.2.3.4", "expires": 1_700_000_600}
            )

        record = await self._issuer(handler).issue(SOURCE)

        assert record.token == "t0k"
        assert record.remote_constraint == "1.2.3.4"
        assert record.expires_at_ms == 1_700_000_600_000
        request = seen["request"]
        assert request.url.params["source"] == SOURCE
        assert request.headers["referer"] == "https://live.protv.example.net/"
        assert request.headers["origin"] == "https://live.protv.example.net"

    async def test_missing_remote_uses_default(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"token": "t0k", "expires": 1})

        record = await self._issuer(handler).issue(SOURCE)

        assert record.remote_constraint == "no_check_ip"

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(500),
            httpx.Response(200, content=b"<html>"),
            httpx.Response(200, content=json.dumps({"expires": 1}).encode()),
            httpx.Response(200, content=json.dumps({"token": "t"}).encode()),
        ],
    )
    async def test_bad_responses_raise_token_fetch_failed(self, response) -> None:
        issuer = self._issuer(lambda request: response)

        with pytest.raises(TokenFetchFailedError):
            await issuer.issue(SOURCE)

    async def test_unreachable_origin_raises_token_fetch_failed(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(TokenFetchFailedError):
            await self._issuer(handler).issue(SOURCE)

    async def test_unknown_origin_raises_token_fetch_failed(self) -> None:
        issuer = self._issuer(lambda request: httpx.Response(200))

        with pytest.raises(TokenFetchFailedError):
            await issuer.issue("https://unknown.example/live.m3u8")
