"""Tests for the origin data cache."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.modules.catalog.application.origin_cache import OriginDataCache
from src.modules.catalog.domain.entities import ChannelRecord, LogoEntry, StreamEntry
from src.modules.catalog.domain.exceptions import DataUnavailableError, RegistryFetchError

pytestmark = pytest.mark.anyio

TTL_SEC = 3600


def _registry(tag: str | None = '"v1"') -> MagicMock:
    registry = MagicMock()
    registry.fetch_channels = AsyncMock(
        return_value=[ChannelRecord(id="Digi24.ro", name="Digi 24")]
    )
    registry.fetch_streams = AsyncMock(
        return_value=([StreamEntry(channel_id="Digi24.ro", url="https://b.example/d.m3u8")], tag)
    )
    registry.probe_streams_tag = AsyncMock(return_value=tag)
    registry.fetch_logos = AsyncMock(
        return_value=[LogoEntry(channel_id="Digi24.ro", url="https://logo.example/d.png")]
    )
    return registry


def _cache(registry: MagicMock, clock) -> OriginDataCache:
    return OriginDataCache(registry, clock, data_ttl_sec=TTL_SEC, logo_ttl_sec=TTL_SEC * 24)


async def test_serves_cached_snapshot_within_ttl(fake_clock) -> None:
    registry = _registry()
    cache = _cache(registry, fake_clock)

    first = await cache.get()
    fake_clock.advance(TTL_SEC - 1)
    second = await cache.get()

    assert second is first
    assert registry.fetch_channels.await_count == 1
    registry.probe_streams_tag.assert_not_awaited()


async def test_unchanged_probe_extends_cache_without_refetch(fake_clock) -> None:
    registry = _registry()
    cache = _cache(registry, fake_clock)

    first = await cache.get()
    fake_clock.advance(TTL_SEC + 1)
    second = await cache.get()

    assert second is first
    assert registry.fetch_channels.await_count == 1
    registry.probe_streams_tag.assert_awaited_once()
    assert cache.data_entry is not None
    assert cache.data_entry.fetched_at_ms == fake_clock.now_ms()


async def test_changed_probe_triggers_full_refetch(fake_clock) -> None:
    registry = _registry()
    cache = _cache(registry, fake_clock)

    await cache.get()
    registry.probe_streams_tag.return_value = '"v2"'
    fake_clock.advance(TTL_SEC + 1)
    await cache.get()

    assert registry.fetch_channels.await_count == 2
    assert registry.fetch_streams.await_count == 2


async def test_probe_failure_falls_back_to_full_refetch(fake_clock) -> None:
    registry = _registry()
    cache = _cache(registry, fake_clock)

    await cache.get()
    registry.probe_streams_tag.side_effect = RegistryFetchError("HEAD failed")
    fake_clock.advance(TTL_SEC + 1)
    await cache.get()

    assert registry.fetch_channels.await_count == 2


async def test_missing_tag_skips_probe(fake_clock) -> None:
    registry = _registry(tag=None)
    cache = _cache(registry, fake_clock)

    await cache.get()
    fake_clock.advance(TTL_SEC + 1)
    await cache.get()

    registry.probe_streams_tag.assert_not_awaited()
    assert registry.fetch_channels.await_count == 2


async def test_cold_failure_raises_data_unavailable(fake_clock) -> None:
    registry = _registry()
    registry.fetch_channels.side_effect = RegistryFetchError("connection refused")
    cache = _cache(registry, fake_clock)

    with pytest.raises(DataUnavailableError):
        await cache.get()
    assert cache.data_entry is None


async def test_refresh_failure_serves_stale_snapshot(fake_clock) -> None:
    registry = _registry()
    cache = _cache(registry, fake_clock)

    first = await cache.get()
    stale_fetched_at = cache.data_entry.fetched_at_ms
    registry.probe_streams_tag.return_value = '"v2"'
    registry.fetch_channels.side_effect = RegistryFetchError("timeout")
    fake_clock.advance(TTL_SEC + 1)

    second = await cache.get()

    assert second is first
    assert cache.data_entry.fetched_at_ms == stale_fetched_at


async def test_logos_cached_without_probe(fake_clock) -> None:
    registry = _registry()
    cache = _cache(registry, fake_clock)

    first = await cache.get_logos()
    fake_clock.advance(TTL_SEC * 2)
    second = await cache.get_logos()

    assert second is first
    assert registry.fetch_logos.await_count == 1
    registry.probe_streams_tag.assert_not_awaited()


async def test_logo_cold_failure_raises(fake_clock) -> None:
    registry = _registry()
    registry.fetch_logos.side_effect = RegistryFetchError("503")
    cache = _cache(registry, fake_clock)

    with pytest.raises(DataUnavailableError):
        await cache.get_logos()


async def test_data_age_follows_cache_clock(fake_clock) -> None:
    registry = _registry()
    cache = _cache(registry, fake_clock)

    assert cache.data_age_sec() is None
    assert not cache.is_data_stale()

    await cache.get()
    fake_clock.advance(90)

    assert cache.data_age_sec() == 90
    assert not cache.is_data_stale()

    fake_clock.advance(TTL_SEC)

    assert cache.is_data_stale()
