"""
pytest 配置和共享 fixtures。

测试分层：
- unit/: 单元测试（不依赖外部服务，上游 HTTP 一律用 MockTransport / AsyncMock）

使用方法：
    # 运行所有测试
    pytest

    # 只运行单元测试
    pytest tests/unit/
"""

from collections.abc import AsyncGenerator
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from src.modules.catalog.domain.entities import ChannelRecord, StreamEntry

# ============================================
# 配置 Fixtures
# ============================================


@pytest.fixture
def anyio_backend() -> str:
    """异步测试只跑 asyncio 后端。"""
    return "asyncio"


# ============================================
# 时间控制 Fixtures
# ============================================


class FakeClock:
    """可手动拨动的时钟（毫秒）。"""

    def __init__(self, now_ms: int = 1_700_000_000_000):
        self.current_ms = now_ms

    def now_ms(self) -> int:
        return self.current_ms

    def advance(self, seconds: float) -> None:
        self.current_ms += int(seconds * 1000)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


# ============================================
# 领域对象 Fixtures
# ============================================


def make_channel(channel_id: str, name: str, **kwargs: Any) -> ChannelRecord:
    return ChannelRecord(id=channel_id, name=name, **kwargs)


@pytest.fixture
def sample_registry_channels() -> list[ChannelRecord]:
    """示例注册表频道（罗马尼亚）。"""
    return [
        make_channel("ProTVHD.ro", "Pro TV HD", categories=frozenset({"general"})),
        make_channel("Digi24.ro", "Digi 24", categories=frozenset({"news"})),
        make_channel("KissTV.ro", "Kiss TV", categories=frozenset({"music"})),
    ]


@pytest.fixture
def sample_streams() -> list[StreamEntry]:
    return [
        StreamEntry(channel_id="ProTVHD.ro", url="https://a.example/protv.m3u8", quality="720p"),
        StreamEntry(channel_id="Digi24.ro", url="https://b.example/digi24.m3u8", feed="Main"),
    ]


# ============================================
# API Fixtures
# ============================================


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """异步 HTTP 客户端（用于 API 测试）。

    测试自行覆盖依赖；退出时恢复 main 中的默认覆盖。
    """
    from main import app

    saved_overrides = dict(app.dependency_overrides)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()
    app.dependency_overrides.update(saved_overrides)
