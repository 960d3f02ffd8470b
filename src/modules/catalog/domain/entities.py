"""Catalog domain entities."""

from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class SourceRef(BaseModel):
    """A curated stream source owned by one channel."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., description="源地址")
    display_name: str = Field(..., description="展示名称")
    quality: str | None = Field(default=None, description="清晰度标签")


class ChannelRecord(BaseModel):
    """Channel record - 频道实体（精选或注册表来源）。

    同一缓存代内不可变，缓存刷新时整体替换。
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="频道ID")
    name: str = Field(..., description="频道名称")
    categories: frozenset[str] = Field(default_factory=frozenset, description="分类")
    network: str | None = Field(default=None, description="所属电视网")
    languages: tuple[str, ...] = Field(default_factory=tuple, description="语言")
    logo_url: str | None = Field(default=None, description="Logo 地址")
    sources: tuple[SourceRef, ...] = Field(
        default_factory=tuple, description="精选源（仅精选频道）"
    )
    absorbed_registry_ids: tuple[str, ...] = Field(
        default_factory=tuple, description="合并时吸收的注册表频道ID（有序去重）"
    )

    @property
    def is_curated(self) -> bool:
        return bool(self.sources)


class StreamEntry(BaseModel):
    """Registry stream entry (read-only)."""

    model_config = ConfigDict(frozen=True)

    channel_id: str
    url: str
    title: str | None = None
    feed: str | None = None
    quality: str | None = None

    @property
    def display_title(self) -> str:
        if self.title:
            return self.title
        return f"{self.feed or 'Live'} {self.quality or ''}".strip()


class LogoEntry(BaseModel):
    """Registry logo entry."""

    model_config = ConfigDict(frozen=True)

    channel_id: str
    url: str
    format: str | None = None
    width: int = 0
    tags: tuple[str, ...] = Field(default_factory=tuple)


@dataclass(frozen=True)
class RegistrySnapshot:
    """One generation of registry channels + streams."""

    channels: list[ChannelRecord]
    streams: list[StreamEntry]


@dataclass(frozen=True)
class CuratedCatalog:
    """Locally curated channel set plus registry exclusions."""

    channels: list[ChannelRecord]
    exclusions: frozenset[str]


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Cached value with fetch time and optional freshness tag."""

    value: T
    fetched_at_ms: int
    validation_tag: str | None = None
