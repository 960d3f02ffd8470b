"""Stream router.

为频道枚举全部候选源并逐个分类中继策略：
1. 精选源（SourceRef 顺序）
2. 被吸收的注册表频道的流（吸收顺序，其次流条目顺序）
3. 普通注册表频道：只取自身 ID 的流

单个源分类失败不影响同频道其他源；结果为空是合法的。
"""

from collections.abc import Sequence

from loguru import logger

from src.modules.catalog.domain.entities import ChannelRecord, StreamEntry
from src.modules.streams.domain.classifier import (
    RoutingPolicy,
    classify_curated_source,
    classify_registry_stream,
)
from src.modules.streams.domain.entities import RelayDescriptor, ResolvedStream
from src.modules.streams.domain.relay_url import relay_url_for


class StreamRouter:
    """Turns a channel into ordered relay descriptors."""

    def __init__(self, policy: RoutingPolicy):
        self.policy = policy

    def resolve(
        self,
        channel: ChannelRecord,
        streams: Sequence[StreamEntry],
    ) -> list[RelayDescriptor]:
        descriptors: list[RelayDescriptor] = []

        for source in channel.sources:
            try:
                strategy, target = classify_curated_source(source.url, self.policy)
            except ValueError as e:
                logger.warning(f"Skipping curated source {source.url!r} of {channel.id}: {e}")
                continue
            title = f"{source.display_name} {source.quality or ''}".strip()
            descriptors.append(RelayDescriptor(strategy, target, title))

        if channel.absorbed_registry_ids:
            registry_ids: Sequence[str] = channel.absorbed_registry_ids
        elif not channel.sources:
            registry_ids = (channel.id,)
        else:
            registry_ids = ()

        for registry_id in registry_ids:
            for entry in streams:
                if entry.channel_id != registry_id:
                    continue
                try:
                    strategy = classify_registry_stream(entry.url, self.policy)
                except ValueError as e:
                    logger.warning(f"Skipping registry stream {entry.url!r}: {e}")
                    continue
                descriptors.append(RelayDescriptor(strategy, entry.url, entry.display_title))

        return descriptors

    def resolve_streams(
        self,
        channel: ChannelRecord,
        streams: Sequence[StreamEntry],
        base_proxy_url: str,
    ) -> list[ResolvedStream]:
        """Descriptors rendered as client-facing ``{url, title}`` pairs."""
        return [
            ResolvedStream(url=relay_url_for(d, base_proxy_url), title=d.display_title)
            for d in self.resolve(channel, streams)
        ]
