"""Catalog application models."""

from dataclasses import dataclass, field

from src.modules.catalog.domain.entities import ChannelRecord, StreamEntry


@dataclass(frozen=True)
class MergedCatalog:
    """Merged channel list plus the registry streams of the same generation."""

    channels: list[ChannelRecord]
    streams: list[StreamEntry]
    _stream_channel_ids: frozenset[str] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "_stream_channel_ids",
            frozenset(s.channel_id for s in self.streams),
        )

    def find(self, channel_id: str) -> ChannelRecord | None:
        return next((c for c in self.channels if c.id == channel_id), None)

    def has_playable_source(self, channel: ChannelRecord) -> bool:
        if channel.sources:
            return True
        candidate_ids = {channel.id, *channel.absorbed_registry_ids}
        return not candidate_ids.isdisjoint(self._stream_channel_ids)
