"""Curated channel file loader.

文件格式：
{
    "channels": {
        "protv": {
            "name": "Pro TV",
            "logo": "https://...",
            "categories": ["general"],
            "sources": [{"url": "https://...", "name": "Pro TV", "quality": "HD"}]
        }
    },
    "excludeIptvChannelIds": ["ProTVInternational.ro"]
}
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from src.core.config import settings
from src.modules.catalog.domain.entities import ChannelRecord, CuratedCatalog, SourceRef
from src.modules.catalog.domain.exceptions import InvalidCuratedConfigError
from src.modules.catalog.domain.ports import CuratedChannelSource


class JsonCuratedChannelSource(CuratedChannelSource):
    """Load curated channels from a JSON file (once per process)."""

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path or settings.CURATED_CHANNELS_PATH)
        self._catalog: CuratedCatalog | None = None

    def load(self) -> CuratedCatalog:
        if self._catalog is None:
            self._catalog = self._load_from_disk()
        return self._catalog

    def _load_from_disk(self) -> CuratedCatalog:
        if not self.path.exists():
            logger.warning(f"Curated channel file not found: {self.path}")
            return CuratedCatalog(channels=[], exclusions=frozenset())

        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise InvalidCuratedConfigError(f"{self.path}: {e}") from e

        catalog = parse_curated_payload(payload)
        logger.info(
            f"Loaded {len(catalog.channels)} curated channels, "
            f"{len(catalog.exclusions)} registry exclusions"
        )
        return catalog


def parse_curated_payload(payload: Any) -> CuratedCatalog:
    """解析精选频道配置。"""
    if not isinstance(payload, dict):
        raise InvalidCuratedConfigError("payload must be a JSON object")

    raw_channels = payload.get("channels", {})
    if not isinstance(raw_channels, dict):
        raise InvalidCuratedConfigError("'channels' must be an object keyed by id")

    exclusions = payload.get("excludeIptvChannelIds", [])
    if not isinstance(exclusions, list) or not all(
        isinstance(item, str) for item in exclusions
    ):
        raise InvalidCuratedConfigError("'excludeIptvChannelIds' must be a string list")

    channels: list[ChannelRecord] = []
    for channel_id, raw in raw_channels.items():
        if not isinstance(raw, dict) or not isinstance(raw.get("name"), str):
            raise InvalidCuratedConfigError(f"channel '{channel_id}' needs a name")
        raw_sources = raw.get("sources") or []
        if not isinstance(raw_sources, list):
            raise InvalidCuratedConfigError(f"channel '{channel_id}' sources must be a list")

        try:
            sources = tuple(
                SourceRef(
                    url=source["url"],
                    display_name=source.get("name") or raw["name"],
                    quality=source.get("quality"),
                )
                for source in raw_sources
            )
            channels.append(
                ChannelRecord(
                    id=channel_id,
                    name=raw["name"],
                    categories=frozenset(raw.get("categories") or []),
                    languages=tuple(raw.get("languages") or []),
                    logo_url=raw.get("logo"),
                    sources=sources,
                )
            )
        except (KeyError, TypeError, ValidationError) as e:
            raise InvalidCuratedConfigError(f"channel '{channel_id}': {e}") from e

    return CuratedCatalog(channels=channels, exclusions=frozenset(exclusions))
