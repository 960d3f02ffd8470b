"""频道合并引擎。

将本地精选频道与第三方注册表频道合并：
- 名称归一化后判重（相等或互为子串，兼容 "HD"、"News" 等后缀）
- 命中精选频道的注册表频道被吸收，其 ID 记入 absorbed_registry_ids
- 排除列表中的注册表频道直接丢弃，且不会被吸收

纯函数，无状态，可在每次缓存刷新后重跑。
"""

import re
from collections.abc import Iterable, Sequence

from src.modules.catalog.domain.entities import ChannelRecord

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_channel_name(name: str) -> str:
    """小写并去掉所有非 ASCII 字母/数字字符。"""
    return _NON_ALNUM.sub("", name.lower())


def channel_names_match(a: str, b: str) -> bool:
    """归一化后相等，或一方为另一方子串。"""
    norm_a = normalize_channel_name(a)
    norm_b = normalize_channel_name(b)
    if not norm_a or not norm_b:
        return False
    return norm_a == norm_b or norm_a in norm_b or norm_b in norm_a


def merge_channels(
    curated: Sequence[ChannelRecord],
    registry: Sequence[ChannelRecord],
    exclusions: Iterable[str] = (),
) -> list[ChannelRecord]:
    """Merge curated channels with the registry.

    Returns curated channels (original order, with absorbed_registry_ids filled)
    followed by the surviving registry channels (original order).
    """
    excluded = set(exclusions)
    curated_by_id = {c.id: c for c in curated}
    absorbed: dict[str, list[str]] = {c.id: list(c.absorbed_registry_ids) for c in curated}
    survivors: list[ChannelRecord] = []

    for entry in registry:
        if entry.id in excluded:
            continue

        # 名称匹配优先；ID 冲突兜底，保证合并结果 ID 唯一
        owner = next(
            (c for c in curated if channel_names_match(c.name, entry.name)),
            None,
        ) or curated_by_id.get(entry.id)
        if owner is None:
            survivors.append(entry)
            continue

        # 首个命中的精选频道吸收该注册表频道
        if entry.id not in absorbed[owner.id]:
            absorbed[owner.id].append(entry.id)

    merged = [
        c.model_copy(update={"absorbed_registry_ids": tuple(absorbed[c.id])})
        for c in curated
    ]
    return merged + survivors
