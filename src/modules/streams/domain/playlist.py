"""HLS playlist parsing and rewriting.

播放列表按行解析为 Blank / Comment / Directive / Reference 四类，只改写 Reference 行：
- 相对地址先按最终 URL 解析为绝对地址
- 嵌套播放列表（.m3u8）回到同一代理入口，请求时再次改写
- Token 模式下分片直接追加 token 指向源站，不再经过代理

单行改写失败时原样保留该行。
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from urllib.parse import urlsplit

from loguru import logger

from src.modules.streams.domain.exceptions import InvalidFormatError

PLAYLIST_HEADER = "#EXTM3U"
PLAYLIST_EXTENSIONS = (".m3u8", ".m3u")
PLAYLIST_CONTENT_TYPES = ("mpegurl", "m3u8")


class LineKind(StrEnum):
    BLANK = "blank"
    COMMENT = "comment"
    DIRECTIVE = "directive"
    REFERENCE = "reference"


@dataclass(frozen=True)
class PlaylistLine:
    kind: LineKind
    text: str


@dataclass(frozen=True)
class RewritePolicy:
    """How reference lines are rewritten.

    Attributes:
        relay: 把绝对地址包装为代理地址（同一入口）
        sign_segment: Token 模式下为分片追加 token；为 None 时分片也走代理
    """

    relay: Callable[[str], str]
    sign_segment: Callable[[str], str] | None = None

    @property
    def token_mode(self) -> bool:
        return self.sign_segment is not None


def parse_playlist(text: str) -> list[PlaylistLine]:
    lines: list[PlaylistLine] = []
    for raw in text.splitlines():
        stripped = raw.strip()
        if not stripped:
            kind = LineKind.BLANK
        elif stripped.startswith("#EXT"):
            kind = LineKind.DIRECTIVE
        elif stripped.startswith("#"):
            kind = LineKind.COMMENT
        else:
            kind = LineKind.REFERENCE
        lines.append(PlaylistLine(kind=kind, text=raw))
    return lines


def looks_like_html(body: str) -> bool:
    head = body.lstrip("\ufeff \t\r\n")[:16].lower()
    return head.startswith(("<!doctype", "<html"))


def validate_playlist(body: str) -> None:
    """Raises InvalidFormatError when the body lacks the #EXTM3U marker."""
    if PLAYLIST_HEADER in body:
        return
    if looks_like_html(body):
        raise InvalidFormatError(InvalidFormatError.HTML_ERROR_PAGE)
    raise InvalidFormatError(InvalidFormatError.MALFORMED_PLAYLIST)


def is_playlist_url(url: str) -> bool:
    try:
        path = urlsplit(url).path
    except ValueError:
        path = url.split("?", 1)[0]
    return path.lower().endswith(PLAYLIST_EXTENSIONS)


def is_playlist_response(content_type: str | None, url: str) -> bool:
    content_type = (content_type or "").lower()
    if any(marker in content_type for marker in PLAYLIST_CONTENT_TYPES):
        return True
    return ".m3u8" in url.lower()


def is_absolute_url(reference: str) -> bool:
    return reference.lower().startswith(("http://", "https://"))


def resolve_reference(reference: str, base_url: str) -> str:
    """Resolve a playlist reference against the final (post-redirect) URL.

    ``/x`` 相对源站根目录，其余相对最终 URL 所在目录。
    """
    parts = urlsplit(base_url)
    if not parts.scheme or not parts.netloc:
        raise ValueError(f"Base URL is not absolute: {base_url}")
    if reference.startswith("//"):
        return f"{parts.scheme}:{reference}"
    if reference.startswith("/"):
        return f"{parts.scheme}://{parts.netloc}{reference}"
    directory = parts.path[: parts.path.rfind("/") + 1] or "/"
    return f"{parts.scheme}://{parts.netloc}{directory}{reference}"


def rewrite_playlist(body: str, final_url: str, policy: RewritePolicy) -> str:
    out: list[str] = []
    for line in parse_playlist(body):
        if line.kind is not LineKind.REFERENCE:
            out.append(line.text)
            continue
        out.append(_rewrite_reference(line.text, final_url, policy))

    rewritten = "\n".join(out)
    if body.endswith(("\n", "\r")):
        rewritten += "\n"
    return rewritten


def _rewrite_reference(raw: str, final_url: str, policy: RewritePolicy) -> str:
    reference = raw.strip()
    try:
        if is_absolute_url(reference):
            # 通用代理模式下绝对地址保持原样
            if not policy.token_mode:
                return raw
            target = reference
        else:
            target = resolve_reference(reference, final_url)

        if policy.sign_segment is not None and not is_playlist_url(target):
            return policy.sign_segment(target)
        return policy.relay(target)
    except ValueError as e:
        logger.warning(f"Failed to rewrite playlist line {reference!r}: {e}")
        return raw
