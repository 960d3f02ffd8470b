"""Streams domain exceptions.

代理失败按原因分类，每类映射到不同的 HTTP 状态码。
"""

from fastapi import status

from src.core.domain.exceptions import DomainException


class TokenFetchFailedError(DomainException):
    """Token origin unreachable or returned no token."""

    http_status_code = status.HTTP_424_FAILED_DEPENDENCY
    error_code = "TOKEN_FETCH_FAILED"


class StreamUnavailableError(DomainException):
    """Redirect chain ended on a dead-stream sentinel host."""

    http_status_code = status.HTTP_404_NOT_FOUND
    error_code = "STREAM_UNAVAILABLE"

    def __init__(self, final_url: str):
        super().__init__(
            "This stream appears to be dead or blocked",
            details={"final_url": final_url},
        )


class InvalidFormatError(DomainException):
    """Body is not a valid playlist."""

    http_status_code = 422  # Unprocessable Content
    error_code = "INVALID_FORMAT"

    HTML_ERROR_PAGE = "html_error_page"
    MALFORMED_PLAYLIST = "malformed_playlist"

    def __init__(self, reason: str):
        self.reason = reason
        message = (
            "Upstream returned an HTML page instead of a playlist"
            if reason == self.HTML_ERROR_PAGE
            else "Response is not a valid M3U8 playlist"
        )
        super().__init__(message, details={"reason": reason})


class UpstreamTimeoutError(DomainException):
    http_status_code = status.HTTP_504_GATEWAY_TIMEOUT
    error_code = "UPSTREAM_TIMEOUT"


class UpstreamRefusedError(DomainException):
    http_status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "UPSTREAM_REFUSED"


class UpstreamError(DomainException):
    """Upstream protocol error or non-success status."""

    http_status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "UPSTREAM_ERROR"

    def __init__(self, message: str, upstream_status: int | None = None):
        self.upstream_status = upstream_status
        details = {"status": upstream_status} if upstream_status is not None else None
        super().__init__(message, details=details)


class InvalidRelayTargetError(DomainException):
    """Relay URL does not embed a usable absolute http(s) URL."""

    http_status_code = status.HTTP_400_BAD_REQUEST
    error_code = "INVALID_RELAY_TARGET"
