"""共享 HTTP 客户端。"""

from src.core.infrastructure.http.client import (
    HttpClientProvider,
    http_client_provider,
)

__all__ = [
    "HttpClientProvider",
    "http_client_provider",
]
