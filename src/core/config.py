"""Application configuration."""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_host_list(v: Any) -> list[str] | str:
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip().lower() for i in v.split(",") if i.strip()]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


class HeaderProfile(BaseModel):
    """伪装请求头（部分源站校验 Referer/Origin）。"""

    referer: str
    origin: str | None = None


class TokenOriginConfig(BaseModel):
    """需要签名 token 的源站配置。"""

    issuer_url: str
    referer: str
    origin: str | None = None


HostList = Annotated[list[str] | str, BeforeValidator(parse_host_list)]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    # Application
    PROJECT_NAME: str = "tvRelay"
    SERVER_PORT: int = 3000
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    LOG_LEVEL: str = "INFO"
    PUBLIC_BASE_URL: str | None = None  # 为空时按请求 Host 推导

    # Sentry
    SENTRY_DSN: HttpUrl | None = None

    # Third-party registry (iptv-org)
    CATALOG_COUNTRY: str = "RO"
    IPTV_CHANNELS_URL: str = "https://iptv-org.github.io/api/channels.json"
    IPTV_STREAMS_URL: str = "https://iptv-org.github.io/api/streams.json"
    IPTV_LOGOS_URL: str = "https://iptv-org.github.io/api/logos.json"
    REGISTRY_FETCH_TIMEOUT_SEC: float = 15.0
    REGISTRY_FETCH_MAX_ATTEMPTS: int = 3

    # Origin data cache
    DATA_TTL_SEC: int = 60 * 60  # 1 hour
    LOGO_TTL_SEC: int = 24 * 60 * 60  # 24 hours

    # Curated channels
    CURATED_CHANNELS_PATH: str = "resources/curated_channels.json"

    # Catalog presentation
    CHANNEL_ID_PREFIX: str = "rotv-"
    PRIORITY_CHANNELS: list[str] = [
        "pro tv",
        "protv news",
        "antena 1",
        "digi 24",
        "kanal d",
        "kiss tv",
    ]
    DEFAULT_POSTER_URL: str = "https://dl.strem.io/addon-background-landscape.jpg"
    LOGO_FALLBACK_URL_TEMPLATE: str = "https://iptv-org.github.io/logo/{channel_id}.png"

    # Routing policy
    TOKEN_AGGREGATOR_HOSTS: HostList = []
    TOKEN_ORIGINS: dict[str, TokenOriginConfig] = {}
    HEADER_PROFILES: dict[str, HeaderProfile] = {}
    PROXY_REQUIRED_HOSTS: HostList = []  # 已知存在 CORS/请求头限制的源站
    DEAD_STREAM_HOSTS: HostList = ["google.com", "yahoo.com", "bing.com"]

    # Playlist proxy
    PROXY_USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
    )
    PROXY_TIMEOUT_SEC: float = 10.0
    PROXY_MAX_REDIRECTS: int = 5
    PROXY_CHUNK_SIZE: int = 64 * 1024

    # Token manager
    TOKEN_FETCH_TIMEOUT_SEC: float = 5.0
    TOKEN_REFRESH_LEAD_SEC: int = 30
    TOKEN_DEFAULT_REMOTE: str = "no_check_ip"


settings = Settings()
