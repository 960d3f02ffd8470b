"""tvRelay - 罗马尼亚直播频道目录与 HLS 中继服务入口。"""

import sentry_sdk
from fastapi import FastAPI
from fastapi.concurrency import asynccontextmanager
from fastapi.routing import APIRoute
from loguru import logger
from starlette.middleware.cors import CORSMiddleware

from src.core.config import settings
from src.core.domain.exceptions import DomainException
from src.core.infrastructure.health import CacheHealthResult, HealthStatus
from src.core.infrastructure.http import http_client_provider
from src.core.infrastructure.logging import setup_logging
from src.core.interfaces.http.exceptions import (
    domain_exception_handler,
    global_exception_handler,
)
from src.core.interfaces.http.routers import api_router
from src.modules.catalog.application import dependencies as catalog_app_deps
from src.modules.catalog.application.origin_cache import OriginDataCache
from src.modules.catalog.infrastructure import dependencies as catalog_infra_deps
from src.modules.streams.application import dependencies as streams_app_deps
from src.modules.streams.infrastructure import dependencies as streams_infra_deps

VERSION = "1.0.0"


def custom_generate_unique_id(route: APIRoute) -> str:
    """Generate unique operation IDs for OpenAPI."""
    if route.tags:
        return f"{route.tags[0]}-{route.name}"
    return route.name


# Initialize Sentry if configured
if settings.SENTRY_DSN and settings.ENVIRONMENT != "local":
    sentry_sdk.init(
        dsn=str(settings.SENTRY_DSN),
        enable_tracing=True,
        environment=settings.ENVIRONMENT,
    )


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Application lifespan manager."""
    setup_logging()
    logger.info("Starting tvRelay...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    # 精选频道配置有误时启动即失败
    catalog_infra_deps.curated_channel_source.load()

    yield

    logger.info("Shutting down tvRelay...")
    await http_client_provider.close()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="罗马尼亚直播频道目录 + HLS 中继（改写播放列表、Token 签名、请求头伪装）",
    version=VERSION,
    generate_unique_id_function=custom_generate_unique_id,
    lifespan=lifespan,
)

# Dependency overrides (application -> infrastructure)
app.dependency_overrides[catalog_app_deps.get_origin_data_cache] = (
    catalog_infra_deps.get_origin_data_cache
)
app.dependency_overrides[catalog_app_deps.get_curated_channel_source] = (
    catalog_infra_deps.get_curated_channel_source
)

app.dependency_overrides[streams_app_deps.get_stream_router] = (
    streams_infra_deps.get_stream_router
)
app.dependency_overrides[streams_app_deps.get_playlist_proxy_service] = (
    streams_infra_deps.get_playlist_proxy_service
)

# Exception handlers
app.add_exception_handler(DomainException, domain_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# CORS middleware（播放器跨域拉取清单与分片）
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(api_router)


def check_catalog_health(cache: OriginDataCache) -> CacheHealthResult:
    """注册表缓存健康状态。

    - empty: 尚未成功加载
    - degraded: 缓存已超过 TTL（上次刷新失败，正在返回旧数据）
    - ok: 缓存在 TTL 内
    """
    entry = cache.data_entry
    age_sec = cache.data_age_sec()
    if entry is None or age_sec is None:
        return CacheHealthResult(status=HealthStatus.EMPTY, loaded=False)

    status = HealthStatus.DEGRADED if cache.is_data_stale() else HealthStatus.OK
    return CacheHealthResult(
        status=status,
        loaded=True,
        age_sec=round(age_sec, 1),
        validation_tag=entry.validation_tag,
    )


@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint.

    缓存为空不算不健康：首次目录请求时才会加载。
    """
    catalog_health = check_catalog_health(catalog_infra_deps.origin_data_cache)
    overall_status = (
        "degraded" if catalog_health.status == HealthStatus.DEGRADED else "healthy"
    )
    return {
        "status": overall_status,
        "environment": settings.ENVIRONMENT,
        "version": VERSION,
        "components": {"catalog_cache": catalog_health.to_dict()},
    }


@app.get("/", tags=["root"])
async def root():
    """Root endpoint."""
    return {
        "message": "Welcome to tvRelay",
        "manifest": "/manifest.json",
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.SERVER_PORT,
        reload=settings.ENVIRONMENT == "local",
    )
