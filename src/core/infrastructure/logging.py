"""Logging configuration with structlog integration.

提供两种日志记录方式：
1. loguru: 用于一般调试日志
2. structlog: 用于关键业务事件的结构化日志
"""

import sys
from typing import Any

import structlog
from loguru import logger

from src.core.config import settings


def setup_logging() -> None:
    """Configure application logging with structlog and loguru."""
    _configure_structlog()
    _configure_loguru()

    logger.info(f"Logging configured with level: {settings.LOG_LEVEL}")


def _configure_structlog() -> None:
    """配置 structlog 处理器链。"""
    if settings.ENVIRONMENT == "local":
        renderer = structlog.dev.ConsoleRenderer(colors=True)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.CallsiteParameterAdder(
                [
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            ),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            _get_log_level_number(settings.LOG_LEVEL)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def _configure_loguru() -> None:
    """配置 loguru。"""
    logger.remove()

    logger.add(
        sys.stderr,
        level=settings.LOG_LEVEL,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        colorize=True,
    )

    if settings.ENVIRONMENT != "local":
        logger.add(
            "logs/tvrelay_{time:YYYY-MM-DD}.log",
            rotation="00:00",
            retention="14 days",
            level="INFO",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        )


def _get_log_level_number(level: str) -> int:
    """将日志级别字符串转换为数字。"""
    levels = {
        "DEBUG": 10,
        "INFO": 20,
        "WARNING": 30,
        "ERROR": 40,
        "CRITICAL": 50,
    }
    return levels.get(level.upper(), 20)


# ============================================================================
# 业务事件日志记录器
# ============================================================================


class BusinessEvents:
    """业务事件日志助手类。

    提供统一的业务事件日志记录接口，确保事件格式一致。

    Usage:
        from src.core.infrastructure.logging import BusinessEvents

        BusinessEvents.catalog_refreshed(channel_count=120, stream_count=300)
        BusinessEvents.stream_rejected(target_url="...", reason="STREAM_UNAVAILABLE")
    """

    _log = structlog.get_logger("business.events")

    @classmethod
    def catalog_refreshed(
        cls,
        channel_count: int,
        stream_count: int,
        validation_tag: str | None = None,
        **extra: Any,
    ) -> None:
        """记录频道/流注册表全量刷新事件。"""
        cls._log.info(
            "catalog_refreshed",
            event_type="catalog",
            channel_count=channel_count,
            stream_count=stream_count,
            validation_tag=validation_tag,
            **extra,
        )

    @classmethod
    def catalog_revalidated(
        cls,
        validation_tag: str,
        **extra: Any,
    ) -> None:
        """记录缓存经新鲜度探测后续期事件。"""
        cls._log.info(
            "catalog_revalidated",
            event_type="catalog",
            validation_tag=validation_tag,
            **extra,
        )

    @classmethod
    def token_refreshed(
        cls,
        source_base_url: str,
        expires_at_ms: int,
        **extra: Any,
    ) -> None:
        """记录 token 刷新事件。"""
        cls._log.info(
            "token_refreshed",
            event_type="token",
            source_base_url=source_base_url,
            expires_at_ms=expires_at_ms,
            **extra,
        )

    @classmethod
    def token_fetch_failed(
        cls,
        source_base_url: str,
        error: str,
        **extra: Any,
    ) -> None:
        """记录 token 获取失败事件。"""
        cls._log.warning(
            "token_fetch_failed",
            event_type="token_error",
            source_base_url=source_base_url,
            error=error,
            **extra,
        )

    @classmethod
    def stream_resolved(
        cls,
        channel_id: str,
        relay_count: int,
        **extra: Any,
    ) -> None:
        """记录频道流解析事件。"""
        cls._log.info(
            "stream_resolved",
            event_type="stream",
            channel_id=channel_id,
            relay_count=relay_count,
            **extra,
        )

    @classmethod
    def stream_rejected(
        cls,
        target_url: str,
        reason: str,
        **extra: Any,
    ) -> None:
        """记录代理拒绝事件（死链/格式错误/上游异常）。"""
        cls._log.warning(
            "stream_rejected",
            event_type="proxy_error",
            target_url=target_url,
            reason=reason,
            **extra,
        )

    @classmethod
    def feature_degraded(
        cls,
        feature: str,
        reason: str,
        **extra: Any,
    ) -> None:
        """记录功能降级事件。"""
        cls._log.warning(
            "feature_degraded",
            event_type="degradation",
            feature=feature,
            reason=reason,
            **extra,
        )
