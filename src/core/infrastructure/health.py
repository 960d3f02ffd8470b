"""统一的健康检查类型定义。"""

from enum import Enum

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    """健康检查状态枚举。"""

    OK = "ok"
    DEGRADED = "degraded"
    EMPTY = "empty"


class CacheHealthResult(BaseModel):
    """缓存健康检查结果。"""

    status: HealthStatus = Field(..., description="健康状态")
    loaded: bool = Field(..., description="是否已加载")
    age_sec: float | None = Field(None, description="缓存年龄（秒）")
    validation_tag: str | None = Field(None, description="新鲜度标签")

    def to_dict(self) -> dict[str, str | bool | float | None]:
        """转换为字典（用于 API 响应）。"""
        return self.model_dump(mode="json", exclude_none=False)
