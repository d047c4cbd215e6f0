"""API Response models."""

from pydantic import BaseModel, Field
from typing import Optional, Generic, TypeVar, Any
from datetime import datetime


T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""

    success: bool = Field(..., description="是否成功")
    message: str = Field(..., description="訊息")
    data: Optional[T] = Field(None, description="回應資料")
    timestamp: datetime = Field(default_factory=datetime.now, description="回應時間")


class ErrorResponse(BaseModel):
    """Error response model."""

    success: bool = Field(False, description="是否成功")
    message: str = Field(..., description="錯誤訊息")
    error_code: Optional[str] = Field(None, description="錯誤代碼")
    timestamp: datetime = Field(default_factory=datetime.now, description="回應時間")

    def to_content(self) -> dict[str, Any]:
        """JSON-ready dict (``error`` mirrors ``message`` for legacy clients)."""
        content = self.model_dump(mode="json")
        content["error"] = self.message
        return content


class CachedResult(BaseModel):
    """含快取標記的查詢結果."""

    success: bool = Field(True, description="是否成功")
    data: Any = Field(None, description="資料")
    cached: bool = Field(False, description="是否來自快取")
