"""Realtime change event model."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"


class ChangeEvent(BaseModel):
    """一筆資料異動事件.

    INSERT / UPDATE 的完整紀錄放在 ``new``；DELETE 只保證 ``old`` 內含主鍵。
    ``kind`` 不限於三種已知值，未知類型由訂閱端自行忽略。
    """

    kind: str = Field(..., description="INSERT, UPDATE, DELETE")
    table: str = Field("history", description="來源資料表")
    new: Optional[dict[str, Any]] = Field(None, description="異動後紀錄")
    old: Optional[dict[str, Any]] = Field(None, description="異動前紀錄")
    committed_at: datetime = Field(default_factory=datetime.now)

    @classmethod
    def insert(cls, record: dict[str, Any], table: str = "history") -> "ChangeEvent":
        return cls(kind=INSERT, table=table, new=record)

    @classmethod
    def update(
        cls,
        record: dict[str, Any],
        previous: Optional[dict[str, Any]] = None,
        table: str = "history",
    ) -> "ChangeEvent":
        return cls(kind=UPDATE, table=table, new=record, old=previous)

    @classmethod
    def delete(cls, record: dict[str, Any], table: str = "history") -> "ChangeEvent":
        return cls(kind=DELETE, table=table, old=record)

    @property
    def record(self) -> dict[str, Any]:
        """取得事件關聯的紀錄（DELETE 時為舊紀錄）."""
        return self.new or self.old or {}

    def to_payload(self) -> dict[str, Any]:
        """轉為 SSE / JSON 輸出格式."""
        return {
            "eventType": self.kind,
            "table": self.table,
            "new": self.new or {},
            "old": self.old or {},
            "commit_timestamp": self.committed_at.isoformat(),
        }
