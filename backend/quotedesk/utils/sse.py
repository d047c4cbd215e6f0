"""SSE (Server-Sent Events) 格式化工具.

活動紀錄串流的事件類型：
- ``snapshot``：訂閱當下的完整列表（第一個事件）
- ``change``：單筆異動，payload 為 ChangeEvent.to_payload()
- ``heartbeat``：閒置時保持連線
- ``error``：串流中發生錯誤
"""

import json
from typing import Any, Optional

from ..models.change_event import ChangeEvent

# 斷線後建議 client 重新連線的等待時間（毫秒）
DEFAULT_RETRY_MS = 3000


def format_sse_event(
    event_type: str,
    data: Any,
    event_id: Optional[str] = None,
    retry_ms: Optional[int] = None,
) -> str:
    """
    格式化 SSE 事件.

    Args:
        event_type: 事件類型
        data: 可 JSON 序列化的資料（datetime 等以 str() 輸出）
        event_id: 事件 ID，client 重連時以 Last-Event-ID 帶回
        retry_ms: 重新連線等待時間

    Returns:
        SSE 格式的字串，以雙換行結尾
    """
    lines = []
    if event_id:
        lines.append(f"id: {event_id}")
    if retry_ms is not None:
        lines.append(f"retry: {retry_ms}")
    lines.append(f"event: {event_type}")
    # json.dumps 會把換行轉義，所以 data 永遠只有一行
    lines.append(f"data: {json.dumps(data, ensure_ascii=False, default=str)}")
    return "\n".join(lines) + "\n\n"


def format_snapshot_event(records: list[dict[str, Any]]) -> str:
    """格式化初始列表事件."""
    return format_sse_event("snapshot", {"records": records}, retry_ms=DEFAULT_RETRY_MS)


def format_change_event(event: ChangeEvent, event_id: Optional[str] = None) -> str:
    """格式化資料異動事件."""
    return format_sse_event("change", event.to_payload(), event_id=event_id)


def format_heartbeat_event() -> str:
    """格式化心跳事件（保持連線）."""
    return format_sse_event("heartbeat", {})


def format_error_event(code: str, message: str) -> str:
    """格式化錯誤事件."""
    return format_sse_event("error", {"code": code, "message": message})
