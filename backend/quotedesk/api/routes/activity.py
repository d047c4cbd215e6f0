"""Activity history API routes."""

import asyncio
import logging
from typing import Any, List, Optional
from fastapi import APIRouter, Body, Query, Request
from fastapi.responses import StreamingResponse

from ...api.dependencies import ActivityServiceDep, StoreDep
from ...models import APIResponse, CachedResult
from ...store import HISTORY_TABLE
from ...utils import ErrorCode, log_error
from ...utils.sse import format_change_event, format_error_event, format_heartbeat_event, format_snapshot_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Activity"])

# 沒有事件時每隔幾秒送一次 heartbeat
HEARTBEAT_SECONDS = 15.0


@router.post(
    "/activities",
    response_model=CachedResult,
    summary="儲存活動紀錄",
)
async def save_activity(
    service: ActivityServiceDep,
    payload: dict[str, Any] = Body(...),
) -> dict:
    """
    儲存一筆活動紀錄.

    - 必填：activity_reference_number, account_reference_number, status, type_activity
    - 產品欄位（product_*）皆有值時，拆分後數量必須一致
    - 相同 activity_reference_number 在快取有效期間內回傳 ``cached: true``
    """
    try:
        result = service.save_activity(payload)
        return {"success": True, "data": result.data, "cached": result.cached}

    except Exception as e:
        log_error(e, context="Save activity")
        raise


@router.get(
    "/activities/history",
    response_model=CachedResult,
    summary="依 reference number 查詢歷史紀錄",
)
async def fetch_history(
    service: ActivityServiceDep,
    activity_reference_numbers: Optional[List[str]] = Query(None, description="可重複帶入多個"),
) -> dict:
    """依一個或多個 activity_reference_number 查詢歷史紀錄."""
    try:
        result = service.fetch_history(activity_reference_numbers)
        return {"success": True, "data": result.data, "cached": result.cached}

    except Exception as e:
        log_error(e, context="Fetch history")
        raise


@router.patch(
    "/activities/{activity_id}",
    response_model=APIResponse,
    summary="更新活動紀錄",
)
async def update_activity(
    activity_id: int,
    service: ActivityServiceDep,
    changes: dict[str, Any] = Body(...),
) -> dict:
    """更新活動紀錄的部分欄位."""
    try:
        record = service.update_activity(activity_id, changes)
        return {
            "success": True,
            "message": f"Activity {activity_id} updated",
            "data": record.model_dump(mode="json"),
        }

    except Exception as e:
        log_error(e, context=f"Update activity: {activity_id}")
        raise


@router.delete(
    "/activities/{activity_id}",
    response_model=APIResponse,
    summary="刪除活動紀錄",
)
async def delete_activity(activity_id: int, service: ActivityServiceDep) -> dict:
    """刪除活動紀錄."""
    try:
        service.delete_activity(activity_id)
        return {"success": True, "message": f"Activity {activity_id} deleted", "data": None}

    except Exception as e:
        log_error(e, context=f"Delete activity: {activity_id}")
        raise


@router.get(
    "/activities/stream",
    summary="訂閱活動紀錄異動（SSE）",
)
async def stream_activities(
    request: Request,
    store: StoreDep,
    referenceid: Optional[str] = Query(None, description="只接收此負責人的紀錄"),
) -> StreamingResponse:
    """
    以 Server-Sent Events 推送活動紀錄異動.

    1. 先送出 ``snapshot`` 事件（目前的紀錄列表）
    2. 之後每筆異動送出 ``change`` 事件（eventType: INSERT / UPDATE / DELETE）
    3. 閒置時定期送出 ``heartbeat``
    """
    subscription = store.change_feed.subscribe(HISTORY_TABLE, owner_key=referenceid)
    snapshot = [r.model_dump(mode="json") for r in store.list_activities(referenceid)]

    async def event_stream():
        sequence = 0
        try:
            yield format_snapshot_event(snapshot)
            while not await request.is_disconnected():
                try:
                    event = await subscription.get(timeout=HEARTBEAT_SECONDS)
                except asyncio.TimeoutError:
                    yield format_heartbeat_event()
                    continue
                if event is None:
                    break
                sequence += 1
                yield format_change_event(event, event_id=str(sequence))
        except Exception as e:
            log_error(e, context=f"Activity stream: {referenceid}")
            yield format_error_event(ErrorCode.INTERNAL_ERROR.value, str(e))
        finally:
            subscription.close()

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
