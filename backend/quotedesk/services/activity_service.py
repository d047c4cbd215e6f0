"""Activity persistence service.

儲存業務活動紀錄並提供依 reference number 查詢歷史紀錄。
兩者的結果都會以固定 TTL 快取，快取命中時回傳 ``cached=True``。

驗證順序（任何一項失敗都回傳 400）：
1. 必填欄位
2. 產品欄位必須是字串
3. 七個產品欄位皆有值時，拆分後長度必須一致
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from pydantic import ValidationError

from ..models import ActivityRecord
from ..models.activity import PRODUCT_FIELDS, REQUIRED_FIELDS
from ..store import InMemoryStore
from ..utils import APIError, ErrorCode, raise_error

logger = logging.getLogger(__name__)

SAVE_CACHE_PREFIX = "history:"
LOOKUP_CACHE_PREFIX = "history:activity_ref_nums:"


@dataclass
class ActivityResult:
    """查詢 / 儲存結果與快取標記."""

    data: Any
    cached: bool


def validate_activity_payload(payload: Mapping[str, Any]) -> ActivityRecord:
    """
    驗證並轉換為 ActivityRecord.

    Args:
        payload: 原始 JSON body

    Returns:
        ActivityRecord

    Raises:
        APIError: 400，訊息說明第一個失敗的檢查
    """
    for name in REQUIRED_FIELDS:
        if not payload.get(name):
            raise_error(ErrorCode.MISSING_REQUIRED_FIELD, f"Missing {name}")

    for name in PRODUCT_FIELDS:
        value = payload.get(name)
        if value is not None and not isinstance(value, str):
            raise_error(ErrorCode.INVALID_FIELD_FORMAT, f"Invalid {name} format, must be string")

    try:
        record = ActivityRecord(**{k: v for k, v in payload.items() if k != "id"})
    except ValidationError as e:
        raise_error(ErrorCode.VALIDATION_ERROR, f"Invalid activity: {e.errors()[0]['msg']}", details=e.errors())

    check_product_groups(record)
    return record


def check_product_groups(record: ActivityRecord) -> None:
    """七個產品欄位皆有值時，拆分後的數量必須一致（否則 400）."""
    lists = record.product_lists()
    if len(lists) == len(PRODUCT_FIELDS):
        lengths = {len(values) for values in lists.values()}
        if len(lengths) != 1:
            counts = {name: len(values) for name, values in lists.items()}
            logger.info(f"Product arrays length mismatch for {record.activity_reference_number}: {counts}")
            raise_error(ErrorCode.PRODUCT_ARRAYS_MISMATCH)


class ActivityService:
    """活動紀錄的儲存與查詢."""

    def __init__(self, store: InMemoryStore):
        self.store = store

    def save_activity(self, payload: Mapping[str, Any]) -> ActivityResult:
        """
        驗證並儲存活動紀錄.

        同一個 activity_reference_number 在快取有效期間內再次儲存時，
        直接回傳快取結果，不會重複寫入。

        Raises:
            APIError: 驗證失敗（400）或儲存失敗（500）
        """
        record = validate_activity_payload(payload)

        cache_key = f"{SAVE_CACHE_PREFIX}{record.activity_reference_number}"
        cached = self.store.cache_get(cache_key)
        if cached is not None:
            logger.info(f"Activity save served from cache: {cache_key}")
            return ActivityResult(data=cached, cached=True)

        try:
            stored = self.store.add_activity(record)
        except APIError:
            raise
        except Exception as e:
            logger.error(f"Activity insert failed: {e}", exc_info=True)
            raise_error(ErrorCode.STORE_ERROR, str(e))

        data = [stored.model_dump(mode="json")]
        self.store.cache_set(cache_key, data)
        return ActivityResult(data=data, cached=False)

    def fetch_history(self, reference_numbers: Optional[Iterable[str]]) -> ActivityResult:
        """
        依 activity_reference_number 查詢歷史紀錄.

        Args:
            reference_numbers: 一個或多個 reference number

        Raises:
            APIError: 未提供 reference number（400）
        """
        refs = [ref for ref in (reference_numbers or []) if ref]
        if not refs:
            raise_error(ErrorCode.MISSING_REQUIRED_FIELD, "Missing activity_reference_numbers")

        cache_key = f"{LOOKUP_CACHE_PREFIX}{','.join(refs)}"
        cached = self.store.cache_get(cache_key)
        if cached is not None:
            return ActivityResult(data=cached, cached=True)

        try:
            records = self.store.find_activities_by_reference(refs)
        except Exception as e:
            logger.error(f"History lookup failed: {e}", exc_info=True)
            raise_error(ErrorCode.STORE_ERROR, str(e))

        data = [r.model_dump(mode="json") for r in records]
        self.store.cache_set(cache_key, data)
        return ActivityResult(data=data, cached=False)

    def update_activity(self, activity_id: int, changes: Mapping[str, Any]) -> ActivityRecord:
        """
        更新活動紀錄欄位.

        合併後的紀錄與新增時套用相同的產品欄位檢查。

        Raises:
            APIError: 找不到紀錄（404）或欄位不合法（400）
        """
        for name in PRODUCT_FIELDS:
            value = changes.get(name)
            if value is not None and not isinstance(value, str):
                raise_error(ErrorCode.INVALID_FIELD_FORMAT, f"Invalid {name} format, must be string")

        changes = {k: v for k, v in changes.items() if k != "id"}
        previous = self.store.get_activity(activity_id)
        try:
            merged = ActivityRecord(**{**previous.model_dump(), **changes})
        except ValidationError as e:
            raise_error(ErrorCode.VALIDATION_ERROR, f"Invalid activity: {e.errors()[0]['msg']}", details=e.errors())

        check_product_groups(merged)
        return self.store.update_activity(activity_id, changes)

    def delete_activity(self, activity_id: int) -> None:
        """刪除活動紀錄."""
        self.store.delete_activity(activity_id)
