"""Keyed list synchronizer.

把 ChangeEvent 套用到「依到達順序排列、以 id 為 key」的列表：

- INSERT：key 不存在才附加到最後
- UPDATE：取代相同 key 的紀錄（不存在則不動）
- DELETE：移除相同 key 的紀錄
- 其他類型：忽略
"""

import logging
from typing import Any, Callable, Iterable, Optional

from ..models import ChangeEvent
from ..models.change_event import INSERT, UPDATE, DELETE

logger = logging.getLogger(__name__)

KeyFunc = Callable[[dict[str, Any]], Any]


def record_id(record: dict[str, Any]) -> Any:
    """Default key: the record's ``id``."""
    return record.get("id")


def apply_change(
    records: list[dict[str, Any]],
    event: ChangeEvent,
    key: KeyFunc = record_id,
) -> list[dict[str, Any]]:
    """
    Apply one change event and return the new list.

    The input list is never mutated.

    Args:
        records: 目前的列表
        event: 異動事件
        key: 取出紀錄 key 的函式

    Returns:
        套用後的新列表（未變動時回傳原列表的複本）
    """
    if event.kind == INSERT:
        new_record = event.new or {}
        new_key = key(new_record)
        if new_key is None or any(key(r) == new_key for r in records):
            return list(records)
        return [*records, new_record]

    if event.kind == UPDATE:
        new_record = event.new or {}
        new_key = key(new_record)
        if new_key is None:
            return list(records)
        return [new_record if key(r) == new_key else r for r in records]

    if event.kind == DELETE:
        old_key = key(event.old or {})
        if old_key is None:
            return list(records)
        return [r for r in records if key(r) != old_key]

    logger.debug(f"Ignoring unknown change event kind: {event.kind}")
    return list(records)


class KeyedListSynchronizer:
    """Holds one view's list and keeps it in sync with a change subscription."""

    def __init__(
        self,
        records: Optional[Iterable[dict[str, Any]]] = None,
        key: KeyFunc = record_id,
    ):
        self._key = key
        self._records: list[dict[str, Any]] = list(records or [])

    @property
    def records(self) -> list[dict[str, Any]]:
        return list(self._records)

    def replace_all(self, records: Iterable[dict[str, Any]]) -> None:
        """以初次查詢結果重設列表."""
        self._records = list(records)

    def apply(self, event: ChangeEvent) -> list[dict[str, Any]]:
        self._records = apply_change(self._records, event, key=self._key)
        return self.records

    async def consume(self, subscription, on_change: Optional[Callable[[list], Any]] = None) -> None:
        """
        持續套用訂閱事件直到訂閱關閉.

        Args:
            subscription: 可 async iterate 的 ChangeEvent 來源
            on_change: 每次套用後的 callback（收到新列表）
        """
        async for event in subscription:
            records = self.apply(event)
            if on_change is not None:
                on_change(records)
