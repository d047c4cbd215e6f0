"""In-process realtime change feed.

Store 每次新增 / 更新 / 刪除紀錄都會 publish 一個 ChangeEvent，
訂閱者可依資料表與負責人（referenceid）過濾。每個訂閱有自己的佇列，
彼此不共享狀態；佇列滿時丟棄最舊的事件。
"""

import asyncio
import logging
from typing import Any, Optional

from ..config import settings
from ..models import ChangeEvent

logger = logging.getLogger(__name__)

_CLOSED = object()


class Subscription:
    """一個訂閱（通常對應一個開啟中的列表畫面）.

    使用方式：
        async with feed.subscribe("history", owner_key="REF-001") as sub:
            async for event in sub:
                ...
    """

    def __init__(
        self,
        feed: "ChangeFeed",
        table: str,
        owner_key: Optional[str] = None,
        owner_field: str = "referenceid",
        maxsize: int = 256,
    ):
        self._feed = feed
        self.table = table
        self.owner_key = owner_key
        self.owner_field = owner_field
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.closed = False
        self.dropped = 0

    def matches(self, event: ChangeEvent) -> bool:
        """判斷事件是否屬於此訂閱."""
        if event.table != self.table:
            return False
        if self.owner_key is None:
            return True
        return event.record.get(self.owner_field) == self.owner_key

    def offer(self, event: Any) -> None:
        """放入事件，佇列滿時丟棄最舊的一筆."""
        if self._queue.full():
            try:
                self._queue.get_nowait()
                self.dropped += 1
                logger.warning(
                    f"Change feed queue full for {self.table}/{self.owner_key}, dropped oldest event"
                )
            except asyncio.QueueEmpty:
                pass
        self._queue.put_nowait(event)

    async def get(self, timeout: Optional[float] = None) -> Optional[ChangeEvent]:
        """
        取得下一個事件.

        Args:
            timeout: 等待秒數，None 表示一直等

        Returns:
            ChangeEvent；訂閱已關閉時回傳 None

        Raises:
            asyncio.TimeoutError: 逾時仍無事件
        """
        if self.closed and self._queue.empty():
            return None
        if timeout is None:
            item = await self._queue.get()
        else:
            item = await asyncio.wait_for(self._queue.get(), timeout=timeout)
        if item is _CLOSED:
            return None
        return item

    def close(self) -> None:
        """關閉訂閱並通知等待中的讀取端."""
        if self.closed:
            return
        self.closed = True
        self._feed.unsubscribe(self)
        self.offer(_CLOSED)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> ChangeEvent:
        event = await self.get()
        if event is None:
            raise StopAsyncIteration
        return event

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()


class ChangeFeed:
    """Fan-out of change events to independent subscriptions."""

    def __init__(self, queue_size: Optional[int] = None):
        self.queue_size = queue_size or settings.change_feed_queue_size
        self._subscriptions: list[Subscription] = []

    def subscribe(
        self,
        table: str = "history",
        owner_key: Optional[str] = None,
        owner_field: str = "referenceid",
    ) -> Subscription:
        """
        建立訂閱.

        Args:
            table: 資料表名稱
            owner_key: 負責人 key，None 表示接收全部
            owner_field: 紀錄中負責人欄位名稱

        Returns:
            Subscription
        """
        subscription = Subscription(
            self, table, owner_key=owner_key, owner_field=owner_field, maxsize=self.queue_size
        )
        self._subscriptions.append(subscription)
        logger.info(f"Change feed subscribed: table={table}, owner={owner_key}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
            logger.info(f"Change feed unsubscribed: table={subscription.table}, owner={subscription.owner_key}")

    def publish(self, event: ChangeEvent) -> int:
        """
        發送事件給所有符合條件的訂閱.

        Returns:
            收到事件的訂閱數
        """
        delivered = 0
        for subscription in list(self._subscriptions):
            if subscription.matches(event):
                subscription.offer(event)
                delivered += 1
        logger.debug(f"Published {event.kind} on {event.table} to {delivered} subscribers")
        return delivered

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def close_all(self) -> None:
        """關閉所有訂閱（shutdown 時呼叫）."""
        for subscription in list(self._subscriptions):
            subscription.close()
