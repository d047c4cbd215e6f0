"""In-memory store for activity history, company accounts and cached results."""

import itertools
import logging
from typing import Any, Dict, Iterable, List, Optional
from cachetools import TTLCache

from .config import settings
from .models import ActivityRecord, ChangeEvent, CompanyAccount
from .services.change_feed import ChangeFeed
from .utils import ErrorCode, raise_error


logger = logging.getLogger(__name__)

HISTORY_TABLE = "history"
ACCOUNTS_TABLE = "accounts"


class InMemoryStore:
    """In-memory storage for all application data.

    每次異動都會透過 ``change_feed`` 發送 ChangeEvent。
    """

    def __init__(
        self,
        cache_ttl: Optional[int] = None,
        cache_maxsize: Optional[int] = None,
        change_feed: Optional[ChangeFeed] = None,
    ):
        """
        Initialize InMemoryStore.

        Args:
            cache_ttl: Result cache time-to-live in seconds (default from settings)
            cache_maxsize: Result cache capacity (default from settings)
            change_feed: ChangeFeed to publish to (a new one is created if omitted)
        """
        self.cache_ttl = cache_ttl if cache_ttl is not None else settings.activity_cache_ttl_seconds

        # History (activities)
        self.activities: Dict[int, ActivityRecord] = {}
        self._activity_ids = itertools.count(1)

        # Company accounts
        self.accounts: Dict[int, CompanyAccount] = {}
        self._account_ids = itertools.count(1)

        # Short-lived result cache (auto-expire after cache_ttl)
        self.result_cache: TTLCache = TTLCache(
            maxsize=cache_maxsize or settings.cache_max_entries,
            ttl=self.cache_ttl,
        )

        self.change_feed = change_feed or ChangeFeed()

        logger.info("InMemoryStore initialized")

    # ===== Activity Management =====

    def add_activity(self, record: ActivityRecord) -> ActivityRecord:
        """
        Insert an activity record.

        Args:
            record: ActivityRecord to add (``id`` is assigned here)

        Returns:
            The stored record
        """
        stored = record.model_copy(update={"id": next(self._activity_ids)})
        self.activities[stored.id] = stored
        logger.info(f"Activity added: {stored.id} ({stored.activity_reference_number})")
        self.change_feed.publish(ChangeEvent.insert(stored.model_dump(), table=HISTORY_TABLE))
        return stored

    def get_activity(self, activity_id: int) -> ActivityRecord:
        """
        Get an activity by ID.

        Raises:
            APIError: If activity not found
        """
        if activity_id not in self.activities:
            raise_error(ErrorCode.ACTIVITY_NOT_FOUND)
        return self.activities[activity_id]

    def update_activity(self, activity_id: int, changes: Dict[str, Any]) -> ActivityRecord:
        """
        Update fields of an activity.

        Args:
            activity_id: Activity ID
            changes: Field values to overwrite (``id`` is ignored)

        Returns:
            The updated record
        """
        previous = self.get_activity(activity_id)
        changes = {k: v for k, v in changes.items() if k != "id"}
        updated = ActivityRecord(**{**previous.model_dump(), **changes})
        self.activities[activity_id] = updated
        logger.info(f"Activity updated: {activity_id}")
        self.change_feed.publish(
            ChangeEvent.update(updated.model_dump(), previous.model_dump(), table=HISTORY_TABLE)
        )
        return updated

    def delete_activity(self, activity_id: int) -> None:
        """
        Delete an activity.

        Args:
            activity_id: Activity ID to delete
        """
        previous = self.get_activity(activity_id)
        del self.activities[activity_id]
        logger.info(f"Activity deleted: {activity_id}")
        self.change_feed.publish(ChangeEvent.delete(previous.model_dump(), table=HISTORY_TABLE))

    def find_activities_by_reference(self, reference_numbers: Iterable[str]) -> List[ActivityRecord]:
        """
        Get activities whose activity_reference_number is in the given set.

        Returns:
            Matching records in insertion order
        """
        wanted = set(reference_numbers)
        return [r for r in self.activities.values() if r.activity_reference_number in wanted]

    def list_activities(self, referenceid: Optional[str] = None) -> List[ActivityRecord]:
        """
        List activities, optionally only those owned by ``referenceid``.

        Returns:
            List of ActivityRecord objects in insertion order
        """
        if referenceid is None:
            return list(self.activities.values())
        return [r for r in self.activities.values() if r.referenceid == referenceid]

    # ===== Account Management =====

    def add_account(self, account: CompanyAccount) -> CompanyAccount:
        """
        Add a company account.

        Args:
            account: CompanyAccount to add (``id`` is assigned here)
        """
        stored = account.model_copy(update={"id": next(self._account_ids)})
        self.accounts[stored.id] = stored
        logger.info(f"Account added: {stored.id} ({stored.company_name})")
        self.change_feed.publish(ChangeEvent.insert(stored.model_dump(), table=ACCOUNTS_TABLE))
        return stored

    def list_accounts(self) -> List[CompanyAccount]:
        """
        List all accounts.

        Returns:
            List of CompanyAccount objects
        """
        return list(self.accounts.values())

    # ===== Result Cache =====

    def cache_get(self, key: str) -> Optional[Any]:
        """取得快取值（過期或不存在回傳 None）."""
        return self.result_cache.get(key)

    def cache_set(self, key: str, value: Any) -> None:
        """寫入快取，cache_ttl 秒後自動失效."""
        self.result_cache[key] = value

    # ===== Utility Methods =====

    def get_stats(self) -> Dict[str, int]:
        """
        Get store statistics.

        Returns:
            Dictionary with counts of stored items
        """
        return {
            "activities": len(self.activities),
            "accounts": len(self.accounts),
            "cached_results": len(self.result_cache),
            "subscribers": self.change_feed.subscriber_count,
        }


# Global store instance (singleton pattern)
_store: Optional[InMemoryStore] = None


def get_store() -> InMemoryStore:
    """
    Get or create global store instance.

    Returns:
        InMemoryStore instance
    """
    global _store
    if _store is None:
        _store = InMemoryStore()
    return _store
