"""Unit tests for the keyed list synchronizer."""

import asyncio

import pytest

from quotedesk.models import ChangeEvent
from quotedesk.services.change_feed import ChangeFeed
from quotedesk.services.list_sync import KeyedListSynchronizer, apply_change


pytestmark = pytest.mark.unit


def _records(*ids):
    return [{"id": i, "status": "Open"} for i in ids]


class TestApplyChange:
    """apply_change() 測試."""

    def test_insert_appends_new_key(self):
        result = apply_change(_records(1, 2), ChangeEvent.insert({"id": 3, "status": "New"}))
        assert [r["id"] for r in result] == [1, 2, 3]

    def test_insert_existing_key_is_ignored(self):
        records = _records(1, 2)
        result = apply_change(records, ChangeEvent.insert({"id": 2, "status": "Dup"}))
        assert result == records

    def test_update_replaces_in_place(self):
        result = apply_change(_records(1, 2, 3), ChangeEvent.update({"id": 2, "status": "Done"}))
        assert [r["id"] for r in result] == [1, 2, 3]
        assert result[1]["status"] == "Done"

    def test_update_unknown_key_is_noop(self):
        records = _records(1)
        assert apply_change(records, ChangeEvent.update({"id": 99, "status": "Done"})) == records

    def test_delete_uses_old_key(self):
        result = apply_change(_records(1, 2, 3), ChangeEvent.delete({"id": 2}))
        assert [r["id"] for r in result] == [1, 3]

    def test_delete_unknown_key_is_noop(self):
        records = _records(1)
        assert apply_change(records, ChangeEvent.delete({"id": 5})) == records

    def test_unknown_kind_is_ignored(self):
        records = _records(1)
        assert apply_change(records, ChangeEvent(kind="TRUNCATE", new={"id": 1})) == records

    def test_events_without_key_are_ignored(self):
        records = _records(1)
        assert apply_change(records, ChangeEvent.insert({"status": "no id"})) == records
        assert apply_change(records, ChangeEvent(kind="DELETE")) == records

    def test_input_is_never_mutated(self):
        records = _records(1, 2)
        snapshot = [dict(r) for r in records]
        for event in (
            ChangeEvent.insert({"id": 3}),
            ChangeEvent.update({"id": 1, "status": "Done"}),
            ChangeEvent.delete({"id": 2}),
        ):
            result = apply_change(records, event)
            assert result is not records
        assert records == snapshot

    def test_custom_key(self):
        records = [{"ref": "A"}, {"ref": "B"}]
        result = apply_change(records, ChangeEvent.delete({"ref": "A"}), key=lambda r: r.get("ref"))
        assert result == [{"ref": "B"}]

    def test_sequence_keeps_unique_keys(self):
        records = []
        events = [
            ChangeEvent.insert({"id": 1}),
            ChangeEvent.insert({"id": 2}),
            ChangeEvent.insert({"id": 1}),
            ChangeEvent.delete({"id": 1}),
            ChangeEvent.insert({"id": 1}),
            ChangeEvent.update({"id": 2, "status": "Done"}),
        ]
        for event in events:
            records = apply_change(records, event)
        assert [r["id"] for r in records] == [2, 1]
        assert records[0]["status"] == "Done"


class TestKeyedListSynchronizer:
    """KeyedListSynchronizer 測試."""

    def test_records_are_copies(self):
        sync = KeyedListSynchronizer(_records(1))
        sync.records.append({"id": 2})
        assert len(sync.records) == 1

    def test_replace_all_then_apply(self):
        sync = KeyedListSynchronizer()
        sync.replace_all(_records(1, 2))
        assert [r["id"] for r in sync.apply(ChangeEvent.delete({"id": 1}))] == [2]

    @pytest.mark.asyncio
    async def test_consume_until_subscription_closes(self):
        feed = ChangeFeed(queue_size=10)
        subscription = feed.subscribe("history")
        sync = KeyedListSynchronizer(_records(1))
        seen = []

        task = asyncio.create_task(sync.consume(subscription, on_change=seen.append))
        feed.publish(ChangeEvent.insert({"id": 2}))
        feed.publish(ChangeEvent.update({"id": 1, "status": "Done"}))
        await asyncio.sleep(0)
        subscription.close()
        await asyncio.wait_for(task, timeout=1)

        assert [r["id"] for r in sync.records] == [1, 2]
        assert sync.records[0]["status"] == "Done"
        assert len(seen) == 2
