"""Unit tests for the activity SSE stream generator."""

import asyncio
import json

import pytest

from quotedesk.api.routes import activity as activity_routes
from quotedesk.models import ActivityRecord


pytestmark = pytest.mark.unit


class _FakeRequest:
    """只提供 is_disconnected() 的 Request 替身."""

    def __init__(self):
        self.disconnected = False

    async def is_disconnected(self) -> bool:
        return self.disconnected


def _record(ref: str, owner: str) -> ActivityRecord:
    return ActivityRecord(
        activity_reference_number=ref,
        account_reference_number="ACC-1",
        status="Open",
        type_activity="Call",
        referenceid=owner,
    )


def _parse(chunk: str) -> tuple[str, dict]:
    fields = dict(line.split(": ", 1) for line in chunk.strip().split("\n"))
    return fields["event"], json.loads(fields["data"])


class TestActivityStream:
    """GET /api/activities/stream 產生的事件."""

    @pytest.mark.asyncio
    async def test_snapshot_then_changes(self, mock_store):
        mock_store.add_activity(_record("ACT-1", "TSA-001"))
        mock_store.add_activity(_record("ACT-2", "TSA-002"))

        response = await activity_routes.stream_activities(_FakeRequest(), mock_store, referenceid="TSA-001")
        assert response.media_type == "text/event-stream"
        stream = response.body_iterator

        event_type, data = _parse(await stream.__anext__())
        assert event_type == "snapshot"
        assert [r["activity_reference_number"] for r in data["records"]] == ["ACT-1"]

        mock_store.add_activity(_record("ACT-3", "TSA-002"))  # 其他負責人，不會收到
        stored = mock_store.add_activity(_record("ACT-4", "TSA-001"))
        chunk = await asyncio.wait_for(stream.__anext__(), timeout=1)
        assert chunk.startswith("id: 1\n")
        event_type, data = _parse(chunk)
        assert event_type == "change"
        assert data["eventType"] == "INSERT"
        assert data["new"]["id"] == stored.id

        mock_store.change_feed.close_all()
        with pytest.raises(StopAsyncIteration):
            await asyncio.wait_for(stream.__anext__(), timeout=1)
        assert mock_store.change_feed.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_heartbeat_when_idle(self, mock_store, monkeypatch):
        monkeypatch.setattr(activity_routes, "HEARTBEAT_SECONDS", 0.01)
        response = await activity_routes.stream_activities(_FakeRequest(), mock_store, referenceid=None)
        stream = response.body_iterator

        await stream.__anext__()  # snapshot
        event_type, data = _parse(await asyncio.wait_for(stream.__anext__(), timeout=1))
        assert event_type == "heartbeat"
        assert data == {}
        await stream.aclose()
        assert mock_store.change_feed.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_disconnect_closes_subscription(self, mock_store):
        request = _FakeRequest()
        response = await activity_routes.stream_activities(request, mock_store, referenceid=None)
        stream = response.body_iterator

        await stream.__anext__()  # snapshot
        request.disconnected = True
        with pytest.raises(StopAsyncIteration):
            await asyncio.wait_for(stream.__anext__(), timeout=1)
        assert mock_store.change_feed.subscriber_count == 0
