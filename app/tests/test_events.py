import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import HTTPException

from core.change_feed import INSERT, TRACKED_TABLES, ChangeEvent, ChangeFeed
from routers.events import change_events, format_sse, parse_tables, projection_events
from services.dashboard_service import DashboardService


def fake_request(*disconnected):
    request = MagicMock()
    request.is_disconnected = AsyncMock(side_effect=list(disconnected))
    return request


async def dashboard_payload(session):
    return (await DashboardService(session).snapshot()).model_dump(mode="json")


def test_format_sse():
    assert format_sse({"a": 1}, event="dashboard") == 'event: dashboard\ndata: {"a": 1}\n\n'
    assert format_sse(["ç"]) == 'data: ["ç"]\n\n'


def test_parse_tables():
    assert parse_tables(None) == TRACKED_TABLES
    assert parse_tables("vehicles, ") == frozenset({"vehicles"})
    with pytest.raises(HTTPException):
        parse_tables("vehicles,users")


@pytest.mark.asyncio
async def test_projection_recomputed_after_each_change(session_factory, make_vehicle):
    feed = ChangeFeed()
    stream = projection_events(
        fake_request(False, True), session_factory, TRACKED_TABLES, dashboard_payload, "dashboard", feed
    )

    first = await stream.__anext__()
    assert first.startswith("event: dashboard\n")
    assert json.loads(first.split("data: ", 1)[1])["total_vehicles"] == 0
    assert feed.subscriber_count == 1

    await make_vehicle()
    feed.publish([ChangeEvent("vehicles", INSERT, "x")])

    second = await stream.__anext__()
    assert json.loads(second.split("data: ", 1)[1])["total_vehicles"] == 1

    # Client disconnects: the stream ends and the subscription is gone
    with pytest.raises(StopAsyncIteration):
        await stream.__anext__()
    assert feed.subscriber_count == 0


@pytest.mark.asyncio
async def test_change_events_stream_row_changes():
    feed = ChangeFeed()
    stream = change_events(fake_request(False, True), {"vehicles"}, feed)

    async def first_frame():
        return await stream.__anext__()

    # Subscription is created on first iteration; publish once it exists
    task = asyncio.create_task(first_frame())
    while feed.subscriber_count == 0:
        await asyncio.sleep(0)
    feed.publish([ChangeEvent("vehicles", INSERT, "v-1")])

    frame = await task
    assert frame.startswith("event: change\n")
    assert json.loads(frame.split("data: ", 1)[1])["record_id"] == "v-1"

    await stream.aclose()
    assert feed.subscriber_count == 0
