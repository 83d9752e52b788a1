import asyncio
import json
import logging
from typing import Any, AsyncGenerator, Awaitable, Callable, Iterable, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.change_feed import TRACKED_TABLES, ChangeFeed, change_feed

logger = logging.getLogger(__name__)

router = APIRouter(tags=["events"])

# Comment frame sent while idle so dropped clients are noticed
HEARTBEAT_SECONDS = 5.0


def format_sse(payload: Any, event: Optional[str] = None) -> str:
    data = json.dumps(payload, ensure_ascii=False, default=str)
    prefix = f"event: {event}\n" if event else ""
    return f"{prefix}data: {data}\n\n"


def get_change_feed() -> ChangeFeed:
    return change_feed


async def projection_events(
    request: Request,
    session_factory: async_sessionmaker,
    tables: Iterable[str],
    compute: Callable[[AsyncSession], Awaitable[Any]],
    event_name: str,
    feed: ChangeFeed = change_feed,
) -> AsyncGenerator[str, None]:
    """
    Streams a projection of the fleet: one frame on connect, then a full
    recomputation after every committed change on ``tables``.

    The change-feed subscription lives exactly as long as the client connection.
    """
    async with feed.subscribe(tables) as subscription:
        async with session_factory() as session:
            yield format_sse(await compute(session), event=event_name)

        while not await request.is_disconnected():
            try:
                change = await asyncio.wait_for(subscription.get(), timeout=HEARTBEAT_SECONDS)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue

            logger.debug("Recomputing projection", extra={"projection": event_name, "table": change.table})
            async with session_factory() as session:
                yield format_sse(await compute(session), event=event_name)


async def change_events(
    request: Request,
    tables: Iterable[str],
    feed: ChangeFeed = change_feed,
) -> AsyncGenerator[str, None]:
    """Raw row-change frames for the given tables."""
    async with feed.subscribe(tables) as subscription:
        while not await request.is_disconnected():
            try:
                change = await asyncio.wait_for(subscription.get(), timeout=HEARTBEAT_SECONDS)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            yield format_sse(change.to_dict(), event="change")


def parse_tables(tables: Optional[str]) -> frozenset:
    if not tables:
        return TRACKED_TABLES
    requested = frozenset(t.strip() for t in tables.split(",") if t.strip())
    unknown = requested - TRACKED_TABLES
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown tables: {', '.join(sorted(unknown))}")
    return requested


@router.get("/events")
async def stream_changes(
    request: Request,
    tables: Optional[str] = Query(None, description="Comma-separated subset of: vehicles, maintenances"),
    feed: ChangeFeed = Depends(get_change_feed),
) -> StreamingResponse:
    """Server-Sent Events stream of committed inserts/updates/deletes."""
    return StreamingResponse(change_events(request, parse_tables(tables), feed), media_type="text/event-stream")
