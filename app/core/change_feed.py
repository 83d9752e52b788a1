"""
In-process change feed for the fleet tables.

Row-level inserts, updates and deletes on ``vehicles`` and ``maintenances`` are
captured from SQLAlchemy session events during flush and fanned out to
subscribers only once the surrounding transaction commits. A rollback discards
whatever was captured.

Subscribers hold a scoped handle:

    async with change_feed.subscribe({"maintenances"}) as subscription:
        async for event in subscription:
            ...

The handle is released when the ``async with`` block exits, whatever the reason.
Delivery is fire-and-forget: every subscriber gets its own unbounded queue and
nothing is batched.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from sqlalchemy import event
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"

TRACKED_TABLES = frozenset({"vehicles", "maintenances"})

_PENDING_KEY = "change_feed_pending"


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    event_type: str
    record_id: Optional[str]
    committed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "table": self.table,
            "event_type": self.event_type,
            "record_id": self.record_id,
            "committed_at": self.committed_at.isoformat(),
        }


class Subscription:
    """A subscriber's queue, optionally filtered to a set of tables."""

    def __init__(self, tables: Optional[FrozenSet[str]] = None):
        self.tables = tables
        self._queue: "asyncio.Queue[ChangeEvent]" = asyncio.Queue()

    def wants(self, change: ChangeEvent) -> bool:
        return self.tables is None or change.table in self.tables

    def deliver(self, change: ChangeEvent) -> None:
        self._queue.put_nowait(change)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def get(self) -> ChangeEvent:
        return await self._queue.get()

    def __aiter__(self):
        return self

    async def __anext__(self) -> ChangeEvent:
        return await self._queue.get()


class ChangeFeed:
    def __init__(self):
        self._subscribers: Set[Subscription] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @asynccontextmanager
    async def subscribe(self, tables: Optional[Iterable[str]] = None) -> AsyncIterator[Subscription]:
        scope = frozenset(tables) if tables else None
        unknown = (scope or frozenset()) - TRACKED_TABLES
        if unknown:
            raise ValueError(f"Unknown tables for change feed: {sorted(unknown)}")

        subscription = Subscription(scope)
        self._subscribers.add(subscription)
        logger.info("Change feed subscriber added", extra={"tables": sorted(scope or TRACKED_TABLES)})
        try:
            yield subscription
        finally:
            self._subscribers.discard(subscription)
            logger.info("Change feed subscriber removed", extra={"remaining": len(self._subscribers)})

    def publish(self, changes: Iterable[ChangeEvent]) -> None:
        for change in changes:
            for subscription in list(self._subscribers):
                if subscription.wants(change):
                    subscription.deliver(change)


# Global feed instance
change_feed = ChangeFeed()


def _row_key(obj) -> Optional[Tuple[str, Optional[str]]]:
    table = getattr(obj, "__tablename__", None)
    if table not in TRACKED_TABLES:
        return None
    record_id = getattr(obj, "id", None)
    return table, (str(record_id) if record_id is not None else None)


def _record_changes(session: Session, flush_context) -> None:
    # Collections still hold pre-flush state inside after_flush
    pending: List[Tuple[str, str, Optional[str]]] = session.info.setdefault(_PENDING_KEY, [])

    for obj in session.new:
        key = _row_key(obj)
        if key:
            pending.append((key[0], INSERT, key[1]))

    for obj in session.dirty:
        key = _row_key(obj)
        if key and session.is_modified(obj, include_collections=False):
            pending.append((key[0], UPDATE, key[1]))

    for obj in session.deleted:
        key = _row_key(obj)
        if key:
            pending.append((key[0], DELETE, key[1]))


def _publish_changes(session: Session) -> None:
    pending = session.info.pop(_PENDING_KEY, [])
    if not pending:
        return
    committed_at = datetime.now(timezone.utc)
    change_feed.publish(
        ChangeEvent(table=table, event_type=event_type, record_id=record_id, committed_at=committed_at)
        for table, event_type, record_id in pending
    )


def _discard_changes(session: Session) -> None:
    session.info.pop(_PENDING_KEY, None)


def install_session_hooks(session_cls=Session) -> None:
    """Attach the capture/publish listeners once per session class."""
    hooks = (
        ("after_flush", _record_changes),
        ("after_commit", _publish_changes),
        ("after_rollback", _discard_changes),
    )
    for name, fn in hooks:
        if not event.contains(session_cls, name, fn):
            event.listen(session_cls, name, fn)
