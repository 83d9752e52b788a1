from typing import List

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.change_feed import TRACKED_TABLES, ChangeFeed
from core.db import get_db, get_session_factory
from routers.events import get_change_feed, projection_events
from schemas.notification import Alert
from services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])


async def _alerts_payload(session: AsyncSession) -> list:
    alerts = await NotificationService(session).current_alerts()
    return [a.model_dump(mode="json") for a in alerts]


@router.get("", response_model=List[Alert])
async def list_notifications(db: AsyncSession = Depends(get_db)):
    """Scheduled services due within 7 days or 500 km."""
    return await NotificationService(db).current_alerts()


@router.get("/stream")
async def stream_notifications(
    request: Request,
    session_factory: async_sessionmaker = Depends(get_session_factory),
    feed: ChangeFeed = Depends(get_change_feed),
) -> StreamingResponse:
    """Alerts, rescanned after every change to vehicles or maintenances."""
    events = projection_events(request, session_factory, TRACKED_TABLES, _alerts_payload, "notifications", feed)
    return StreamingResponse(events, media_type="text/event-stream")
