from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.change_feed import TRACKED_TABLES, ChangeFeed
from core.db import get_db, get_session_factory
from routers.events import get_change_feed, projection_events
from schemas.dashboard import DashboardStats
from services.dashboard_service import DashboardService

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


async def _dashboard_payload(session: AsyncSession) -> dict:
    stats = await DashboardService(session).snapshot()
    return stats.model_dump(mode="json")


@router.get("", response_model=DashboardStats)
async def get_dashboard(db: AsyncSession = Depends(get_db)):
    return await DashboardService(db).snapshot()


@router.get("/stream")
async def stream_dashboard(
    request: Request,
    session_factory: async_sessionmaker = Depends(get_session_factory),
    feed: ChangeFeed = Depends(get_change_feed),
) -> StreamingResponse:
    """Dashboard stats, recomputed after every change to vehicles or maintenances."""
    events = projection_events(request, session_factory, TRACKED_TABLES, _dashboard_payload, "dashboard", feed)
    return StreamingResponse(events, media_type="text/event-stream")
