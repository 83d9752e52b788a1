from datetime import date

import pytest
from sqlalchemy import select

from models import Maintenance, Vehicle
from scripts.seed_data import seed
from services.notification_service import NotificationService


@pytest.mark.asyncio
async def test_seed_inserts_demo_fleet_once(async_db_session):
    today = date(2026, 10, 19)

    assert await seed(async_db_session, today=today) == 4
    assert await seed(async_db_session, today=today) == 0

    vehicles = (await async_db_session.execute(select(Vehicle))).scalars().all()
    assert sorted(v.vehicle_number for v in vehicles) == ["V001", "V002", "V003", "V004"]
    maintenances = (await async_db_session.execute(select(Maintenance))).scalars().all()
    assert len(maintenances) == 7


@pytest.mark.asyncio
async def test_seed_contains_due_alerts(async_db_session):
    today = date(2026, 10, 19)
    await seed(async_db_session, today=today)

    alerts = await NotificationService(async_db_session).current_alerts(today=today)

    kinds = sorted((a.vehicle_number, a.kind) for a in alerts)
    assert kinds == [("V001", "km"), ("V002", "date")]
