"""
Seeds a demo fleet: a few vehicles, their completed services and some
upcoming scheduled maintenances (some inside the alert thresholds).

Run from app/:
    python -m scripts.seed_data
"""

import asyncio
import logging
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.db import AsyncSessionLocal, create_schema
from core.logging import setup_logging
from models import Maintenance, MaintenanceStatus, Vehicle, VehicleStatus

logger = logging.getLogger(__name__)


async def seed(db: AsyncSession, today: Optional[date] = None) -> int:
    """Inserts the demo fleet unless vehicles already exist. Returns the number of vehicles created."""
    today = today or date.today()

    existing = (await db.execute(select(Vehicle.id).limit(1))).scalar_one_or_none()
    if existing:
        logger.info("Seed skipped: vehicles already present.")
        return 0

    vehicles = [
        Vehicle(vehicle_number="V001", license_plate="ABC-1234", brand="Fiat", model="Uno",
                year=2019, km_current=48200, status=VehicleStatus.ACTIVE.value),
        Vehicle(vehicle_number="V002", license_plate="DEF-5678", brand="Volkswagen", model="Gol",
                year=2021, km_current=23150, status=VehicleStatus.ACTIVE.value),
        Vehicle(vehicle_number="V003", license_plate="GHI-9012", brand="Chevrolet", model="Onix",
                year=2020, km_current=61780, status=VehicleStatus.IN_MAINTENANCE.value),
        Vehicle(vehicle_number="V004", license_plate="JKL-3456", brand="Renault", model="Kwid",
                year=2018, km_current=90400, status=VehicleStatus.INACTIVE.value),
    ]
    db.add_all(vehicles)
    v1, v2, v3, _ = vehicles

    completed = [
        (v1, "Troca de Óleo", 12, 47900, 250.00),
        (v2, "Alinhamento", 5, 23000, 180.00),
        (v3, "Revisão Geral", 20, 61500, 1350.90),
        (v1, "Troca de Pneus", 45, 45200, 1900.00),
    ]
    for vehicle, service_type, days_ago, km, cost in completed:
        db.add(Maintenance(
            vehicle=vehicle,
            service_type=service_type,
            service_date=today - timedelta(days=days_ago),
            km_at_service=km,
            cost=cost,
            status=MaintenanceStatus.COMPLETED.value,
            is_scheduled=False,
        ))

    scheduled = [
        (v1, "Revisão 50.000 km", None, 48500),
        (v2, "Troca de Óleo", today + timedelta(days=3), None),
        (v3, "Troca de Correia", today + timedelta(days=30), 70000),
    ]
    for vehicle, service_type, when, km in scheduled:
        db.add(Maintenance(
            vehicle=vehicle,
            service_type=service_type,
            scheduled_date=when,
            scheduled_km=km,
            status=MaintenanceStatus.SCHEDULED.value,
            is_scheduled=True,
        ))

    await db.commit()
    logger.info("Seed data inserted", extra={"vehicles": len(vehicles)})
    return len(vehicles)


async def main():
    setup_logging()
    await create_schema()
    async with AsyncSessionLocal() as db:
        await seed(db)


if __name__ == "__main__":
    asyncio.run(main())
