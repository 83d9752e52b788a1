from collections import Counter
from datetime import date
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.metrics import track_performance
from models.maintenance import Maintenance, MaintenanceStatus
from models.vehicle import Vehicle, VehicleStatus
from schemas.dashboard import DashboardStats, ServiceTypeCount, StatusCount
from services.exceptions import DatabaseQueryError
from services.validators import BusinessRules


def compute_dashboard(
    vehicles: Iterable[Vehicle],
    maintenances: Iterable[Maintenance],
    today: Optional[date] = None,
) -> DashboardStats:
    """
    Projects a full fleet snapshot into dashboard statistics.

    Completed services count toward cost and the per-type breakdown only when
    their service date falls inside the trailing window
    (``today - 30 days`` inclusive). Undated services are left out.
    """
    today = today or date.today()
    window_start = BusinessRules.cost_window_start(today)
    vehicles = list(vehicles)

    recent_completed = [
        m for m in maintenances
        if m.status == MaintenanceStatus.COMPLETED.value
        and m.service_date is not None
        and m.service_date >= window_start
    ]

    by_type = Counter(m.service_type for m in recent_completed)
    by_status = Counter(v.status for v in vehicles)

    return DashboardStats(
        total_vehicles=len(vehicles),
        total_km=sum(v.km_current or 0 for v in vehicles if v.status == VehicleStatus.ACTIVE.value),
        maintenance_cost=round(sum(float(m.cost or 0) for m in recent_completed), 2),
        maintenances_by_type=[ServiceTypeCount(type=t, count=c) for t, c in by_type.items()],
        vehicles_by_status=[StatusCount(status=s, count=c) for s, c in by_status.items()],
    )


class DashboardService:
    def __init__(self, db: AsyncSession):
        self.db = db

    @track_performance(service_name="DashboardService")
    async def snapshot(self, today: Optional[date] = None) -> DashboardStats:
        """Recomputes the dashboard from the current rows. Nothing is cached."""
        try:
            vehicles = (await self.db.execute(select(Vehicle))).scalars().all()
            maintenances = (
                await self.db.execute(
                    select(Maintenance).where(Maintenance.status == MaintenanceStatus.COMPLETED.value)
                )
            ).scalars().all()
        except SQLAlchemyError as e:
            raise DatabaseQueryError(str(e)) from e

        return compute_dashboard(vehicles, maintenances, today=today)
