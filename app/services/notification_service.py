from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.metrics import track_performance
from core.prometheus_metrics import prometheus_collector
from models.maintenance import Maintenance, MaintenanceStatus
from schemas.notification import Alert
from services.exceptions import DatabaseQueryError
from services.validators import BusinessRules


@dataclass(frozen=True)
class ScheduledItem:
    """A scheduled maintenance joined with its vehicle's identity and current km."""
    maintenance_id: str
    service_type: str
    scheduled_date: Optional[date]
    scheduled_km: Optional[int]
    vehicle_number: str
    license_plate: str
    km_current: Optional[int]

    @classmethod
    def from_row(cls, maintenance: Maintenance) -> "ScheduledItem":
        vehicle = maintenance.vehicle
        return cls(
            maintenance_id=maintenance.id,
            service_type=maintenance.service_type,
            scheduled_date=maintenance.scheduled_date,
            scheduled_km=maintenance.scheduled_km,
            vehicle_number=vehicle.vehicle_number,
            license_plate=vehicle.license_plate,
            km_current=vehicle.km_current,
        )


def _days_message(days_until: int) -> str:
    if days_until == 0:
        return "⚠️ Vence hoje!"
    return f"⚠️ Vence em {days_until} dia{'s' if days_until > 1 else ''}"


def scan_notifications(items: Iterable[ScheduledItem], today: Optional[date] = None) -> List[Alert]:
    """
    Flags scheduled services that are close to due.

    - date alert when the scheduled date is 0..7 days away
    - km alert when the scheduled km is 0..500 km above the vehicle's current km

    A single item may produce both alerts (date first). Items already past due
    produce nothing. The scan is pure and keeps no memory of earlier runs.
    """
    today = today or date.today()
    alerts: List[Alert] = []

    for item in items:
        if item.scheduled_date is not None:
            days_until = (item.scheduled_date - today).days
            if BusinessRules.days_alert_due(days_until):
                alerts.append(Alert(
                    maintenance_id=item.maintenance_id,
                    vehicle_number=item.vehicle_number,
                    license_plate=item.license_plate,
                    service_type=item.service_type,
                    kind="date",
                    days_until=days_until,
                    scheduled_date=item.scheduled_date,
                    message=_days_message(days_until),
                ))

        if item.scheduled_km is not None and item.km_current is not None:
            km_until = item.scheduled_km - item.km_current
            if BusinessRules.km_alert_due(km_until):
                alerts.append(Alert(
                    maintenance_id=item.maintenance_id,
                    vehicle_number=item.vehicle_number,
                    license_plate=item.license_plate,
                    service_type=item.service_type,
                    kind="km",
                    km_until=km_until,
                    scheduled_km=item.scheduled_km,
                    current_km=item.km_current,
                    message=f"⚠️ Faltam {km_until} km ({item.km_current} / {item.scheduled_km} km)",
                ))

    return alerts


class NotificationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def scheduled_items(self) -> List[ScheduledItem]:
        stmt = (
            select(Maintenance)
            .where(Maintenance.status == MaintenanceStatus.SCHEDULED.value)
            .options(selectinload(Maintenance.vehicle))
            .order_by(Maintenance.created_at)
        )
        try:
            rows = (await self.db.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            raise DatabaseQueryError(str(e)) from e
        return [ScheduledItem.from_row(m) for m in rows]

    @track_performance(service_name="NotificationService")
    async def current_alerts(self, today: Optional[date] = None) -> List[Alert]:
        alerts = scan_notifications(await self.scheduled_items(), today=today)
        prometheus_collector.update_active_alerts(
            date_alerts=sum(1 for a in alerts if a.kind == "date"),
            km_alerts=sum(1 for a in alerts if a.kind == "km"),
        )
        return alerts
