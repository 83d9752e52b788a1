import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.metrics import track_performance
from core.prometheus_metrics import prometheus_collector
from models.maintenance import Maintenance, MaintenanceStatus
from models.vehicle import Vehicle
from services.exceptions import DatabaseQueryError, RetroactiveMileageError, VehicleNotFoundError
from services.validators import BusinessRules

logger = logging.getLogger(__name__)


class MaintenanceService:
    """
    Business logic for completed and scheduled maintenance records.

    Completed services go through ``register_maintenance_and_update_km``,
    which writes the maintenance row and the vehicle's new mileage in a single
    transaction with the vehicle row locked. There is no separate
    "insert, then update mileage" path, so the two can never drift apart.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _lock_vehicle(self, vehicle_id: str) -> Vehicle:
        stmt = select(Vehicle).where(Vehicle.id == vehicle_id).with_for_update()
        vehicle = (await self.db.execute(stmt)).scalar_one_or_none()
        if vehicle is None:
            raise VehicleNotFoundError(f"Veículo {vehicle_id} não encontrado.")
        return vehicle

    @track_performance(service_name="MaintenanceService")
    async def register_maintenance_and_update_km(
        self,
        vehicle_id: str,
        service_type: str,
        service_date: Optional[date] = None,
        km_at_service: Optional[int] = None,
        cost: Optional[float] = None,
        description: Optional[str] = None,
        attachment_url: Optional[str] = None,
        confirm_retroactive_km: bool = False,
    ) -> Maintenance:
        """
        Records a completed service and moves the vehicle's mileage to ``km_at_service``.

        Args:
            vehicle_id: Vehicle the service was performed on
            service_type: Free-text service description, e.g. 'Troca de Óleo'
            service_date, km_at_service, cost, description, attachment_url: optional actuals
            confirm_retroactive_km: the user accepted a km lower than the current one

        Returns:
            Maintenance: the persisted row, with ``vehicle`` loaded

        Raises:
            VehicleNotFoundError: vehicle_id does not resolve
            RetroactiveMileageError: km_at_service < current km and not confirmed;
                nothing is written
            DatabaseQueryError: the transaction failed and was rolled back

        Concurrency Control:
            - SELECT ... FOR UPDATE on the vehicle row for the whole unit
            - insert + mileage update share one commit; any failure rolls back both
        """
        try:
            vehicle = await self._lock_vehicle(vehicle_id)

            if not confirm_retroactive_km and BusinessRules.is_retroactive_mileage(vehicle.km_current, km_at_service):
                raise RetroactiveMileageError(current_km=vehicle.km_current, submitted_km=km_at_service)

            maintenance = Maintenance(
                service_type=service_type,
                service_date=service_date,
                km_at_service=km_at_service,
                cost=cost,
                description=description,
                attachment_url=attachment_url,
                status=MaintenanceStatus.COMPLETED.value,
                is_scheduled=False,
            )
            maintenance.vehicle = vehicle
            self.db.add(maintenance)

            if km_at_service is not None:
                vehicle.km_current = km_at_service

            await self.db.commit()

        except RetroactiveMileageError:
            await self.db.rollback()
            prometheus_collector.record_maintenance_registration("completed", "confirmation_required")
            raise
        except VehicleNotFoundError:
            await self.db.rollback()
            prometheus_collector.record_maintenance_registration("completed", "rejected")
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            prometheus_collector.record_maintenance_registration("completed", "error")
            raise DatabaseQueryError(str(e)) from e

        await self.db.refresh(vehicle)
        prometheus_collector.record_maintenance_registration("completed", "created")
        logger.info(
            "Completed maintenance registered",
            extra={
                "maintenance_id": maintenance.id,
                "vehicle_id": vehicle.id,
                "km_current": vehicle.km_current,
                "retroactive_confirmed": confirm_retroactive_km,
            },
        )
        return maintenance

    @track_performance(service_name="MaintenanceService")
    async def schedule_maintenance(
        self,
        vehicle_id: str,
        service_type: str,
        scheduled_date: Optional[date] = None,
        scheduled_km: Optional[int] = None,
        description: Optional[str] = None,
    ) -> Maintenance:
        """Creates a scheduled service. Vehicle mileage is left untouched."""
        if scheduled_date is None and scheduled_km is None:
            raise ValueError("Defina pelo menos uma data ou quilometragem prevista")

        try:
            vehicle = await self.db.get(Vehicle, vehicle_id)
            if vehicle is None:
                prometheus_collector.record_maintenance_registration("scheduled", "rejected")
                raise VehicleNotFoundError(f"Veículo {vehicle_id} não encontrado.")

            maintenance = Maintenance(
                service_type=service_type,
                scheduled_date=scheduled_date,
                scheduled_km=scheduled_km,
                description=description,
                status=MaintenanceStatus.SCHEDULED.value,
                is_scheduled=True,
            )
            maintenance.vehicle = vehicle
            self.db.add(maintenance)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            prometheus_collector.record_maintenance_registration("scheduled", "error")
            raise DatabaseQueryError(str(e)) from e

        prometheus_collector.record_maintenance_registration("scheduled", "created")
        return maintenance

    @track_performance(service_name="MaintenanceService")
    async def list_maintenances(self, status: Optional[MaintenanceStatus] = None) -> List[Maintenance]:
        """All maintenances (optionally one status), newest first, with vehicle loaded."""
        stmt = (
            select(Maintenance)
            .options(selectinload(Maintenance.vehicle))
            .order_by(Maintenance.created_at.desc())
        )
        if status is not None:
            stmt = stmt.where(Maintenance.status == MaintenanceStatus(status).value)

        try:
            result = await self.db.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise DatabaseQueryError(str(e)) from e

    @track_performance(service_name="MaintenanceService")
    async def vehicle_history(self, vehicle_id: str) -> List[Maintenance]:
        stmt = (
            select(Maintenance)
            .where(Maintenance.vehicle_id == vehicle_id)
            .options(selectinload(Maintenance.vehicle))
            .order_by(Maintenance.created_at.desc())
        )
        try:
            result = await self.db.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise DatabaseQueryError(str(e)) from e
