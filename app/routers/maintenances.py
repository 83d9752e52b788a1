from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.db import get_db
from exceptions import ValidationError
from models.maintenance import MaintenanceStatus
from schemas.maintenance import (
    CompletedMaintenanceCreate,
    MaintenanceOut,
    ScheduledMaintenanceCreate,
    to_maintenance_out,
)
from services.exceptions import VehicleNotFoundError
from services.maintenance_service import MaintenanceService

router = APIRouter(prefix="/maintenances", tags=["maintenances"])

UNKNOWN_VEHICLE_MESSAGE = "Selecione um veículo válido"


@router.get("", response_model=List[MaintenanceOut])
async def list_maintenances(
    status: Optional[MaintenanceStatus] = Query(None, description="Concluído | Agendado"),
    db: AsyncSession = Depends(get_db),
):
    rows = await MaintenanceService(db).list_maintenances(status=status)
    return [to_maintenance_out(m) for m in rows]


@router.post("/completed", response_model=MaintenanceOut, status_code=201)
async def register_completed(req: CompletedMaintenanceCreate, db: AsyncSession = Depends(get_db)):
    """
    Records a completed service and updates the vehicle's km in one transaction.

    If ``km_at_service`` is lower than the vehicle's current km, the first
    submission is answered with 409 ``confirmation_required`` and nothing is
    saved. Resubmit with ``confirm_retroactive_km: true`` to proceed.
    """
    try:
        maintenance = await MaintenanceService(db).register_maintenance_and_update_km(
            vehicle_id=req.vehicle_id,
            service_type=req.service_type,
            service_date=req.service_date,
            km_at_service=req.km_at_service,
            cost=req.cost,
            description=req.description,
            attachment_url=req.attachment_url,
            confirm_retroactive_km=req.confirm_retroactive_km,
        )
    except VehicleNotFoundError:
        raise ValidationError(UNKNOWN_VEHICLE_MESSAGE, "vehicle_id")

    return to_maintenance_out(maintenance)


@router.post("/scheduled", response_model=MaintenanceOut, status_code=201)
async def schedule(req: ScheduledMaintenanceCreate, db: AsyncSession = Depends(get_db)):
    try:
        maintenance = await MaintenanceService(db).schedule_maintenance(
            vehicle_id=req.vehicle_id,
            service_type=req.service_type,
            scheduled_date=req.scheduled_date,
            scheduled_km=req.scheduled_km,
            description=req.description,
        )
    except VehicleNotFoundError:
        raise ValidationError(UNKNOWN_VEHICLE_MESSAGE, "vehicle_id")

    return to_maintenance_out(maintenance)
