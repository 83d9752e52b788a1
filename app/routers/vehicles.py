from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.db import get_db
from schemas.maintenance import VehicleDetail, to_maintenance_out
from schemas.vehicle import VehicleCreate, VehicleOut, VehicleStatusUpdate
from services.maintenance_service import MaintenanceService
from services.vehicle_service import VehicleService

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


@router.get("", response_model=List[VehicleOut])
async def list_vehicles(
    search: Optional[str] = Query(None, description="Matches number, plate, brand or model"),
    db: AsyncSession = Depends(get_db),
):
    return await VehicleService(db).list_vehicles(search=search)


@router.post("", response_model=VehicleOut, status_code=201)
async def create_vehicle(payload: VehicleCreate, db: AsyncSession = Depends(get_db)):
    # Duplicate vehicle numbers surface as 409 through the domain exception handler
    return await VehicleService(db).create_vehicle(payload)


@router.get("/{vehicle_id}", response_model=VehicleDetail)
async def get_vehicle(vehicle_id: str, db: AsyncSession = Depends(get_db)):
    vehicle = await VehicleService(db).get_vehicle(vehicle_id)
    history = await MaintenanceService(db).vehicle_history(vehicle_id)
    return VehicleDetail(
        vehicle=VehicleOut.model_validate(vehicle),
        maintenances=[to_maintenance_out(m) for m in history],
    )


@router.patch("/{vehicle_id}/status", response_model=VehicleOut)
async def update_vehicle_status(
    vehicle_id: str,
    payload: VehicleStatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    return await VehicleService(db).update_status(vehicle_id, payload.status)
