import logging
from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.metrics import track_performance
from models.vehicle import Vehicle, VehicleStatus
from schemas.vehicle import VehicleCreate
from services.exceptions import DatabaseQueryError, DuplicateVehicleNumberError, VehicleNotFoundError

logger = logging.getLogger(__name__)


class VehicleService:
    """
    Read and write operations on fleet vehicles.

    Vehicles are never deleted. Mileage normally moves through maintenance
    registration (see MaintenanceService); ``update_mileage`` exists for the
    chat relay's explicit mileage command.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    @track_performance(service_name="VehicleService")
    async def list_vehicles(self, search: Optional[str] = None) -> List[Vehicle]:
        """Newest first; ``search`` matches number, plate, brand or model (case-insensitive)."""
        stmt = select(Vehicle).order_by(Vehicle.created_at.desc())

        term = (search or "").strip()
        if term:
            needle = term.lower()
            # Literal substring: % and _ in the search text are escaped
            stmt = stmt.where(
                or_(
                    func.lower(Vehicle.vehicle_number).contains(needle, autoescape=True),
                    func.lower(Vehicle.license_plate).contains(needle, autoescape=True),
                    func.lower(Vehicle.brand).contains(needle, autoescape=True),
                    func.lower(Vehicle.model).contains(needle, autoescape=True),
                )
            )

        try:
            result = await self.db.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise DatabaseQueryError(str(e)) from e

    async def get_vehicle(self, vehicle_id: str) -> Vehicle:
        try:
            vehicle = await self.db.get(Vehicle, vehicle_id)
        except SQLAlchemyError as e:
            raise DatabaseQueryError(str(e)) from e

        if vehicle is None:
            raise VehicleNotFoundError(f"Veículo {vehicle_id} não encontrado.")
        return vehicle

    async def vehicle_number_exists(self, vehicle_number: str) -> bool:
        stmt = select(Vehicle.id).where(Vehicle.vehicle_number == vehicle_number).limit(1)
        return (await self.db.execute(stmt)).scalar_one_or_none() is not None

    @track_performance(service_name="VehicleService")
    async def create_vehicle(self, payload: VehicleCreate) -> Vehicle:
        """
        Registers a vehicle after checking that its vehicle number is unused.

        Raises:
            DuplicateVehicleNumberError: the number exists already (checked
                before inserting, and again by the unique constraint for races)
        """
        try:
            if await self.vehicle_number_exists(payload.vehicle_number):
                raise DuplicateVehicleNumberError("Número de veículo já existe!")

            vehicle = Vehicle(
                vehicle_number=payload.vehicle_number,
                license_plate=payload.license_plate,
                brand=payload.brand,
                model=payload.model,
                year=payload.year,
                km_current=payload.km_current,
                status=payload.status.value,
            )
            self.db.add(vehicle)
            await self.db.commit()
        except IntegrityError as e:
            # Another request registered the same number between check and insert
            await self.db.rollback()
            raise DuplicateVehicleNumberError("Número de veículo já existe!") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DatabaseQueryError(str(e)) from e

        await self.db.refresh(vehicle)
        logger.info("Vehicle registered", extra={"vehicle_number": vehicle.vehicle_number})
        return vehicle

    @track_performance(service_name="VehicleService")
    async def update_status(self, vehicle_id: str, status: VehicleStatus) -> Vehicle:
        vehicle = await self.get_vehicle(vehicle_id)
        vehicle.status = VehicleStatus(status).value
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DatabaseQueryError(str(e)) from e
        await self.db.refresh(vehicle)
        return vehicle

    async def find_by_plate_or_number(self, key: str) -> Optional[Vehicle]:
        needle = key.strip().lower()
        stmt = select(Vehicle).where(
            or_(
                func.lower(Vehicle.license_plate) == needle,
                func.lower(Vehicle.vehicle_number) == needle,
            )
        ).limit(1)
        try:
            return (await self.db.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise DatabaseQueryError(str(e)) from e

    @track_performance(service_name="VehicleService")
    async def update_mileage(self, vehicle: Vehicle, km: int) -> Vehicle:
        if km < 0:
            raise ValueError("Quilometragem não pode ser negativa")
        vehicle.km_current = km
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DatabaseQueryError(str(e)) from e
        await self.db.refresh(vehicle)
        return vehicle
