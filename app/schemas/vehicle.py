from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.vehicle import VehicleStatus


class VehicleCreate(BaseModel):
    vehicle_number: str = Field(..., min_length=1, description="Business key, e.g. 'V001'")
    license_plate: str = Field(..., min_length=1)
    brand: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    year: int = Field(default_factory=lambda: date.today().year)
    km_current: int = Field(0, ge=0, description="Initial mileage in km")
    status: VehicleStatus = VehicleStatus.ACTIVE

    @field_validator('vehicle_number', 'license_plate', 'brand', 'model')
    def strip_text(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Campo obrigatório')
        return v

    @field_validator('year')
    def plausible_year(cls, v):
        if v < 1900 or v > date.today().year + 1:
            raise ValueError('Ano inválido')
        return v


class VehicleStatusUpdate(BaseModel):
    status: VehicleStatus


class VehicleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    vehicle_number: str
    license_plate: str
    brand: str
    model: str
    year: int
    km_current: int
    status: VehicleStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class VehicleRef(BaseModel):
    """Minimal vehicle identity embedded in maintenance listings."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    vehicle_number: str
    license_plate: str
