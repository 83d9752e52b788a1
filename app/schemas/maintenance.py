from datetime import date, datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, TypeAdapter, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError

from models.maintenance import MaintenanceStatus
from schemas.vehicle import VehicleOut, VehicleRef

_http_url = TypeAdapter(AnyHttpUrl)


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


# ---------------------------------------
# Input forms
# ---------------------------------------
class CompletedMaintenanceCreate(BaseModel):
    vehicle_id: str = Field(..., min_length=1)
    service_type: str
    service_date: Optional[date] = None
    km_at_service: Optional[int] = Field(None, ge=0)
    cost: Optional[float] = Field(None, ge=0)
    description: Optional[str] = None
    attachment_url: Optional[str] = None
    confirm_retroactive_km: bool = Field(
        False, description="Set after the user confirms a mileage lower than the vehicle's current km"
    )

    @field_validator('service_date', 'km_at_service', 'cost', 'description', 'attachment_url', mode='before')
    def empty_as_missing(cls, v):
        return _blank_to_none(v)

    @field_validator('service_type')
    def service_type_required(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Tipo de serviço é obrigatório')
        return v

    @field_validator('service_date')
    def not_in_future(cls, v):
        if v and v > date.today():
            raise ValueError('Data não pode ser no futuro')
        return v

    @field_validator('attachment_url')
    def http_link(cls, v):
        # Checked as an http(s) URL; the typed text is kept, not the normalised URL
        if v is None:
            return v
        v = v.strip()
        try:
            _http_url.validate_python(v)
        except PydanticValidationError:
            raise ValueError('Link inválido') from None
        return v


class ScheduledMaintenanceCreate(BaseModel):
    vehicle_id: str = Field(..., min_length=1)
    service_type: str
    # km is validated first so the date check below can see it
    scheduled_km: Optional[int] = Field(None, ge=0)
    scheduled_date: Optional[date] = Field(None, validate_default=True)
    description: Optional[str] = None

    @field_validator('scheduled_date', 'scheduled_km', 'description', mode='before')
    def empty_as_missing(cls, v):
        return _blank_to_none(v)

    @field_validator('service_type')
    def service_type_required(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Tipo de serviço é obrigatório')
        return v

    @field_validator('scheduled_date')
    def date_or_km(cls, v, info: ValidationInfo):
        # An invalid km already carries its own error
        if v is None and 'scheduled_km' in info.data and info.data['scheduled_km'] is None:
            raise ValueError('Defina pelo menos uma data ou quilometragem prevista')
        return v


# ---------------------------------------
# Output variants (tagged on status)
# ---------------------------------------
class _MaintenanceBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    vehicle_id: str
    service_type: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    vehicle: Optional[VehicleRef] = None


class CompletedMaintenanceOut(_MaintenanceBase):
    status: Literal["Concluído"]
    is_scheduled: Literal[False] = False
    service_date: Optional[date] = None
    km_at_service: Optional[int] = None
    cost: Optional[float] = None
    attachment_url: Optional[str] = None


class ScheduledMaintenanceOut(_MaintenanceBase):
    status: Literal["Agendado"]
    is_scheduled: Literal[True] = True
    scheduled_date: Optional[date] = None
    scheduled_km: Optional[int] = None


MaintenanceOut = Annotated[
    Union[CompletedMaintenanceOut, ScheduledMaintenanceOut],
    Field(discriminator="status"),
]

def to_maintenance_out(maintenance) -> Union[CompletedMaintenanceOut, ScheduledMaintenanceOut]:
    """Pick the output variant from the row's status."""
    if maintenance.status == MaintenanceStatus.SCHEDULED.value:
        return ScheduledMaintenanceOut.model_validate(maintenance)
    return CompletedMaintenanceOut.model_validate(maintenance)


class VehicleDetail(BaseModel):
    vehicle: VehicleOut
    maintenances: List[MaintenanceOut]


class RetroactiveMileageConflict(BaseModel):
    error: Literal["confirmation_required"] = "confirmation_required"
    message: str
    current_km: int
    submitted_km: int
