from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel


class Alert(BaseModel):
    maintenance_id: str
    vehicle_number: str
    license_plate: str
    service_type: str
    kind: Literal["date", "km"]
    days_until: Optional[int] = None
    km_until: Optional[int] = None
    scheduled_date: Optional[date] = None
    scheduled_km: Optional[int] = None
    current_km: Optional[int] = None
    message: str
