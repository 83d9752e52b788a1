from typing import List

from pydantic import BaseModel


class ServiceTypeCount(BaseModel):
    type: str
    count: int


class StatusCount(BaseModel):
    status: str
    count: int


class DashboardStats(BaseModel):
    total_vehicles: int = 0
    total_km: int = 0
    maintenance_cost: float = 0.0
    maintenances_by_type: List[ServiceTypeCount] = []
    vehicles_by_status: List[StatusCount] = []
