# Alembic / create_all will detect models here
from .vehicle import Vehicle, VehicleStatus
from .maintenance import Maintenance, MaintenanceStatus
