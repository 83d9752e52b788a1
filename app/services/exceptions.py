class FleetDomainError(Exception):
    """Base class for fleet domain errors. Carries the HTTP status the API maps it to."""
    status_code = 400
    error_code = "domain_error"


class VehicleNotFoundError(FleetDomainError):
    """Raised when a vehicle id (or plate/number) does not resolve."""
    status_code = 404
    error_code = "vehicle_not_found"


class DuplicateVehicleNumberError(FleetDomainError):
    """Raised when a vehicle number is already registered."""
    status_code = 409
    error_code = "duplicate_vehicle_number"


class RetroactiveMileageError(FleetDomainError):
    """Raised when a completed service reports less km than the vehicle has, and the user has not confirmed."""
    status_code = 409
    error_code = "confirmation_required"

    def __init__(self, current_km: int, submitted_km: int):
        self.current_km = current_km
        self.submitted_km = submitted_km
        super().__init__(
            f"A quilometragem inserida ({submitted_km} km) é menor que a quilometragem atual "
            f"do veículo ({current_km} km). Isso irá retroceder a quilometragem registrada."
        )


class DatabaseQueryError(FleetDomainError):
    """Raised when a database operation fails."""
    status_code = 500
    error_code = "database_error"
