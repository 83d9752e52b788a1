import enum
import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, func
from sqlalchemy.orm import relationship

from core.db import Base


class VehicleStatus(str, enum.Enum):
    ACTIVE = "Ativo"
    IN_MAINTENANCE = "Em Manutenção"
    INACTIVE = "Inativo"


class Vehicle(Base):
    __tablename__ = "vehicles"
    __table_args__ = (
        CheckConstraint("km_current >= 0", name="ck_vehicles_km_non_negative"),
        CheckConstraint(
            "status IN ('Ativo', 'Em Manutenção', 'Inativo')",
            name="ck_vehicles_status",
        ),
    )

    __mapper_args__ = {"eager_defaults": True}

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    vehicle_number = Column(String, unique=True, nullable=False, index=True)  # business key, e.g. 'V001'
    license_plate = Column(String, nullable=False)
    brand = Column(String, nullable=False)
    model = Column(String, nullable=False)
    year = Column(Integer, nullable=False)
    km_current = Column(Integer, nullable=False, default=0)
    status = Column(String, nullable=False, default=VehicleStatus.ACTIVE.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    maintenances = relationship("Maintenance", back_populates="vehicle")
