import enum
import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import relationship

from core.db import Base


class MaintenanceStatus(str, enum.Enum):
    COMPLETED = "Concluído"
    SCHEDULED = "Agendado"


class Maintenance(Base):
    """
    One row per maintenance event, either a completed service or a scheduled one.

    The CHECK constraint keeps the two field sets mutually exclusive so a row
    can never mix actuals (service date/km/cost/attachment) with targets
    (scheduled date/km).
    """
    __tablename__ = "maintenances"
    __table_args__ = (
        CheckConstraint(
            "(status = 'Concluído' AND is_scheduled = false"
            " AND scheduled_date IS NULL AND scheduled_km IS NULL)"
            " OR (status = 'Agendado' AND is_scheduled = true"
            " AND service_date IS NULL AND km_at_service IS NULL"
            " AND cost IS NULL AND attachment_url IS NULL)",
            name="ck_maintenances_variant",
        ),
    )

    __mapper_args__ = {"eager_defaults": True}

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    vehicle_id = Column(String(36), ForeignKey("vehicles.id"), nullable=False, index=True)
    service_type = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    # Completed service
    service_date = Column(Date, nullable=True)
    km_at_service = Column(Integer, nullable=True)
    cost = Column(Numeric(12, 2, asdecimal=False), nullable=True)
    attachment_url = Column(String, nullable=True)

    # Scheduled service
    scheduled_date = Column(Date, nullable=True)
    scheduled_km = Column(Integer, nullable=True)

    status = Column(String, nullable=False)
    is_scheduled = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    vehicle = relationship("Vehicle", back_populates="maintenances")
