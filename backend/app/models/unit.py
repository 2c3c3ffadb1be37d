"""Unit model: the inventory collaborator's view of a sellable unit."""

from enum import Enum

from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint, func

from app.core.database import Base
from app.models.shared import Money, UUIDType, generate_uuid


class UnitStatus(str, Enum):
    AVAILABLE = "available"
    BOOKED = "booked"


class Unit(Base):
    """A house or flat within a project, priced by area."""

    __tablename__ = "units"
    __table_args__ = (
        UniqueConstraint("project_id", "unit_number", name="uq_units_project_id_unit_number"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    project_id = Column(Integer, nullable=False, index=True)
    unit_number = Column(String(50), nullable=False)
    area_sq_ft = Column(Money(12), nullable=False)
    rate_per_sq_ft = Column(Money(), nullable=False)
    status = Column(String(20), nullable=False, default=UnitStatus.AVAILABLE.value, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
