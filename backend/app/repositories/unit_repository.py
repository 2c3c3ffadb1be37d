"""Unit repository: the inventory collaborator's contract."""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.models.unit import Unit, UnitStatus


class UnitRepository:
    """Repository for Unit model."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, unit_id: UUID) -> Unit | None:
        return self.db.query(Unit).filter(Unit.id == unit_id).first()

    def get_by_number(self, project_id: int, unit_number: str) -> Unit | None:
        """Get a unit by its number within a project."""
        return (
            self.db.query(Unit)
            .filter(Unit.project_id == project_id, Unit.unit_number == unit_number)
            .first()
        )

    def create(
        self,
        project_id: int,
        unit_number: str,
        area_sq_ft: Decimal,
        rate_per_sq_ft: Decimal,
    ) -> Unit:
        """Register a unit. Catalog management lives elsewhere; this is for seeding."""
        unit = Unit(
            project_id=project_id,
            unit_number=unit_number,
            area_sq_ft=area_sq_ft,
            rate_per_sq_ft=rate_per_sq_ft,
        )
        self.db.add(unit)
        self.db.commit()
        self.db.refresh(unit)
        return unit

    def claim(self, unit_id: UUID) -> bool:
        """Mark an available unit as booked.

        Runs inside the caller's transaction and does not commit. Returns
        False if the unit was no longer available.
        """
        result = self.db.execute(
            update(Unit)
            .where(Unit.id == unit_id, Unit.status == UnitStatus.AVAILABLE.value)
            .values(status=UnitStatus.BOOKED.value)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1  # type: ignore[attr-defined]
