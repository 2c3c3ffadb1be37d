"""Booking repository: the Booking Record Store."""

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.sorting import apply_order_by
from app.models.booking import Booking
from app.models.unit import Unit
from app.schemas.booking import BookingCreate


class BookingRepository:
    """Repository for Booking model. Bookings are never updated or deleted."""

    def __init__(self, db: Session):
        self.db = db

    def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        project_id: int | None = None,
        order_by: str | None = None,
    ) -> list[Booking]:
        """Get all bookings with optional filters."""
        query = self.db.query(Booking)
        if project_id is not None:
            query = query.filter(Booking.project_id == project_id)
        query = apply_order_by(query, Booking, order_by)
        return query.offset(skip).limit(limit).all()

    def count(self, project_id: int | None = None) -> int:
        query = self.db.query(Booking)
        if project_id is not None:
            query = query.filter(Booking.project_id == project_id)
        return query.count()

    def get_by_id(self, booking_id: UUID, fresh: bool = False) -> Booking | None:
        """Get a booking by ID.

        With ``fresh=True`` the row is re-read from the database even if the
        session already holds it, so ``payment_sequence`` is current.
        """
        query = self.db.query(Booking).filter(Booking.id == booking_id)
        if fresh:
            query = query.populate_existing()
        return query.first()

    def get_many(self, booking_ids: Iterable[UUID]) -> list[Booking]:
        ids = list(booking_ids)
        if not ids:
            return []
        return self.db.query(Booking).filter(Booking.id.in_(ids)).all()

    def create(
        self,
        data: BookingCreate,
        unit: Unit,
        total_amount: Decimal,
        booking_code: str,
        booking_date: date,
    ) -> Booking:
        """Create a booking and commit, together with anything pending in the session."""
        booking = Booking(
            booking_code=booking_code,
            unit_id=unit.id,
            project_id=unit.project_id,
            unit_number=unit.unit_number,
            customer_name=data.customer_name,
            customer_mobile=data.customer_mobile,
            area_sq_ft=unit.area_sq_ft,
            rate_per_sq_ft=unit.rate_per_sq_ft,
            total_amount=total_amount,
            advance_amount=data.advance_amount,
            advance_payment_method=data.advance_payment_method.value,
            booking_date=booking_date,
            payment_sequence=0,
        )
        self.db.add(booking)
        self.db.commit()
        self.db.refresh(booking)
        return booking
