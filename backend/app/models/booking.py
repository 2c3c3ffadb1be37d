"""Booking model: the sale contract for one unit."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    func,
)

from app.core.database import Base
from app.models.shared import Money, UUIDType, generate_uuid


class Booking(Base):
    """Booking model - contract terms fixed at creation.

    The outstanding balance is never stored here; it is always derived from
    ``total_amount``, ``advance_amount`` and the booking's payment rows.
    ``payment_sequence`` counts admitted payments and is the version checked
    when a new payment is appended.
    """

    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("advance_amount <= total_amount", name="ck_bookings_advance_le_total"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    booking_code = Column(String(20), nullable=False, unique=True)
    unit_id = Column(
        UUIDType, ForeignKey("units.id", ondelete="RESTRICT"), nullable=False, unique=True
    )
    project_id = Column(Integer, nullable=False, index=True)
    unit_number = Column(String(50), nullable=False)

    # Customer
    customer_name = Column(String(255), nullable=False)
    customer_mobile = Column(String(20), nullable=True)

    # Contract terms
    area_sq_ft = Column(Money(12), nullable=False)
    rate_per_sq_ft = Column(Money(), nullable=False)
    total_amount = Column(Money(), nullable=False)
    advance_amount = Column(Money(), nullable=False, default=0)
    advance_payment_method = Column(String(20), nullable=False, default="cash")
    booking_date = Column(Date, nullable=False)

    payment_sequence = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
