"""BookingPayment model: one received-funds event against a booking."""

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)

from app.core.database import Base
from app.models.shared import Money, UUIDType, generate_uuid, utc_now


class BookingPayment(Base):
    """Append-only payment row. Never updated or deleted."""

    __tablename__ = "booking_payments"
    __table_args__ = (
        UniqueConstraint(
            "booking_id", "sequence_number", name="uq_booking_payments_booking_id_sequence"
        ),
        CheckConstraint("amount > 0", name="ck_booking_payments_amount_positive"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    booking_id = Column(
        UUIDType, ForeignKey("bookings.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    sequence_number = Column(Integer, nullable=False)

    amount = Column(Money(), nullable=False)
    payment_method = Column(String(20), nullable=False)
    payment_details = Column(JSON, nullable=False, default=dict)
    payment_received_date = Column(Date, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
