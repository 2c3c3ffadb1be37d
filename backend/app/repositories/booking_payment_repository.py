"""Booking payment repository: the Payment Record Store."""

import logging
from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import PaymentConflictError, StoreUnavailableError
from app.models.booking import Booking
from app.models.booking_payment import BookingPayment
from app.models.shared import generate_uuid, utc_now
from app.services.ledger import AdmittedPayment

logger = logging.getLogger(__name__)


class BookingPaymentRepository:
    """Append-only store of payment events, keyed by booking."""

    def __init__(self, db: Session):
        self.db = db

    def list_by_booking(self, booking_id: UUID) -> list[BookingPayment]:
        """Get all payments for a booking, in insertion order."""
        return (
            self.db.query(BookingPayment)
            .filter(BookingPayment.booking_id == booking_id)
            .order_by(BookingPayment.sequence_number.asc())
            .all()
        )

    def list_by_bookings(self, booking_ids: Iterable[UUID]) -> dict[UUID, list[BookingPayment]]:
        """Get payments for many bookings in one query, grouped by booking id."""
        ids = list(booking_ids)
        grouped: dict[UUID, list[BookingPayment]] = defaultdict(list)
        if not ids:
            return grouped
        payments = (
            self.db.query(BookingPayment)
            .filter(BookingPayment.booking_id.in_(ids))
            .order_by(BookingPayment.booking_id, BookingPayment.sequence_number.asc())
            .all()
        )
        for payment in payments:
            grouped[payment.booking_id].append(payment)  # type: ignore[index]
        return grouped

    def append(
        self,
        booking_id: UUID,
        expected_sequence: int,
        payment: AdmittedPayment,
        payment_id: UUID | None = None,
        created_at: datetime | None = None,
    ) -> BookingPayment:
        """Append a payment if no other payment was appended since ``expected_sequence``.

        Bumps ``bookings.payment_sequence`` from ``expected_sequence`` to the next
        value and inserts the payment with that sequence number, in a single
        transaction. Nothing is written unless both succeed.

        Callers may fix ``payment_id`` and ``created_at`` up front so they can
        describe the stored row without reading it back.

        Raises:
            PaymentConflictError: another payment was appended first.
            StoreUnavailableError: the database failed; nothing was written.
        """
        next_sequence = expected_sequence + 1
        try:
            result = self.db.execute(
                update(Booking)
                .where(Booking.id == booking_id, Booking.payment_sequence == expected_sequence)
                .values(payment_sequence=next_sequence)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:  # type: ignore[attr-defined]
                self.db.rollback()
                raise PaymentConflictError(
                    f"Booking {booking_id} received another payment while this one was validated",
                    details={"booking_id": str(booking_id), "expected_sequence": expected_sequence},
                )

            record = BookingPayment(
                id=payment_id or generate_uuid(),
                booking_id=booking_id,
                sequence_number=next_sequence,
                amount=payment.amount,
                payment_method=payment.payment_method.value,
                payment_details=payment.payment_details,
                payment_received_date=payment.payment_received_date,
                created_at=created_at or utc_now(),
            )
            self.db.add(record)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise PaymentConflictError(
                f"Payment sequence {next_sequence} for booking {booking_id} is already taken",
                details={"booking_id": str(booking_id), "expected_sequence": expected_sequence},
            ) from None
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Failed to append payment to booking %s", booking_id)
            raise StoreUnavailableError(
                "The payment could not be saved; nothing was recorded. Please retry.",
                details={"booking_id": str(booking_id)},
            ) from exc

        return record
