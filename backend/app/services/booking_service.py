"""Booking service: creates bookings and records payments against them.

Every balance this service hands out is derived by the ledger engine from the
stored advance and payment rows; no balance is ever persisted.
"""

import logging
import uuid
from collections.abc import Iterable
from datetime import date
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    BookingNotFoundError,
    InvalidInputError,
    OverpaymentError,
    PaymentConflictError,
    StoreUnavailableError,
    UnitNotFoundError,
    UnitUnavailableError,
)
from app.core.locks import booking_lock
from app.models.booking import Booking
from app.models.booking_payment import BookingPayment
from app.models.shared import generate_uuid, utc_now
from app.models.unit import UnitStatus
from app.repositories.booking_payment_repository import BookingPaymentRepository
from app.repositories.booking_repository import BookingRepository
from app.repositories.unit_repository import UnitRepository
from app.schemas.booking import BookingCreate
from app.services.ledger import (
    MAX_AMOUNT,
    Ledger,
    PaymentCandidate,
    reconcile,
    to_money,
    validate_admission,
)

logger = logging.getLogger(__name__)


def generate_booking_code() -> str:
    """Short human-facing booking reference, e.g. ``BK-3F9A12C0``."""
    return f"BK-{uuid.uuid4().hex[:8].upper()}"


class BookingService:
    """Service for booking and payment business logic."""

    def __init__(self, db: Session):
        self.db = db
        self.booking_repo = BookingRepository(db)
        self.payment_repo = BookingPaymentRepository(db)
        self.unit_repo = UnitRepository(db)

    def create_booking(self, data: BookingCreate) -> Booking:
        """Book an available unit.

        The contract total is the unit's area times its rate. The unit claim
        and the booking insert commit together.

        Raises:
            UnitNotFoundError: no such unit in the project.
            UnitUnavailableError: the unit is already booked.
            InvalidInputError: advance exceeds the total or the date is in the future.
        """
        unit = self.unit_repo.get_by_number(data.project_id, data.unit_number)
        if unit is None:
            raise UnitNotFoundError(
                f"Unit {data.unit_number} not found in project {data.project_id}",
                details={"project_id": data.project_id, "unit_number": data.unit_number},
            )
        if unit.status != UnitStatus.AVAILABLE.value:
            logger.info("Unit %s in project %s is not available", unit.unit_number, unit.project_id)
            raise self._unit_unavailable(data)

        total_amount = to_money(to_money(unit.area_sq_ft) * to_money(unit.rate_per_sq_ft))
        advance_amount = to_money(data.advance_amount)
        if total_amount > MAX_AMOUNT:
            raise InvalidInputError(
                f"Total amount {total_amount} exceeds the largest recordable amount {MAX_AMOUNT}",
                error_code="INVALID_CONTRACT_TERMS",
                details={"field": "total_amount", "total_amount": str(total_amount)},
            )
        if advance_amount > total_amount:
            raise InvalidInputError(
                f"Advance {advance_amount} cannot exceed the total amount {total_amount}",
                error_code="INVALID_CONTRACT_TERMS",
                details={
                    "field": "advance_amount",
                    "advance_amount": str(advance_amount),
                    "total_amount": str(total_amount),
                },
            )

        booking_date = data.booking_date or date.today()
        if booking_date > date.today():
            raise InvalidInputError(
                "Booking date cannot be in the future",
                error_code="INVALID_CONTRACT_TERMS",
                details={"field": "booking_date", "booking_date": booking_date.isoformat()},
            )

        try:
            if not self.unit_repo.claim(unit.id):  # type: ignore[arg-type]
                self.db.rollback()
                logger.info(
                    "Unit %s in project %s was booked concurrently",
                    unit.unit_number,
                    unit.project_id,
                )
                raise self._unit_unavailable(data)
            booking = self.booking_repo.create(
                data,
                unit,
                total_amount=total_amount,
                booking_code=generate_booking_code(),
                booking_date=booking_date,
            )
        except IntegrityError:
            self.db.rollback()
            raise self._unit_unavailable(data) from None
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Failed to create booking for unit %s", data.unit_number)
            raise StoreUnavailableError(
                "The booking could not be saved; nothing was recorded. Please retry."
            ) from exc

        logger.info(
            "Created booking %s for unit %s (total %s, advance %s)",
            booking.booking_code,
            booking.unit_number,
            total_amount,
            advance_amount,
        )
        return booking

    @staticmethod
    def _unit_unavailable(data: BookingCreate) -> UnitUnavailableError:
        return UnitUnavailableError(
            f"Unit {data.unit_number} in project {data.project_id} is no longer available",
            details={"project_id": data.project_id, "unit_number": data.unit_number},
        )

    def get_booking(self, booking_id: UUID, fresh: bool = False) -> Booking:
        booking = self.booking_repo.get_by_id(booking_id, fresh=fresh)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        return booking

    def get_ledger(self, booking_id: UUID) -> Ledger:
        """GetLedger: balance, status and ordered history for one booking."""
        booking = self.get_booking(booking_id)
        return reconcile(booking, self.payment_repo.list_by_booking(booking_id))

    def get_ledgers(self, booking_ids: Iterable[UUID]) -> list[Ledger]:
        """GetLedgers: ledgers for many bookings with two queries.

        Results follow the order of ``booking_ids`` with duplicates removed.

        Raises:
            BookingNotFoundError: for the first id that does not exist.
        """
        ids = list(dict.fromkeys(booking_ids))
        bookings = {b.id: b for b in self.booking_repo.get_many(ids)}
        for booking_id in ids:
            if booking_id not in bookings:
                raise BookingNotFoundError(booking_id)
        payments = self.payment_repo.list_by_bookings(ids)
        return [reconcile(bookings[i], payments.get(i, [])) for i in ids]

    def list_bookings(
        self,
        skip: int = 0,
        limit: int = 100,
        project_id: int | None = None,
        order_by: str | None = None,
    ) -> list[tuple[Booking, Ledger]]:
        """Bookings with their ledgers, for the booking list."""
        bookings = self.booking_repo.get_all(
            skip=skip, limit=limit, project_id=project_id, order_by=order_by
        )
        payments = self.payment_repo.list_by_bookings([b.id for b in bookings])
        return [(b, reconcile(b, payments.get(b.id, []))) for b in bookings]  # type: ignore[call-overload]

    def _read_admission_state(self, booking_id: UUID) -> tuple[Booking, list[BookingPayment]]:
        """Fresh booking row and its payments, read for one admission attempt."""
        try:
            booking = self.booking_repo.get_by_id(booking_id, fresh=True)
            events = self.payment_repo.list_by_booking(booking_id) if booking is not None else []
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Failed to read payments for booking %s", booking_id)
            raise StoreUnavailableError(
                "The booking's payments could not be read; nothing was recorded. Please retry.",
                details={"booking_id": str(booking_id)},
            ) from exc
        if booking is None:
            raise BookingNotFoundError(booking_id)
        return booking, events

    def add_payment(self, booking_id: UUID, candidate: PaymentCandidate) -> Ledger:
        """AddPayment: validate and admit a payment, then return the new ledger.

        Read, validate and append run under the booking's lock. If the append
        still loses a race (another process), the whole sequence is re-run
        against freshly read state, at most ``LEDGER_ADMISSION_MAX_ATTEMPTS`` times.

        The returned ledger is reconciled from the state the payment was
        admitted against plus the payment itself, so nothing is read after
        the commit.

        Raises:
            BookingNotFoundError: unknown booking.
            InvalidInputError: amount, date, method or details are invalid.
            OverpaymentError: amount exceeds the outstanding balance.
            PaymentConflictError: retries exhausted or lock not acquired in time.
            StoreUnavailableError: the database failed; nothing was recorded.
        """
        max_attempts = max(1, settings.LEDGER_ADMISSION_MAX_ATTEMPTS)

        with booking_lock(booking_id):
            for attempt in range(1, max_attempts + 1):
                booking, events = self._read_admission_state(booking_id)
                try:
                    admitted = validate_admission(booking, events, candidate)
                except OverpaymentError as exc:
                    logger.info(
                        "Rejected payment of %s on booking %s: outstanding balance is %s",
                        exc.requested_amount,
                        booking_id,
                        exc.outstanding_balance,
                    )
                    raise

                expected_sequence = int(booking.payment_sequence)  # type: ignore[arg-type]
                recorded = admitted.as_event(
                    payment_id=generate_uuid(),
                    sequence_number=expected_sequence + 1,
                    created_at=utc_now(),
                )
                ledger = reconcile(booking, [*events, recorded])

                try:
                    self.payment_repo.append(
                        booking_id,
                        expected_sequence,
                        admitted,
                        payment_id=recorded.id,
                        created_at=recorded.created_at,
                    )
                except PaymentConflictError:
                    logger.warning(
                        "Payment conflict on booking %s (attempt %d of %d)",
                        booking_id,
                        attempt,
                        max_attempts,
                    )
                    continue

                logger.info(
                    "Recorded payment %s of %s on booking %s; outstanding balance %s",
                    recorded.id,
                    admitted.amount,
                    booking_id,
                    ledger.outstanding_balance,
                )
                return ledger

        logger.warning("Giving up on payment for booking %s after %d conflicts", booking_id, max_attempts)
        raise PaymentConflictError(
            f"Booking {booking_id} is receiving other payments right now; please retry",
            details={"booking_id": str(booking_id), "attempts": max_attempts},
        )
