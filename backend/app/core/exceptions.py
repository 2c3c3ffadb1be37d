"""Error taxonomy for booking and payment operations.

Every error carries a human-readable ``message``, a machine-readable
``error_code`` and a ``details`` mapping, so routers can hand the caller
everything needed to correct the request without another round trip.

Hierarchy::

    LedgerError
    ├── InvalidInputError      bad amount, date, method or contract terms
    ├── OverpaymentError       amount exceeds the outstanding balance
    ├── PaymentConflictError   a concurrent admission committed first
    ├── NotFoundError
    │   ├── BookingNotFoundError
    │   └── UnitNotFoundError
    ├── UnitUnavailableError   unit already booked
    └── StoreUnavailableError  persistence failure, safe to retry
"""

from decimal import Decimal
from typing import Any
from uuid import UUID


class LedgerError(Exception):
    """Base class for all booking ledger errors."""

    default_error_code: str = "LEDGER_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Render the error as a JSON-friendly response body."""
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


class InvalidInputError(LedgerError):
    """Rejected input: never retried automatically."""

    default_error_code: str = "INVALID_INPUT"


class OverpaymentError(LedgerError):
    """Candidate amount exceeds the current outstanding balance.

    The outstanding balance at validation time is kept on the error so the
    caller can correct the amount.
    """

    default_error_code: str = "OVERPAYMENT"

    def __init__(
        self,
        booking_id: UUID | str | None,
        requested_amount: Decimal,
        outstanding_balance: Decimal,
    ):
        self.booking_id = booking_id
        self.requested_amount = requested_amount
        self.outstanding_balance = outstanding_balance

        if outstanding_balance == 0:
            message = "Booking is already paid in full; no further payments can be recorded"
        else:
            message = (
                f"Amount {requested_amount} exceeds the outstanding balance "
                f"of {outstanding_balance}"
            )
        super().__init__(
            message=message,
            details={
                "booking_id": str(booking_id) if booking_id is not None else None,
                "requested_amount": str(requested_amount),
                "outstanding_balance": str(outstanding_balance),
            },
        )


class PaymentConflictError(LedgerError):
    """Another admission for the same booking committed first."""

    default_error_code: str = "PAYMENT_CONFLICT"


class NotFoundError(LedgerError):
    default_error_code: str = "NOT_FOUND"


class BookingNotFoundError(NotFoundError):
    default_error_code: str = "BOOKING_NOT_FOUND"

    def __init__(self, booking_id: UUID | str):
        self.booking_id = booking_id
        super().__init__(
            f"Booking {booking_id} not found",
            details={"booking_id": str(booking_id)},
        )


class UnitNotFoundError(NotFoundError):
    default_error_code: str = "UNIT_NOT_FOUND"


class UnitUnavailableError(LedgerError):
    """The referenced unit is no longer available for booking."""

    default_error_code: str = "UNIT_UNAVAILABLE"


class StoreUnavailableError(LedgerError):
    """Underlying persistence failed; nothing was recorded."""

    default_error_code: str = "STORE_UNAVAILABLE"
