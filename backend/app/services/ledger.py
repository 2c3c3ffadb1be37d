"""Ledger engine for booking payments.

Derives a booking's balance and settlement status from its contract terms and
its append-only payment events, and decides whether a new payment may be
admitted. Nothing here touches the database or holds state: the same inputs
always give the same output, so callers may compute as often as they like.

Rules:

- The booking's advance amount is an implicit first payment.
- ``outstanding_balance = max(0, total_amount - total_paid)``, and never more
  than ``total_amount``.
- A booking is settled (SOLD) exactly when the outstanding balance is zero.
- History is ordered advance first, then by received date, then by creation
  time, then by sequence number. The sum does not depend on the order.
- A payment is admitted only if its amount is positive, its received date is
  a valid date, its method is known and the amount does not exceed the
  outstanding balance computed from the events passed in.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Protocol
from uuid import UUID

from app.core.exceptions import InvalidInputError, OverpaymentError

ZERO = Decimal("0.00")
TWO_PLACES = Decimal("0.01")
# Largest amount a Numeric(14, 2) column holds.
MAX_AMOUNT = Decimal("999999999999.99")


class PaymentMethod(str, Enum):
    CASH = "cash"
    UPI = "upi"
    BANK = "bank"
    CHEQUE = "cheque"
    CARD = "card"


class SettlementStatus(str, Enum):
    OPEN = "OPEN"
    SETTLED = "SETTLED"


class EntryKind(str, Enum):
    ADVANCE = "advance"
    PAYMENT = "payment"


class BookingTerms(Protocol):
    """Contract fields the ledger reads from a booking."""

    id: Any
    total_amount: Any
    advance_amount: Any
    advance_payment_method: Any
    booking_date: Any
    created_at: Any


class PaymentEvent(Protocol):
    """Fields the ledger reads from a stored payment."""

    id: Any
    amount: Any
    payment_method: Any
    payment_details: Any
    payment_received_date: Any
    created_at: Any
    sequence_number: Any


@dataclass
class PaymentCandidate:
    """A payment as submitted by a caller, before any validation."""

    amount: Any
    payment_method: Any = PaymentMethod.CASH
    payment_received_date: Any = None
    payment_details: Any = None


@dataclass(frozen=True)
class AdmittedPayment:
    """A candidate that passed input validation, in canonical form."""

    amount: Decimal
    payment_method: PaymentMethod
    payment_received_date: date
    payment_details: dict[str, Any] = field(default_factory=dict)

    def as_event(self, payment_id: UUID, sequence_number: int, created_at: datetime) -> RecordedPayment:
        return RecordedPayment(
            id=payment_id,
            amount=self.amount,
            payment_method=self.payment_method.value,
            payment_details=dict(self.payment_details),
            payment_received_date=self.payment_received_date,
            created_at=created_at,
            sequence_number=sequence_number,
        )


@dataclass(frozen=True)
class RecordedPayment:
    """An admitted payment with the identity it is stored under."""

    id: UUID
    amount: Decimal
    payment_method: str
    payment_details: dict[str, Any]
    payment_received_date: date
    created_at: datetime
    sequence_number: int


@dataclass(frozen=True)
class Balance:
    total_amount: Decimal
    total_paid: Decimal
    outstanding_balance: Decimal

    @property
    def is_settled(self) -> bool:
        return self.outstanding_balance == ZERO


@dataclass(frozen=True)
class LedgerEntry:
    """One row of a booking's payment history."""

    kind: EntryKind
    payment_id: UUID | None
    amount: Decimal
    payment_method: PaymentMethod
    payment_details: dict[str, Any]
    received_date: date | None
    created_at: datetime | None
    sequence_number: int
    balance_after: Decimal

    @property
    def is_settled(self) -> bool:
        return self.balance_after == ZERO


@dataclass(frozen=True)
class Ledger:
    """Derived view of a booking: balance, status and ordered history."""

    booking_id: UUID
    total_amount: Decimal
    advance_amount: Decimal
    total_paid: Decimal
    outstanding_balance: Decimal
    entries: tuple[LedgerEntry, ...] = ()

    @property
    def is_settled(self) -> bool:
        return self.outstanding_balance == ZERO

    @property
    def status(self) -> SettlementStatus:
        return SettlementStatus.SETTLED if self.is_settled else SettlementStatus.OPEN

    @property
    def status_label(self) -> str:
        if self.is_settled:
            return "SOLD"
        return f"{format_inr(self.outstanding_balance)} Pending"


def to_money(value: Any) -> Decimal:
    """Coerce an amount to a two-place Decimal.

    Raises:
        InvalidInputError: the value is not a number or is too large to hold
            to the paisa.
    """
    if value is None:
        return ZERO
    try:
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidInputError(
            f"{value!r} is not a valid amount",
            error_code="INVALID_AMOUNT",
            details={"amount": str(value)},
        ) from None


def format_inr(amount: Decimal) -> str:
    """Format an amount with Indian digit grouping, e.g. ``₹8,00,000.00``."""
    sign = "-" if amount < 0 else ""
    whole, _, fraction = f"{abs(to_money(amount)):.2f}".partition(".")
    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups) + "," + tail
    return f"{sign}₹{whole}.{fraction}"


def _clamp(value: Decimal, ceiling: Decimal) -> Decimal:
    return max(ZERO, min(ceiling, value))


def _naive_utc(value: datetime | None) -> datetime:
    if value is None:
        return datetime.min
    if value.tzinfo is not None:
        return value.astimezone(UTC).replace(tzinfo=None)
    return value


def _event_sort_key(event: PaymentEvent) -> tuple[date, datetime, int]:
    received = event.payment_received_date or date.min
    return (received, _naive_utc(event.created_at), int(event.sequence_number or 0))


def order_events(events: Iterable[PaymentEvent]) -> list[PaymentEvent]:
    """Order payment events by received date, then creation time, then sequence."""
    return sorted(events, key=_event_sort_key)


def initial_status(total_amount: Any, advance_amount: Any) -> SettlementStatus:
    """Settlement status of a booking at the moment it is created."""
    if to_money(advance_amount) >= to_money(total_amount):
        return SettlementStatus.SETTLED
    return SettlementStatus.OPEN


def compute_balance(booking: BookingTerms, events: Iterable[PaymentEvent]) -> Balance:
    """ComputeBalance: total paid and outstanding balance for one booking.

    ``events`` are the booking's stored payments, in any order, without the
    advance; the advance is folded in here.
    """
    total = max(ZERO, to_money(booking.total_amount))
    paid = to_money(booking.advance_amount)
    for event in events:
        paid += to_money(event.amount)
    return Balance(
        total_amount=total,
        total_paid=paid,
        outstanding_balance=_clamp(total - paid, total),
    )


def reconcile(booking: BookingTerms, events: Iterable[PaymentEvent]) -> Ledger:
    """Reconcile: balance plus the ordered history with a running balance.

    The totals always come from ``compute_balance`` so the displayed status
    and the admission check can never disagree.
    """
    events = list(events)
    balance = compute_balance(booking, events)
    total = balance.total_amount
    advance = to_money(booking.advance_amount)

    entries: list[LedgerEntry] = []
    running = total
    if advance > ZERO:
        running -= advance
        entries.append(
            LedgerEntry(
                kind=EntryKind.ADVANCE,
                payment_id=None,
                amount=advance,
                payment_method=PaymentMethod(booking.advance_payment_method or PaymentMethod.CASH),
                payment_details={},
                received_date=booking.booking_date,
                created_at=booking.created_at,
                sequence_number=0,
                balance_after=_clamp(running, total),
            )
        )
    for event in order_events(events):
        amount = to_money(event.amount)
        running -= amount
        entries.append(
            LedgerEntry(
                kind=EntryKind.PAYMENT,
                payment_id=event.id,
                amount=amount,
                payment_method=PaymentMethod(event.payment_method),
                payment_details=dict(event.payment_details or {}),
                received_date=event.payment_received_date,
                created_at=event.created_at,
                sequence_number=int(event.sequence_number or 0),
                balance_after=_clamp(running, total),
            )
        )

    return Ledger(
        booking_id=booking.id,
        total_amount=total,
        advance_amount=advance,
        total_paid=balance.total_paid,
        outstanding_balance=balance.outstanding_balance,
        entries=tuple(entries),
    )


def _parse_amount(value: Any) -> Decimal:
    if value is None or value == "" or isinstance(value, bool):
        raise InvalidInputError(
            "Enter a valid amount",
            error_code="INVALID_AMOUNT",
            details={"field": "amount"},
        )
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidInputError(
            f"Amount {value!r} is not a number",
            error_code="INVALID_AMOUNT",
            details={"field": "amount"},
        ) from None
    if not amount.is_finite() or amount <= 0:
        raise InvalidInputError(
            "Amount must be greater than zero",
            error_code="INVALID_AMOUNT",
            details={"field": "amount", "amount": str(value)},
        )
    if amount > MAX_AMOUNT:
        raise InvalidInputError(
            f"Amount cannot exceed {MAX_AMOUNT}",
            error_code="INVALID_AMOUNT",
            details={"field": "amount", "amount": str(value), "max_amount": str(MAX_AMOUNT)},
        )
    if amount != amount.quantize(TWO_PLACES):
        raise InvalidInputError(
            "Amount cannot have more than two decimal places",
            error_code="INVALID_AMOUNT",
            details={"field": "amount", "amount": str(value)},
        )
    return amount.quantize(TWO_PLACES)


def _parse_received_date(value: Any) -> date:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidInputError(
            "Select the date the payment was received",
            error_code="MISSING_FIELD",
            details={"field": "payment_received_date"},
        )
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            pass
    raise InvalidInputError(
        f"Payment received date {value!r} is not a valid date",
        error_code="MISSING_FIELD",
        details={"field": "payment_received_date"},
    )


def _parse_method(value: Any) -> PaymentMethod:
    if isinstance(value, PaymentMethod):
        return value
    try:
        return PaymentMethod(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in PaymentMethod)
        raise InvalidInputError(
            f"Unknown payment method {value!r}; expected one of {allowed}",
            error_code="INVALID_PAYMENT_METHOD",
            details={"field": "payment_method"},
        ) from None


_SCALARS = (str, int, float, bool, type(None))


def _parse_details(value: Any) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping) or not all(
        isinstance(k, str) and isinstance(v, _SCALARS) for k, v in value.items()
    ):
        raise InvalidInputError(
            "Payment details must be a flat mapping of names to values",
            error_code="INVALID_PAYMENT_DETAILS",
            details={"field": "payment_details"},
        )
    return dict(value)


def normalize_candidate(candidate: PaymentCandidate) -> AdmittedPayment:
    """Validate everything about a candidate that does not depend on the balance."""
    return AdmittedPayment(
        amount=_parse_amount(candidate.amount),
        payment_received_date=_parse_received_date(candidate.payment_received_date),
        payment_method=_parse_method(candidate.payment_method),
        payment_details=_parse_details(candidate.payment_details),
    )


def validate_admission(
    booking: BookingTerms,
    existing_events: Iterable[PaymentEvent],
    candidate: PaymentCandidate,
) -> AdmittedPayment:
    """Validation half of ValidateAndAdmit.

    The caller must append the returned payment under the same
    per-booking serialization that produced ``existing_events``.

    Raises:
        InvalidInputError: amount, date, method or details are invalid.
        OverpaymentError: amount exceeds the outstanding balance.
    """
    admitted = normalize_candidate(candidate)
    balance = compute_balance(booking, existing_events)
    if admitted.amount > balance.outstanding_balance:
        raise OverpaymentError(
            booking_id=booking.id,
            requested_amount=admitted.amount,
            outstanding_balance=balance.outstanding_balance,
        )
    return admitted
