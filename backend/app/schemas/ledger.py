"""Ledger and payment schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.services.ledger import EntryKind, PaymentCandidate, PaymentMethod, SettlementStatus


class PaymentCreate(BaseModel):
    """Payment submission.

    Fields are accepted loosely here and checked by the ledger engine, so
    every rejection carries the same error body.
    """

    amount: Decimal | str | None = None
    payment_method: str = PaymentMethod.CASH.value
    payment_details: dict[str, Any] = Field(default_factory=dict)
    payment_received_date: str | None = None

    def to_candidate(self) -> PaymentCandidate:
        return PaymentCandidate(
            amount=self.amount,
            payment_method=self.payment_method,
            payment_received_date=self.payment_received_date,
            payment_details=self.payment_details,
        )


class LedgerEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    kind: EntryKind
    payment_id: UUID | None = None
    amount: Decimal
    payment_method: PaymentMethod
    payment_details: dict[str, Any]
    received_date: date | None = None
    created_at: datetime | None = None
    sequence_number: int
    balance_after: Decimal
    is_settled: bool


class LedgerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    booking_id: UUID
    total_amount: Decimal
    advance_amount: Decimal
    total_paid: Decimal
    outstanding_balance: Decimal
    is_settled: bool
    status: SettlementStatus
    status_label: str
    entries: list[LedgerEntryResponse]


class LedgerBatchRequest(BaseModel):
    booking_ids: list[UUID] = Field(..., min_length=1, max_length=500)


class LedgerBatchResponse(BaseModel):
    ledgers: list[LedgerResponse]
