"""Booking schemas."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.services.ledger import MAX_AMOUNT, PaymentMethod, SettlementStatus


class BookingCreate(BaseModel):
    """Contract terms supplied when a unit is booked.

    Area and rate come from the unit itself; the total is derived from them.
    """

    project_id: int = Field(..., ge=1)
    unit_number: str = Field(..., min_length=1, max_length=50)
    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_mobile: str | None = Field(default=None, max_length=20, pattern=r"^\+?[0-9 -]{6,20}$")
    advance_amount: Decimal = Field(default=Decimal("0"), ge=0, le=MAX_AMOUNT, decimal_places=2)
    advance_payment_method: PaymentMethod = PaymentMethod.CASH
    booking_date: date | None = None


class BookingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    booking_code: str
    unit_id: UUID
    project_id: int
    unit_number: str
    customer_name: str
    customer_mobile: str | None = None
    area_sq_ft: Decimal
    rate_per_sq_ft: Decimal
    total_amount: Decimal
    advance_amount: Decimal
    advance_payment_method: PaymentMethod
    booking_date: date
    created_at: datetime


class BookingSummaryResponse(BookingResponse):
    """Booking row for the booking list, with its pending amount or SOLD."""

    total_paid: Decimal
    outstanding_balance: Decimal
    is_settled: bool
    status: SettlementStatus
    status_label: str
