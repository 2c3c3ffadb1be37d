"""Booking and booking payment API endpoints."""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.exceptions import (
    LedgerError,
    NotFoundError,
    OverpaymentError,
    PaymentConflictError,
    StoreUnavailableError,
    UnitUnavailableError,
)
from app.core.idempotency import (
    IdempotencyResult,
    check_idempotency,
    record_idempotency_response,
    release_idempotency_key,
)
from app.models.booking import Booking
from app.repositories.booking_repository import BookingRepository
from app.schemas.booking import BookingCreate, BookingResponse, BookingSummaryResponse
from app.schemas.ledger import (
    LedgerBatchRequest,
    LedgerBatchResponse,
    LedgerEntryResponse,
    LedgerResponse,
    PaymentCreate,
)
from app.services.booking_service import BookingService
from app.services.ledger import Ledger

router = APIRouter()


def _to_http_error(exc: LedgerError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        status_code = 404
    elif isinstance(exc, (OverpaymentError, PaymentConflictError, UnitUnavailableError)):
        status_code = 409
    elif isinstance(exc, StoreUnavailableError):
        status_code = 503
    else:
        status_code = 400
    return HTTPException(status_code=status_code, detail=exc.to_dict())


def _ledger_response(ledger: Ledger) -> LedgerResponse:
    return LedgerResponse.model_validate(ledger)


@router.post(
    "/",
    response_model=BookingResponse,
    status_code=201,
    summary="Create booking",
    responses={
        400: {"description": "Advance exceeds total or booking date in the future"},
        404: {"description": "Unit not found"},
        409: {"description": "Unit is no longer available"},
        503: {"description": "Booking could not be saved"},
    },
)
async def create_booking(
    data: BookingCreate,
    db: Session = Depends(get_db),
) -> Booking:
    """Book an available unit. The total is the unit's area times its rate."""
    service = BookingService(db)
    try:
        return service.create_booking(data)
    except LedgerError as e:
        raise _to_http_error(e) from None


@router.get(
    "/",
    response_model=list[BookingSummaryResponse],
    summary="List bookings",
)
async def list_bookings(
    response: Response,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    project_id: int | None = None,
    order_by: str | None = Query(default=None, description="field:direction, e.g. booking_date:asc"),
    db: Session = Depends(get_db),
) -> list[BookingSummaryResponse]:
    """List bookings, each with its pending amount or SOLD status."""
    service = BookingService(db)
    response.headers["X-Total-Count"] = str(BookingRepository(db).count(project_id))
    rows = service.list_bookings(skip=skip, limit=limit, project_id=project_id, order_by=order_by)
    return [
        BookingSummaryResponse(
            **BookingResponse.model_validate(booking).model_dump(),
            total_paid=ledger.total_paid,
            outstanding_balance=ledger.outstanding_balance,
            is_settled=ledger.is_settled,
            status=ledger.status,
            status_label=ledger.status_label,
        )
        for booking, ledger in rows
    ]


@router.post(
    "/ledgers",
    response_model=LedgerBatchResponse,
    summary="Get ledgers for many bookings",
    responses={404: {"description": "One of the bookings was not found"}},
)
async def get_ledgers(
    data: LedgerBatchRequest,
    db: Session = Depends(get_db),
) -> LedgerBatchResponse:
    """Balances and histories for many bookings in one call."""
    service = BookingService(db)
    try:
        ledgers = service.get_ledgers(data.booking_ids)
    except LedgerError as e:
        raise _to_http_error(e) from None
    return LedgerBatchResponse(ledgers=[_ledger_response(ledger) for ledger in ledgers])


@router.get(
    "/{booking_id}",
    response_model=BookingResponse,
    summary="Get booking",
    responses={404: {"description": "Booking not found"}},
)
async def get_booking(
    booking_id: UUID,
    db: Session = Depends(get_db),
) -> Booking:
    service = BookingService(db)
    try:
        return service.get_booking(booking_id)
    except LedgerError as e:
        raise _to_http_error(e) from None


@router.get(
    "/{booking_id}/ledger",
    response_model=LedgerResponse,
    summary="Get booking ledger",
    responses={404: {"description": "Booking not found"}},
)
async def get_ledger(
    booking_id: UUID,
    db: Session = Depends(get_db),
) -> LedgerResponse:
    """Total, paid, outstanding balance, status and ordered payment history."""
    service = BookingService(db)
    try:
        return _ledger_response(service.get_ledger(booking_id))
    except LedgerError as e:
        raise _to_http_error(e) from None


@router.get(
    "/{booking_id}/payments",
    response_model=list[LedgerEntryResponse],
    summary="List booking payments",
    responses={404: {"description": "Booking not found"}},
)
async def list_payments(
    booking_id: UUID,
    db: Session = Depends(get_db),
) -> list[LedgerEntryResponse]:
    """Payment history, advance first, with the pending balance after each row."""
    service = BookingService(db)
    try:
        ledger = service.get_ledger(booking_id)
    except LedgerError as e:
        raise _to_http_error(e) from None
    return [LedgerEntryResponse.model_validate(entry) for entry in ledger.entries]


@router.post(
    "/{booking_id}/payments",
    response_model=LedgerResponse,
    status_code=201,
    summary="Add payment",
    responses={
        400: {"description": "Invalid amount, date, payment method or details"},
        404: {"description": "Booking not found"},
        409: {"description": "Overpayment, or a concurrent payment could not be resolved"},
        503: {"description": "Payment could not be saved; safe to retry"},
    },
)
async def add_payment(
    booking_id: UUID,
    data: PaymentCreate,
    request: Request,
    db: Session = Depends(get_db),
) -> Any:
    """Record a payment against a booking and return the updated ledger.

    Send an ``Idempotency-Key`` header to make retries safe: the first
    outcome for a key is replayed for every later request with that key.
    """
    idempotency = check_idempotency(request, db)
    if isinstance(idempotency, JSONResponse):
        return idempotency

    service = BookingService(db)
    try:
        ledger = service.add_payment(booking_id, data.to_candidate())
    except (PaymentConflictError, StoreUnavailableError) as e:
        if isinstance(idempotency, IdempotencyResult):
            release_idempotency_key(db, idempotency)
        raise _to_http_error(e) from None
    except LedgerError as e:
        error = _to_http_error(e)
        if isinstance(idempotency, IdempotencyResult):
            record_idempotency_response(db, idempotency, error.status_code, {"detail": error.detail})
        raise error from None
    except Exception:
        if isinstance(idempotency, IdempotencyResult):
            db.rollback()
            release_idempotency_key(db, idempotency)
        raise

    body = _ledger_response(ledger)
    if isinstance(idempotency, IdempotencyResult):
        record_idempotency_response(db, idempotency, 201, body.model_dump(mode="json"))
    return body
