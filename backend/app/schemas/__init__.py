from app.schemas.booking import BookingCreate, BookingResponse, BookingSummaryResponse
from app.schemas.ledger import (
    LedgerBatchRequest,
    LedgerBatchResponse,
    LedgerEntryResponse,
    LedgerResponse,
    PaymentCreate,
)

__all__ = [
    "BookingCreate",
    "BookingResponse",
    "BookingSummaryResponse",
    "LedgerBatchRequest",
    "LedgerBatchResponse",
    "LedgerEntryResponse",
    "LedgerResponse",
    "PaymentCreate",
]
