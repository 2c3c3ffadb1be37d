from app.repositories.booking_payment_repository import BookingPaymentRepository
from app.repositories.booking_repository import BookingRepository
from app.repositories.idempotency_repository import IdempotencyRepository
from app.repositories.unit_repository import UnitRepository

__all__ = [
    "BookingPaymentRepository",
    "BookingRepository",
    "IdempotencyRepository",
    "UnitRepository",
]
