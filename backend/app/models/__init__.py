from app.models.booking import Booking
from app.models.booking_payment import BookingPayment
from app.models.idempotency_record import IdempotencyRecord
from app.models.unit import Unit, UnitStatus

__all__ = [
    "Booking",
    "BookingPayment",
    "IdempotencyRecord",
    "Unit",
    "UnitStatus",
]
