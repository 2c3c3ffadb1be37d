"""Column types and defaults shared by the ledger models."""

import uuid
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy import Numeric, String, TypeDecorator
from sqlalchemy.engine import Dialect

PAISE = Decimal("0.01")


class UUIDType(TypeDecorator[uuid.UUID]):
    """Platform-independent UUID type.

    Uses String(36) for SQLite, native UUID for PostgreSQL.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Dialect) -> str | None:
        if value is None:
            return value
        if isinstance(value, uuid.UUID):
            return str(value)
        return str(uuid.UUID(value))

    def process_result_value(self, value: Any, dialect: Dialect) -> uuid.UUID | None:
        if value is None:
            return value
        if isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(value)


class Money(TypeDecorator[Decimal]):
    """Decimal held to two places (the paisa, for rupees) as NUMERIC(precision, 2).

    SQLite stores NUMERIC as a float, so values are quantized on the way in
    and on the way out; callers always see a two-place ``Decimal``.
    """

    impl = Numeric
    cache_ok = True

    def __init__(self, precision: int = 14) -> None:
        self.precision = precision
        super().__init__(precision=precision, scale=2)

    def process_bind_param(self, value: Any, dialect: Dialect) -> Decimal | None:
        if value is None:
            return value
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        return value.quantize(PAISE, rounding=ROUND_HALF_UP)

    def process_result_value(self, value: Any, dialect: Dialect) -> Decimal | None:
        if value is None:
            return value
        return Decimal(str(value)).quantize(PAISE, rounding=ROUND_HALF_UP)


def generate_uuid() -> uuid.UUID:
    return uuid.uuid4()


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(UTC)
