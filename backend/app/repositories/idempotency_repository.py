"""Repository for IdempotencyRecord CRUD operations."""

from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from app.models.idempotency_record import IdempotencyRecord
from app.models.shared import generate_uuid


class IdempotencyRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_key(self, request_path: str, idempotency_key: str) -> IdempotencyRecord | None:
        return (
            self.db.query(IdempotencyRecord)
            .filter(
                IdempotencyRecord.request_path == request_path,
                IdempotencyRecord.idempotency_key == idempotency_key,
            )
            .first()
        )

    def create(
        self,
        *,
        idempotency_key: str,
        request_method: str,
        request_path: str,
        response_status: int | None = None,
        response_body: dict[str, Any] | None = None,
    ) -> IdempotencyRecord:
        record = IdempotencyRecord(
            id=generate_uuid(),
            idempotency_key=idempotency_key,
            request_method=request_method,
            request_path=request_path,
            response_status=response_status,
            response_body=response_body,
        )
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return record

    def update_response(
        self,
        record: IdempotencyRecord,
        response_status: int,
        response_body: dict[str, Any],
    ) -> IdempotencyRecord:
        record.response_status = response_status  # type: ignore[assignment]
        record.response_body = response_body  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(record)
        return record

    def delete(self, record: IdempotencyRecord) -> None:
        self.db.delete(record)
        self.db.commit()

    def delete_expired(self, max_age_hours: int = 24) -> int:
        cutoff = datetime.now(UTC) - timedelta(hours=max_age_hours)
        count = (
            self.db.query(IdempotencyRecord)
            .filter(IdempotencyRecord.created_at < cutoff)
            .delete()
        )
        self.db.commit()
        return int(count)
