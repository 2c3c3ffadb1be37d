"""Idempotency support for payment submission.

Provides a helper that checks the ``Idempotency-Key`` header. If a completed
response exists for the key, the helper returns a JSONResponse replaying it;
if another request with the same key is still being processed, it returns a
409 response; otherwise it reserves the key and returns an
``IdempotencyResult`` so the endpoint can proceed. After the endpoint
completes, call ``record_idempotency_response`` to persist the response for
future replays.
"""

from dataclasses import dataclass
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.repositories.idempotency_repository import IdempotencyRepository


@dataclass
class IdempotencyResult:
    """Holds pending idempotency key info for later recording."""

    key: str
    method: str
    path: str


def _in_progress_response(key: str) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={
            "detail": {
                "error": "A request with this Idempotency-Key is still being processed",
                "error_code": "IDEMPOTENCY_KEY_IN_USE",
                "details": {"idempotency_key": key},
            }
        },
    )


def check_idempotency(
    request: Request,
    db: Session,
) -> JSONResponse | IdempotencyResult | None:
    """Check the ``Idempotency-Key`` header for a cached response.

    Returns:
        - ``None`` if no ``Idempotency-Key`` header is present (no idempotency).
        - A ``JSONResponse`` with the cached response and ``Idempotency-Replayed: true``
          header if a completed record already exists, or a 409 response if the
          key is reserved by a request that has not finished yet.
        - An ``IdempotencyResult`` with the key details if this is a new request that
          should be recorded after processing.
    """
    key = request.headers.get("Idempotency-Key")
    if not key:
        return None

    path = request.url.path
    repo = IdempotencyRepository(db)
    existing = repo.get_by_key(path, key)

    if existing is not None:
        if existing.response_status is None:
            return _in_progress_response(key)
        response = JSONResponse(
            content=existing.response_body,
            status_code=int(existing.response_status),
        )
        response.headers["Idempotency-Replayed"] = "true"
        return response

    try:
        repo.create(
            idempotency_key=key,
            request_method=request.method,
            request_path=path,
        )
    except IntegrityError:
        db.rollback()
        return _in_progress_response(key)

    return IdempotencyResult(key=key, method=request.method, path=path)


def record_idempotency_response(
    db: Session,
    result: IdempotencyResult,
    status: int,
    body: dict[str, Any],
) -> None:
    """Persist the endpoint response so subsequent calls return the cached result."""
    repo = IdempotencyRepository(db)
    record = repo.get_by_key(result.path, result.key)
    if record is not None:
        repo.update_response(record, status, body)


def release_idempotency_key(db: Session, result: IdempotencyResult) -> None:
    """Drop a reserved key whose request failed transiently so it can be retried."""
    repo = IdempotencyRepository(db)
    record = repo.get_by_key(result.path, result.key)
    if record is not None and record.response_status is None:
        repo.delete(record)
