"""Tests for idempotency repository, core helpers, and payment endpoint integration."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.core.exceptions import StoreUnavailableError
from app.core.idempotency import (
    IdempotencyResult,
    check_idempotency,
    record_idempotency_response,
    release_idempotency_key,
)
from app.models.idempotency_record import IdempotencyRecord
from app.repositories.booking_payment_repository import BookingPaymentRepository
from app.main import app
from app.repositories.idempotency_repository import IdempotencyRepository
from app.services import booking_service

PAYMENTS_PATH = "/v1/bookings/00000000-0000-0000-0000-000000000001/payments"


@pytest.fixture
def repo(db_session: Session) -> IdempotencyRepository:
    return IdempotencyRepository(db_session)


# ---------------------------------------------------------------------------
# Repository tests
# ---------------------------------------------------------------------------


class TestIdempotencyRepository:
    def test_create_and_get_by_key(self, repo: IdempotencyRepository) -> None:
        record = repo.create(
            idempotency_key="k1",
            request_method="POST",
            request_path=PAYMENTS_PATH,
        )
        found = repo.get_by_key(PAYMENTS_PATH, "k1")
        assert found is not None
        assert found.id == record.id
        assert found.response_status is None

    def test_same_key_on_different_paths(self, repo: IdempotencyRepository) -> None:
        repo.create(idempotency_key="shared", request_method="POST", request_path="/a")
        repo.create(idempotency_key="shared", request_method="POST", request_path="/b")
        assert repo.get_by_key("/a", "shared") is not None
        assert repo.get_by_key("/b", "shared") is not None
        assert repo.get_by_key("/c", "shared") is None

    def test_update_response(self, repo: IdempotencyRepository) -> None:
        record = repo.create(idempotency_key="k2", request_method="POST", request_path=PAYMENTS_PATH)
        updated = repo.update_response(record, 201, {"outstanding_balance": "0.00"})
        assert updated.response_status == 201
        assert updated.response_body == {"outstanding_balance": "0.00"}

    def test_delete_expired(self, db_session: Session, repo: IdempotencyRepository) -> None:
        old = repo.create(idempotency_key="old", request_method="POST", request_path=PAYMENTS_PATH)
        old.created_at = datetime.now(UTC) - timedelta(hours=30)  # type: ignore[assignment]
        db_session.commit()
        repo.create(idempotency_key="new", request_method="POST", request_path=PAYMENTS_PATH)

        assert repo.delete_expired(max_age_hours=24) == 1
        assert repo.get_by_key(PAYMENTS_PATH, "old") is None
        assert repo.get_by_key(PAYMENTS_PATH, "new") is not None


# ---------------------------------------------------------------------------
# Core helper tests
# ---------------------------------------------------------------------------


def _make_request(headers: dict[str, str] | None = None, path: str = PAYMENTS_PATH) -> Request:
    """Build a minimal ASGI Request for testing."""
    scope = {
        "type": "http",
        "method": "POST",
        "path": path,
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
    }
    return Request(scope)


class TestCheckIdempotency:
    def test_no_header_returns_none(self, db_session: Session) -> None:
        assert check_idempotency(_make_request(), db_session) is None

    def test_new_key_is_reserved(self, db_session: Session, repo: IdempotencyRepository) -> None:
        result = check_idempotency(_make_request({"Idempotency-Key": "fresh"}), db_session)
        assert isinstance(result, IdempotencyResult)
        assert result.key == "fresh"
        assert result.path == PAYMENTS_PATH
        assert repo.get_by_key(PAYMENTS_PATH, "fresh") is not None

    def test_completed_key_replays(self, db_session: Session, repo: IdempotencyRepository) -> None:
        record = repo.create(idempotency_key="done", request_method="POST", request_path=PAYMENTS_PATH)
        repo.update_response(record, 201, {"status_label": "SOLD"})

        result = check_idempotency(_make_request({"Idempotency-Key": "done"}), db_session)
        assert isinstance(result, JSONResponse)
        assert result.status_code == 201
        assert result.headers.get("Idempotency-Replayed") == "true"

    def test_in_flight_key_conflicts(self, db_session: Session, repo: IdempotencyRepository) -> None:
        repo.create(idempotency_key="busy", request_method="POST", request_path=PAYMENTS_PATH)

        result = check_idempotency(_make_request({"Idempotency-Key": "busy"}), db_session)
        assert isinstance(result, JSONResponse)
        assert result.status_code == 409


class TestRecordAndRelease:
    def test_records_response(self, db_session: Session, repo: IdempotencyRepository) -> None:
        repo.create(idempotency_key="rec", request_method="POST", request_path=PAYMENTS_PATH)
        result = IdempotencyResult(key="rec", method="POST", path=PAYMENTS_PATH)

        record_idempotency_response(db_session, result, 201, {"ok": True})

        record = repo.get_by_key(PAYMENTS_PATH, "rec")
        assert record is not None
        assert record.response_status == 201

    def test_release_drops_unfinished_record(self, db_session: Session, repo: IdempotencyRepository) -> None:
        repo.create(idempotency_key="rel", request_method="POST", request_path=PAYMENTS_PATH)
        release_idempotency_key(db_session, IdempotencyResult(key="rel", method="POST", path=PAYMENTS_PATH))
        assert repo.get_by_key(PAYMENTS_PATH, "rel") is None

    def test_release_keeps_completed_record(self, db_session: Session, repo: IdempotencyRepository) -> None:
        record = repo.create(idempotency_key="kept", request_method="POST", request_path=PAYMENTS_PATH)
        repo.update_response(record, 201, {})
        release_idempotency_key(db_session, IdempotencyResult(key="kept", method="POST", path=PAYMENTS_PATH))
        assert repo.get_by_key(PAYMENTS_PATH, "kept") is not None


# ---------------------------------------------------------------------------
# Payment endpoint integration
# ---------------------------------------------------------------------------


def _payment(amount: str) -> dict[str, object]:
    return {
        "amount": amount,
        "payment_method": "upi",
        "payment_received_date": "2026-03-05",
        "payment_details": {"upiTxnId": "UPI-7781"},
    }


class TestPaymentIdempotencyIntegration:
    def test_same_key_records_payment_once(self, client, make_booking, db_session) -> None:
        booking = make_booking()
        url = f"/v1/bookings/{booking.id}/payments"

        first = client.post(url, json=_payment("100000"), headers={"Idempotency-Key": "pay-1"})
        second = client.post(url, json=_payment("100000"), headers={"Idempotency-Key": "pay-1"})

        assert first.status_code == 201
        assert second.status_code == 201
        assert second.headers.get("Idempotency-Replayed") == "true"
        assert second.json() == first.json()
        assert len(BookingPaymentRepository(db_session).list_by_booking(booking.id)) == 1

    def test_different_keys_record_twice(self, client, make_booking, db_session) -> None:
        booking = make_booking()
        url = f"/v1/bookings/{booking.id}/payments"

        client.post(url, json=_payment("1000"), headers={"Idempotency-Key": "a"})
        resp = client.post(url, json=_payment("1000"), headers={"Idempotency-Key": "b"})

        assert Decimal(resp.json()["outstanding_balance"]) == Decimal("798000")
        assert len(BookingPaymentRepository(db_session).list_by_booking(booking.id)) == 2

    def test_rejection_is_replayed(self, client, make_booking) -> None:
        booking = make_booking()
        url = f"/v1/bookings/{booking.id}/payments"

        first = client.post(url, json=_payment("900000"), headers={"Idempotency-Key": "over"})
        second = client.post(url, json=_payment("900000"), headers={"Idempotency-Key": "over"})

        assert first.status_code == 409
        assert second.status_code == 409
        assert second.headers.get("Idempotency-Replayed") == "true"
        assert second.json()["detail"]["error_code"] == "OVERPAYMENT"

    def test_store_failure_releases_key(self, client, make_booking, db_session, monkeypatch) -> None:
        booking = make_booking()
        url = f"/v1/bookings/{booking.id}/payments"
        real_append = BookingPaymentRepository.append
        calls = {"n": 0}

        def flaky_append(self, booking_id, expected_sequence, payment, **kwargs):
            calls["n"] += 1
            if calls["n"] == 1:
                raise StoreUnavailableError("The payment could not be saved; nothing was recorded.")
            return real_append(self, booking_id, expected_sequence, payment, **kwargs)

        monkeypatch.setattr(BookingPaymentRepository, "append", flaky_append)

        first = client.post(url, json=_payment("5000"), headers={"Idempotency-Key": "retry-me"})
        assert first.status_code == 503
        assert first.json()["detail"]["error_code"] == "STORE_UNAVAILABLE"
        assert db_session.query(IdempotencyRecord).filter_by(idempotency_key="retry-me").first() is None

        second = client.post(url, json=_payment("5000"), headers={"Idempotency-Key": "retry-me"})
        assert second.status_code == 201
        assert second.headers.get("Idempotency-Replayed") is None
        assert Decimal(second.json()["outstanding_balance"]) == Decimal("795000")

    def test_read_failure_releases_key(self, client, make_booking, db_session, monkeypatch) -> None:
        booking = make_booking()
        url = f"/v1/bookings/{booking.id}/payments"
        real_list = BookingPaymentRepository.list_by_booking
        calls = {"n": 0}

        def flaky_list(self, booking_id):
            calls["n"] += 1
            if calls["n"] == 1:
                raise OperationalError("SELECT", {}, Exception("disk I/O error"))
            return real_list(self, booking_id)

        monkeypatch.setattr(BookingPaymentRepository, "list_by_booking", flaky_list)

        first = client.post(url, json=_payment("5000"), headers={"Idempotency-Key": "read-fail"})
        assert first.status_code == 503
        assert first.json()["detail"]["error_code"] == "STORE_UNAVAILABLE"

        second = client.post(url, json=_payment("5000"), headers={"Idempotency-Key": "read-fail"})
        assert second.status_code == 201
        assert Decimal(second.json()["outstanding_balance"]) == Decimal("795000")
        assert len(real_list(BookingPaymentRepository(db_session), booking.id)) == 1

    def test_unexpected_error_releases_key(self, make_booking, db_session, monkeypatch) -> None:
        booking = make_booking()
        url = f"/v1/bookings/{booking.id}/payments"
        real_validate = booking_service.validate_admission
        calls = {"n": 0}

        def broken_validate(*args, **kwargs):
            calls["n"] += 1
            if calls["n"] == 1:
                raise RuntimeError("unexpected")
            return real_validate(*args, **kwargs)

        monkeypatch.setattr(booking_service, "validate_admission", broken_validate)
        client = TestClient(app, raise_server_exceptions=False)

        first = client.post(url, json=_payment("5000"), headers={"Idempotency-Key": "boom"})
        assert first.status_code == 500
        assert db_session.query(IdempotencyRecord).filter_by(idempotency_key="boom").first() is None

        second = client.post(url, json=_payment("5000"), headers={"Idempotency-Key": "boom"})
        assert second.status_code == 201
        assert Decimal(second.json()["outstanding_balance"]) == Decimal("795000")

    def test_without_key_works_normally(self, client, make_booking) -> None:
        booking = make_booking()
        resp = client.post(f"/v1/bookings/{booking.id}/payments", json=_payment("1000"))
        assert resp.status_code == 201
        assert resp.headers.get("Idempotency-Replayed") is None
