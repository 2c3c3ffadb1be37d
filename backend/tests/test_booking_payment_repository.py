"""Tests for BookingPaymentRepository."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from app.core.exceptions import PaymentConflictError
from app.models.booking_payment import BookingPayment
from app.repositories.booking_payment_repository import BookingPaymentRepository
from app.repositories.booking_repository import BookingRepository
from app.services.ledger import AdmittedPayment, PaymentMethod


def admitted(amount: str, received: date = date(2026, 2, 1)) -> AdmittedPayment:
    return AdmittedPayment(
        amount=Decimal(amount),
        payment_method=PaymentMethod.BANK,
        payment_received_date=received,
        payment_details={"bankName": "HDFC", "transactionId": "NEFT-001"},
    )


@pytest.fixture
def repo(db_session):
    return BookingPaymentRepository(db_session)


class TestAppend:
    def test_append_assigns_next_sequence(self, repo, make_booking, db_session):
        booking = make_booking()
        first = repo.append(booking.id, 0, admitted("1000.00"))
        second = repo.append(booking.id, 1, admitted("2000.00"))

        assert first.sequence_number == 1
        assert second.sequence_number == 2
        assert second.payment_method == "bank"
        assert second.payment_details == {"bankName": "HDFC", "transactionId": "NEFT-001"}
        assert second.created_at is not None
        booking = BookingRepository(db_session).get_by_id(booking.id, fresh=True)
        assert booking.payment_sequence == 2

    def test_stale_sequence_conflicts(self, repo, make_booking):
        booking = make_booking()
        repo.append(booking.id, 0, admitted("1000.00"))

        with pytest.raises(PaymentConflictError) as exc_info:
            repo.append(booking.id, 0, admitted("500.00"))
        assert exc_info.value.details["expected_sequence"] == 0
        assert [p.amount for p in repo.list_by_booking(booking.id)] == [Decimal("1000.00")]

    def test_unknown_booking_conflicts(self, repo):
        with pytest.raises(PaymentConflictError):
            repo.append(uuid4(), 0, admitted("10.00"))

    def test_duplicate_sequence_rejected_by_constraint(self, repo, make_booking, db_session):
        """A row already holding the next sequence number blocks the append."""
        booking = make_booking()
        db_session.add(
            BookingPayment(
                booking_id=booking.id,
                sequence_number=1,
                amount=Decimal("10.00"),
                payment_method="cash",
                payment_details={},
                payment_received_date=date(2026, 1, 1),
            )
        )
        db_session.commit()

        with pytest.raises(PaymentConflictError):
            repo.append(booking.id, 0, admitted("20.00"))
        assert len(repo.list_by_booking(booking.id)) == 1
        assert BookingRepository(db_session).get_by_id(booking.id, fresh=True).payment_sequence == 0


class TestListing:
    def test_list_by_booking_in_sequence_order(self, repo, make_booking):
        booking = make_booking()
        repo.append(booking.id, 0, admitted("300.00", received=date(2026, 5, 1)))
        repo.append(booking.id, 1, admitted("100.00", received=date(2026, 1, 1)))

        payments = repo.list_by_booking(booking.id)
        assert [p.sequence_number for p in payments] == [1, 2]

    def test_list_by_bookings_groups_by_booking(self, repo, make_booking):
        a = make_booking()
        b = make_booking()
        c = make_booking()
        repo.append(a.id, 0, admitted("1.00"))
        repo.append(b.id, 0, admitted("2.00"))
        repo.append(a.id, 1, admitted("3.00"))

        grouped = repo.list_by_bookings([a.id, b.id, c.id])
        assert [p.amount for p in grouped[a.id]] == [Decimal("1.00"), Decimal("3.00")]
        assert [p.amount for p in grouped[b.id]] == [Decimal("2.00")]
        assert grouped.get(c.id, []) == []

    def test_list_by_bookings_empty(self, repo):
        assert repo.list_by_bookings([]) == {}
