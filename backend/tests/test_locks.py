"""Tests for per-booking admission locks."""

import threading
import time
from uuid import uuid4

import pytest

from app.core.exceptions import PaymentConflictError
from app.core.locks import BookingLockRegistry, booking_lock


@pytest.fixture
def registry():
    return BookingLockRegistry()


class TestBookingLock:
    def test_acquire_and_release(self, registry):
        booking_id = uuid4()
        with registry.lock(booking_id) as held:
            assert held.is_held is True
            assert len(registry) == 1
        assert held.is_held is False
        assert len(registry) == 0

    def test_same_booking_times_out(self, registry):
        booking_id = uuid4()
        with registry.lock(booking_id):
            with pytest.raises(PaymentConflictError) as exc_info:
                with registry.lock(booking_id, timeout=0.05):
                    pass
        assert exc_info.value.details["booking_id"] == str(booking_id)
        assert len(registry) == 0

    def test_different_bookings_are_independent(self, registry):
        with registry.lock(uuid4()):
            with registry.lock(uuid4(), timeout=0.05) as other:
                assert other.is_held is True
            assert len(registry) == 1

    def test_released_on_error(self, registry):
        booking_id = uuid4()
        with pytest.raises(RuntimeError):
            with registry.lock(booking_id):
                raise RuntimeError("boom")
        with registry.lock(booking_id, timeout=0.05) as again:
            assert again.is_held is True

    def test_serializes_threads(self, registry):
        booking_id = uuid4()
        active = []
        overlaps = []
        guard = threading.Lock()

        def worker():
            with registry.lock(booking_id, timeout=5):
                with guard:
                    active.append(1)
                    if len(active) > 1:
                        overlaps.append(len(active))
                time.sleep(0.01)
                with guard:
                    active.pop()

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert overlaps == []
        assert len(registry) == 0

    def test_module_helper_accepts_string_ids(self):
        booking_id = str(uuid4())
        with booking_lock(booking_id, timeout=0.05) as held:
            assert held.key == booking_id
