"""Per-booking mutual exclusion for payment admission.

Admissions for one booking are serialized inside the process by a lock keyed
by booking id; different bookings never share a lock. Across processes the
compare-and-swap on ``bookings.payment_sequence`` (see
``BookingPaymentRepository.append``) provides the same guarantee, so this lock
only keeps concurrent callers in one process from burning their retry budget
against each other.

Usage::

    from app.core.locks import booking_lock

    with booking_lock(booking.id, timeout=5.0):
        events = repo.list_by_booking(booking.id)
        ...
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from app.core.config import settings
from app.core.exceptions import PaymentConflictError


@dataclass
class _LockEntry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class BookingLockRegistry:
    """Registry of in-process locks keyed by booking id.

    Entries are created on first use and dropped once no holder or waiter
    references them, so the registry does not grow with the number of
    bookings ever touched.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[str, _LockEntry] = {}

    def _checkout(self, key: str) -> _LockEntry:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = _LockEntry()
                self._entries[key] = entry
            entry.users += 1
            return entry

    def _checkin(self, key: str, entry: _LockEntry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0 and self._entries.get(key) is entry:
                del self._entries[key]

    def lock(self, booking_id: UUID | str, timeout: float | None = None) -> BookingLock:
        """Return a context manager holding the lock for ``booking_id``."""
        return BookingLock(self, str(booking_id), timeout)

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


class BookingLock:
    """Context manager for one booking's admission lock.

    Raises:
        PaymentConflictError: if the lock cannot be acquired within ``timeout``.
    """

    def __init__(self, registry: BookingLockRegistry, key: str, timeout: float | None) -> None:
        self.registry = registry
        self.key = key
        self.timeout = settings.LEDGER_LOCK_TIMEOUT_SECONDS if timeout is None else timeout
        self._entry: _LockEntry | None = None
        self._held = False

    def __enter__(self) -> BookingLock:
        entry = self.registry._checkout(self.key)
        if not entry.lock.acquire(timeout=self.timeout):
            self.registry._checkin(self.key, entry)
            raise PaymentConflictError(
                f"Timed out after {self.timeout}s waiting to record a payment "
                f"for booking {self.key}; please retry",
                details={"booking_id": self.key, "timeout": self.timeout},
            )
        self._entry = entry
        self._held = True
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: Any, exc_tb: Any) -> bool:
        if self._entry is not None and self._held:
            self._entry.lock.release()
            self._held = False
            self.registry._checkin(self.key, self._entry)
            self._entry = None
        return False

    @property
    def is_held(self) -> bool:
        return self._held


_registry = BookingLockRegistry()


def booking_lock(booking_id: UUID | str, timeout: float | None = None) -> BookingLock:
    """Lock admissions for one booking in this process."""
    return _registry.lock(booking_id, timeout)
