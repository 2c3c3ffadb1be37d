"""Shared test fixtures for all test modules."""

import contextlib
from collections.abc import Callable
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.core import database as db_module
from app.core.database import Base, get_db
from app.main import app
from app.models.booking import Booking
from app.models.unit import Unit
from app.repositories.unit_repository import UnitRepository
from app.schemas.booking import BookingCreate
from app.services.booking_service import BookingService

# Create an in-memory SQLite engine with StaticPool so all connections
# share the same database state and there are no file-locking issues.
_test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_test_engine)


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test and truncate all data after.

    Patches the module-level engine and SessionLocal so all application code
    uses the in-memory test database. Clears data after each test.
    """
    original_engine = db_module.engine
    original_session = db_module.SessionLocal
    db_module.engine = _test_engine
    db_module.SessionLocal = _TestSessionLocal

    Base.metadata.create_all(bind=_test_engine)

    yield
    with _test_engine.connect() as conn:
        conn.execute(text("PRAGMA foreign_keys = OFF"))
        for table in reversed(Base.metadata.sorted_tables):
            with contextlib.suppress(OperationalError):
                conn.execute(table.delete())
        conn.execute(text("PRAGMA foreign_keys = ON"))
        conn.commit()

    db_module.engine = original_engine
    db_module.SessionLocal = original_session


@pytest.fixture
def db_session():
    """Create a database session for direct repository testing."""
    gen = get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def make_unit(db_session: Session) -> Callable[..., Unit]:
    """Register an available unit priced by area and rate."""
    counter = iter(range(1, 10_000))

    def _make(
        area_sq_ft: str = "1000",
        rate_per_sq_ft: str = "1000",
        project_id: int = 1,
        unit_number: str | None = None,
    ) -> Unit:
        return UnitRepository(db_session).create(
            project_id=project_id,
            unit_number=unit_number or f"H-{next(counter):03d}",
            area_sq_ft=Decimal(area_sq_ft),
            rate_per_sq_ft=Decimal(rate_per_sq_ft),
        )

    return _make


@pytest.fixture
def make_booking(db_session: Session, make_unit) -> Callable[..., Booking]:
    """Book a fresh unit. Total is area x rate, 1,000,000 by default."""

    def _make(
        advance_amount: str = "200000",
        area_sq_ft: str = "1000",
        rate_per_sq_ft: str = "1000",
        customer_name: str = "Asha Verma",
    ) -> Booking:
        unit = make_unit(area_sq_ft=area_sq_ft, rate_per_sq_ft=rate_per_sq_ft)
        return BookingService(db_session).create_booking(
            BookingCreate(
                project_id=unit.project_id,
                unit_number=unit.unit_number,
                customer_name=customer_name,
                customer_mobile="9876543210",
                advance_amount=Decimal(advance_amount),
            )
        )

    return _make
