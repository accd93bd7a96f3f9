import os
from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timedelta
from pathlib import Path

# Settings are read at import time; give the test run safe defaults first.
os.environ.setdefault("DATABASE_URL", "sqlite:///./service_scheduler_test_unused.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-development-only")
os.environ.setdefault("CACHE_ENABLED", "false")
os.environ.setdefault("LOG_FORMAT", "console")

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

load_dotenv()

from service_scheduler.config import settings
from service_scheduler.core.clock import FixedClock, get_clock
from service_scheduler.core.redis_client import get_booked_slot_cache
from service_scheduler.core.security import create_access_token
from service_scheduler.database import build_engine, get_db
from service_scheduler.main import app
from service_scheduler.models import appointments, metadata
from service_scheduler.schemas.appointments import AppointmentCreate
from service_scheduler.services.appointment_service import AppointmentService

# Test database URL - MUST be different from the application database.
# Defaults to a throwaway SQLite file per test.
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")

if TEST_DATABASE_URL and TEST_DATABASE_URL == settings.database_url:
    raise RuntimeError(
        "TEST_DATABASE_URL is the same as DATABASE_URL; tests drop every table they touch."
    )

# "Now" for every test: 2025-06-01 at 12:45 in the scheduler timezone
NOW = datetime(2025, 6, 1, 12, 45)
TODAY = "2025-06-01"
TOMORROW = "2025-06-02"
YESTERDAY = "2025-05-31"


@pytest_asyncio.fixture
async def db_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a test engine with a fresh schema."""
    url = TEST_DATABASE_URL or f"sqlite:///{tmp_path / 'scheduler.db'}"
    engine = build_engine(url, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FixedClock:
    """Clock frozen at ``NOW``."""
    return FixedClock(NOW)


@pytest.fixture
def service(db_session: AsyncSession, clock: FixedClock) -> AppointmentService:
    """Appointment service without a slot cache."""
    return AppointmentService(db_session, clock)


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    clock: FixedClock,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client; every request gets its own session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_booked_slot_cache] = lambda: None

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def make_headers() -> Callable[..., dict]:
    """Build bearer headers for an identity."""

    def _make(sub: str, role: str, phone_number: str | None = None) -> dict:
        claims = {"sub": sub, "role": role}
        if phone_number:
            claims["phone_number"] = phone_number
        token = create_access_token(data=claims, expires_delta=timedelta(minutes=30))
        return {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture
def customer_headers(make_headers) -> dict:
    """Headers for customer ``cust-a`` with a profile phone."""
    return make_headers("cust-a", "customer", "+94 77 123 4567")


@pytest.fixture
def other_customer_headers(make_headers) -> dict:
    """Headers for customer ``cust-b``."""
    return make_headers("cust-b", "customer", "0771112223")


@pytest.fixture
def technician_headers(make_headers) -> dict:
    """Headers for a technician."""
    return make_headers("tech-1", "technician")


@pytest.fixture
def admin_headers(make_headers) -> dict:
    """Headers for an admin."""
    return make_headers("admin-1", "admin")


@pytest.fixture
def sample_appointment_data() -> dict:
    """Sample booking for tomorrow at 11:00."""
    return {
        "vehicle_number": "CAB-1234",
        "vehicle_type": "Sedan",
        "service_type": "Full Service",
        "phone_number": "0712345678",
        "appointment_date": TOMORROW,
        "appointment_time": "11:00",
    }


def booking(
    day: str,
    slot: str,
    vehicle: str = "CAB-1234",
    phone_number: str | None = "0712345678",
    **extra,
) -> AppointmentCreate:
    """Build a booking request for ``day`` at ``slot``."""
    return AppointmentCreate(
        vehicle_number=vehicle,
        vehicle_type="Sedan",
        service_type="Oil Change",
        phone_number=phone_number,
        appointment_date=day,
        appointment_time=slot,
        **extra,
    )


async def count_appointments(db: AsyncSession) -> int:
    """Count stored appointments."""
    result = await db.execute(select(func.count()).select_from(appointments))
    return result.scalar_one()
