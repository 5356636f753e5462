"""Shared test fixtures for booking engine tests."""

import uuid
from collections.abc import AsyncGenerator
from datetime import date

import pytest
from sqlalchemy.pool import StaticPool

from booking_engine.config import Settings
from booking_engine.core.permissions import Actor
from booking_engine.database import Database
from booking_engine.services.booking_service import BookingService

TODAY = date(2026, 3, 14)


@pytest.fixture
def settings() -> Settings:
    """Settings that never read the environment's database."""
    return Settings(_env_file=None, log_level="DEBUG")


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
async def database() -> AsyncGenerator[Database, None]:
    """In-memory SQLite shared by every session of one test."""
    db = Database("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    await db.create_all()
    yield db
    await db.close()


@pytest.fixture
async def service(database, settings) -> BookingService:
    """Booking service with a fixed calendar date."""
    return BookingService(database, settings=settings, clock=lambda: TODAY)


@pytest.fixture
def client_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def professional_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def client(client_id) -> Actor:
    return Actor(user_id=client_id)


@pytest.fixture
def professional(professional_id) -> Actor:
    return Actor(user_id=professional_id)


@pytest.fixture
def admin() -> Actor:
    return Actor(user_id=uuid.uuid4(), is_admin=True)


@pytest.fixture
def stranger() -> Actor:
    return Actor(user_id=uuid.uuid4())


@pytest.fixture
def booking_payload(client_id, professional_id) -> dict:
    """Minimal valid creation payload using the external camelCase keys."""
    return {
        "clientId": str(client_id),
        "professionalId": str(professional_id),
        "title": "Plan system architecture",
        "description": "Design the service boundaries for the new platform.",
        "engagementType": "consulting",
        "proposedRate": "120.00",
        "proposedRateType": "hourly",
        "estimatedHours": 10,
    }


@pytest.fixture
async def booking(service, booking_payload, client_id):
    """A stored booking in the initial state."""
    return await service.create(booking_payload, created_by=client_id)
