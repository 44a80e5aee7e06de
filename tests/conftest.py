"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.core.clock import FixedClock
from app.core.notifier import Notifier
from app.db.base import Base
from app.modules.appointments.models import Appointment, AppointmentType
from app.modules.providers.models import Provider, ProviderStatus, Service
from app.modules.scheduling.schemas import BookingStatus, RecurrencePattern
from app.modules.users.models import FamilyMember, User, UserRole

# Monday 2026-03-02 08:00 UTC
NOW = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)
WEEKDAYS = ["Mon", "Tue", "Wed", "Thu", "Fri"]


class RecordingNotifier(Notifier):
    """Keeps published events in memory instead of sending them."""

    def __init__(self):
        self.events = []

    async def send(self, event, appointment_ids, payload):
        self.events.append((event, list(appointment_ids), payload))


@pytest.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
async def session(engine):
    maker = async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False, class_=AsyncSession)
    async with maker() as s:
        yield s


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


async def _user(session, email, role):
    user = User(email=email, first_name="Test", last_name=role.value.title(), role=role.value)
    session.add(user)
    await session.flush()
    return user


@pytest.fixture
async def patient(session):
    return await _user(session, "parent@example.com", UserRole.PATIENT)


@pytest.fixture
async def other_patient(session):
    return await _user(session, "other@example.com", UserRole.PATIENT)


@pytest.fixture
async def owner(session):
    return await _user(session, "owner@example.com", UserRole.PROVIDER)


@pytest.fixture
async def admin(session):
    return await _user(session, "admin@example.com", UserRole.ADMIN)


@pytest.fixture
async def provider(session, owner):
    p = Provider(
        owner_id=owner.id,
        name="Little Steps Daycare",
        slug="little-steps",
        status=ProviderStatus.APPROVED.value,
        opening_time="09:00",
        closing_time="17:00",
        operating_days=WEEKDAYS,
        timezone="UTC",
        offers_telehealth=False,
    )
    session.add(p)
    await session.flush()
    return p


@pytest.fixture
async def pending_provider(session, owner):
    p = Provider(
        owner_id=owner.id,
        name="Awaiting Review Clinic",
        slug="awaiting-review",
        status=ProviderStatus.PENDING.value,
        operating_days=WEEKDAYS,
    )
    session.add(p)
    await session.flush()
    return p


@pytest.fixture
async def service(session, provider):
    s = Service(provider_id=provider.id, name="Check-up", duration_minutes=45)
    session.add(s)
    await session.flush()
    return s


@pytest.fixture
async def family_member(session, patient):
    m = FamilyMember(patient_id=patient.id, first_name="Mia", last_name="Parent")
    session.add(m)
    await session.flush()
    return m


@pytest.fixture
def make_appointment(session):
    """Insert an appointment row directly, bypassing the booking rules."""

    async def _make(
        patient,
        provider,
        scheduled_at,
        status=BookingStatus.PENDING,
        series_id=None,
        appointment_type=AppointmentType.IN_PERSON,
        duration_minutes=30,
    ):
        appt = Appointment(
            patient_id=patient.id,
            provider_id=provider.id,
            appointment_type=appointment_type.value,
            status=status.value,
            scheduled_at=scheduled_at,
            duration_minutes=duration_minutes,
            recurrence=(RecurrencePattern.WEEKLY if series_id else RecurrencePattern.NONE).value,
            series_id=series_id,
        )
        session.add(appt)
        await session.flush()
        return appt

    return _make


def at(days=0, hours=0, minutes=0) -> datetime:
    """Offset from NOW."""
    return NOW + timedelta(days=days, hours=hours, minutes=minutes)
