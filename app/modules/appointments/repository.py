# app/modules/appointments/repository.py
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.appointments.models import Appointment
from app.modules.scheduling.schemas import ACTIVE_STATUSES, BookingStatus

_ACTIVE_VALUES = tuple(s.value for s in ACTIVE_STATUSES)


async def get_by_id(session: AsyncSession, appointment_id: UUID) -> Optional[Appointment]:
    """
    Returns an Appointment by primary key or None if not found.
    """
    return await session.get(Appointment, appointment_id)


async def has_conflict(
    session: AsyncSession,
    *,
    provider_id: UUID,
    scheduled_at: datetime,
    window_minutes: int,
    exclude_id: Optional[UUID] = None,
) -> bool:
    """
    True when an active booking for the provider starts strictly within
    window minutes of scheduled_at, on either side. Back-to-back starts
    exactly one window apart never conflict.
    """
    window = timedelta(minutes=window_minutes)
    conditions = [
        Appointment.provider_id == provider_id,
        Appointment.status.in_(_ACTIVE_VALUES),
        Appointment.scheduled_at > scheduled_at - window,
        Appointment.scheduled_at < scheduled_at + window,
    ]
    if exclude_id is not None:
        conditions.append(Appointment.id != exclude_id)

    stmt = select(Appointment.id).where(and_(*conditions)).limit(1)
    return (await session.execute(stmt)).scalar_one_or_none() is not None


async def list_active_for_provider(
    session: AsyncSession,
    *,
    provider_id: UUID,
    start: datetime,
    end: datetime,
) -> Sequence[Appointment]:
    stmt = (
        select(Appointment)
        .where(
            Appointment.provider_id == provider_id,
            Appointment.status.in_(_ACTIVE_VALUES),
            Appointment.scheduled_at >= start,
            Appointment.scheduled_at <= end,
        )
        .order_by(Appointment.scheduled_at)
    )
    return (await session.execute(stmt)).scalars().all()


async def create_many(session: AsyncSession, rows: Sequence[Appointment]) -> Sequence[Appointment]:
    """
    Insert every row in one flush; a constraint violation aborts all of them.
    """
    session.add_all(rows)
    await session.flush()
    return rows


async def list_active_series(
    session: AsyncSession, *, series_id: str, patient_id: Optional[UUID]
) -> Sequence[Appointment]:
    """
    Active rows of a series; patient_id=None (admin) skips the owner filter.
    """
    conditions = [
        Appointment.series_id == series_id,
        Appointment.status.in_(_ACTIVE_VALUES),
    ]
    if patient_id is not None:
        conditions.append(Appointment.patient_id == patient_id)
    stmt = select(Appointment).where(*conditions).order_by(Appointment.scheduled_at)
    return (await session.execute(stmt)).scalars().all()


async def list_series(session: AsyncSession, *, series_id: str) -> Sequence[Appointment]:
    stmt = (
        select(Appointment)
        .where(Appointment.series_id == series_id)
        .order_by(Appointment.scheduled_at)
    )
    return (await session.execute(stmt)).scalars().all()


async def cancel_many(
    session: AsyncSession,
    *,
    ids: Sequence[UUID],
    cancelled_at: datetime,
    reason: str,
) -> int:
    stmt = (
        update(Appointment)
        .where(
            Appointment.id.in_(list(ids)),
            Appointment.status.in_(_ACTIVE_VALUES),
        )
        .values(
            status=BookingStatus.CANCELLED.value,
            cancelled_at=cancelled_at,
            cancel_reason=reason,
            updated_at=cancelled_at,
        )
        .returning(Appointment.id)
        .execution_options(synchronize_session="fetch")
    )
    res = await session.execute(stmt)
    return len(res.all())


async def list_for_patient(
    session: AsyncSession,
    *,
    patient_id: UUID,
    upcoming: bool,
    now: datetime,
    limit: int,
    offset: int,
) -> tuple[list[Appointment], int]:
    if upcoming:
        cond = and_(
            Appointment.patient_id == patient_id,
            Appointment.scheduled_at >= now,
            Appointment.status.in_(_ACTIVE_VALUES),
        )
        ordering = Appointment.scheduled_at.asc()
    else:
        cond = and_(
            Appointment.patient_id == patient_id,
            or_(
                Appointment.scheduled_at < now,
                Appointment.status.not_in(_ACTIVE_VALUES),
            ),
        )
        ordering = Appointment.scheduled_at.desc()

    # Count total
    total_stmt = select(func.count()).select_from(Appointment).where(cond)
    total = (await session.execute(total_stmt)).scalar_one()

    # Page
    stmt = (
        select(Appointment)
        .where(cond)
        .order_by(ordering, Appointment.id)  # tie-breaker for stable paging
        .limit(limit)
        .offset(offset)
    )
    rows = list((await session.execute(stmt)).scalars().all())
    return rows, total
