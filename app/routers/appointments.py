# app/routers/appointments.py
from __future__ import annotations

from typing import List, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock
from app.core.errors import unwrap
from app.core.notifier import Notifier
from app.db.sql import get_session
from app.dependencies import get_clock, get_current_user, get_notifier, require_roles
from app.modules.users.models import User

from app.modules.appointments.results import BookingCreated, SeriesCancelled
from app.modules.appointments.schemas import (
    AppointmentCancelRequest,
    AppointmentCreateRequest,
    AppointmentListPage,
    AppointmentPublic,
    AppointmentRescheduleRequest,
)
from app.modules.appointments import service as svc

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.post(
    "",
    response_model=BookingCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Book a single appointment or a recurring series",
)
async def appointments_create(
    payload: AppointmentCreateRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_roles("patient")),
    clock: Clock = Depends(get_clock),
    notifier: Notifier = Depends(get_notifier),
):
    return unwrap(
        await svc.create_booking(session, current_user, payload, clock=clock, notifier=notifier)
    )


@router.get(
    "/my",
    response_model=AppointmentListPage,
    summary="Retrieve current user's appointments",
)
async def appointments_my(
    filter: Literal["upcoming", "past"] = Query("upcoming"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    return await svc.list_my_appointments(
        session,
        current_user,
        upcoming=filter == "upcoming",
        limit=limit,
        offset=offset,
        clock=clock,
    )


@router.get(
    "/series/{series_id}",
    response_model=List[AppointmentPublic],
    summary="All occurrences of a recurring series",
)
async def appointments_series(
    series_id: str,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return unwrap(await svc.get_series_appointments(session, series_id, current_user))


@router.put(
    "/series/{series_id}/cancel",
    response_model=SeriesCancelled,
    summary="Cancel every future occurrence of a series",
)
async def appointments_cancel_series(
    series_id: str,
    payload: AppointmentCancelRequest | None = None,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
    notifier: Notifier = Depends(get_notifier),
):
    reason = payload.reason if payload else None
    return unwrap(
        await svc.cancel_series(
            session, series_id, current_user, reason, clock=clock, notifier=notifier
        )
    )


@router.get(
    "/{appointment_id}",
    response_model=AppointmentPublic,
    summary="Appointment detail",
)
async def appointments_get(
    appointment_id: UUID,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return unwrap(await svc.get_appointment(session, appointment_id, current_user))


@router.put(
    "/{appointment_id}/cancel",
    response_model=AppointmentPublic,
    summary="Cancel an appointment (24h policy)",
)
async def appointments_cancel(
    appointment_id: UUID,
    payload: AppointmentCancelRequest | None = None,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
    notifier: Notifier = Depends(get_notifier),
):
    reason = payload.reason if payload else None
    return unwrap(
        await svc.cancel_booking(
            session, appointment_id, current_user, reason, clock=clock, notifier=notifier
        )
    )


@router.put(
    "/{appointment_id}/reschedule",
    response_model=AppointmentPublic,
    summary="Move an appointment to a new time",
)
async def appointments_reschedule(
    appointment_id: UUID,
    payload: AppointmentRescheduleRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
    notifier: Notifier = Depends(get_notifier),
):
    return unwrap(
        await svc.reschedule_booking(
            session,
            appointment_id,
            current_user,
            payload.new_scheduled_at,
            clock=clock,
            notifier=notifier,
        )
    )
