# app/routers/portal.py
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock
from app.core.errors import unwrap
from app.core.notifier import Notifier
from app.db.sql import get_session
from app.dependencies import get_clock, get_notifier, require_roles
from app.modules.appointments import service as svc
from app.modules.appointments.schemas import AppointmentCancelRequest, AppointmentPublic
from app.modules.users.models import User

# Provider staff side of the booking lifecycle.
router = APIRouter(prefix="/portal/appointments", tags=["portal"])

provider_or_admin = require_roles("provider", "admin")


@router.put("/{appointment_id}/confirm", response_model=AppointmentPublic)
async def portal_confirm(
    appointment_id: UUID,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(provider_or_admin),
    clock: Clock = Depends(get_clock),
    notifier: Notifier = Depends(get_notifier),
):
    return unwrap(
        await svc.confirm_appointment(session, appointment_id, user, clock=clock, notifier=notifier)
    )


@router.put("/{appointment_id}/decline", response_model=AppointmentPublic)
async def portal_decline(
    appointment_id: UUID,
    payload: AppointmentCancelRequest | None = None,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(provider_or_admin),
    clock: Clock = Depends(get_clock),
    notifier: Notifier = Depends(get_notifier),
):
    reason = payload.reason if payload else None
    return unwrap(
        await svc.decline_appointment(
            session, appointment_id, user, reason, clock=clock, notifier=notifier
        )
    )


@router.put("/{appointment_id}/complete", response_model=AppointmentPublic)
async def portal_complete(
    appointment_id: UUID,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(provider_or_admin),
    clock: Clock = Depends(get_clock),
    notifier: Notifier = Depends(get_notifier),
):
    return unwrap(
        await svc.complete_appointment(session, appointment_id, user, clock=clock, notifier=notifier)
    )


@router.put("/{appointment_id}/no-show", response_model=AppointmentPublic)
async def portal_no_show(
    appointment_id: UUID,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(provider_or_admin),
    clock: Clock = Depends(get_clock),
    notifier: Notifier = Depends(get_notifier),
):
    return unwrap(
        await svc.mark_no_show(session, appointment_id, user, clock=clock, notifier=notifier)
    )
