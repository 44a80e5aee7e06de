# app/modules/appointments/service.py
from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import List, Optional, Union
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock
from app.core.config import settings
from app.core.notifier import Notifier, logging_notifier
from app.modules.appointments import repository as appt_repo
from app.modules.appointments.models import Appointment, AppointmentType
from app.modules.appointments.results import (
    BookingCreated,
    BookingRejection,
    RejectionKind,
    SeriesCancelled,
    conflict,
    forbidden,
    not_found,
    policy_violation,
)
from app.modules.appointments.schemas import (
    AppointmentCreateRequest,
    AppointmentListItem,
    AppointmentListPage,
    AppointmentPublic,
)
from app.modules.appointments.state import can_transition
from app.modules.log import write_audit_log
from app.modules.providers import repository as providers_repo
from app.modules.providers.models import Provider
from app.modules.scheduling.availability import generate_available_slots
from app.modules.scheduling.recurrence import (
    default_recurrence_end,
    generate_recurring_dates,
    new_series_id,
)
from app.modules.scheduling.schemas import (
    BookingStatus,
    DayAvailability,
    ExistingBooking,
    RecurrencePattern,
)
from app.modules.users.models import FamilyMember, User, UserRole

logger = logging.getLogger(__name__)


def _to_public(appt: Appointment) -> AppointmentPublic:
    return AppointmentPublic.model_validate(appt)


def _to_list_item(appt: Appointment) -> AppointmentListItem:
    return AppointmentListItem.model_validate(appt)


# POLICY HELPERS
def _lead_time() -> timedelta:
    return timedelta(hours=settings.BOOKING_MIN_HOURS_AHEAD)


def is_valid_booking_time(scheduled_at: datetime, now: datetime) -> bool:
    """True when scheduled_at respects the minimum booking lead time."""
    return scheduled_at >= now + _lead_time()


def hours_until(scheduled_at: datetime, now: datetime) -> float:
    return (scheduled_at - now).total_seconds() / 3600


def can_cancel(scheduled_at: datetime, now: datetime) -> bool:
    return hours_until(scheduled_at, now) >= settings.CANCELLATION_HOURS_AHEAD


def conflict_window_minutes(appointment_type: str, duration_minutes: int) -> int:
    """Tours block a fixed window; appointments block their own duration either side."""
    if appointment_type == AppointmentType.TOUR.value:
        return settings.TOUR_CONFLICT_WINDOW_MINUTES
    return duration_minutes


def _lead_time_rejection() -> BookingRejection:
    return policy_violation(
        "lead_time",
        f"Please select a time at least {settings.BOOKING_MIN_HOURS_AHEAD} hours in advance",
    )


def _owns(requester: User, appt: Appointment) -> bool:
    return requester.is_admin or appt.patient_id == requester.id


# CREATE
async def create_booking(
    session: AsyncSession,
    requester: User,
    payload: AppointmentCreateRequest,
    *,
    clock: Clock,
    notifier: Notifier = logging_notifier,
) -> Union[BookingCreated, BookingRejection]:
    """
    Create a single booking or a whole recurring series.

    Flow:
    - only patients book; the family member (if any) must be theirs
    - provider must be approved; its row is locked until commit
    - telehealth and service constraints, then the lead-time policy
    - expand the recurrence and check every occurrence for conflicts in
      ascending order; the first conflict rejects the whole request
    - insert all occurrences in one flush (all-or-nothing)
    """
    if requester.role != UserRole.PATIENT.value:
        return forbidden("only_patients_can_book", "Only patients can create bookings")

    if payload.family_member_id is not None:
        member = await session.get(FamilyMember, payload.family_member_id)
        if member is None or member.patient_id != requester.id:
            return not_found("family_member_not_found", "Family member not found")

    provider = await providers_repo.get_bookable(session, payload.provider_id, for_update=True)
    if provider is None:
        return not_found("provider_not_found", "Provider not found or not available")

    if payload.is_telemedicine and not provider.offers_telehealth:
        return policy_violation(
            "telehealth_not_offered",
            "This provider does not offer telemedicine appointments",
        )

    if payload.is_tour:
        appt_type = AppointmentType.TOUR
        duration = settings.TOUR_DURATION_MINUTES
    else:
        appt_type = (
            AppointmentType.TELEMEDICINE if payload.is_telemedicine else AppointmentType.IN_PERSON
        )
        duration = settings.DEFAULT_APPOINTMENT_MINUTES

    if payload.service_id is not None:
        service = await providers_repo.get_active_service(
            session, service_id=payload.service_id, provider_id=provider.id
        )
        if service is None:
            return not_found("service_not_found", "Service not found")
        if service.is_telehealth and not payload.is_telemedicine:
            return policy_violation(
                "service_requires_telehealth",
                "This service is only available via telemedicine",
            )
        if not payload.is_tour:
            duration = service.duration_minutes

    now = clock.now()
    if not is_valid_booking_time(payload.scheduled_at, now):
        return _lead_time_rejection()

    pattern = payload.recurrence
    is_recurring = pattern is not RecurrencePattern.NONE
    dates: List[datetime] = [payload.scheduled_at]
    series_id: Optional[str] = None

    if is_recurring:
        end = payload.recurrence_end_date or default_recurrence_end(
            payload.scheduled_at, settings.RECURRENCE_DEFAULT_MONTHS
        )
        dates = generate_recurring_dates(
            pattern, payload.scheduled_at, end, settings.MAX_SERIES_OCCURRENCES
        )
        series_id = new_series_id()

    provider_id = provider.id
    window = conflict_window_minutes(appt_type.value, duration)
    for when in dates:
        if await appt_repo.has_conflict(
            session, provider_id=provider_id, scheduled_at=when, window_minutes=window
        ):
            logger.info("Booking rejected: provider=%s slot=%s taken", provider_id, when.isoformat())
            if is_recurring:
                return conflict(
                    f"Time slot on {when.date().isoformat()} is not available. "
                    "Please choose a different time.",
                    when,
                )
            return conflict("This time slot is no longer available", when)

    rows = [
        Appointment(
            patient_id=requester.id,
            provider_id=provider_id,
            family_member_id=payload.family_member_id,
            service_id=payload.service_id,
            appointment_type=appt_type.value,
            status=BookingStatus.PENDING.value,
            scheduled_at=when,
            duration_minutes=duration,
            notes=payload.notes or None,
            recurrence=pattern.value,
            recurrence_end_date=dates[-1] if is_recurring else None,
            series_id=series_id,
        )
        for when in dates
    ]

    try:
        await appt_repo.create_many(session, rows)
    except IntegrityError:
        # Another request won the race for one of these slots.
        await session.rollback()
        logger.warning("Booking insert hit the active-slot index for provider=%s", provider_id)
        return conflict("This time slot is no longer available", payload.scheduled_at)

    ids = [r.id for r in rows]
    await write_audit_log(
        session,
        requester.id,
        "CREATE_APPOINTMENT",
        f"provider={provider.id} count={len(rows)} series={series_id}",
    )
    await notifier.publish(
        "appointment.created",
        ids,
        provider_id=str(provider.id),
        series_id=series_id,
        first_at=dates[0].isoformat(),
    )
    return BookingCreated(booking_ids=ids, series_id=series_id)


# CANCEL
async def cancel_booking(
    session: AsyncSession,
    appointment_id: UUID,
    requester: User,
    reason: Optional[str] = None,
    *,
    clock: Clock,
    notifier: Notifier = logging_notifier,
) -> Union[AppointmentPublic, BookingRejection]:
    """
    Patient cancels one booking, at least CANCELLATION_HOURS_AHEAD before it starts.
    """
    appt = await appt_repo.get_by_id(session, appointment_id)
    if appt is None:
        return not_found("booking_not_found", "Booking not found")
    if not _owns(requester, appt):
        return forbidden()
    if not can_transition(appt.status, BookingStatus.CANCELLED):
        return not_found("booking_not_active", "Booking not found or cannot be cancelled")

    now = clock.now()
    if not can_cancel(appt.scheduled_at, now):
        remaining = math.ceil(hours_until(appt.scheduled_at, now))
        return policy_violation(
            "cancellation_window",
            f"Cancellations must be made at least {settings.CANCELLATION_HOURS_AHEAD} hours "
            f"in advance. Only {max(remaining, 0)} hours remaining.",
        )

    appt.status = BookingStatus.CANCELLED.value
    appt.cancelled_at = now
    appt.cancel_reason = reason or "Cancelled by patient"
    await session.flush()

    await write_audit_log(session, requester.id, "CANCEL_APPOINTMENT", f"appointment={appt.id}")
    await notifier.publish("appointment.cancelled", [appt.id], reason=appt.cancel_reason)
    return _to_public(appt)


async def cancel_series(
    session: AsyncSession,
    series_id: str,
    requester: User,
    reason: Optional[str] = None,
    *,
    clock: Clock,
    notifier: Notifier = logging_notifier,
) -> Union[SeriesCancelled, BookingRejection]:
    """
    Cancel every future occurrence of a series.
    Past occurrences are left alone; if any future one is inside the
    cancellation window nothing is cancelled.
    """
    owner_filter = None if requester.is_admin else requester.id
    rows = await appt_repo.list_active_series(session, series_id=series_id, patient_id=owner_filter)
    if not rows:
        return not_found("series_not_found", "No bookings found in this series")

    now = clock.now()
    future = [r for r in rows if r.scheduled_at > now]

    for appt in future:
        if not can_cancel(appt.scheduled_at, now):
            return BookingRejection(
                kind=RejectionKind.POLICY_VIOLATION,
                code="cancellation_window",
                message=(
                    f"Cannot cancel booking on {appt.scheduled_at.date().isoformat()} - less than "
                    f"{settings.CANCELLATION_HOURS_AHEAD} hours away"
                ),
                conflict_date=appt.scheduled_at,
            )

    count = 0
    if future:
        count = await appt_repo.cancel_many(
            session,
            ids=[r.id for r in future],
            cancelled_at=now,
            reason=reason or "Series cancelled by patient",
        )

    await write_audit_log(
        session, requester.id, "CANCEL_SERIES", f"series={series_id} count={count}"
    )
    await notifier.publish("series.cancelled", [r.id for r in future], series_id=series_id)
    return SeriesCancelled(series_id=series_id, cancelled_count=count)


# RESCHEDULE
async def reschedule_booking(
    session: AsyncSession,
    appointment_id: UUID,
    requester: User,
    new_scheduled_at: datetime,
    *,
    clock: Clock,
    notifier: Notifier = logging_notifier,
) -> Union[AppointmentPublic, BookingRejection]:
    """
    Move a booking in place. Status goes back to PENDING so the provider
    re-confirms; the previous time is kept in the notes.
    """
    appt = await appt_repo.get_by_id(session, appointment_id)
    if appt is None:
        return not_found("booking_not_found", "Booking not found")
    if not _owns(requester, appt):
        return forbidden()
    if not can_transition(appt.status, BookingStatus.PENDING):
        return not_found("booking_not_active", "Booking not found or cannot be rescheduled")

    now = clock.now()
    if not is_valid_booking_time(new_scheduled_at, now):
        return _lead_time_rejection()

    provider = await providers_repo.get_bookable(session, appt.provider_id, for_update=True)
    if provider is None:
        return not_found("provider_not_found", "Provider not found or not available")

    window = conflict_window_minutes(appt.appointment_type, appt.duration_minutes)
    if await appt_repo.has_conflict(
        session,
        provider_id=appt.provider_id,
        scheduled_at=new_scheduled_at,
        window_minutes=window,
        exclude_id=appt.id,
    ):
        return conflict("This time slot is no longer available", new_scheduled_at)

    previous = appt.scheduled_at
    provenance = f"Rescheduled from {previous.isoformat()}"
    appt.scheduled_at = new_scheduled_at
    appt.status = BookingStatus.PENDING.value
    appt.notes = f"{appt.notes}\n\n{provenance}" if appt.notes else provenance

    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        return conflict("This time slot is no longer available", new_scheduled_at)

    await write_audit_log(
        session,
        requester.id,
        "RESCHEDULE_APPOINTMENT",
        f"appointment={appt.id} from={previous.isoformat()} to={new_scheduled_at.isoformat()}",
    )
    await notifier.publish(
        "appointment.rescheduled",
        [appt.id],
        previous=previous.isoformat(),
        scheduled_at=new_scheduled_at.isoformat(),
    )
    return _to_public(appt)


# SLOTS
async def get_available_slots(
    session: AsyncSession,
    provider_id: UUID,
    *,
    clock: Clock,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    days_ahead: Optional[int] = None,
    telehealth: bool = False,
) -> Union[List[DayAvailability], BookingRejection]:
    """
    Slot calendar for a bookable provider.

    The calendar starts on the day of `start` (default: now) and spans
    `days_ahead` days, or enough days to reach `end` when given.
    """
    provider = await providers_repo.get_bookable(session, provider_id)
    if provider is None:
        return not_found("provider_not_found", "Provider not found")
    if telehealth and not provider.offers_telehealth:
        return policy_violation(
            "telehealth_not_offered",
            "This provider does not offer telemedicine appointments",
        )

    now = clock.now()
    window_start = start or now
    if end is not None:
        days = max(1, math.ceil((end - window_start) / timedelta(days=1)))
    else:
        days = days_ahead or settings.SLOT_DAYS_AHEAD
    days = min(days, settings.MAX_SLOT_DAYS_AHEAD)

    existing = await _load_existing(session, provider, window_start, days)
    profile = provider.operating_profile()
    return generate_available_slots(
        profile,
        existing,
        now=now,
        days_ahead=days,
        slot_minutes=settings.SLOT_MINUTES,
        lead_time=_lead_time(),
        start_date=window_start.astimezone(ZoneInfo(profile.timezone)).date(),
    )


async def _load_existing(
    session: AsyncSession, provider: Provider, window_start: datetime, days: int
) -> List[ExistingBooking]:
    # One day of margin each side catches bookings that straddle the calendar edges.
    rows = await appt_repo.list_active_for_provider(
        session,
        provider_id=provider.id,
        start=window_start - timedelta(days=1),
        end=window_start + timedelta(days=days + 1),
    )
    return [ExistingBooking.model_validate(r) for r in rows]


# QUERIES
async def list_my_appointments(
    session: AsyncSession,
    requester: User,
    *,
    upcoming: bool,
    limit: int,
    offset: int,
    clock: Clock,
) -> AppointmentListPage:
    rows, total = await appt_repo.list_for_patient(
        session,
        patient_id=requester.id,
        upcoming=upcoming,
        now=clock.now(),
        limit=limit,
        offset=offset,
    )
    return AppointmentListPage(
        items=[_to_list_item(a) for a in rows],
        total=total,
        limit=limit,
        offset=offset,
        has_next=offset + limit < total,
    )


async def _can_view(session: AsyncSession, requester: User, appt: Appointment) -> bool:
    if _owns(requester, appt):
        return True
    provider = await providers_repo.get_by_id(session, appt.provider_id)
    return provider is not None and provider.owner_id == requester.id


async def get_appointment(
    session: AsyncSession, appointment_id: UUID, requester: User
) -> Union[AppointmentPublic, BookingRejection]:
    appt = await appt_repo.get_by_id(session, appointment_id)
    if appt is None:
        return not_found("booking_not_found", "Booking not found")
    if not await _can_view(session, requester, appt):
        return forbidden()
    return _to_public(appt)


async def get_series_appointments(
    session: AsyncSession, series_id: str, requester: User
) -> Union[List[AppointmentPublic], BookingRejection]:
    rows = await appt_repo.list_series(session, series_id=series_id)
    visible = [r for r in rows if await _can_view(session, requester, r)]
    if not visible:
        return not_found("series_not_found", "No bookings found in this series")
    return [_to_public(r) for r in visible]


# PROVIDER SIDE
_PROVIDER_ACTIONS = {
    BookingStatus.CONFIRMED: ("CONFIRM_APPOINTMENT", "appointment.confirmed"),
    BookingStatus.CANCELLED: ("DECLINE_APPOINTMENT", "appointment.declined"),
    BookingStatus.COMPLETED: ("COMPLETE_APPOINTMENT", "appointment.completed"),
    BookingStatus.NO_SHOW: ("NO_SHOW_APPOINTMENT", "appointment.no_show"),
}


async def _provider_transition(
    session: AsyncSession,
    appointment_id: UUID,
    requester: User,
    target: BookingStatus,
    *,
    clock: Clock,
    notifier: Notifier,
    reason: Optional[str] = None,
) -> Union[AppointmentPublic, BookingRejection]:
    appt = await appt_repo.get_by_id(session, appointment_id)
    if appt is None:
        return not_found("booking_not_found", "Booking not found")

    provider = await providers_repo.get_by_id(session, appt.provider_id)
    if not requester.is_admin and (provider is None or provider.owner_id != requester.id):
        return forbidden("not_provider_staff", "Only the provider can manage this booking")

    if not can_transition(appt.status, target):
        return policy_violation(
            "invalid_transition",
            f"Booking cannot move from {appt.status} to {target.value}",
        )

    appt.status = target.value
    if target is BookingStatus.CANCELLED:
        appt.cancelled_at = clock.now()
        appt.cancel_reason = reason or "Declined by provider"
    await session.flush()

    audit_action, event = _PROVIDER_ACTIONS[target]
    await write_audit_log(session, requester.id, audit_action, f"appointment={appt.id}")
    await notifier.publish(event, [appt.id], status=appt.status)
    return _to_public(appt)


async def confirm_appointment(session, appointment_id, requester, *, clock, notifier=logging_notifier):
    return await _provider_transition(
        session, appointment_id, requester, BookingStatus.CONFIRMED, clock=clock, notifier=notifier
    )


async def decline_appointment(
    session, appointment_id, requester, reason=None, *, clock, notifier=logging_notifier
):
    return await _provider_transition(
        session,
        appointment_id,
        requester,
        BookingStatus.CANCELLED,
        clock=clock,
        notifier=notifier,
        reason=reason,
    )


async def complete_appointment(session, appointment_id, requester, *, clock, notifier=logging_notifier):
    return await _provider_transition(
        session, appointment_id, requester, BookingStatus.COMPLETED, clock=clock, notifier=notifier
    )


async def mark_no_show(session, appointment_id, requester, *, clock, notifier=logging_notifier):
    return await _provider_transition(
        session, appointment_id, requester, BookingStatus.NO_SHOW, clock=clock, notifier=notifier
    )
