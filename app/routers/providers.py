# app/routers/providers.py
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import AwareDatetime
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock
from app.core.config import settings
from app.core.errors import unwrap
from app.db.sql import get_session
from app.dependencies import get_clock
from app.modules.appointments import service as svc
from app.modules.scheduling.schemas import DayAvailability

router = APIRouter(prefix="/providers", tags=["providers"])


# Public: anyone browsing a provider can see its open slots.
@router.get(
    "/{provider_id}/slots",
    response_model=List[DayAvailability],
    summary="Bookable slot calendar for a provider",
)
async def provider_slots(
    provider_id: UUID,
    start: Optional[AwareDatetime] = Query(None, description="ISO-8601 with offset, defaults to now"),
    end: Optional[AwareDatetime] = Query(None, description="ISO-8601 with offset, overrides days_ahead"),
    days_ahead: int = Query(settings.SLOT_DAYS_AHEAD, ge=1, le=settings.MAX_SLOT_DAYS_AHEAD),
    telehealth: bool = Query(False),
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    return unwrap(
        await svc.get_available_slots(
            session,
            provider_id,
            clock=clock,
            start=start,
            end=end,
            days_ahead=days_ahead,
            telehealth=telehealth,
        )
    )
