# app/modules/providers/repository.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.providers.models import Provider, ProviderStatus, Service


async def get_by_id(session: AsyncSession, provider_id: UUID) -> Optional[Provider]:
    return await session.get(Provider, provider_id)


async def get_bookable(
    session: AsyncSession, provider_id: UUID, *, for_update: bool = False
) -> Optional[Provider]:
    """
    Approved, non-deleted provider or None.

    With for_update=True the row is locked (SELECT ... FOR UPDATE) so
    concurrent bookings for the same provider are serialized until commit.
    """
    stmt = select(Provider).where(
        Provider.id == provider_id,
        Provider.status == ProviderStatus.APPROVED.value,
        Provider.deleted_at.is_(None),
    )
    if for_update:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_active_service(
    session: AsyncSession, *, service_id: UUID, provider_id: UUID
) -> Optional[Service]:
    stmt = select(Service).where(
        Service.id == service_id,
        Service.provider_id == provider_id,
        Service.is_active.is_(True),
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()
