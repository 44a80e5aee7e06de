from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.users.models import AuditLog

logger = logging.getLogger(__name__)


async def write_audit_log(
    session: AsyncSession,
    user_id: UUID | None,
    action: str,
    details: str | None = None,
):
    """
    Write an audit log entry in the caller's transaction.

    action:
        "CREATE_APPOINTMENT"
        "CANCEL_APPOINTMENT"
        "CANCEL_SERIES"
        "RESCHEDULE_APPOINTMENT"
        "CONFIRM_APPOINTMENT" / "DECLINE_APPOINTMENT"
        "COMPLETE_APPOINTMENT" / "NO_SHOW_APPOINTMENT"

    details: free text, truncated to the column size
    """
    logger.info("audit user=%s action=%s details=%s", user_id, action, details)
    stmt = insert(AuditLog).values(
        user_id=user_id,
        action=action,
        details=details[:1000] if details else details,
    )
    await session.execute(stmt)
