# app/core/notifier.py
from __future__ import annotations

import logging
from typing import Any, Sequence
from uuid import UUID

logger = logging.getLogger(__name__)


class Notifier:
    """
    Outbound notification hook (email, push, pub/sub live elsewhere).

    Delivery is fire-and-forget: the service layer calls `publish` once the
    booking rows are flushed, inside the request transaction, and never
    depends on the outcome. Events are not transactional; if the final
    commit fails, an event may already have gone out.
    """

    async def send(self, event: str, appointment_ids: Sequence[UUID], payload: dict[str, Any]) -> None:
        logger.info(
            "notify event=%s appointments=%s payload=%s",
            event,
            ",".join(str(i) for i in appointment_ids),
            payload,
        )

    async def publish(
        self,
        event: str,
        appointment_ids: Sequence[UUID],
        **payload: Any,
    ) -> None:
        try:
            await self.send(event, appointment_ids, payload)
        except Exception:
            # A failed delivery never fails the booking operation.
            logger.exception("Notification %s failed", event)


logging_notifier = Notifier()
