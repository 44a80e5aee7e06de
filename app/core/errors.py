# app/core/errors.py
from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from app.modules.appointments.results import BookingRejection, RejectionKind

logger = logging.getLogger(__name__)

REJECTION_STATUS = {
    RejectionKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    RejectionKind.OWNERSHIP: status.HTTP_403_FORBIDDEN,
    RejectionKind.POLICY_VIOLATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    RejectionKind.CONFLICT: status.HTTP_409_CONFLICT,
}


def unwrap(result):
    """
    Return a service result, or raise the HTTPException matching a rejection.
    """
    if isinstance(result, BookingRejection):
        raise HTTPException(
            status_code=REJECTION_STATUS[result.kind],
            detail=result.model_dump(mode="json", exclude_none=True),
        )
    return result


async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
    # Storage / infrastructure faults: log everything, expose nothing.
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "internal_error"},
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(Exception, _unhandled)
