"""Request-scoped session: commit, rollback and what gets logged."""

import logging

import pytest
from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db import sql
from app.modules.users.models import User


@pytest.fixture
def sessions(engine, monkeypatch):
    maker = async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False, class_=AsyncSession)
    monkeypatch.setattr(sql, "AsyncSessionLocal", maker)
    return maker


async def _users(maker) -> int:
    async with maker() as s:
        return (await s.execute(select(func.count()).select_from(User))).scalar_one()


async def _open_with_pending_user(gen):
    session = await gen.__anext__()
    session.add(User(email="temp@example.com", first_name="Temp", last_name="User"))
    await session.flush()


async def test_commit_on_success(sessions):
    gen = sql.get_session()
    await _open_with_pending_user(gen)
    with pytest.raises(StopAsyncIteration):
        await gen.__anext__()
    assert await _users(sessions) == 1


async def test_http_rejection_rolls_back_without_error_log(sessions, caplog):
    gen = sql.get_session()
    await _open_with_pending_user(gen)

    with caplog.at_level(logging.ERROR, logger="app.db.sql"):
        with pytest.raises(HTTPException):
            await gen.athrow(HTTPException(status_code=409, detail="slot_conflict"))

    assert [r for r in caplog.records if r.levelno >= logging.ERROR] == []
    assert await _users(sessions) == 0


async def test_unexpected_fault_is_logged(sessions, caplog):
    gen = sql.get_session()
    await _open_with_pending_user(gen)

    with caplog.at_level(logging.ERROR, logger="app.db.sql"):
        with pytest.raises(RuntimeError):
            await gen.athrow(RuntimeError("connection reset"))

    assert any(r.message == "Request transaction rolled back" for r in caplog.records)
    assert await _users(sessions) == 0
