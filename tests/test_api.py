"""HTTP surface: routing, auth guards and rejection-to-status mapping."""

from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.security import create_access_token
from app.db.sql import get_session
from app.dependencies import get_clock, get_notifier
from app.main import app
from app.modules.scheduling.schemas import BookingStatus
from tests.conftest import at

TUESDAY_10 = at(days=1, hours=2)


@pytest.fixture
async def client(session, clock, notifier):
    async def _session():
        yield session

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_notifier] = lambda: notifier
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def auth(user) -> dict:
    token = create_access_token(subject=str(user.id), role=user.role)
    return {"Authorization": f"Bearer {token}"}


async def test_health(client):
    res = await client.get("/api/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}


async def test_health_db(client):
    res = await client.get("/api/health/db")
    assert res.status_code == 200
    assert res.json()["database"] == "sqlite"


async def test_slot_calendar_is_public(client, provider):
    res = await client.get(f"/api/providers/{provider.id}/slots", params={"days_ahead": 7})
    assert res.status_code == 200
    days = res.json()
    assert len(days) == 7
    assert days[0]["day_name"] == "Mon"
    first = days[1]["slots"][0]
    assert first["time"] == "09:00"
    assert first["start_time"].startswith("2026-03-03T09:00:00")
    assert first["available"] is True


@pytest.mark.parametrize("param", ["start", "end"])
async def test_slot_calendar_rejects_naive_bounds(client, provider, param):
    res = await client.get(
        f"/api/providers/{provider.id}/slots", params={param: "2026-03-05T00:00:00"}
    )
    assert res.status_code == 422


async def test_slot_calendar_with_aware_bounds(client, provider):
    res = await client.get(
        f"/api/providers/{provider.id}/slots",
        params={"start": "2026-03-03T00:00:00+00:00", "end": "2026-03-05T00:00:00+00:00"},
    )
    assert res.status_code == 200
    assert [d["date"] for d in res.json()] == ["2026-03-03", "2026-03-04"]


async def test_slot_calendar_unknown_provider(client, pending_provider):
    res = await client.get(f"/api/providers/{pending_provider.id}/slots")
    assert res.status_code == 404
    assert res.json()["detail"]["code"] == "provider_not_found"


async def test_create_requires_token(client, provider):
    res = await client.post(
        "/api/appointments",
        json={"provider_id": str(provider.id), "scheduled_at": TUESDAY_10.isoformat()},
    )
    assert res.status_code == 401


async def test_create_requires_patient_role(client, owner, provider):
    res = await client.post(
        "/api/appointments",
        json={"provider_id": str(provider.id), "scheduled_at": TUESDAY_10.isoformat()},
        headers=auth(owner),
    )
    assert res.status_code == 403
    assert res.json()["detail"] == "insufficient_role"


async def test_create_rejects_naive_timestamp(client, patient, provider):
    res = await client.post(
        "/api/appointments",
        json={"provider_id": str(provider.id), "scheduled_at": "2026-03-03T10:00:00"},
        headers=auth(patient),
    )
    assert res.status_code == 422


async def test_create_then_double_book(client, patient, other_patient, provider):
    body = {"provider_id": str(provider.id), "scheduled_at": TUESDAY_10.isoformat()}

    first = await client.post("/api/appointments", json=body, headers=auth(patient))
    assert first.status_code == 201
    assert len(first.json()["booking_ids"]) == 1

    second = await client.post("/api/appointments", json=body, headers=auth(other_patient))
    assert second.status_code == 409
    detail = second.json()["detail"]
    assert detail["kind"] == "conflict"
    assert detail["code"] == "slot_conflict"
    assert detail["conflict_date"].startswith("2026-03-03T10:00:00")


async def test_create_inside_lead_time(client, patient, provider):
    res = await client.post(
        "/api/appointments",
        json={"provider_id": str(provider.id), "scheduled_at": at(hours=3).isoformat()},
        headers=auth(patient),
    )
    assert res.status_code == 422
    assert res.json()["detail"]["code"] == "lead_time"


async def test_recurring_create_and_series_views(client, patient, provider):
    res = await client.post(
        "/api/appointments",
        json={
            "provider_id": str(provider.id),
            "scheduled_at": TUESDAY_10.isoformat(),
            "recurrence": "BIWEEKLY",
            "recurrence_end_date": (TUESDAY_10 + timedelta(days=28)).isoformat(),
        },
        headers=auth(patient),
    )
    assert res.status_code == 201
    series_id = res.json()["series_id"]

    listed = await client.get(f"/api/appointments/series/{series_id}", headers=auth(patient))
    assert listed.status_code == 200
    assert len(listed.json()) == 3

    cancelled = await client.put(f"/api/appointments/series/{series_id}/cancel", headers=auth(patient))
    assert cancelled.status_code == 200
    assert cancelled.json() == {"series_id": series_id, "cancelled_count": 3}


async def test_my_appointments(client, patient, provider, make_appointment):
    await make_appointment(patient, provider, at(days=3))
    res = await client.get("/api/appointments/my", headers=auth(patient))
    assert res.status_code == 200
    body = res.json()
    assert body["total"] == 1
    assert body["has_next"] is False


async def test_cancel_inside_window_maps_to_422(client, patient, provider, make_appointment):
    appt = await make_appointment(patient, provider, at(hours=20), status=BookingStatus.CONFIRMED)
    res = await client.put(f"/api/appointments/{appt.id}/cancel", headers=auth(patient))
    assert res.status_code == 422
    assert res.json()["detail"]["code"] == "cancellation_window"


async def test_cancel_with_reason(client, patient, provider, make_appointment):
    appt = await make_appointment(patient, provider, at(days=3))
    res = await client.put(
        f"/api/appointments/{appt.id}/cancel",
        json={"reason": "moving house"},
        headers=auth(patient),
    )
    assert res.status_code == 200
    assert res.json()["status"] == "CANCELLED"
    assert res.json()["cancel_reason"] == "moving house"


async def test_view_other_patients_booking_is_forbidden(
    client, patient, other_patient, provider, make_appointment
):
    appt = await make_appointment(patient, provider, at(days=3))
    res = await client.get(f"/api/appointments/{appt.id}", headers=auth(other_patient))
    assert res.status_code == 403
    assert res.json()["detail"]["kind"] == "ownership"


async def test_reschedule(client, patient, provider, make_appointment):
    appt = await make_appointment(patient, provider, at(days=3), status=BookingStatus.CONFIRMED)
    res = await client.put(
        f"/api/appointments/{appt.id}/reschedule",
        json={"new_scheduled_at": at(days=4).isoformat()},
        headers=auth(patient),
    )
    assert res.status_code == 200
    assert res.json()["status"] == "PENDING"
    assert res.json()["notes"].startswith("Rescheduled from")


async def test_portal_confirm_and_invalid_transition(client, patient, owner, provider, make_appointment):
    appt = await make_appointment(patient, provider, at(days=3))

    res = await client.put(f"/api/portal/appointments/{appt.id}/confirm", headers=auth(owner))
    assert res.status_code == 200
    assert res.json()["status"] == "CONFIRMED"

    res = await client.put(f"/api/portal/appointments/{appt.id}/confirm", headers=auth(owner))
    assert res.status_code == 422
    assert res.json()["detail"]["code"] == "invalid_transition"


async def test_portal_is_closed_to_patients(client, patient, provider, make_appointment):
    appt = await make_appointment(patient, provider, at(days=3))
    res = await client.put(f"/api/portal/appointments/{appt.id}/no-show", headers=auth(patient))
    assert res.status_code == 403
