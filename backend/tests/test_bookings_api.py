"""API tests for the reservation endpoints."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import UUID

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from booking_engine.db.session import get_sessionmaker
from booking_engine.models import ChargeRequest, Notification, NotificationType

pytestmark = pytest.mark.asyncio


def _headers(actor_id: str, role: str | None = None) -> dict[str, str]:
    headers = {"X-Actor-Id": actor_id}
    if role:
        headers["X-Actor-Role"] = role
    return headers


def _slot(days: int = 3, hours: int = 2) -> dict[str, str]:
    start = (datetime.now(UTC) + timedelta(days=days)).replace(
        hour=10, minute=0, second=0, microsecond=0
    )
    return {
        "start_at": start.isoformat(),
        "end_at": (start + timedelta(hours=hours)).isoformat(),
    }


async def test_booking_flow(app_context: dict[str, object], db_url: str) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    facility_id = str(app_context["facility_id"])
    consumer = _headers(str(app_context["consumer_id"]))
    owner = _headers(str(app_context["owner_id"]))

    create = await client.post(
        "/api/v1/bookings",
        json={"facility_id": facility_id, "notes": "Team practice", **_slot()},
        headers=consumer,
    )
    assert create.status_code == 201, create.text
    body = create.json()
    reservation_id = body["id"]
    assert body["status"] == "pending"
    assert body["payment_status"] == "pending"
    assert Decimal(body["subtotal"]) == Decimal("100.00")
    assert Decimal(body["total_price"]) == Decimal("115.00")
    assert body["start_at"].endswith(("+00:00", "Z"))

    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        notification = (await session.execute(select(Notification))).scalar_one()
        charge = (await session.execute(select(ChargeRequest))).scalar_one()
    assert notification.type == NotificationType.BOOKING_CREATED
    assert notification.recipient_id == app_context["owner_id"]
    assert charge.reservation_id == UUID(reservation_id)

    owned = await client.get("/api/v1/bookings", params={"role": "owner"}, headers=owner)
    assert owned.status_code == 200
    assert [item["id"] for item in owned.json()] == [reservation_id]

    pending = await client.get(
        "/api/v1/bookings", params={"status": "confirmed"}, headers=consumer
    )
    assert pending.json() == []

    fetched = await client.get(f"/api/v1/bookings/{reservation_id}", headers=owner)
    assert fetched.status_code == 200
    stranger = await client.get(
        f"/api/v1/bookings/{reservation_id}", headers=_headers("stranger")
    )
    assert stranger.status_code == 403
    assert stranger.json()["code"] == "permission_denied"

    confirm = await client.post(f"/api/v1/bookings/{reservation_id}/confirm", headers=owner)
    assert confirm.status_code == 409
    assert confirm.json()["code"] == "precondition_failed"

    cancel = await client.post(
        f"/api/v1/bookings/{reservation_id}/cancel",
        json={"reason": "Plans changed"},
        headers=consumer,
    )
    assert cancel.status_code == 200, cancel.text
    cancelled = cancel.json()
    assert cancelled["status"] == "cancelled"
    assert cancelled["cancellation_initiated_by"] == "consumer"
    assert Decimal(cancelled["refund_amount"]) == Decimal("115.00")

    again = await client.post(f"/api/v1/bookings/{reservation_id}/cancel", headers=consumer)
    assert again.status_code == 409


async def test_booking_rejections(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    facility_id = str(app_context["facility_id"])
    consumer = _headers(str(app_context["consumer_id"]))

    anonymous = await client.post(
        "/api/v1/bookings", json={"facility_id": facility_id, **_slot()}
    )
    assert anonymous.status_code == 401

    too_soon = datetime.now(UTC) + timedelta(hours=10)
    rushed = await client.post(
        "/api/v1/bookings",
        json={
            "facility_id": facility_id,
            "start_at": too_soon.isoformat(),
            "end_at": (too_soon + timedelta(hours=2)).isoformat(),
        },
        headers=consumer,
    )
    assert rushed.status_code == 422
    assert rushed.json()["code"] == "invalid"

    first = await client.post(
        "/api/v1/bookings", json={"facility_id": facility_id, **_slot()}, headers=consumer
    )
    assert first.status_code == 201
    overlap = await client.post(
        "/api/v1/bookings",
        json={"facility_id": facility_id, **_slot()},
        headers=_headers("consumer-2"),
    )
    assert overlap.status_code == 409
    assert overlap.json()["code"] == "conflict"

    missing = await client.post(
        "/api/v1/bookings",
        json={"facility_id": "00000000-0000-0000-0000-000000000000", **_slot(days=5)},
        headers=consumer,
    )
    assert missing.status_code == 404


async def test_sweep_triggers_require_admin(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]

    denied = await client.post("/api/v1/ops/sweeps/expire", headers=_headers("consumer-1"))
    assert denied.status_code == 403

    expire = await client.post(
        "/api/v1/ops/sweeps/expire", headers=_headers("ops-1", role="admin")
    )
    progress = await client.post(
        "/api/v1/ops/sweeps/progress", headers=_headers("ops-1", role="admin")
    )
    reminders = await client.post(
        "/api/v1/ops/sweeps/reminders", headers=_headers("ops-1", role="admin")
    )
    assert expire.status_code == 200
    assert expire.json() == {"processed": 0, "skipped": 0}
    assert progress.json() == {"processed": 0, "skipped": 0}
    assert reminders.json() == {"processed": 0, "skipped": 0}
