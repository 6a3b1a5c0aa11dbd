"""API tests for payment gateway events."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio

GATEWAY = {"X-Actor-Id": "payment-gateway", "X-Actor-Role": "admin"}


async def _create(client: AsyncClient, app_context: dict[str, object], days: int = 3) -> str:
    start = (datetime.now(UTC) + timedelta(days=days)).replace(
        hour=14, minute=0, second=0, microsecond=0
    )
    response = await client.post(
        "/api/v1/bookings",
        json={
            "facility_id": str(app_context["facility_id"]),
            "space_id": str(app_context["space_id"]),
            "start_at": start.isoformat(),
            "end_at": (start + timedelta(hours=3)).isoformat(),
        },
        headers={"X-Actor-Id": str(app_context["consumer_id"])},
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


async def test_payment_success_confirms_reservation(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    reservation_id = await _create(client, app_context)
    event = {
        "type": "payment_succeeded",
        "reservation_id": reservation_id,
        "payment_reference": "pi_live_1",
    }

    first = await client.post("/api/v1/payments/events", json=event, headers=GATEWAY)
    replay = await client.post("/api/v1/payments/events", json=event, headers=GATEWAY)

    assert first.json()["status"] == "processed"
    assert replay.json()["status"] == "processed"
    detail = await client.get(
        f"/api/v1/bookings/{reservation_id}",
        headers={"X-Actor-Id": str(app_context["owner_id"])},
    )
    body = detail.json()
    assert body["status"] == "confirmed"
    assert body["payment_status"] == "succeeded"
    assert body["space_id"] == str(app_context["space_id"])


async def test_events_require_gateway_role(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    reservation_id = await _create(client, app_context)

    response = await client.post(
        "/api/v1/payments/events",
        json={"type": "payment_succeeded", "reservation_id": reservation_id},
        headers={"X-Actor-Id": str(app_context["consumer_id"])},
    )

    assert response.status_code == 403


async def test_stale_events_are_ignored(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    reservation_id = await _create(client, app_context)
    cancel = await client.post(
        f"/api/v1/bookings/{reservation_id}/cancel",
        headers={"X-Actor-Id": str(app_context["owner_id"])},
    )
    assert cancel.status_code == 200

    late = await client.post(
        "/api/v1/payments/events",
        json={"type": "payment_succeeded", "reservation_id": reservation_id},
        headers=GATEWAY,
    )
    assert late.status_code == 200
    assert late.json()["status"] == "ignored"

    unknown = await client.post(
        "/api/v1/payments/events",
        json={
            "type": "payment_failed",
            "reservation_id": "00000000-0000-0000-0000-000000000000",
        },
        headers=GATEWAY,
    )
    assert unknown.status_code == 404


async def test_failed_payment_then_refund_flow(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    reservation_id = await _create(client, app_context, days=5)

    failed = await client.post(
        "/api/v1/payments/events",
        json={
            "type": "payment_failed",
            "reservation_id": reservation_id,
            "reason": "insufficient_funds",
        },
        headers=GATEWAY,
    )
    assert failed.json()["status"] == "processed"

    await client.post(
        "/api/v1/payments/events",
        json={"type": "payment_succeeded", "reservation_id": reservation_id},
        headers=GATEWAY,
    )
    cancel = await client.post(
        f"/api/v1/bookings/{reservation_id}/cancel",
        headers={"X-Actor-Id": str(app_context["consumer_id"])},
    )
    assert Decimal(cancel.json()["refund_rate"]) == Decimal("1")

    refunded = await client.post(
        "/api/v1/payments/events",
        json={"type": "refund_succeeded", "reservation_id": reservation_id},
        headers=GATEWAY,
    )
    assert refunded.json()["status"] == "processed"
    detail = await client.get(
        f"/api/v1/bookings/{reservation_id}",
        headers={"X-Actor-Id": str(app_context["consumer_id"])},
    )
    assert detail.json()["payment_status"] == "refunded"
