"""API tests for reviews and rating aggregation."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient

from booking_engine.db.session import get_sessionmaker
from booking_engine.models import Facility, OwnerProfile
from booking_engine.services import reservation_service, sweep_service

pytestmark = pytest.mark.asyncio

ADMIN = {"X-Actor-Id": "moderator-1", "X-Actor-Role": "admin"}


async def _completed_reservation(db_url: str, facility_id: uuid.UUID, consumer_id: str) -> str:
    now = datetime.now(UTC)
    start = (now + timedelta(days=3)).replace(hour=9, minute=0, second=0, microsecond=0)
    end = start + timedelta(hours=2)
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        created = await reservation_service.create_reservation(
            session,
            consumer_id=consumer_id,
            facility_id=facility_id,
            start_at=start,
            end_at=end,
            now=now,
        )
        await reservation_service.record_payment_succeeded(
            session, reservation_id=created.reservation.id, payment_reference="pi_r"
        )
        await sweep_service.complete_due_reservations(session, now=end)
    return str(created.reservation.id)


async def test_review_lifecycle(app_context: dict[str, object], db_url: str) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    facility_id = uuid.UUID(str(app_context["facility_id"]))
    owner_id = str(app_context["owner_id"])
    consumer_id = str(app_context["consumer_id"])
    reservation_id = await _completed_reservation(db_url, facility_id, consumer_id)

    created = await client.post(
        "/api/v1/reviews",
        json={
            "reservation_id": reservation_id,
            "reviewee_id": owner_id,
            "overall_rating": 4,
            "category_ratings": {"cleanliness": 5, "value": 3},
            "comment": "Bright hall, friendly host and easy parking nearby.",
        },
        headers={"X-Actor-Id": consumer_id},
    )
    assert created.status_code == 201, created.text
    review = created.json()
    assert review["review_type"] == "consumer_to_owner"

    duplicate = await client.post(
        "/api/v1/reviews",
        json={
            "reservation_id": reservation_id,
            "reviewee_id": owner_id,
            "overall_rating": 5,
            "comment": "Trying to review the same reservation twice.",
        },
        headers={"X-Actor-Id": consumer_id},
    )
    assert duplicate.status_code == 409

    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        facility = await session.get(Facility, facility_id)
        owner = await session.get(OwnerProfile, owner_id)
    assert facility.rating == Decimal("4.0")
    assert facility.category_ratings == {"cleanliness": 5.0, "value": 3.0}
    assert owner.reviews_count == 1

    listed = await client.get("/api/v1/reviews", params={"reviewee_id": owner_id})
    assert [item["id"] for item in listed.json()] == [review["id"]]

    stats = await client.get("/api/v1/reviews/stats", params={"reviewee_id": owner_id})
    body = stats.json()
    assert body["total"] == 1
    assert Decimal(body["average"]) == Decimal("4.0")
    assert body["distribution"]["4"] == 1

    report = await client.post(
        f"/api/v1/reviews/{review['id']}/report",
        json={"reason": "Mentions a competitor"},
        headers={"X-Actor-Id": owner_id},
    )
    assert report.status_code == 201

    forbidden = await client.patch(
        f"/api/v1/reviews/{review['id']}/visibility",
        json={"is_hidden": True},
        headers={"X-Actor-Id": owner_id},
    )
    assert forbidden.status_code == 403

    hidden = await client.patch(
        f"/api/v1/reviews/{review['id']}/visibility",
        json={"is_hidden": True},
        headers=ADMIN,
    )
    assert hidden.status_code == 200
    assert hidden.json()["is_hidden"] is True
    assert (await client.get("/api/v1/reviews", params={"reviewee_id": owner_id})).json() == []

    async with sessionmaker() as session:
        facility = await session.get(Facility, facility_id)
    assert facility.reviews_count == 0
    assert facility.rating == Decimal("0.0")

    deleted = await client.delete(f"/api/v1/reviews/{review['id']}", headers=ADMIN)
    assert deleted.status_code == 204
    missing = await client.delete(f"/api/v1/reviews/{review['id']}", headers=ADMIN)
    assert missing.status_code == 404


async def test_review_validation_errors(app_context: dict[str, object], db_url: str) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    facility_id = uuid.UUID(str(app_context["facility_id"]))
    consumer_id = str(app_context["consumer_id"])
    reservation_id = await _completed_reservation(db_url, facility_id, consumer_id)

    short = await client.post(
        "/api/v1/reviews",
        json={
            "reservation_id": reservation_id,
            "reviewee_id": str(facility_id),
            "overall_rating": 5,
            "comment": "Nice",
        },
        headers={"X-Actor-Id": consumer_id},
    )
    assert short.status_code == 422
    assert short.json()["code"] == "invalid"

    outsider = await client.post(
        "/api/v1/reviews",
        json={
            "reservation_id": reservation_id,
            "reviewee_id": str(facility_id),
            "overall_rating": 5,
            "comment": "I was never part of this reservation at all.",
        },
        headers={"X-Actor-Id": "someone-else"},
    )
    assert outsider.status_code == 403
