"""Side-effect intents emitted by engine transitions.

Transitions never talk to the payment gateway or the notification sink
directly. They return these plain records, and the caller hands them to
:mod:`booking_engine.services.dispatch_service` once the transaction has
committed.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Union

from booking_engine.core.clock import coerce_utc
from booking_engine.models import NotificationType, Reservation, ReviewType


@dataclass(slots=True, frozen=True)
class NotificationIntent:
    type: NotificationType
    recipient_id: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class ChargeIntent:
    reservation_id: uuid.UUID
    amount: Decimal
    currency: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class RefundIntent:
    reservation_id: uuid.UUID
    amount: Decimal
    original_amount: Decimal
    payment_reference: str | None
    initiated_by: str
    reason: str | None = None


@dataclass(slots=True, frozen=True)
class RatingRecomputeIntent:
    reviewee_id: str
    review_type: ReviewType
    full: bool = False


Intent = Union[NotificationIntent, ChargeIntent, RefundIntent, RatingRecomputeIntent]


@dataclass(slots=True)
class TransitionResult:
    """Outcome of a reservation transition plus the effects it requests."""

    reservation: Reservation
    intents: list[Intent] = field(default_factory=list)


def notify(
    type_: NotificationType, recipient_id: str, reservation: Reservation, **extra: Any
) -> NotificationIntent:
    """Build a notification carrying the standard reservation payload."""
    payload: dict[str, Any] = {
        "reservation_id": str(reservation.id),
        "facility_id": str(reservation.facility_id),
        "start_at": coerce_utc(reservation.start_at).isoformat(),
        "end_at": coerce_utc(reservation.end_at).isoformat(),
    }
    payload.update(extra)
    return NotificationIntent(type=type_, recipient_id=recipient_id, payload=payload)
