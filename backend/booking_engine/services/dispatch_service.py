"""Deliver intents produced by committed transitions.

Notifications, charges and refunds are written to outbox tables that the
notification sink and payment gateway workers drain. Rating recomputes run
directly. Every intent gets its own session so one failure never blocks
the rest; failures are logged and the committed transition stands.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from booking_engine.core.config import BookingPolicy, get_booking_policy
from booking_engine.db.session import get_sessionmaker
from booking_engine.models import ChargeRequest, Notification, RefundRequest
from booking_engine.services import rating_service
from booking_engine.services.intents import (
    ChargeIntent,
    Intent,
    NotificationIntent,
    RatingRecomputeIntent,
    RefundIntent,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DispatchReport:
    delivered: int = 0
    failed: int = 0


async def _dispatch_one(
    session: AsyncSession, intent: Intent, policy: BookingPolicy
) -> None:
    if isinstance(intent, NotificationIntent):
        session.add(
            Notification(
                recipient_id=intent.recipient_id,
                type=intent.type,
                payload=intent.payload,
            )
        )
    elif isinstance(intent, ChargeIntent):
        session.add(
            ChargeRequest(
                reservation_id=intent.reservation_id,
                amount=intent.amount,
                currency=intent.currency,
                request_metadata=intent.metadata,
            )
        )
    elif isinstance(intent, RefundIntent):
        session.add(
            RefundRequest(
                reservation_id=intent.reservation_id,
                amount=intent.amount,
                original_amount=intent.original_amount,
                payment_reference=intent.payment_reference,
                initiated_by=intent.initiated_by,
                reason=intent.reason,
            )
        )
    elif isinstance(intent, RatingRecomputeIntent):
        await rating_service.apply_rating(
            session,
            reviewee_id=intent.reviewee_id,
            review_type=intent.review_type,
            window=None if intent.full else policy.rating_window,
        )
    else:  # pragma: no cover - exhaustive over Intent
        raise TypeError(f"Unsupported intent {intent!r}")


async def dispatch_intents(
    intents: Iterable[Intent],
    *,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    policy: BookingPolicy | None = None,
) -> DispatchReport:
    factory = session_factory or get_sessionmaker()
    policy = policy or get_booking_policy()
    report = DispatchReport()
    for intent in intents:
        try:
            async with factory() as session:
                await _dispatch_one(session, intent, policy)
                await session.commit()
        except Exception:  # noqa: BLE001
            report.failed += 1
            logger.exception("Failed to dispatch %s", type(intent).__name__)
        else:
            report.delivered += 1
    return report
