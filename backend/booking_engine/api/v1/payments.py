"""Payment gateway event receiver."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.api import deps
from booking_engine.core.errors import PreconditionError
from booking_engine.schemas.payment_event import PaymentEvent, PaymentEventAck
from booking_engine.services import dispatch_service, reservation_service
from booking_engine.services.intents import TransitionResult

logger = logging.getLogger(__name__)

router = APIRouter()


async def _apply_event(session: AsyncSession, event: PaymentEvent) -> TransitionResult:
    if event.type == "payment_succeeded":
        return await reservation_service.record_payment_succeeded(
            session,
            reservation_id=event.reservation_id,
            payment_reference=event.payment_reference,
        )
    if event.type == "payment_failed":
        return await reservation_service.record_payment_failed(
            session,
            reservation_id=event.reservation_id,
            payment_reference=event.payment_reference,
            reason=event.reason,
        )
    return await reservation_service.record_refund_completed(
        session, reservation_id=event.reservation_id
    )


@router.post("/events", response_model=PaymentEventAck, summary="Apply a payment event")
async def receive_payment_event(
    event: PaymentEvent,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _: Annotated[deps.Actor, Depends(deps.require_admin)],
    background_tasks: BackgroundTasks,
) -> PaymentEventAck:
    """Apply a gateway event.

    Events that no longer fit the reservation state are acknowledged and ignored.
    """
    try:
        result = await _apply_event(session, event)
    except PreconditionError as exc:
        logger.info(
            "Ignoring %s for reservation %s: %s",
            event.type,
            event.reservation_id,
            exc.message,
        )
        return PaymentEventAck(
            status="ignored", reservation_id=event.reservation_id, detail=exc.message
        )
    background_tasks.add_task(dispatch_service.dispatch_intents, result.intents)
    return PaymentEventAck(status="processed", reservation_id=event.reservation_id)
