"""Reservation management API."""

from __future__ import annotations

import uuid
from typing import Annotated, Literal

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.api import deps
from booking_engine.api.rate_limit import BOOKING_RATE_DEP, DEFAULT_RATE_DEP
from booking_engine.models.reservation import ReservationStatus
from booking_engine.schemas.reservation import (
    ReservationCancel,
    ReservationCreate,
    ReservationRead,
)
from booking_engine.services import dispatch_service, reservation_service

router = APIRouter()


@router.get("", response_model=list[ReservationRead], summary="List reservations")
async def list_reservations(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    actor: Annotated[deps.Actor, Depends(deps.get_current_actor)],
    role: Literal["consumer", "owner"] | None = None,
    status_filter: Annotated[ReservationStatus | None, Query(alias="status")] = None,
    skip: int = 0,
    limit: int = 50,
) -> list[ReservationRead]:
    reservations = await reservation_service.list_reservations(
        session,
        actor_id=actor.id,
        role=role,
        status=status_filter,
        skip=max(skip, 0),
        limit=min(max(limit, 1), 100),
    )
    return [ReservationRead.model_validate(obj) for obj in reservations]


@router.post(
    "",
    response_model=ReservationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Request a reservation",
    dependencies=[BOOKING_RATE_DEP],
)
async def create_reservation(
    payload: ReservationCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    actor: Annotated[deps.Actor, Depends(deps.get_current_actor)],
    background_tasks: BackgroundTasks,
) -> ReservationRead:
    result = await reservation_service.create_reservation(
        session,
        consumer_id=actor.id,
        facility_id=payload.facility_id,
        space_id=payload.space_id,
        start_at=payload.start_at,
        end_at=payload.end_at,
        notes=payload.notes,
    )
    background_tasks.add_task(dispatch_service.dispatch_intents, result.intents)
    return ReservationRead.model_validate(result.reservation)


@router.get(
    "/{reservation_id}",
    response_model=ReservationRead,
    summary="Get reservation",
    dependencies=[DEFAULT_RATE_DEP],
)
async def get_reservation(
    reservation_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    actor: Annotated[deps.Actor, Depends(deps.get_current_actor)],
) -> ReservationRead:
    reservation = await reservation_service.get_reservation(
        session,
        reservation_id=reservation_id,
        actor_id=None if actor.is_admin else actor.id,
    )
    return ReservationRead.model_validate(reservation)


@router.post(
    "/{reservation_id}/confirm",
    response_model=ReservationRead,
    summary="Confirm a paid reservation",
)
async def confirm_reservation(
    reservation_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    actor: Annotated[deps.Actor, Depends(deps.get_current_actor)],
    background_tasks: BackgroundTasks,
) -> ReservationRead:
    result = await reservation_service.confirm_reservation(
        session, reservation_id=reservation_id, actor_id=actor.id
    )
    background_tasks.add_task(dispatch_service.dispatch_intents, result.intents)
    return ReservationRead.model_validate(result.reservation)


@router.post(
    "/{reservation_id}/cancel",
    response_model=ReservationRead,
    summary="Cancel a reservation",
)
async def cancel_reservation(
    reservation_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    actor: Annotated[deps.Actor, Depends(deps.get_current_actor)],
    background_tasks: BackgroundTasks,
    payload: ReservationCancel | None = None,
) -> ReservationRead:
    result = await reservation_service.cancel_reservation(
        session,
        reservation_id=reservation_id,
        actor_id=actor.id,
        reason=payload.reason if payload else None,
    )
    background_tasks.add_task(dispatch_service.dispatch_intents, result.intents)
    return ReservationRead.model_validate(result.reservation)
