"""Operational triggers for the lifecycle sweeps."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.api import deps
from booking_engine.schemas.sweep import SweepReport
from booking_engine.services import dispatch_service, sweep_service

router = APIRouter()


@router.post(
    "/sweeps/progress",
    response_model=SweepReport,
    summary="Start and complete due reservations",
)
async def run_progress_sweep(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _: Annotated[deps.Actor, Depends(deps.require_admin)],
    background_tasks: BackgroundTasks,
) -> SweepReport:
    result = await sweep_service.run_progress_sweeps(session)
    background_tasks.add_task(dispatch_service.dispatch_intents, result.intents)
    return SweepReport(processed=result.processed, skipped=result.skipped)


@router.post(
    "/sweeps/expire", response_model=SweepReport, summary="Expire unpaid reservations"
)
async def run_expiry_sweep(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _: Annotated[deps.Actor, Depends(deps.require_admin)],
    background_tasks: BackgroundTasks,
) -> SweepReport:
    result = await sweep_service.expire_unpaid_reservations(session)
    background_tasks.add_task(dispatch_service.dispatch_intents, result.intents)
    return SweepReport(processed=result.processed, skipped=result.skipped)


@router.post(
    "/sweeps/reminders",
    response_model=SweepReport,
    summary="Send booking and review reminders",
)
async def run_reminder_sweep(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _: Annotated[deps.Actor, Depends(deps.require_admin)],
    background_tasks: BackgroundTasks,
) -> SweepReport:
    result = await sweep_service.run_reminder_sweeps(session)
    background_tasks.add_task(dispatch_service.dispatch_intents, result.intents)
    return SweepReport(processed=result.processed, skipped=result.skipped)
