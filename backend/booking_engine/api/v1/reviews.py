"""Review endpoints."""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.api import deps
from booking_engine.api.rate_limit import DEFAULT_RATE_DEP
from booking_engine.models.review import ReviewType
from booking_engine.schemas.review import (
    ReviewCreate,
    ReviewRead,
    ReviewReportCreate,
    ReviewReportRead,
    ReviewStatsRead,
    ReviewVisibilityUpdate,
)
from booking_engine.services import dispatch_service, review_service

router = APIRouter()


@router.post(
    "",
    response_model=ReviewRead,
    status_code=status.HTTP_201_CREATED,
    summary="Review a completed reservation",
    dependencies=[DEFAULT_RATE_DEP],
)
async def create_review(
    payload: ReviewCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    actor: Annotated[deps.Actor, Depends(deps.get_current_actor)],
    background_tasks: BackgroundTasks,
) -> ReviewRead:
    result = await review_service.create_review(
        session,
        reservation_id=payload.reservation_id,
        reviewer_id=actor.id,
        reviewee_id=payload.reviewee_id,
        review_type=payload.review_type,
        overall_rating=payload.overall_rating,
        category_ratings=payload.category_ratings,
        comment=payload.comment,
        photos=payload.photos,
    )
    background_tasks.add_task(dispatch_service.dispatch_intents, result.intents)
    return ReviewRead.model_validate(result.review)


@router.get("", response_model=list[ReviewRead], summary="List visible reviews")
async def list_reviews(
    reviewee_id: str,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    review_type: ReviewType | None = None,
    skip: int = 0,
    limit: int = 20,
) -> list[ReviewRead]:
    reviews = await review_service.list_reviews(
        session,
        reviewee_id=reviewee_id,
        review_type=review_type,
        skip=max(skip, 0),
        limit=min(max(limit, 1), 100),
    )
    return [ReviewRead.model_validate(obj) for obj in reviews]


@router.get("/stats", response_model=ReviewStatsRead, summary="Rating statistics")
async def review_stats(
    reviewee_id: str,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    review_type: ReviewType | None = None,
) -> ReviewStatsRead:
    stats = await review_service.review_stats(
        session, reviewee_id=reviewee_id, review_type=review_type
    )
    return ReviewStatsRead.model_validate(stats)


@router.post(
    "/{review_id}/report",
    response_model=ReviewReportRead,
    status_code=status.HTTP_201_CREATED,
    summary="Report a review",
)
async def report_review(
    review_id: uuid.UUID,
    payload: ReviewReportCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    actor: Annotated[deps.Actor, Depends(deps.get_current_actor)],
) -> ReviewReportRead:
    report = await review_service.report_review(
        session, review_id=review_id, reporter_id=actor.id, reason=payload.reason
    )
    return ReviewReportRead.model_validate(report)


@router.patch(
    "/{review_id}/visibility",
    response_model=ReviewRead,
    summary="Hide or unhide a review",
)
async def set_review_visibility(
    review_id: uuid.UUID,
    payload: ReviewVisibilityUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    actor: Annotated[deps.Actor, Depends(deps.require_admin)],
    background_tasks: BackgroundTasks,
) -> ReviewRead:
    result = await review_service.set_review_visibility(
        session, review_id=review_id, is_hidden=payload.is_hidden, actor_id=actor.id
    )
    background_tasks.add_task(dispatch_service.dispatch_intents, result.intents)
    return ReviewRead.model_validate(result.review)


@router.delete(
    "/{review_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a review",
)
async def delete_review(
    review_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    actor: Annotated[deps.Actor, Depends(deps.require_admin)],
    background_tasks: BackgroundTasks,
) -> Response:
    intents = await review_service.delete_review(
        session, review_id=review_id, actor_id=actor.id
    )
    background_tasks.add_task(dispatch_service.dispatch_intents, intents)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
