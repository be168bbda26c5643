"""Review queue endpoints: build sessions, score resources, report due counts."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import async_sessionmaker

from memory_bank.api.v2.dependencies import CurrentUser, get_current_user, get_session_factory
from memory_bank.core.config import settings
from memory_bank.schemas.review import review_schema
from memory_bank.services.review import (
    ReviewError,
    ReviewQueueBuilder,
    ReviewStatusUpdater,
    record_review_result,
    summarize_session,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def _resolve_session_size(requested: int) -> int:
    """Fall back to the default size for anything the dashboard does not offer."""

    if requested in settings.REVIEW_SESSION_SIZES:
        return requested
    logger.info(
        "Session size %s not in %s; using %s",
        requested,
        settings.REVIEW_SESSION_SIZES,
        settings.REVIEW_DEFAULT_SESSION_SIZE,
    )
    return settings.REVIEW_DEFAULT_SESSION_SIZE


@router.get("/due", response_model=review_schema.DueSummary)
async def get_due_summary(
    session_factory: async_sessionmaker = Depends(get_session_factory),
    current_user: CurrentUser = Depends(get_current_user),
):
    builder = ReviewQueueBuilder(session_factory, current_user.id)
    return await builder.count_due_resources()


@router.post("/sessions", response_model=review_schema.ReviewSession)
async def create_review_session(
    payload: review_schema.ReviewSessionRequest,
    session_factory: async_sessionmaker = Depends(get_session_factory),
    current_user: CurrentUser = Depends(get_current_user),
):
    builder = ReviewQueueBuilder(session_factory, current_user.id)
    try:
        return await builder.generate_combined_review_queue(
            _resolve_session_size(payload.limit),
            force_review=payload.force_review,
        )
    except ReviewError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.code) from exc


@router.post("/sessions/advance", response_model=review_schema.ReviewSession)
async def advance_review_session(
    payload: review_schema.AdvanceSessionRequest,
    session_factory: async_sessionmaker = Depends(get_session_factory),
    current_user: CurrentUser = Depends(get_current_user),
):
    updater = ReviewStatusUpdater(session_factory, current_user.id)
    try:
        return await record_review_result(
            payload.session,
            payload.score,
            payload.total,
            updater,
            hints_used=payload.hints_used,
        )
    except ReviewError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.code) from exc


@router.post("/sessions/summary", response_model=review_schema.SessionSummary)
async def get_session_summary(
    session: review_schema.ReviewSession,
    current_user: CurrentUser = Depends(get_current_user),  # noqa: ARG001 - auth only
):
    return summarize_session(session)


@router.post("/results", response_model=review_schema.ReviewResultResponse)
async def submit_review_result(
    payload: review_schema.ReviewResultRequest,
    session_factory: async_sessionmaker = Depends(get_session_factory),
    current_user: CurrentUser = Depends(get_current_user),
):
    updater = ReviewStatusUpdater(session_factory, current_user.id)
    try:
        success = await updater.update_resource_review_status(
            payload.resource_id,
            payload.score,
            payload.total,
            payload.resource_type,
        )
    except ReviewError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.code) from exc
    return review_schema.ReviewResultResponse(success=success)
