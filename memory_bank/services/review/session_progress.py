"""Advance a review session one resource at a time."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from memory_bank.schemas.review.review_schema import CompletedReview, ReviewSession, SessionSummary
from memory_bank.services.review.errors import ReviewError
from memory_bank.services.review.status_updater import ReviewStatusUpdater, validate_score
from memory_bank.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


async def record_review_result(
    session: ReviewSession,
    score: int,
    total: int,
    updater: ReviewStatusUpdater,
    *,
    hints_used: bool = False,
    clock: Callable[[], datetime] = utcnow,
) -> ReviewSession:
    """Score the current resource of ``session`` and move the cursor forward.

    The input session is not mutated; a new one is returned. A resource that is
    already in the completion log (client retry) only moves the cursor.
    Raises ``ReviewError('session_mismatch')`` when the current resource cannot
    be updated for the updater's user.
    """

    if session.is_complete:
        raise ReviewError("session_complete")
    validate_score(score, total)

    resource = session.current_resource()
    kind = session.resource_types[session.current_index]
    # Ids are only unique within a kind.
    already_done = any(
        (entry.resource_id, entry.resource_type) == (resource.id, kind) for entry in session.completed
    )

    completed = list(session.completed)
    if already_done:
        logger.info("Resource %s already scored in session %s; advancing only", resource.id, session.session_id)
    else:
        completed.append(
            CompletedReview(
                resource_id=resource.id,
                resource_type=kind,
                score=score,
                total=total,
                completed_at=clock(),
                hints_used=hints_used,
            )
        )
        recorded = await updater.update_resource_review_status(resource.id, score, total, kind)
        if not recorded:
            # The resource is gone or belongs to another user.
            raise ReviewError("session_mismatch", status_code=409)

    return session.model_copy(update={"completed": completed, "current_index": session.current_index + 1})


def summarize_session(session: ReviewSession) -> SessionSummary:
    reviewed = len(session.completed)
    ratios = [entry.score / entry.total for entry in session.completed]
    return SessionSummary(
        reviewed=reviewed,
        remaining=max(len(session.resources) - session.current_index, 0),
        perfect=sum(1 for entry in session.completed if entry.score == entry.total),
        average_ratio=round(sum(ratios) / reviewed, 4) if reviewed else None,
        hints_used=sum(1 for entry in session.completed if entry.hints_used),
    )


__all__ = ["record_review_result", "summarize_session"]
