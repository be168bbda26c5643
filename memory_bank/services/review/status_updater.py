import logging
from datetime import datetime, timedelta
from typing import Callable, Optional, Union

from sqlalchemy.ext.asyncio import async_sessionmaker

from memory_bank.crud import review_crud
from memory_bank.models.resource.resource_kind import ResourceKind
from memory_bank.services.review.errors import ReviewError
from memory_bank.services.review.intervals import IntervalPolicy, build_interval_policy
from memory_bank.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


def coerce_resource_kind(resource_type: Union[ResourceKind, str]) -> ResourceKind:
    try:
        return ResourceKind(resource_type)
    except ValueError as exc:
        raise ReviewError("unknown_resource_type") from exc


def validate_score(score: int, total: int) -> float:
    """Return ``score / total`` or raise ``ReviewError('invalid_score')``."""
    for value in (score, total):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ReviewError("invalid_score")
    if total <= 0 or score < 0 or score > total:
        raise ReviewError("invalid_score")
    return score / total


def _prior_interval_days(last_reviewed_at: Optional[datetime], next_review_at: Optional[datetime]) -> Optional[float]:
    if last_reviewed_at is None or next_review_at is None:
        return None
    return (next_review_at - last_reviewed_at).total_seconds() / 86400


class ReviewStatusUpdater:
    """Persist the outcome of one review and schedule the next one."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        user_id: str,
        *,
        policy: Optional[IntervalPolicy] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.user_id = user_id
        self.policy = policy or build_interval_policy()
        self.clock = clock

    async def update_resource_review_status(
        self,
        resource_id: str,
        score: int,
        total: int,
        resource_type: Union[ResourceKind, str],
    ) -> bool:
        """Record a review of ``resource_id``.

        Returns ``False`` when the resource does not exist for this user.
        Database errors propagate and leave the row untouched.
        """
        ratio = validate_score(score, total)
        kind = coerce_resource_kind(resource_type)

        async with self.session_factory() as db, db.begin():
            state = await review_crud.get_review_state(db, kind, resource_id, self.user_id)
            if state is None:
                logger.warning("No %s %s found for user %s; review not recorded", kind.value, resource_id, self.user_id)
                return False

            prior_count = state["review_count"] or 0
            prior_interval = _prior_interval_days(state["last_reviewed_at"], state["next_review_at"])
            interval_days = self.policy(ratio, prior_count, prior_interval)

            now = self.clock()
            next_review_at = now + timedelta(days=interval_days)
            updated = await review_crud.apply_review_update(
                db,
                kind,
                resource_id,
                self.user_id,
                reviewed_at=now,
                next_review_at=next_review_at,
            )

        if not updated:
            logger.warning("Review update for %s %s matched no rows", kind.value, resource_id)
            return False

        logger.info(
            "Reviewed %s %s: score %s/%s, next review in %.1f days (%s)",
            kind.value,
            resource_id,
            score,
            total,
            interval_days,
            next_review_at.isoformat(),
        )
        return True


__all__ = ["ReviewStatusUpdater", "coerce_resource_kind", "validate_score"]
