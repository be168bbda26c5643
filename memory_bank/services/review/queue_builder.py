"""Build mixed review sessions across the four resource kinds."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Iterable, List, Mapping, TypeVar

from sqlalchemy.ext.asyncio import async_sessionmaker

from memory_bank.crud import review_crud
from memory_bank.models.resource.resource_kind import ResourceKind
from memory_bank.schemas.review.review_schema import DueSummary, ReviewResourceBase, ReviewSession
from memory_bank.services.review.errors import ReviewError
from memory_bank.services.review.normalizers import normalize_resource
from memory_bank.services.review.weights import DEFAULT_REVIEW_WEIGHTS, freeze_weights
from memory_bank.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

KIND_ORDER = {kind: position for position, kind in enumerate(ResourceKind)}

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class ReviewCandidate:
    kind: ResourceKind
    weight: int
    resource: ReviewResourceBase


def urgency_key(candidate: ReviewCandidate) -> tuple:
    """Sort key: never-scheduled first, then oldest due date, then oldest creation."""

    resource = candidate.resource
    never_scheduled = resource.next_review_at is None
    return (
        0 if never_scheduled else 1,
        resource.next_review_at or resource.created_at,
        resource.created_at,
        KIND_ORDER[candidate.kind],
        resource.id,
    )


async def gather_or_cancel(*aws: Awaitable[T]) -> List[T]:
    """Run ``aws`` concurrently; on the first failure cancel the rest and re-raise it."""

    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def select_within_budget(candidates: Iterable[ReviewCandidate], limit: int) -> List[ReviewCandidate]:
    """Greedily take candidates in order while their weight still fits in ``limit``.

    A candidate too heavy for the remaining budget is skipped and the walk
    continues, so a lighter item further down can still use the space.
    """

    selected: List[ReviewCandidate] = []
    remaining = limit
    for candidate in candidates:
        if remaining <= 0:
            break
        if candidate.weight > remaining:
            continue
        selected.append(candidate)
        remaining -= candidate.weight
    return selected


class ReviewQueueBuilder:
    """Assemble a bounded, weighted review session for one user."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        user_id: str,
        *,
        weights: Mapping[ResourceKind, int] = DEFAULT_REVIEW_WEIGHTS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.user_id = user_id
        self.weights = freeze_weights(weights)
        self.clock = clock

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def generate_combined_review_queue(self, limit: int, force_review: bool = False) -> ReviewSession:
        """Return a session whose total weight does not exceed ``limit``.

        ``limit`` is a weight budget, not an item count. With ``force_review``
        every resource of the user is eligible, due or not. An empty session is
        a valid result.
        """

        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
            raise ReviewError("invalid_limit")

        now = self.clock()
        logger.info(
            "Building review queue for user %s (limit=%s, force_review=%s)",
            self.user_id,
            limit,
            force_review,
        )

        pool = await self._collect_candidates(now, include_not_due=force_review)
        pool.sort(key=urgency_key)
        selected = select_within_budget(pool, limit)

        session = ReviewSession(
            session_id=str(uuid.uuid4()),
            created_at=now,
            resources=[candidate.resource for candidate in selected],
            resource_types=[candidate.kind for candidate in selected],
            current_index=0,
            completed=[],
            is_force_review=force_review,
            total_weight=sum(candidate.weight for candidate in selected),
        )

        breakdown = Counter(candidate.kind.value for candidate in selected)
        logger.info(
            "Review session %s: %s of %s candidates selected, weight %s/%s, by type %s",
            session.session_id,
            len(selected),
            len(pool),
            session.total_weight,
            limit,
            dict(breakdown),
        )
        return session

    async def count_due_resources(self) -> DueSummary:
        """Count the resources currently due, per kind."""

        now = self.clock()

        async def _count(kind: ResourceKind) -> int:
            async with self.session_factory() as db:
                return await review_crud.count_due_resources(db, kind, self.user_id, now=now)

        kinds = list(ResourceKind)
        counts = await gather_or_cancel(*(_count(kind) for kind in kinds))
        by_type = dict(zip(kinds, counts))
        return DueSummary(total=sum(counts), by_type=by_type)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _collect_candidates(self, now: datetime, *, include_not_due: bool) -> List[ReviewCandidate]:
        kinds = list(ResourceKind)
        # One session per kind: the reads touch disjoint tables and run side by side.
        batches = await gather_or_cancel(
            *(self._fetch_kind(kind, now, include_not_due) for kind in kinds)
        )

        pool: List[ReviewCandidate] = []
        for kind, batch in zip(kinds, batches):
            logger.debug("%s usable %s candidates", len(batch), kind.value)
            pool.extend(batch)
        return pool

    async def _fetch_kind(self, kind: ResourceKind, now: datetime, include_not_due: bool) -> List[ReviewCandidate]:
        async with self.session_factory() as db:
            rows = await review_crud.fetch_review_candidates(
                db,
                kind,
                self.user_id,
                now=now,
                include_not_due=include_not_due,
            )

        weight = self.weights[kind]
        candidates: List[ReviewCandidate] = []
        for row in rows:
            resource = normalize_resource(kind, row)
            if resource is None:
                continue
            candidates.append(ReviewCandidate(kind=kind, weight=weight, resource=resource))

        skipped = len(rows) - len(candidates)
        if skipped:
            logger.warning("Skipped %s malformed %s rows for user %s", skipped, kind.value, self.user_id)
        return candidates


__all__ = [
    "ReviewCandidate",
    "ReviewQueueBuilder",
    "gather_or_cancel",
    "select_within_budget",
    "urgency_key",
]
