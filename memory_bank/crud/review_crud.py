"""Storage queries used by the review scheduler.

All functions take an ``AsyncSession`` and are scoped to a single user. They
never swallow database errors: ``SQLAlchemyError`` propagates to the caller.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from memory_bank.models.resource.resource_kind import ResourceKind, get_resource_model
from memory_bank.models.resource.review_mixin import ReviewableResourceMixin

logger = logging.getLogger(__name__)


def row_to_dict(resource: ReviewableResourceMixin) -> Dict[str, Any]:
    """Flatten a mapped row into the plain column mapping the normalizers expect."""
    return {column.key: getattr(resource, column.key) for column in type(resource).__table__.columns}


def _due_clause(model, now: datetime):
    return or_(model.next_review_at.is_(None), model.next_review_at <= now)


# ==============================================================================
# READS
# ==============================================================================

async def fetch_review_candidates(
    db: AsyncSession,
    kind: ResourceKind,
    user_id: str,
    *,
    now: datetime,
    include_not_due: bool = False,
) -> List[Dict[str, Any]]:
    """Return the raw rows of ``kind`` eligible for a review session.

    Without ``include_not_due`` only due rows are returned (no schedule yet, or
    a schedule that has already passed).
    """
    model = get_resource_model(kind)
    stmt = select(model).where(model.user_id == user_id)
    if not include_not_due:
        stmt = stmt.where(_due_clause(model, now))
    stmt = stmt.order_by(model.created_at.asc(), model.id.asc())

    result = await db.execute(stmt)
    rows = [row_to_dict(resource) for resource in result.scalars().all()]
    logger.debug("Fetched %s %s candidate rows for user %s", len(rows), kind.value, user_id)
    return rows


async def count_due_resources(db: AsyncSession, kind: ResourceKind, user_id: str, *, now: datetime) -> int:
    model = get_resource_model(kind)
    stmt = (
        select(func.count())
        .select_from(model)
        .where(model.user_id == user_id)
        .where(_due_clause(model, now))
    )
    result = await db.execute(stmt)
    return int(result.scalar_one())


async def get_review_state(
    db: AsyncSession, kind: ResourceKind, resource_id: str, user_id: str
) -> Optional[Dict[str, Any]]:
    """Return the review metadata of one resource, or ``None`` if it does not exist."""
    model = get_resource_model(kind)
    stmt = select(model.review_count, model.last_reviewed_at, model.next_review_at).where(
        model.id == resource_id, model.user_id == user_id
    )
    result = await db.execute(stmt)
    row = result.first()
    if row is None:
        return None
    return {
        "review_count": row.review_count,
        "last_reviewed_at": row.last_reviewed_at,
        "next_review_at": row.next_review_at,
    }


# ==============================================================================
# WRITES
# ==============================================================================

async def apply_review_update(
    db: AsyncSession,
    kind: ResourceKind,
    resource_id: str,
    user_id: str,
    *,
    reviewed_at: datetime,
    next_review_at: datetime,
) -> int:
    """Write the three review fields of one resource and return the matched row count.

    The counter is incremented in SQL so rapid successive updates never lose a
    review.
    """
    model = get_resource_model(kind)
    stmt = (
        update(model)
        .where(model.id == resource_id, model.user_id == user_id)
        .values(
            last_reviewed_at=reviewed_at,
            next_review_at=next_review_at,
            review_count=model.review_count + 1,
        )
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    return result.rowcount


async def create_resource(
    db: AsyncSession,
    kind: ResourceKind,
    *,
    user_id: str,
    title: str,
    content: Any,
    description: Optional[str] = None,
    deck_id: Optional[str] = None,
    resource_id: Optional[str] = None,
    created_at: Optional[datetime] = None,
    last_reviewed_at: Optional[datetime] = None,
    next_review_at: Optional[datetime] = None,
    review_count: int = 0,
) -> ReviewableResourceMixin:
    """Insert a new resource row. The caller owns the transaction."""
    model = get_resource_model(kind)
    values: Dict[str, Any] = {
        "id": resource_id or str(uuid.uuid4()),
        "user_id": user_id,
        "title": title,
        "description": description,
        "content": content,
        "deck_id": deck_id,
        "last_reviewed_at": last_reviewed_at,
        "next_review_at": next_review_at,
        "review_count": review_count,
        "created_at": created_at or datetime.now(timezone.utc),
    }

    resource = model(**values)
    db.add(resource)
    await db.flush()
    return resource


__all__ = [
    "apply_review_update",
    "count_due_resources",
    "create_resource",
    "fetch_review_candidates",
    "get_review_state",
    "row_to_dict",
]
