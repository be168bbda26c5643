"""Utility helpers for test factories."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from memory_bank.crud import review_crud
from memory_bank.models.resource.resource_kind import ResourceKind

DEFAULT_CONTENT: dict[ResourceKind, dict[str, Any]] = {
    ResourceKind.CONCEPT_MAP: {
        "nodes": [
            {"id": "n1", "data": {"label": "Cell"}, "position": {"x": 0, "y": 0}},
            {"id": "n2", "data": {"label": "Nucleus"}, "position": {"x": 100, "y": 40}},
        ],
        "edges": [{"id": "e1", "source": "n1", "target": "n2", "label": "contains"}],
        "complexity": 2,
    },
    ResourceKind.FLASHCARD: {"front": "Capital of France?", "back": "Paris", "tags": ["geo"]},
    ResourceKind.MULTIPLE_CHOICE: {
        "question": "2 + 2 = ?",
        "options": ["3", "4", "5"],
        "correctOptionIndex": 1,
        "explanation": "Basic arithmetic.",
    },
    ResourceKind.STORYBOARD: {
        "scenes": [
            {"title": "Arrival", "content_text": "The ship lands.", "icon_search": ["ship"]},
        ]
    },
}


def days_before(moment: datetime, days: float) -> datetime:
    return moment - timedelta(days=days)


async def create_review_resource(
    session_factory,
    kind: ResourceKind,
    *,
    user_id: str = "user-1",
    title: str | None = None,
    content: Any = ...,
    **kwargs,
) -> str:
    """Insert one resource in its own transaction and return its id."""

    payload = dict(DEFAULT_CONTENT[kind]) if content is ... else content
    async with session_factory() as db, db.begin():
        resource = await review_crud.create_resource(
            db,
            kind,
            user_id=user_id,
            title=title or f"{kind.value} resource",
            content=payload,
            **kwargs,
        )
        return resource.id


async def load_review_state(session_factory, kind: ResourceKind, resource_id: str, user_id: str = "user-1"):
    async with session_factory() as db:
        return await review_crud.get_review_state(db, kind, resource_id, user_id)
