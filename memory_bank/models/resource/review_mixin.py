"""Columns shared by every reviewable resource table."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column


class ReviewableResourceMixin:
    """Identity, ownership, raw content and spaced-repetition metadata."""

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Kind-specific payload. Older rows store it as a JSON-encoded string.
    content: Mapped[Any] = mapped_column(JSON, nullable=True)
    deck_id: Mapped[Optional[str]] = mapped_column(String(64), index=True, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    last_reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    next_review_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True)
    review_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(id={self.id!r}, title={self.title!r}, next_review_at={self.next_review_at})>"


__all__ = ["ReviewableResourceMixin"]
