from memory_bank.db.base_class import Base

from .review_mixin import ReviewableResourceMixin


class Flashcard(ReviewableResourceMixin, Base):
    """Flashcard row. ``content`` holds ``front``/``back`` plus tags."""

    __tablename__ = "flashcards"


__all__ = ["Flashcard"]
