from memory_bank.db.base_class import Base

from .review_mixin import ReviewableResourceMixin


class Storyboard(ReviewableResourceMixin, Base):
    """Storyboard row. ``content`` holds the ordered scene list."""

    __tablename__ = "storyboards"


__all__ = ["Storyboard"]
