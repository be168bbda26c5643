from memory_bank.db.base_class import Base

from .review_mixin import ReviewableResourceMixin


class MultipleChoiceQuestion(ReviewableResourceMixin, Base):
    """Multiple-choice question row. ``content`` holds question and options."""

    __tablename__ = "multiple_choice_questions"


__all__ = ["MultipleChoiceQuestion"]
