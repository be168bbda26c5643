from memory_bank.db.base_class import Base

from .review_mixin import ReviewableResourceMixin


class ConceptMap(ReviewableResourceMixin, Base):
    """Concept map row. ``content`` holds nodes, edges and simplified versions."""

    __tablename__ = "concept_maps"


__all__ = ["ConceptMap"]
