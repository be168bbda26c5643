import enum
from typing import Dict, Type

from .concept_map_model import ConceptMap
from .flashcard_model import Flashcard
from .multiple_choice_model import MultipleChoiceQuestion
from .review_mixin import ReviewableResourceMixin
from .storyboard_model import Storyboard


class ResourceKind(str, enum.Enum):
    CONCEPT_MAP = "concept-map"
    FLASHCARD = "flashcard"
    MULTIPLE_CHOICE = "multiple-choice"
    STORYBOARD = "storyboard"


RESOURCE_MODELS: Dict[ResourceKind, Type[ReviewableResourceMixin]] = {
    ResourceKind.CONCEPT_MAP: ConceptMap,
    ResourceKind.FLASHCARD: Flashcard,
    ResourceKind.MULTIPLE_CHOICE: MultipleChoiceQuestion,
    ResourceKind.STORYBOARD: Storyboard,
}


def get_resource_model(kind: ResourceKind | str) -> Type[ReviewableResourceMixin]:
    """Return the mapped table class for ``kind``.

    Raises ``ValueError`` for unknown kinds.
    """
    return RESOURCE_MODELS[ResourceKind(kind)]



__all__ = ["ResourceKind", "RESOURCE_MODELS", "get_resource_model"]
