from .concept_map_model import ConceptMap
from .flashcard_model import Flashcard
from .multiple_choice_model import MultipleChoiceQuestion
from .resource_kind import RESOURCE_MODELS, ResourceKind, get_resource_model
from .storyboard_model import Storyboard

__all__ = [
    "ConceptMap",
    "Flashcard",
    "MultipleChoiceQuestion",
    "Storyboard",
    "ResourceKind",
    "RESOURCE_MODELS",
    "get_resource_model",
]
