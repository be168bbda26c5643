from memory_bank.models.resource import (
    ConceptMap,
    Flashcard,
    MultipleChoiceQuestion,
    ResourceKind,
    Storyboard,
)

__all__ = [
    "ConceptMap",
    "Flashcard",
    "MultipleChoiceQuestion",
    "ResourceKind",
    "Storyboard",
]
