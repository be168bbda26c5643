from .review_schema import (
    AdvanceSessionRequest,
    CompletedReview,
    ConceptMapResource,
    DueSummary,
    FlashcardResource,
    MultipleChoiceResource,
    ReviewableResource,
    ReviewResultRequest,
    ReviewResultResponse,
    ReviewSession,
    ReviewSessionRequest,
    SessionSummary,
    StoryboardResource,
)

__all__ = [
    "AdvanceSessionRequest",
    "CompletedReview",
    "ConceptMapResource",
    "DueSummary",
    "FlashcardResource",
    "MultipleChoiceResource",
    "ReviewableResource",
    "ReviewResultRequest",
    "ReviewResultResponse",
    "ReviewSession",
    "ReviewSessionRequest",
    "SessionSummary",
    "StoryboardResource",
]
