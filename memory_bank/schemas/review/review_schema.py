"""Pydantic schemas for reviewable resources and review sessions.

The four resource kinds form a tagged union on ``kind``: the queue builder and
the status updater branch on that tag and never on the Python type.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from memory_bank.models.resource.resource_kind import ResourceKind


# ---------------------------------------------------------------------------
# Concept map payload
# ---------------------------------------------------------------------------
class NodePosition(BaseModel):
    x: float = 0
    y: float = 0


class ConceptNode(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = ""
    label: str
    position: NodePosition = Field(default_factory=NodePosition)


class ConceptEdge(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = ""
    source: str = ""
    target: str = ""
    label: str


class ConceptMapVersion(BaseModel):
    """A simplified rendition of the map used at a given review level."""

    model_config = ConfigDict(extra="allow")

    level: int = 0
    nodes: List[ConceptNode] = Field(default_factory=list)
    edges: List[ConceptEdge] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Storyboard payload
# ---------------------------------------------------------------------------
class IconSearchTerm(BaseModel):
    primary_term: str
    alternative_terms: List[str] = Field(default_factory=list)


class SceneIcon(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    term: str
    preview_url: Optional[str] = None
    is_placeholder: bool = False
    title_initial: Optional[str] = None


class StoryboardScene(BaseModel):
    title: str
    content_text: str
    icon_search: List[IconSearchTerm] = Field(default_factory=list)
    selected_icon: Optional[SceneIcon] = None


# ---------------------------------------------------------------------------
# Reviewable resources
# ---------------------------------------------------------------------------
class ReviewResourceBase(BaseModel):
    """Fields every kind shares: identity plus review metadata."""

    id: str
    title: str
    description: str = ""
    created_at: datetime
    last_reviewed_at: Optional[datetime] = None
    next_review_at: Optional[datetime] = None
    review_count: int = Field(default=0, ge=0)
    deck_id: Optional[str] = None


class ConceptMapResource(ReviewResourceBase):
    kind: Literal["concept-map"] = "concept-map"
    nodes: List[ConceptNode] = Field(default_factory=list)
    edges: List[ConceptEdge] = Field(default_factory=list)
    versions: List[ConceptMapVersion] = Field(default_factory=list)
    complexity: int = 3


class FlashcardResource(ReviewResourceBase):
    kind: Literal["flashcard"] = "flashcard"
    front: str = ""
    back: str = ""
    tags: List[str] = Field(default_factory=list)
    difficulty: int = 1


class MultipleChoiceResource(ReviewResourceBase):
    kind: Literal["multiple-choice"] = "multiple-choice"
    question: str = ""
    options: List[str] = Field(default_factory=list)
    correct_option_index: int = 0
    explanation: str = ""
    tags: List[str] = Field(default_factory=list)
    difficulty: int = 1


class StoryboardResource(ReviewResourceBase):
    kind: Literal["storyboard"] = "storyboard"
    scenes: List[StoryboardScene] = Field(default_factory=list)


ReviewableResource = Annotated[
    Union[ConceptMapResource, FlashcardResource, MultipleChoiceResource, StoryboardResource],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------
class CompletedReview(BaseModel):
    """One entry of the append-only completion log of a session."""

    resource_id: str
    resource_type: ResourceKind
    score: int = Field(ge=0)
    total: int = Field(gt=0)
    completed_at: datetime
    hints_used: bool = False


class ReviewSession(BaseModel):
    """An ordered, bounded batch of resources presented in one sitting."""

    session_id: str
    created_at: datetime
    resources: List[ReviewableResource] = Field(default_factory=list)
    resource_types: List[ResourceKind] = Field(default_factory=list)
    current_index: int = Field(default=0, ge=0)
    completed: List[CompletedReview] = Field(default_factory=list)
    is_force_review: bool = False
    total_weight: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _check_alignment(self) -> "ReviewSession":
        if len(self.resources) != len(self.resource_types):
            raise ValueError("resources and resource_types must have the same length")
        for resource, kind in zip(self.resources, self.resource_types):
            if resource.kind != kind.value:
                raise ValueError(f"resource {resource.id} is tagged {kind.value} but is a {resource.kind}")
        if self.current_index > len(self.resources):
            raise ValueError("current_index is past the end of the session")
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_complete(self) -> bool:
        return self.current_index >= len(self.resources)

    def current_resource(self) -> ReviewResourceBase | None:
        if self.is_complete:
            return None
        return self.resources[self.current_index]


# ---------------------------------------------------------------------------
# API payloads
# ---------------------------------------------------------------------------
class ReviewSessionRequest(BaseModel):
    limit: int = Field(default=5, ge=0)
    force_review: bool = False


class ReviewResultRequest(BaseModel):
    resource_id: str
    resource_type: ResourceKind
    score: int = Field(ge=0)
    total: int = Field(gt=0)

    @model_validator(mode="after")
    def _score_within_total(self) -> "ReviewResultRequest":
        if self.score > self.total:
            raise ValueError("score cannot exceed total")
        return self


class AdvanceSessionRequest(BaseModel):
    session: ReviewSession
    score: int = Field(ge=0)
    total: int = Field(gt=0)
    hints_used: bool = False


class ReviewResultResponse(BaseModel):
    success: bool


class DueSummary(BaseModel):
    total: int
    by_type: Dict[ResourceKind, int] = Field(default_factory=dict)


class SessionSummary(BaseModel):
    reviewed: int
    remaining: int
    perfect: int
    average_ratio: Optional[float] = None
    hints_used: int = 0
