"""Budget cost of each resource kind inside a review session."""

from types import MappingProxyType
from typing import Mapping

from memory_bank.models.resource.resource_kind import ResourceKind

# Concept maps and storyboards take roughly twice as long to review.
DEFAULT_REVIEW_WEIGHTS: Mapping[ResourceKind, int] = MappingProxyType(
    {
        ResourceKind.CONCEPT_MAP: 2,
        ResourceKind.STORYBOARD: 2,
        ResourceKind.FLASHCARD: 1,
        ResourceKind.MULTIPLE_CHOICE: 1,
    }
)


def freeze_weights(weights: Mapping[ResourceKind | str, int]) -> Mapping[ResourceKind, int]:
    """Validate ``weights`` and return a read-only copy keyed by ``ResourceKind``.

    Every kind must be present with a positive integer weight.
    """

    frozen = {ResourceKind(kind): int(weight) for kind, weight in weights.items()}
    missing = set(ResourceKind) - set(frozen)
    if missing:
        names = ", ".join(sorted(kind.value for kind in missing))
        raise ValueError(f"missing review weight for: {names}")
    invalid = [kind.value for kind, weight in frozen.items() if weight <= 0]
    if invalid:
        raise ValueError(f"review weights must be positive: {', '.join(sorted(invalid))}")
    return MappingProxyType(frozen)


__all__ = ["DEFAULT_REVIEW_WEIGHTS", "freeze_weights"]
