from .errors import ReviewError
from .intervals import (
    BinaryIntervalPolicy,
    GrowthIntervalPolicy,
    IntervalPolicy,
    build_interval_policy,
    calculate_standardized_performance,
)
from .normalizers import (
    normalize_resource,
    process_concept_map_data,
    process_flashcard_data,
    process_multiple_choice_data,
    process_storyboard_data,
)
from .queue_builder import ReviewQueueBuilder
from .session_progress import record_review_result, summarize_session
from .status_updater import ReviewStatusUpdater
from .weights import DEFAULT_REVIEW_WEIGHTS, freeze_weights

__all__ = [
    "BinaryIntervalPolicy",
    "DEFAULT_REVIEW_WEIGHTS",
    "GrowthIntervalPolicy",
    "IntervalPolicy",
    "ReviewError",
    "ReviewQueueBuilder",
    "ReviewStatusUpdater",
    "build_interval_policy",
    "calculate_standardized_performance",
    "freeze_weights",
    "normalize_resource",
    "process_concept_map_data",
    "process_flashcard_data",
    "process_multiple_choice_data",
    "process_storyboard_data",
    "record_review_result",
    "summarize_session",
]
