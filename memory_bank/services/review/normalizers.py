"""Turn raw resource rows into typed review resources.

Every processor takes a row mapping (database columns plus a ``content``
payload that may be a dict or a JSON string) and returns the matching
resource schema, or ``None`` when the row cannot be used. Missing nested
fields are replaced by safe defaults so one sloppy item never takes the whole
batch down with it. The processors never raise.
"""

from __future__ import annotations

import functools
import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from pydantic import ValidationError

from memory_bank.models.resource.resource_kind import ResourceKind
from memory_bank.schemas.review.review_schema import (
    ConceptMapResource,
    FlashcardResource,
    MultipleChoiceResource,
    ReviewResourceBase,
    StoryboardResource,
)

logger = logging.getLogger(__name__)

DEFAULT_NODE_LABEL = "Unnamed Concept"
DEFAULT_EDGE_LABEL = "relates to"
DEFAULT_SCENE_TEXT = "Content not available"


class InvalidResourceRow(ValueError):
    """Raised internally when a row is structurally unusable."""


# ------------------------------------------------------------------
# Scalar helpers
# ------------------------------------------------------------------
def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse ``value`` into an aware UTC datetime.

    Accepts ``datetime`` instances and ISO-8601 strings (``Z`` suffix
    included). Naive values are interpreted as UTC. ``None`` and empty strings
    map to ``None``; anything else raises ``ValueError``.
    """

    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"unsupported timestamp value: {value!r}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _text(value: Any, default: str = "") -> str:
    if isinstance(value, str) and value.strip():
        return value
    return default


def _int(value: Any, default: int) -> int:
    """Return ``value`` as an int, or ``default`` when it is falsy or not numeric."""

    if isinstance(value, bool) or not value:
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return default
    return default


def _number(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    return 0.0


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if isinstance(item, (str, int, float)) and not isinstance(item, bool)]


def _review_count(value: Any) -> int:
    count = _int(value, 0)
    return count if count > 0 else 0


# ------------------------------------------------------------------
# Row-level helpers
# ------------------------------------------------------------------
def _load_content(row: Mapping[str, Any]) -> Dict[str, Any]:
    content = row.get("content")
    if content is None:
        raise InvalidResourceRow("missing content")

    if isinstance(content, str):
        try:
            content = json.loads(content)
        except json.JSONDecodeError as exc:
            raise InvalidResourceRow(f"content is not valid JSON ({exc.msg})") from exc

    if not isinstance(content, Mapping):
        raise InvalidResourceRow("content is not an object")
    return dict(content)


def _base_fields(row: Any) -> Dict[str, Any]:
    """Extract and validate the columns every resource kind shares."""

    if not isinstance(row, Mapping):
        raise InvalidResourceRow("row is not a mapping")

    raw_id = row.get("id")
    if raw_id is None or not str(raw_id).strip():
        raise InvalidResourceRow("missing id")

    title = row.get("title")
    if not isinstance(title, str) or not title.strip():
        raise InvalidResourceRow("missing title")

    try:
        created_at = parse_timestamp(row.get("created_at"))
        last_reviewed_at = parse_timestamp(row.get("last_reviewed_at"))
        next_review_at = parse_timestamp(row.get("next_review_at"))
    except ValueError as exc:
        raise InvalidResourceRow(f"invalid timestamp ({exc})") from exc

    if created_at is None:
        raise InvalidResourceRow("missing created_at")

    review_count = _review_count(row.get("review_count"))
    if last_reviewed_at is not None and review_count == 0:
        # A recorded review implies at least one completed review.
        review_count = 1

    floor = last_reviewed_at or created_at
    if next_review_at is not None and next_review_at < floor:
        logger.debug(
            "Resource %s has next_review_at %s before %s, treating it as unscheduled",
            raw_id,
            next_review_at.isoformat(),
            floor.isoformat(),
        )
        next_review_at = None

    deck_id = row.get("deck_id")

    return {
        "id": str(raw_id),
        "title": title,
        "description": _text(row.get("description")),
        "created_at": created_at,
        "last_reviewed_at": last_reviewed_at,
        "next_review_at": next_review_at,
        "review_count": review_count,
        "deck_id": str(deck_id) if deck_id is not None else None,
    }


def _guarded(kind: ResourceKind):
    """Turn structural failures of a processor into ``None`` plus a warning."""

    def decorator(func: Callable[[Mapping[str, Any]], ReviewResourceBase]):
        @functools.wraps(func)
        def wrapper(row: Mapping[str, Any]):
            try:
                return func(row)
            except (InvalidResourceRow, ValidationError, ValueError, TypeError) as exc:
                row_id = row.get("id") if isinstance(row, Mapping) else None
                logger.warning("Skipping %s row %s: %s", kind.value, row_id, exc)
                return None

        return wrapper

    return decorator


# ------------------------------------------------------------------
# Concept maps
# ------------------------------------------------------------------
def _nested_label(item: Mapping[str, Any], default: str) -> str:
    data = item.get("data")
    if isinstance(data, Mapping) and _text(data.get("label")):
        return data["label"]
    return _text(item.get("label"), default)


def _normalize_nodes(raw_nodes: Any) -> List[Dict[str, Any]]:
    nodes: List[Dict[str, Any]] = []
    if not isinstance(raw_nodes, list):
        return nodes
    for node in raw_nodes:
        if not isinstance(node, Mapping):
            continue
        position = node.get("position")
        if isinstance(position, Mapping):
            position = {"x": _number(position.get("x")), "y": _number(position.get("y"))}
        else:
            position = {"x": 0.0, "y": 0.0}
        nodes.append(
            {
                **node,
                "id": str(node.get("id") or ""),
                "label": _nested_label(node, DEFAULT_NODE_LABEL),
                "position": position,
            }
        )
    return nodes


def _normalize_edges(raw_edges: Any) -> List[Dict[str, Any]]:
    edges: List[Dict[str, Any]] = []
    if not isinstance(raw_edges, list):
        return edges
    for edge in raw_edges:
        if not isinstance(edge, Mapping):
            continue
        edges.append(
            {
                **edge,
                "id": str(edge.get("id") or ""),
                "label": _nested_label(edge, DEFAULT_EDGE_LABEL),
                "source": str(edge.get("source") or ""),
                "target": str(edge.get("target") or ""),
            }
        )
    return edges


@_guarded(ResourceKind.CONCEPT_MAP)
def process_concept_map_data(row: Mapping[str, Any]) -> ConceptMapResource | None:
    """Build a :class:`ConceptMapResource` from a ``concept_maps`` row."""

    base = _base_fields(row)
    content = _load_content(row)

    versions = []
    raw_versions = content.get("versions")
    if isinstance(raw_versions, list):
        for version in raw_versions:
            if not isinstance(version, Mapping):
                continue
            versions.append(
                {
                    **version,
                    "level": _int(version.get("level"), 0),
                    "nodes": _normalize_nodes(version.get("nodes")),
                    "edges": _normalize_edges(version.get("edges")),
                }
            )

    base["description"] = (
        _text(content.get("description"))
        or _text(content.get("topic"))
        or base["description"]
        or base["title"]
    )

    return ConceptMapResource(
        **base,
        nodes=_normalize_nodes(content.get("nodes")),
        edges=_normalize_edges(content.get("edges")),
        versions=versions,
        complexity=_int(content.get("complexity"), 3),
    )


# ------------------------------------------------------------------
# Flashcards and multiple choice
# ------------------------------------------------------------------
@_guarded(ResourceKind.FLASHCARD)
def process_flashcard_data(row: Mapping[str, Any]) -> FlashcardResource | None:
    """Build a :class:`FlashcardResource` from a ``flashcards`` row."""

    base = _base_fields(row)
    content = _load_content(row)
    return FlashcardResource(
        **base,
        front=_text(content.get("front")),
        back=_text(content.get("back")),
        tags=_string_list(content.get("tags")),
        difficulty=_int(content.get("difficulty"), 1),
    )


@_guarded(ResourceKind.MULTIPLE_CHOICE)
def process_multiple_choice_data(row: Mapping[str, Any]) -> MultipleChoiceResource | None:
    """Build a :class:`MultipleChoiceResource` from a ``multiple_choice_questions`` row."""

    base = _base_fields(row)
    content = _load_content(row)

    correct_index = content.get("correctOptionIndex", content.get("correct_option_index"))
    return MultipleChoiceResource(
        **base,
        question=_text(content.get("question")),
        options=_string_list(content.get("options")),
        correct_option_index=_int(correct_index, 0),
        explanation=_text(content.get("explanation")),
        tags=_string_list(content.get("tags")),
        difficulty=_int(content.get("difficulty"), 1),
    )


# ------------------------------------------------------------------
# Storyboards
# ------------------------------------------------------------------
def _placeholder_icon(index: int, term: str, initial: str) -> Dict[str, Any]:
    return {
        "id": f"placeholder-{index}",
        "term": term,
        "is_placeholder": True,
        "title_initial": initial,
    }


def _normalize_icon_search(raw_terms: Any, fallback_term: str) -> List[Dict[str, Any]]:
    if not isinstance(raw_terms, list):
        return [{"primary_term": fallback_term, "alternative_terms": []}]

    terms: List[Dict[str, Any]] = []
    for term in raw_terms:
        if isinstance(term, str):
            terms.append({"primary_term": term, "alternative_terms": []})
        elif isinstance(term, Mapping) and _text(term.get("primary_term")):
            terms.append(
                {
                    "primary_term": term["primary_term"],
                    "alternative_terms": _string_list(term.get("alternative_terms")),
                }
            )
    return terms


def _normalize_selected_icon(raw_icon: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(raw_icon, Mapping):
        return None
    if raw_icon.get("id") is None or not _text(raw_icon.get("term")):
        return None
    return {
        **raw_icon,
        "id": str(raw_icon["id"]),
        "term": raw_icon["term"],
        "preview_url": raw_icon.get("preview_url"),
        "is_placeholder": bool(raw_icon.get("is_placeholder", raw_icon.get("isPlaceholder", False))),
        "title_initial": raw_icon.get("title_initial", raw_icon.get("titleInitial")),
    }


def _normalize_scene(scene: Any, index: int) -> Dict[str, Any]:
    default_title = f"Scene {index + 1}"

    if not isinstance(scene, Mapping):
        return {
            "title": default_title,
            "content_text": DEFAULT_SCENE_TEXT,
            "icon_search": [{"primary_term": default_title, "alternative_terms": []}],
            "selected_icon": _placeholder_icon(index, default_title, str(index + 1)),
        }

    title = _text(scene.get("title"), default_title)
    initial = (_text(scene.get("title")) or f"S{index + 1}")[0].upper()
    selected_icon = _normalize_selected_icon(scene.get("selectedIcon", scene.get("selected_icon")))

    return {
        "title": title,
        "content_text": _text(scene.get("content_text"), DEFAULT_SCENE_TEXT),
        "icon_search": _normalize_icon_search(scene.get("icon_search"), title),
        "selected_icon": selected_icon or _placeholder_icon(index, title, initial),
    }


@_guarded(ResourceKind.STORYBOARD)
def process_storyboard_data(row: Mapping[str, Any]) -> StoryboardResource | None:
    """Build a :class:`StoryboardResource` from a ``storyboards`` row."""

    base = _base_fields(row)
    content = _load_content(row)

    raw_scenes = content.get("scenes")
    if not isinstance(raw_scenes, list):
        if raw_scenes is not None:
            logger.warning("Storyboard %s has an invalid scenes payload, using no scenes", base["id"])
        raw_scenes = []

    base["description"] = base["description"] or _text(content.get("description"))

    return StoryboardResource(
        **base,
        scenes=[_normalize_scene(scene, index) for index, scene in enumerate(raw_scenes)],
    )


# ------------------------------------------------------------------
# Dispatch
# ------------------------------------------------------------------
PROCESSORS: Dict[ResourceKind, Callable[[Mapping[str, Any]], Optional[ReviewResourceBase]]] = {
    ResourceKind.CONCEPT_MAP: process_concept_map_data,
    ResourceKind.FLASHCARD: process_flashcard_data,
    ResourceKind.MULTIPLE_CHOICE: process_multiple_choice_data,
    ResourceKind.STORYBOARD: process_storyboard_data,
}


def normalize_resource(kind: ResourceKind | str, row: Mapping[str, Any]) -> Optional[ReviewResourceBase]:
    """Run the processor registered for ``kind`` on ``row``."""

    return PROCESSORS[ResourceKind(kind)](row)


__all__ = [
    "PROCESSORS",
    "normalize_resource",
    "parse_timestamp",
    "process_concept_map_data",
    "process_flashcard_data",
    "process_multiple_choice_data",
    "process_storyboard_data",
]
