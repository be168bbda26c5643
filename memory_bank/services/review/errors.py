from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class ReviewError(Exception):
    """Domain-specific exception raised when a review request is invalid."""

    code: str
    status_code: int = 400

    def __str__(self) -> str:  # pragma: no cover - human readable message
        return self.code


__all__ = ["ReviewError"]
