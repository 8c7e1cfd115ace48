"""Error taxonomy for the feedback engine.

IngestionFailure and PersistenceFailure are raised when every candidate
endpoint has been exhausted. NormalizationFailure is raised only by callers
that cannot fall back to a raw-answer display. ValidationBlock is normally
returned inside a submit outcome rather than raised.
"""

from __future__ import annotations

from typing import Iterable, List


class FeedbackError(Exception):
    pass


class IngestionFailure(FeedbackError):
    """Every candidate schema or item source failed."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NormalizationFailure(FeedbackError):
    """A schema was retrieved but no dialect produced a usable section."""

    def __init__(self, message: str = "No usable sections in feedback schema") -> None:
        super().__init__(message)
        self.message = message


class ValidationBlock(FeedbackError):
    def __init__(self, missing: Iterable[str]) -> None:
        self.missing: List[str] = list(missing)
        super().__init__(f"missing required answers: {', '.join(self.missing)}")


class PersistenceFailure(FeedbackError):
    """Save or submit endpoints exhausted; the local draft is retained."""

    def __init__(self, message: str, operation: str = "save") -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation


class StaleResult(FeedbackError):
    """An async result arrived after the active item changed."""


class NotEditable(FeedbackError):
    def __init__(self, status: str) -> None:
        super().__init__(f"feedback is {status} and can no longer be edited")
        self.status = status


__all__ = [
    "FeedbackError",
    "IngestionFailure",
    "NormalizationFailure",
    "ValidationBlock",
    "PersistenceFailure",
    "NotEditable",
    "StaleResult",
]
