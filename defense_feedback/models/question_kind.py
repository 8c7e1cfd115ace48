"""QuestionKind constants for canonical feedback questions.

Provides a simple constants container instead of an Enum to keep imports
lightweight in architectural tests.
"""

from __future__ import annotations


class QuestionKind:
    RATING = "rating"
    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    BOOLEAN = "boolean"
    CHOICE = "choice"
    MULTICHOICE = "multichoice"
    UNKNOWN = "unknown"

    ALL = (RATING, TEXT, TEXTAREA, NUMBER, BOOLEAN, CHOICE, MULTICHOICE, UNKNOWN)


class EvaluationStatus:
    PENDING = "pending"
    SUBMITTED = "submitted"
    LOCKED = "locked"

    EDITABLE = PENDING


__all__ = ["QuestionKind", "EvaluationStatus"]
