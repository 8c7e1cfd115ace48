"""Required-answer completion tracking.

A value is missing when it is None/absent, a blank string, an empty list,
or an empty dict. Every other value, including 0 and False, is answered.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping

from defense_feedback.models.feedback_schema import CompletionSummary


def is_missing_answer(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    if isinstance(value, Mapping):
        return len(value) == 0
    return False


def compute(answers: Mapping[str, Any], required_ids: Iterable[str]) -> CompletionSummary:
    unique: List[str] = list(dict.fromkeys(required_ids))
    if not unique:
        return CompletionSummary(required=0, answered=0, missing=[])
    missing = [k for k in unique if is_missing_answer(answers.get(k))]
    return CompletionSummary(required=len(unique), answered=len(unique) - len(missing), missing=missing)


__all__ = ["is_missing_answer", "compute"]
