"""Envelope unwrapping for schema and item payloads.

Producing services are versioned independently and may wrap the real payload
under a conventional key. Unwrapping is tolerant: the first candidate that
looks like the expected object wins, and the bare payload is the last resort.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from defense_feedback.logic.coercion import first_string, is_record, to_json_object, to_string_safe
from defense_feedback.models.question_kind import EvaluationStatus
from defense_feedback.models.student_evaluation import FeedbackItem

SCHEMA_ENVELOPE_KEYS = ("schema", "item", "data", "result")
ITEM_ENVELOPE_KEYS = ("item", "student_evaluation", "evaluation")
OUTER_ENVELOPE_KEYS = ("data", "result")


def unwrap_schema(payload: Any) -> Optional[Dict[str, Any]]:
    """Return the schema object from a possibly enveloped payload."""
    if not is_record(payload):
        return None
    for key in SCHEMA_ENVELOPE_KEYS:
        inner = payload.get(key)
        if is_record(inner):
            return inner
    return payload


def normalize_detail(raw: Any) -> Optional[FeedbackItem]:
    if not is_record(raw):
        return None
    source = raw
    for key in ITEM_ENVELOPE_KEYS:
        if is_record(raw.get(key)):
            source = raw[key]
            break

    item_id = first_string(source.get("id"), raw.get("id"))
    if not item_id:
        return None

    schedule = source.get("schedule") if is_record(source.get("schedule")) else {}
    group = source.get("group") if is_record(source.get("group")) else {}

    return FeedbackItem(
        id=item_id,
        status=first_string(source.get("status"), raw.get("status")) or EvaluationStatus.PENDING,
        answers=to_json_object(source.get("answers")) or {},
        schedule_id=first_string(source.get("schedule_id"), source.get("scheduleId"), schedule.get("id")),
        student_id=first_string(source.get("student_id"), source.get("studentId")),
        form_id=first_string(source.get("form_id"), source.get("formId")),
        title=first_string(
            source.get("title"),
            source.get("topic"),
            source.get("thesis_title"),
            schedule.get("title"),
            group.get("title"),
        ),
        submitted_at=to_string_safe(source.get("submitted_at") or source.get("submittedAt")),
        locked_at=to_string_safe(source.get("locked_at") or source.get("lockedAt")),
        created_at=to_string_safe(source.get("created_at") or source.get("createdAt")),
        updated_at=to_string_safe(source.get("updated_at") or source.get("updatedAt")),
    )


def extract_detail(payload: Any) -> Optional[FeedbackItem]:
    """Find an item record one or two envelope levels deep."""
    if not is_record(payload):
        return None
    candidates: list[Any] = [payload.get(k) for k in ITEM_ENVELOPE_KEYS]
    for outer in OUTER_ENVELOPE_KEYS:
        wrapped = payload.get(outer)
        candidates.append(wrapped)
        if is_record(wrapped):
            candidates.extend(wrapped.get(k) for k in ITEM_ENVELOPE_KEYS)
    for candidate in candidates:
        parsed = normalize_detail(candidate)
        if parsed is not None:
            return parsed
    return normalize_detail(payload)


__all__ = [
    "SCHEMA_ENVELOPE_KEYS",
    "unwrap_schema",
    "normalize_detail",
    "extract_detail",
]
