"""Pydantic models for student evaluation records and request payloads.

Extracted from the route modules so the client session and the server routes
share one item shape without coupling to either implementation.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from defense_feedback.models.question_kind import EvaluationStatus


class FeedbackItem(BaseModel):
    """A student's feedback record for one defense schedule."""

    id: str
    status: str = EvaluationStatus.PENDING
    answers: Dict[str, Any] = Field(default_factory=dict)
    schedule_id: Optional[str] = None
    student_id: Optional[str] = None
    form_id: Optional[str] = None
    title: Optional[str] = None
    submitted_at: Optional[str] = None
    locked_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def editable(self) -> bool:
        return (self.status or EvaluationStatus.PENDING).strip().lower() == EvaluationStatus.EDITABLE


class AnswersPatch(BaseModel):
    answers: Dict[str, Any] = Field(default_factory=dict)


class EnsureEvaluationRequest(BaseModel):
    schedule_id: str
    student_id: str
    answers: Optional[Dict[str, Any]] = None


class AssignRequest(BaseModel):
    schedule_id: str
    student_ids: List[str] = Field(default_factory=list)
    overwrite_pending: bool = False
    seed_answers: Optional[Dict[str, Any]] = None


class FeedbackFormCreate(BaseModel):
    key: str
    title: str
    description: Optional[str] = None
    schema_: Dict[str, Any] = Field(alias="schema")
    version: Optional[int] = None
    active: bool = False


__all__ = [
    "FeedbackItem",
    "AnswersPatch",
    "EnsureEvaluationRequest",
    "AssignRequest",
    "FeedbackFormCreate",
]
