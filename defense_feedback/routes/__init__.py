"""APIRouter registration for the defense feedback service."""

from __future__ import annotations

from fastapi import APIRouter

from defense_feedback.routes.feedback_forms import router as feedback_forms_router
from defense_feedback.routes.student_evaluations import router as student_evaluations_router

api_router = APIRouter()
api_router.include_router(student_evaluations_router, tags=["StudentEvaluations"])
api_router.include_router(feedback_forms_router, tags=["FeedbackForms"])

__all__ = ["api_router"]
