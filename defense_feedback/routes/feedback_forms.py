"""Feedback form registry endpoints (staff/admin)."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
import logging

from defense_feedback.logic import repository_feedback_forms as forms_repo
from defense_feedback.logic.errors import NormalizationFailure
from defense_feedback.logic.events import FORM_ACTIVATED, publish
from defense_feedback.logic.problem_factory import (
    problem_form_not_found,
    problem_form_schema_unusable,
    problem_form_version_conflict,
)
from defense_feedback.logic.schema_normalizer import require_canonical
from defense_feedback.models.student_evaluation import FeedbackFormCreate


router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/feedback-forms", summary="List feedback forms", operation_id="listFeedbackForms")
def list_forms():
    return {"items": forms_repo.list_forms()}


@router.post("/feedback-forms", summary="Create a feedback form version", operation_id="createFeedbackForm")
def create_form(payload: FeedbackFormCreate):
    try:
        require_canonical(payload.schema_)
    except NormalizationFailure as exc:
        logger.info("feedback_form_rejected key=%s reason=no_usable_sections", payload.key)
        raise HTTPException(status_code=422, detail=problem_form_schema_unusable(exc.message)) from exc
    try:
        form = forms_repo.create_form(
            payload.key,
            payload.title,
            payload.schema_,
            description=payload.description,
            version=payload.version,
            active=payload.active,
        )
    except forms_repo.DuplicateFormVersion as exc:
        raise HTTPException(status_code=409, detail=problem_form_version_conflict(exc.key, exc.version)) from exc
    if form.get("active"):
        publish(FORM_ACTIVATED, {"id": form["id"], "key": form["key"], "version": form["version"]})
    return JSONResponse({"item": form}, status_code=201)


@router.get("/feedback-forms/{form_id}", operation_id="getFeedbackForm")
def get_form(form_id: str):
    form = forms_repo.get_form(form_id)
    if form is None:
        raise HTTPException(status_code=404, detail=problem_form_not_found(form_id))
    return {"item": form}


@router.post(
    "/feedback-forms/{form_id}/activate",
    summary="Make a form version the active one",
    operation_id="activateFeedbackForm",
)
def activate_form(form_id: str):
    form = forms_repo.activate_form(form_id)
    if form is None:
        raise HTTPException(status_code=404, detail=problem_form_not_found(form_id))
    publish(FORM_ACTIVATED, {"id": form["id"], "key": form["key"], "version": form["version"]})
    return {"item": form}


__all__ = ["router"]
