"""Student evaluation endpoints: schema, draft answers, submit and lock."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import JSONResponse
import logging

from defense_feedback.logic import evaluation_service
from defense_feedback.logic.errors import NotEditable, ValidationBlock
from defense_feedback.logic.evaluation_service import EvaluationNotFound
from defense_feedback.logic import repository_student_evaluations as evals_repo
from defense_feedback.logic.problem_factory import (
    problem_evaluation_not_editable,
    problem_evaluation_not_found,
    problem_required_answers_missing,
)
from defense_feedback.models.student_evaluation import AnswersPatch, AssignRequest, EnsureEvaluationRequest


router = APIRouter()
logger = logging.getLogger(__name__)


def _not_found(exc: EvaluationNotFound) -> HTTPException:
    return HTTPException(status_code=404, detail=problem_evaluation_not_found(exc.evaluation_id))


@router.get(
    "/student-evaluations/schema",
    summary="Get the active feedback form schema",
    operation_id="getStudentFeedbackSchema",
)
def get_schema():
    form, schema = evaluation_service.active_schema()
    return {"schema": schema, "form_id": form["id"] if form else None}


@router.get(
    "/student-evaluations/seed-answers",
    summary="Get an answer map with every question of the active form unset",
    operation_id="getSeedAnswers",
)
def get_seed_answers():
    return {"answers": evaluation_service.seed_answers()}


@router.get("/student-evaluations", summary="List evaluations", operation_id="listStudentEvaluations")
def list_evaluations(schedule_id: Optional[str] = Query(None), student_id: Optional[str] = Query(None)):
    items = evals_repo.list_evaluations(schedule_id=schedule_id, student_id=student_id)
    return {"items": [i.model_dump() for i in items]}


@router.post(
    "/student-evaluations",
    summary="Create or return the evaluation for a schedule and student",
    operation_id="ensureStudentEvaluation",
)
def ensure_evaluation(payload: EnsureEvaluationRequest):
    item, created = evaluation_service.ensure(payload.schedule_id, payload.student_id, payload.answers)
    return JSONResponse({"item": item.model_dump()}, status_code=201 if created else 200)


@router.post(
    "/student-evaluations/assign",
    summary="Assign feedback forms to students of a schedule",
    operation_id="assignStudentEvaluations",
)
def assign_evaluations(payload: AssignRequest):
    return evaluation_service.assign(
        payload.schedule_id,
        payload.student_ids,
        overwrite_pending=payload.overwrite_pending,
        seed=payload.seed_answers,
    )


@router.get("/student-evaluations/{evaluation_id}", operation_id="getStudentEvaluation")
def get_evaluation(evaluation_id: str):
    try:
        item = evaluation_service.get(evaluation_id)
    except EvaluationNotFound as exc:
        raise _not_found(exc) from exc
    return {"item": item.model_dump()}


@router.patch(
    "/student-evaluations/{evaluation_id}",
    summary="Save draft answers",
    operation_id="patchStudentEvaluationAnswers",
)
def patch_evaluation(evaluation_id: str, payload: AnswersPatch):
    try:
        item = evaluation_service.patch_answers(evaluation_id, payload.answers)
    except EvaluationNotFound as exc:
        raise _not_found(exc) from exc
    except NotEditable as exc:
        raise HTTPException(status_code=409, detail=problem_evaluation_not_editable(exc.status)) from exc
    return {"item": item.model_dump()}


@router.post(
    "/student-evaluations/{evaluation_id}/submit",
    summary="Submit feedback after required answers are complete",
    operation_id="submitStudentEvaluation",
)
def submit_evaluation(evaluation_id: str):
    try:
        item = evaluation_service.submit(evaluation_id)
    except EvaluationNotFound as exc:
        raise _not_found(exc) from exc
    except NotEditable as exc:
        raise HTTPException(status_code=409, detail=problem_evaluation_not_editable(exc.status)) from exc
    except ValidationBlock as exc:
        raise HTTPException(status_code=422, detail=problem_required_answers_missing(exc.missing)) from exc
    return {"item": item.model_dump()}


@router.post(
    "/student-evaluations/{evaluation_id}/lock",
    summary="Lock an evaluation against further edits",
    operation_id="lockStudentEvaluation",
)
def lock_evaluation(evaluation_id: str):
    try:
        item = evaluation_service.lock(evaluation_id)
    except EvaluationNotFound as exc:
        raise _not_found(exc) from exc
    return {"item": item.model_dump()}


@router.get("/student-evaluations/{evaluation_id}/score", operation_id="getStudentEvaluationScore")
def get_evaluation_score(evaluation_id: str):
    try:
        score = evaluation_service.get_score(evaluation_id)
    except EvaluationNotFound as exc:
        raise _not_found(exc) from exc
    return {"score": score}


__all__ = ["router"]
