"""Centralised construction of problem+json payloads.

Route modules raise HTTPException with one of these dicts as `detail` so
codes and statuses are not embedded as string literals at call sites.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable
import logging


logger = logging.getLogger(__name__)


def _problem(title: str, status: int, detail: str, code: str, **extra: Any) -> Dict[str, Any]:
    problem: Dict[str, Any] = {
        "title": title,
        "status": status,
        "detail": detail,
        "message": detail,
        "code": code,
    }
    problem.update(extra)
    logger.info("error_handler.handle code=%s status=%s", code, status)
    return problem


def problem_evaluation_not_found(evaluation_id: str) -> Dict[str, Any]:
    return _problem("Not Found", 404, f"student evaluation {evaluation_id} not found", "EVALUATION_NOT_FOUND")


def problem_evaluation_not_editable(status: str) -> Dict[str, Any]:
    """Return a 409 problem for edits against a submitted or locked record."""
    if status == "locked":
        detail = "This feedback is locked and can no longer be edited."
        code = "EVALUATION_LOCKED"
    else:
        detail = "This feedback has already been submitted and can no longer be edited."
        code = "EVALUATION_SUBMITTED"
    return _problem("Conflict", 409, detail, code, current_status=status)


def problem_required_answers_missing(missing: Iterable[str]) -> Dict[str, Any]:
    return _problem(
        "Unprocessable Entity",
        422,
        "Please answer all required questions before submitting.",
        "REQUIRED_ANSWERS_MISSING",
        missing=list(missing),
    )


def problem_form_not_found(form_id: str) -> Dict[str, Any]:
    return _problem("Not Found", 404, f"feedback form {form_id} not found", "FORM_NOT_FOUND")


def problem_form_schema_unusable(detail: str = "Feedback form schema has no usable sections") -> Dict[str, Any]:
    """Return a 422 problem when a form schema yields no usable section."""
    return _problem(
        "Unprocessable Entity",
        422,
        detail,
        "FORM_SCHEMA_UNUSABLE",
    )


def problem_form_version_conflict(key: str, version: int) -> Dict[str, Any]:
    return _problem("Conflict", 409, f"feedback form {key} v{version} already exists", "FORM_VERSION_CONFLICT")


__all__ = [
    "problem_evaluation_not_found",
    "problem_evaluation_not_editable",
    "problem_required_answers_missing",
    "problem_form_not_found",
    "problem_form_schema_unusable",
    "problem_form_version_conflict",
]
