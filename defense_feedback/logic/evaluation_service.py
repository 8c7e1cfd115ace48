"""Student evaluation workflows shared by the HTTP routes.

Each workflow loads the evaluation, resolves the form it is pinned to and
applies the same completion and scoring rules the client session uses.
Failures are raised as domain errors and mapped to problem+json by routes.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional
import logging

from defense_feedback.logic import rating_index, scoring
from defense_feedback.logic import repository_feedback_forms as forms_repo
from defense_feedback.logic import repository_student_evaluations as evals_repo
from defense_feedback.logic.errors import FeedbackError, NotEditable, ValidationBlock
from defense_feedback.logic.events import (
    EVALUATION_LOCKED,
    EVALUATION_SAVED,
    EVALUATION_SUBMITTED,
    publish,
)
from defense_feedback.logic.gating import evaluate_gating
from defense_feedback.logic.schema_normalizer import normalize, seed_answers_template
from defense_feedback.models.feedback_schema import ScoreSummary
from defense_feedback.models.question_kind import EvaluationStatus
from defense_feedback.models.student_evaluation import FeedbackItem

logger = logging.getLogger(__name__)


class EvaluationNotFound(FeedbackError):
    def __init__(self, evaluation_id: str) -> None:
        super().__init__(f"student evaluation {evaluation_id} not found")
        self.evaluation_id = evaluation_id


def _require(evaluation_id: str) -> FeedbackItem:
    item = evals_repo.get_evaluation(evaluation_id)
    if item is None:
        raise EvaluationNotFound(evaluation_id)
    return item


def active_schema() -> tuple[Optional[Dict[str, Any]], Dict[str, Any]]:
    return forms_repo.resolve_form_for(None)


def seed_answers() -> Dict[str, Any]:
    _, schema = active_schema()
    return seed_answers_template(normalize(schema))


def compute_score(schema: Dict[str, Any], answers: Dict[str, Any]) -> ScoreSummary:
    canonical = normalize(schema)
    ratings = rating_index.build(canonical) if canonical is not None else []
    if not ratings:
        ratings = rating_index.build(schema)
    labels = canonical.label_by_id() if canonical is not None else {}
    return scoring.compute(answers, ratings, labels)


def _rescore(item: FeedbackItem) -> Dict[str, Any]:
    form, schema = forms_repo.resolve_form_for(item.form_id)
    summary = compute_score(schema, item.answers)
    return evals_repo.upsert_score(item.id, form["id"] if form else item.form_id, summary)


def ensure(schedule_id: str, student_id: str, answers: Optional[Dict[str, Any]] = None) -> tuple[FeedbackItem, bool]:
    """Return the existing evaluation or create one pinned to the active form."""
    existing = evals_repo.find_by_schedule_and_student(schedule_id, student_id)
    if existing is not None:
        return existing, False
    form, schema = active_schema()
    seeded = dict(answers) if answers else seed_answers_template(normalize(schema))
    item = evals_repo.create_evaluation(
        schedule_id,
        student_id,
        form_id=form["id"] if form else None,
        answers=seeded,
    )
    _rescore(item)
    return item, True


def _dedupe_student_ids(student_ids: Iterable[str]) -> List[str]:
    seen: set[str] = set()
    out: List[str] = []
    for raw in student_ids:
        sid = str(raw or "").strip()
        if not sid or sid.lower() in seen:
            continue
        seen.add(sid.lower())
        out.append(sid)
    return out


def assign(
    schedule_id: str,
    student_ids: Iterable[str],
    *,
    overwrite_pending: bool = False,
    seed: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Bulk ensure for a schedule.

    Pending rows are reset only with `overwrite_pending`; submitted and
    locked rows are always left untouched.
    """
    form, schema = active_schema()
    template = dict(seed) if seed else seed_answers_template(normalize(schema))
    form_id = form["id"] if form else None

    created: List[FeedbackItem] = []
    updated: List[FeedbackItem] = []
    existing: List[FeedbackItem] = []
    for sid in _dedupe_student_ids(student_ids):
        row = evals_repo.find_by_schedule_and_student(schedule_id, sid)
        if row is None:
            item = evals_repo.create_evaluation(schedule_id, sid, form_id=form_id, answers=dict(template))
            _rescore(item)
            created.append(item)
        elif overwrite_pending and row.status == EvaluationStatus.PENDING:
            item = evals_repo.reset_pending(row.id, dict(template), EvaluationStatus.PENDING)
            if item is not None:
                _rescore(item)
                updated.append(item)
        else:
            existing.append(row)

    logger.info(
        "evaluations_assigned schedule_id=%s created=%s updated=%s existing=%s",
        schedule_id,
        len(created),
        len(updated),
        len(existing),
    )
    return {
        "schedule_id": schedule_id,
        "form_id": form_id,
        "created": [i.model_dump() for i in created],
        "updated": [i.model_dump() for i in updated],
        "existing": [i.model_dump() for i in existing],
        "counts": {"created": len(created), "updated": len(updated), "existing": len(existing)},
    }


def get(evaluation_id: str) -> FeedbackItem:
    return _require(evaluation_id)


def patch_answers(evaluation_id: str, answers: Dict[str, Any]) -> FeedbackItem:
    """Merge `answers` over the stored map; refused once finalized."""
    item = _require(evaluation_id)
    if not item.editable:
        raise NotEditable(item.status)
    merged = dict(item.answers)
    merged.update(answers or {})
    saved = evals_repo.update_answers(item.id, merged) or item
    _rescore(saved)
    publish(EVALUATION_SAVED, {"id": saved.id, "answered_keys": sorted((answers or {}).keys())})
    return saved


def submit(evaluation_id: str) -> FeedbackItem:
    """Finalize a pending evaluation after the required-answer gate.

    Resubmitting an already submitted evaluation returns it unchanged.
    """
    item = _require(evaluation_id)
    if item.status == EvaluationStatus.LOCKED:
        raise NotEditable(item.status)
    if item.status == EvaluationStatus.SUBMITTED:
        return item
    _, schema = forms_repo.resolve_form_for(item.form_id)
    verdict = evaluate_gating(schema, item.answers)
    if not verdict["ok"]:
        raise ValidationBlock([b["question_id"] for b in verdict["blocking_items"]])
    submitted = evals_repo.set_status(item.id, EvaluationStatus.SUBMITTED) or item
    _rescore(submitted)
    publish(EVALUATION_SUBMITTED, {"id": submitted.id})
    return submitted


def lock(evaluation_id: str) -> FeedbackItem:
    item = _require(evaluation_id)
    if item.status == EvaluationStatus.LOCKED:
        return item
    locked = evals_repo.set_status(item.id, EvaluationStatus.LOCKED) or item
    publish(EVALUATION_LOCKED, {"id": locked.id})
    return locked


def get_score(evaluation_id: str) -> Dict[str, Any]:
    item = _require(evaluation_id)
    stored = evals_repo.get_score(item.id)
    if stored is not None:
        return stored
    logger.info("evaluation_score_computed_lazily id=%s", item.id)
    return _rescore(item)


__all__ = [
    "EvaluationNotFound",
    "active_schema",
    "seed_answers",
    "compute_score",
    "ensure",
    "assign",
    "get",
    "patch_answers",
    "submit",
    "lock",
    "get_score",
]
