"""Student evaluation and score data access.

Answers and score breakdowns are stored as JSON text. All writes stamp
`updated_at`; status transitions stamp `submitted_at` / `locked_at`.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
import json
import logging
import uuid

from sqlalchemy import text as sql_text

from defense_feedback.db.base import get_engine
from defense_feedback.logic.clock import utc_now_iso
from defense_feedback.models.feedback_schema import ScoreSummary
from defense_feedback.models.question_kind import EvaluationStatus
from defense_feedback.models.student_evaluation import FeedbackItem

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, schedule_id, student_id, form_id, status, answers_json, "
    "submitted_at, locked_at, created_at, updated_at"
)


def _loads_object(text: Any) -> Dict[str, Any]:
    if not text:
        return {}
    try:
        value = json.loads(text)
    except ValueError:
        logger.error("stored_json_corrupt value=%r", text)
        return {}
    return value if isinstance(value, dict) else {}


def _row_to_item(row: Any) -> FeedbackItem:
    m = row._mapping
    return FeedbackItem(
        id=str(m["id"]),
        schedule_id=m["schedule_id"],
        student_id=m["student_id"],
        form_id=m["form_id"],
        status=m["status"],
        answers=_loads_object(m["answers_json"]),
        submitted_at=m["submitted_at"],
        locked_at=m["locked_at"],
        created_at=m["created_at"],
        updated_at=m["updated_at"],
    )


def get_evaluation(evaluation_id: str) -> Optional[FeedbackItem]:
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text(f"SELECT {_COLUMNS} FROM student_evaluations WHERE id = :id"),
            {"id": evaluation_id},
        ).fetchone()
    return _row_to_item(row) if row else None


def find_by_schedule_and_student(schedule_id: str, student_id: str) -> Optional[FeedbackItem]:
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text(
                f"SELECT {_COLUMNS} FROM student_evaluations WHERE schedule_id = :s AND student_id = :st"
            ),
            {"s": schedule_id, "st": student_id},
        ).fetchone()
    return _row_to_item(row) if row else None


def list_evaluations(schedule_id: Optional[str] = None, student_id: Optional[str] = None) -> List[FeedbackItem]:
    clauses: List[str] = []
    params: Dict[str, Any] = {}
    if schedule_id:
        clauses.append("schedule_id = :s")
        params["s"] = schedule_id
    if student_id:
        clauses.append("student_id = :st")
        params["st"] = student_id
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    eng = get_engine()
    with eng.connect() as conn:
        rows = conn.execute(
            sql_text(f"SELECT {_COLUMNS} FROM student_evaluations {where} ORDER BY created_at ASC, id ASC"),
            params,
        ).fetchall()
    return [_row_to_item(r) for r in rows]


def create_evaluation(
    schedule_id: str,
    student_id: str,
    *,
    form_id: Optional[str],
    answers: Dict[str, Any],
    status: str = EvaluationStatus.PENDING,
) -> FeedbackItem:
    evaluation_id = str(uuid.uuid4())
    now = utc_now_iso()
    eng = get_engine()
    with eng.begin() as conn:
        conn.execute(
            sql_text(
                """
                INSERT INTO student_evaluations
                    (id, schedule_id, student_id, form_id, status, answers_json, created_at, updated_at)
                VALUES (:id, :s, :st, :form_id, :status, :answers, :now, :now)
                """
            ),
            {
                "id": evaluation_id,
                "s": schedule_id,
                "st": student_id,
                "form_id": form_id,
                "status": status,
                "answers": json.dumps(answers),
                "now": now,
            },
        )
    logger.info("evaluation_created id=%s schedule_id=%s student_id=%s", evaluation_id, schedule_id, student_id)
    return get_evaluation(evaluation_id)  # type: ignore[return-value]


def update_answers(evaluation_id: str, answers: Dict[str, Any]) -> Optional[FeedbackItem]:
    eng = get_engine()
    with eng.begin() as conn:
        conn.execute(
            sql_text("UPDATE student_evaluations SET answers_json = :a, updated_at = :now WHERE id = :id"),
            {"a": json.dumps(answers), "now": utc_now_iso(), "id": evaluation_id},
        )
    return get_evaluation(evaluation_id)


def reset_pending(evaluation_id: str, answers: Dict[str, Any], status: str) -> Optional[FeedbackItem]:
    eng = get_engine()
    with eng.begin() as conn:
        conn.execute(
            sql_text(
                """
                UPDATE student_evaluations
                SET status = :status, answers_json = :a, submitted_at = NULL, locked_at = NULL, updated_at = :now
                WHERE id = :id
                """
            ),
            {"status": status, "a": json.dumps(answers), "now": utc_now_iso(), "id": evaluation_id},
        )
    return get_evaluation(evaluation_id)


def set_status(evaluation_id: str, status: str) -> Optional[FeedbackItem]:
    """Transition to submitted or locked, stamping the matching column."""
    column = {EvaluationStatus.SUBMITTED: "submitted_at", EvaluationStatus.LOCKED: "locked_at"}[status]
    now = utc_now_iso()
    eng = get_engine()
    with eng.begin() as conn:
        conn.execute(
            sql_text(
                f"UPDATE student_evaluations SET status = :status, {column} = :now, updated_at = :now WHERE id = :id"
            ),
            {"status": status, "now": now, "id": evaluation_id},
        )
    logger.info("evaluation_status_changed id=%s status=%s", evaluation_id, status)
    return get_evaluation(evaluation_id)


def upsert_score(evaluation_id: str, form_id: Optional[str], summary: ScoreSummary) -> Dict[str, Any]:
    now = utc_now_iso()
    params = {
        "id": evaluation_id,
        "form_id": form_id,
        "total": summary.total_score,
        "max": summary.max_score,
        "pct": summary.percentage,
        "breakdown": json.dumps({k: v.model_dump() for k, v in summary.breakdown.items()}),
        "now": now,
    }
    eng = get_engine()
    with eng.begin() as conn:
        updated = conn.execute(
            sql_text(
                """
                UPDATE student_evaluation_scores
                SET form_id = :form_id, total_score = :total, max_score = :max, percentage = :pct,
                    breakdown_json = :breakdown, computed_at = :now
                WHERE student_evaluation_id = :id
                """
            ),
            params,
        )
        if updated.rowcount == 0:
            conn.execute(
                sql_text(
                    """
                    INSERT INTO student_evaluation_scores
                        (student_evaluation_id, form_id, total_score, max_score, percentage, breakdown_json, computed_at)
                    VALUES (:id, :form_id, :total, :max, :pct, :breakdown, :now)
                    """
                ),
                params,
            )
    return get_score(evaluation_id) or {}


def get_score(evaluation_id: str) -> Optional[Dict[str, Any]]:
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text(
                """
                SELECT student_evaluation_id, form_id, total_score, max_score, percentage, breakdown_json, computed_at
                FROM student_evaluation_scores WHERE student_evaluation_id = :id
                """
            ),
            {"id": evaluation_id},
        ).fetchone()
    if not row:
        return None
    m = row._mapping
    return {
        "student_evaluation_id": m["student_evaluation_id"],
        "form_id": m["form_id"],
        "total_score": float(m["total_score"]),
        "max_score": float(m["max_score"]),
        "percentage": float(m["percentage"]),
        "breakdown": _loads_object(m["breakdown_json"]),
        "computed_at": m["computed_at"],
    }


__all__ = [
    "get_evaluation",
    "find_by_schedule_and_student",
    "list_evaluations",
    "create_evaluation",
    "update_answers",
    "reset_pending",
    "set_status",
    "upsert_score",
    "get_score",
]
