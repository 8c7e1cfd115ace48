"""Submit gating verdict computation.

Computes a verdict with the shape `{ ok: bool, blocking_items: [] }` from a
form schema and an answer map. Required ids are collected from the raw
schema and its canonical form so both agree with the client-side gate.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional
import logging

from defense_feedback.logic import completion, required_index
from defense_feedback.logic.schema_normalizer import normalize
from defense_feedback.models.feedback_schema import CanonicalSchema

logger = logging.getLogger(__name__)


def required_ids_for(raw_schema: Any, canonical: Optional[CanonicalSchema] = None) -> List[str]:
    canonical = canonical if canonical is not None else normalize(raw_schema)
    return required_index.merged(raw_schema, canonical)


def evaluate_gating(raw_schema: Any, answers: Mapping[str, Any]) -> Dict[str, Any]:
    required = required_ids_for(raw_schema)
    summary = completion.compute(answers, required)
    items: List[Dict[str, Any]] = [
        {"question_id": qid, "reason": "missing_required_answer"} for qid in summary.missing
    ]
    logger.info(
        "gating_verdict required=%s answered=%s missing=%s",
        summary.required,
        summary.answered,
        summary.missing,
    )
    return {"ok": not items, "blocking_items": items}


__all__ = ["required_ids_for", "evaluate_gating"]
