"""Weighted score summary over rating questions.

Every rating question contributes its `max` to `max_score`. Answers are
coerced to finite numbers and clamped into [min, max]; an answer that does
not coerce scores zero while its `max` still counts.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Sequence

from defense_feedback.logic.coercion import clamp, to_finite_number
from defense_feedback.models.feedback_schema import RatingQuestion, ScoreBreakdownEntry, ScoreSummary


def compute(
    answers: Mapping[str, Any],
    rating_questions: Sequence[RatingQuestion],
    label_by_id: Optional[Mapping[str, str]] = None,
) -> ScoreSummary:
    labels = label_by_id or {}
    total = 0.0
    max_total = 0.0
    breakdown: Dict[str, ScoreBreakdownEntry] = {}

    for q in rating_questions:
        max_total += q.max
        n = to_finite_number(answers.get(q.id))
        scored = 0.0 if n is None else clamp(n, q.min, q.max)
        total += scored
        breakdown[q.id] = ScoreBreakdownEntry(
            score=scored,
            value=n,
            min=q.min,
            max=q.max,
            label=q.label or labels.get(q.id),
        )

    percentage = (total / max_total) * 100 if max_total > 0 else 0.0
    return ScoreSummary(
        total_score=total,
        max_score=max_total,
        percentage=percentage,
        rating_questions=len(rating_questions),
        breakdown=breakdown,
    )


__all__ = ["compute"]
