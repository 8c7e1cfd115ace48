"""Collect numeric-scale (rating) questions and their bounds.

Walks the raw or canonical schema for nodes whose `type` is `rating`. Ids
are deduplicated case-insensitively, keeping the first occurrence. A
missing scale defaults to [1, 5]; reversed bounds are swapped.
"""

from __future__ import annotations

from typing import Any, List, Set

from pydantic import BaseModel

from defense_feedback.logic.coercion import first_string, is_record, ordered_bounds, to_finite_number, to_string_safe
from defense_feedback.logic.schema_normalizer import DEFAULT_SCALE_MAX, DEFAULT_SCALE_MIN, pick_question_id
from defense_feedback.models.feedback_schema import RatingQuestion
from defense_feedback.models.question_kind import QuestionKind


def build(schema: Any) -> List[RatingQuestion]:
    tree = schema.model_dump() if isinstance(schema, BaseModel) else schema
    out: List[RatingQuestion] = []
    seen: Set[str] = set()

    def walk(node: Any) -> None:
        if isinstance(node, list):
            for it in node:
                walk(it)
            return
        if not is_record(node):
            return

        node_type = to_string_safe(node.get("type"))
        if node_type is not None and node_type.lower() == QuestionKind.RATING:
            qid = pick_question_id(node)
            if qid and qid.lower() not in seen:
                seen.add(qid.lower())
                scale = node.get("scale") if is_record(node.get("scale")) else {}
                lo = to_finite_number(scale.get("min"))
                hi = to_finite_number(scale.get("max"))
                lo, hi = ordered_bounds(
                    DEFAULT_SCALE_MIN if lo is None else lo,
                    DEFAULT_SCALE_MAX if hi is None else hi,
                )
                out.append(
                    RatingQuestion(
                        id=qid,
                        label=first_string(node.get("label"), node.get("title"), node.get("question")),
                        min=lo,
                        max=hi,
                        required=node.get("required") is True,
                        description=first_string(node.get("description"), node.get("help"), node.get("hint")),
                    )
                )

        for v in node.values():
            walk(v)

    walk(tree)
    return out


__all__ = ["build"]
