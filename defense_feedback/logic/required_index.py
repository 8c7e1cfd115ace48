"""Derive the required question ids from a raw or canonical schema.

Dialects put "required" at different structural depths: a JSON-schema
style `required` array of ids, or `required: true` on a question node. The
walk therefore visits every object and array and takes the union.
"""

from __future__ import annotations

from typing import Any, Dict, List, Set

from pydantic import BaseModel

from defense_feedback.logic.coercion import is_record
from defense_feedback.logic.schema_normalizer import pick_question_id

QUESTION_CONTAINER_KEYS = ("questions", "fields")


def _as_tree(schema: Any) -> Any:
    if isinstance(schema, BaseModel):
        return schema.model_dump()
    return schema


def build_ordered(schema: Any) -> List[str]:
    """Return required question ids in the order the walk first finds them."""
    keys: Dict[str, None] = {}

    def walk(node: Any) -> None:
        if isinstance(node, list):
            for it in node:
                walk(it)
            return
        if not is_record(node):
            return

        required = node.get("required")
        if isinstance(required, list):
            for k in required:
                if isinstance(k, str) and k.strip():
                    keys.setdefault(k.strip())

        for container in QUESTION_CONTAINER_KEYS:
            items = node.get(container)
            if not isinstance(items, list):
                continue
            for it in items:
                if is_record(it) and it.get("required") is True:
                    qid = pick_question_id(it)
                    if qid:
                        keys.setdefault(qid)

        for v in node.values():
            walk(v)

    walk(_as_tree(schema))
    return list(keys)


def build(schema: Any) -> Set[str]:
    """Return the deduplicated set of required question ids."""
    return set(build_ordered(schema))


def merged(raw_schema: Any, canonical: Any = None) -> List[str]:
    """Required ids of the raw schema followed by any only the canonical form adds."""
    ids: List[str] = build_ordered(raw_schema) if raw_schema is not None else []
    if canonical is not None:
        ids.extend(build_ordered(canonical))
    return list(dict.fromkeys(ids))


__all__ = ["build", "build_ordered", "merged"]
