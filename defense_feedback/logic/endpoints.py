"""Candidate endpoint lists for the feedback collaborators.

Deployments expose the same resources under several historical paths.
Order matters: the first candidate that works is authoritative for a call.
"""

from __future__ import annotations

from typing import Any, Dict, List

from defense_feedback.logic.fallback import RequestDescriptor

_JSON_HEADERS = {"Content-Type": "application/json"}


def _join(base_url: str, path: str) -> str:
    return f"{base_url.rstrip('/')}{path}"


def schema_candidates(base_url: str) -> List[RequestDescriptor]:
    paths = [
        "/student-evaluations/schema",
        "/student-evaluations/form/schema",
        "/student-evaluations/active-form",
        "/students/me/student-evaluations/schema",
        "/students/current/student-evaluations/schema",
    ]
    return [RequestDescriptor(url=_join(base_url, p)) for p in paths]


def item_candidates(base_url: str, item_id: str) -> List[RequestDescriptor]:
    paths = [
        f"/student-evaluations/{item_id}",
        f"/student-evaluations/me/{item_id}",
        f"/student-evaluations/my/{item_id}",
        f"/evaluations/{item_id}",
    ]
    return [RequestDescriptor(url=_join(base_url, p)) for p in paths]


def save_candidates(base_url: str, item_id: str, answers: Dict[str, Any]) -> List[RequestDescriptor]:
    paths = [
        f"/student-evaluations/{item_id}",
        f"/student-evaluations/me/{item_id}",
        f"/student-evaluations/my/{item_id}",
    ]
    return [
        RequestDescriptor(url=_join(base_url, p), method="PATCH", json={"answers": answers}, headers=_JSON_HEADERS)
        for p in paths
    ]


def submit_candidates(base_url: str, item_id: str) -> List[RequestDescriptor]:
    paths = [
        f"/student-evaluations/{item_id}/submit",
        f"/student-evaluations/me/{item_id}/submit",
        f"/student-evaluations/my/{item_id}/submit",
    ]
    return [RequestDescriptor(url=_join(base_url, p), method="POST", headers=_JSON_HEADERS) for p in paths]


__all__ = ["schema_candidates", "item_candidates", "save_candidates", "submit_candidates"]
