"""Feedback form registry data access.

Forms are versioned per logical key and at most one is active. Students
only ever receive the active form; evaluations pin the form they were
created against so later scoring uses a consistent version.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
import json
import logging
import uuid

from sqlalchemy import text as sql_text
from sqlalchemy.exc import IntegrityError

from defense_feedback.db.base import get_engine
from defense_feedback.logic.clock import utc_now_iso
from defense_feedback.logic.default_form import (
    DEFAULT_FORM_DESCRIPTION,
    DEFAULT_FORM_KEY,
    DEFAULT_FORM_SCHEMA,
    DEFAULT_FORM_TITLE,
)

logger = logging.getLogger(__name__)

_COLUMNS = "id, key, version, title, description, schema_json, active, created_at, updated_at"


class DuplicateFormVersion(Exception):
    def __init__(self, key: str, version: int) -> None:
        super().__init__(f"{key} v{version} already exists")
        self.key = key
        self.version = version


def _row_to_form(row: Any) -> Dict[str, Any]:
    m = row._mapping
    try:
        schema = json.loads(m["schema_json"]) if m["schema_json"] else {}
    except ValueError:
        logger.error("feedback_form_schema_corrupt form_id=%s", m["id"])
        schema = {}
    return {
        "id": str(m["id"]),
        "key": m["key"],
        "version": int(m["version"]),
        "title": m["title"],
        "description": m["description"],
        "schema": schema,
        "active": bool(m["active"]),
        "created_at": m["created_at"],
        "updated_at": m["updated_at"],
    }


def list_forms() -> List[Dict[str, Any]]:
    eng = get_engine()
    with eng.connect() as conn:
        rows = conn.execute(
            sql_text(f"SELECT {_COLUMNS} FROM student_feedback_forms ORDER BY key ASC, version DESC")
        ).fetchall()
    return [_row_to_form(r) for r in rows]


def get_form(form_id: str) -> Optional[Dict[str, Any]]:
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text(f"SELECT {_COLUMNS} FROM student_feedback_forms WHERE id = :id"),
            {"id": form_id},
        ).fetchone()
    return _row_to_form(row) if row else None


def get_active_form() -> Optional[Dict[str, Any]]:
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text(f"SELECT {_COLUMNS} FROM student_feedback_forms WHERE active = :t LIMIT 1"),
            {"t": True},
        ).fetchone()
    return _row_to_form(row) if row else None


def latest_version(key: str) -> int:
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text("SELECT MAX(version) FROM student_feedback_forms WHERE key = :key"),
            {"key": key},
        ).fetchone()
    return int(row[0]) if row and row[0] is not None else 0


def create_form(
    key: str,
    title: str,
    schema: Dict[str, Any],
    *,
    description: Optional[str] = None,
    version: Optional[int] = None,
    active: bool = False,
) -> Dict[str, Any]:
    """Insert a new form version; version defaults to latest + 1 for the key."""
    resolved_version = version if version is not None else latest_version(key) + 1
    form_id = str(uuid.uuid4())
    now = utc_now_iso()
    eng = get_engine()
    try:
        with eng.begin() as conn:
            if active:
                conn.execute(
                    sql_text("UPDATE student_feedback_forms SET active = :f, updated_at = :now WHERE active = :t"),
                    {"f": False, "t": True, "now": now},
                )
            conn.execute(
                sql_text(
                    """
                    INSERT INTO student_feedback_forms
                        (id, key, version, title, description, schema_json, active, created_at, updated_at)
                    VALUES (:id, :key, :version, :title, :description, :schema_json, :active, :now, :now)
                    """
                ),
                {
                    "id": form_id,
                    "key": key,
                    "version": resolved_version,
                    "title": title,
                    "description": description,
                    "schema_json": json.dumps(schema),
                    "active": bool(active),
                    "now": now,
                },
            )
    except IntegrityError as exc:
        logger.warning("feedback_form_version_conflict key=%s version=%s", key, resolved_version)
        raise DuplicateFormVersion(key, resolved_version) from exc
    logger.info("feedback_form_created form_id=%s key=%s version=%s active=%s", form_id, key, resolved_version, active)
    return get_form(form_id) or {}


def activate_form(form_id: str) -> Optional[Dict[str, Any]]:
    """Make `form_id` the single active form."""
    if get_form(form_id) is None:
        return None
    now = utc_now_iso()
    eng = get_engine()
    with eng.begin() as conn:
        conn.execute(
            sql_text("UPDATE student_feedback_forms SET active = :f, updated_at = :now WHERE active = :t"),
            {"f": False, "t": True, "now": now},
        )
        conn.execute(
            sql_text("UPDATE student_feedback_forms SET active = :t, updated_at = :now WHERE id = :id"),
            {"t": True, "now": now, "id": form_id},
        )
    logger.info("feedback_form_activated form_id=%s", form_id)
    return get_form(form_id)


def ensure_default_form() -> Optional[Dict[str, Any]]:
    """Seed the default form when the registry is empty."""
    eng = get_engine()
    with eng.connect() as conn:
        count = conn.execute(sql_text("SELECT COUNT(*) FROM student_feedback_forms")).scalar_one()
    if int(count) > 0:
        return None
    return create_form(
        DEFAULT_FORM_KEY,
        DEFAULT_FORM_TITLE,
        DEFAULT_FORM_SCHEMA,
        description=DEFAULT_FORM_DESCRIPTION,
        version=1,
        active=True,
    )


def resolve_form_for(form_id: Optional[str]) -> tuple[Optional[Dict[str, Any]], Dict[str, Any]]:
    """Return (form, schema) for a pinned form id.

    Falls back to the active form, then to the built-in default schema.
    """
    form = get_form(form_id) if form_id else None
    if form is None:
        form = get_active_form()
    schema = form["schema"] if form and form.get("schema") else DEFAULT_FORM_SCHEMA
    return form, schema


__all__ = [
    "DuplicateFormVersion",
    "list_forms",
    "get_form",
    "get_active_form",
    "latest_version",
    "create_form",
    "activate_form",
    "ensure_default_form",
    "resolve_form_for",
]
