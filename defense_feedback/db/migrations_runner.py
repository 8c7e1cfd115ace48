"""Lightweight SQL migrations runner.

Applies .sql files in lexical order from the `migrations/` directory.
Skips rollback files and records applied filenames in a
`schema_migrations` journal table, so a fresh database always receives the
full schema while an existing one is not migrated twice. Intended for local
development and CI; production environments should use the platform's
migration mechanism.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Set
import logging

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)

_JOURNAL_DDL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    filename TEXT PRIMARY KEY,
    applied_at TEXT NOT NULL
)
"""


def _iter_sql_files(root: Path) -> Iterable[Path]:
    for p in sorted(root.glob("*.sql")):
        if "rollback" in p.name.lower():
            continue
        yield p


def _split_statements(sql: str) -> list[str]:
    # Comments may contain `;`, so they are dropped before splitting
    body = "\n".join(ln for ln in sql.splitlines() if not ln.strip().startswith("--"))
    out: list[str] = []
    for stmt in body.split(";"):
        s = stmt.strip()
        if not s or s.upper() in {"BEGIN", "COMMIT", "END"}:
            continue
        out.append(s)
    return out


def _exec_sql_compat(conn: Connection, sql: str) -> None:
    """Execute a multi-statement file one statement at a time.

    SQLite's DB-API does not accept several statements per execute() call and
    BEGIN/COMMIT are dropped because the runner already holds a transaction.
    """
    for stmt in _split_statements(sql):
        conn.exec_driver_sql(stmt)


def _applied(conn: Connection) -> Set[str]:
    conn.exec_driver_sql(_JOURNAL_DDL)
    rows = conn.execute(sql_text("SELECT filename FROM schema_migrations")).fetchall()
    return {str(r[0]) for r in rows}


def apply_migrations(engine: Engine, migrations_dir: str | os.PathLike[str] = "migrations") -> list[str]:
    """Apply pending migrations and return the filenames applied."""
    root = Path(migrations_dir)
    if not root.exists():
        logger.warning("migrations_dir_missing path=%s", str(root))
        return []

    newly_applied: list[str] = []
    with engine.begin() as conn:
        applied = _applied(conn)
        for sql_path in _iter_sql_files(root):
            fname = sql_path.name
            if fname in applied:
                continue
            sql = sql_path.read_text(encoding="utf-8")
            if not sql.strip():
                continue
            _exec_sql_compat(conn, sql)
            conn.execute(
                sql_text("INSERT INTO schema_migrations (filename, applied_at) VALUES (:f, :at)"),
                {
                    "f": fname,
                    # ISO-8601 UTC without fractional seconds (e.g., 2024-01-01T00:00:00Z)
                    "at": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
                },
            )
            newly_applied.append(fname)
            logger.info("migration_applied file=%s", fname)
    return newly_applied


__all__ = ["apply_migrations"]
