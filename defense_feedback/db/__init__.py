"""Database bootstrap utilities for the feedback service.

This module exposes convenience imports for engine construction and the
migrations runner that applies SQL files from the local migrations/
directory. Repositories run SQL text through the shared engine; no ORM models
reach the route handlers.
"""

from defense_feedback.db.base import get_engine, reset_engine
from defense_feedback.db.migrations_runner import apply_migrations

__all__ = [
    "get_engine",
    "reset_engine",
    "apply_migrations",
]
