"""FastAPI application package for the thesis-defense feedback service.

The package has two halves. `defense_feedback.logic` holds the feedback
schema normalization and scoring engine together with the draft session
used by clients to autosave and submit answers. `defense_feedback.routes`
exposes the server side: the active feedback form, student evaluation
records, and their persisted score summaries.
"""

from __future__ import annotations

from defense_feedback.main import create_app

__all__ = ["create_app"]
