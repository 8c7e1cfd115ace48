from __future__ import annotations

"""Functional test bootstrap.

Points the service at a file-backed SQLite database shared across the
process, applies the migrations once per session, and offers fixtures for
the HTTP API (TestClient) and for the client-side engine (an httpx
MockTransport recorder and a manually fired scheduler).
"""

import os
import pathlib
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

_ROOT = pathlib.Path(__file__).resolve().parents[2]
_DB_FILE = _ROOT / "tmp" / "functional_tests.db"
_DB_FILE.parent.mkdir(parents=True, exist_ok=True)
if _DB_FILE.exists():
    _DB_FILE.unlink()

# Set before any defense_feedback import reads the environment
os.environ["TEST_DATABASE_URL"] = f"sqlite:///{_DB_FILE}"
os.environ["DATABASE_URL"] = os.environ["TEST_DATABASE_URL"]
# The session fixture applies migrations explicitly
os.environ["AUTO_APPLY_MIGRATIONS"] = "0"

BASE_URL = "http://feedback.test/api"


@pytest.fixture(scope="session", autouse=True)
def functional_sqlite_bootstrap():
    from defense_feedback.db.base import get_engine, reset_engine
    from defense_feedback.db.migrations_runner import apply_migrations

    engine = get_engine(os.environ["TEST_DATABASE_URL"])
    apply_migrations(engine, migrations_dir=str(_ROOT / "migrations"))
    yield
    reset_engine()


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def clean_db():
    """Empty every table, reseed the default form and drop buffered events."""
    from sqlalchemy import text as sql_text

    from defense_feedback.db.base import get_engine
    from defense_feedback.logic.events import get_buffered_events
    from defense_feedback.logic.repository_feedback_forms import ensure_default_form

    with get_engine().begin() as conn:
        for table in ("student_evaluation_scores", "student_evaluations", "student_feedback_forms"):
            conn.execute(sql_text(f"DELETE FROM {table}"))
    ensure_default_form()
    get_buffered_events(clear=True)
    yield


@pytest.fixture
def api_client(clean_db):
    from fastapi.testclient import TestClient

    from defense_feedback.main import create_app

    with TestClient(create_app()) as client:
        yield client


# -----
# Client-side engine fakes
# -----


class FakeTimer:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Scheduler whose timers only run when the test fires them."""

    def __init__(self) -> None:
        self.timers: List[FakeTimer] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    def pending(self) -> List[FakeTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def fire_pending(self) -> int:
        due = self.pending()
        for t in due:
            t.fired = True
            t.callback()
        return len(due)


class RecordingBackend:
    """Route table for httpx.MockTransport that records every request."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.routes: Dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}

    def on(self, method: str, path: str, status: int = 200, json: Any = None, text: Optional[str] = None) -> None:
        def respond(request: httpx.Request) -> httpx.Response:
            if text is not None:
                return httpx.Response(status, text=text)
            return httpx.Response(status, json=json if json is not None else {})

        self.routes[(method.upper(), path)] = respond

    def on_call(self, method: str, path: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[(method.upper(), path)] = handler

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        respond = self.routes.get((request.method, request.url.path))
        if respond is None:
            return httpx.Response(404, json={"detail": "Not Found"})
        return respond(request)

    def calls(self, method: Optional[str] = None) -> List[httpx.Request]:
        return [r for r in self.requests if method is None or r.method == method.upper()]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()
