"""Functional tests for the feedback session controller.

The last tests drive the session against the real service app through
httpx.ASGITransport, so the client engine and the server agree on schema,
completion and score.
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from defense_feedback.logic.errors import IngestionFailure, NotEditable, StaleResult
from defense_feedback.logic.feedback_session import FeedbackSession

pytestmark = pytest.mark.anyio

BASE_URL = "http://feedback.test/api"
SCHEMA_PATH = "/api/student-evaluations/schema"

RATING_SCHEMA = {
    "title": "Panel",
    "sections": [
        {
            "title": "Main",
            "questions": [
                {"id": "q1", "type": "rating", "label": "Clarity", "required": True, "scale": {"min": 1, "max": 5}},
                {"id": "q2", "type": "textarea", "label": "Comments"},
            ],
        }
    ],
}


async def test_load_seeds_draft_and_derives_indexes(backend, scheduler):
    backend.on("GET", SCHEMA_PATH, json={"schema": RATING_SCHEMA})
    backend.on("GET", "/api/student-evaluations/e1", json={"item": {"id": "e1", "answers": {"q1": 3, "legacy": "x"}}})
    async with backend.client() as client:
        session = FeedbackSession(client, BASE_URL, scheduler=scheduler)
        item = await session.load("e1")
        assert item.id == "e1"
        assert session.schema.title == "Panel"
        assert session.required_ids == ["q1"]
        assert [r.id for r in session.rating_questions] == ["q1"]
        assert session.editable
        assert session.completion().missing == []
        assert session.score().percentage == pytest.approx(60)
        assert session.extra_answers() == [("legacy", "x")]


async def test_schema_failure_is_non_fatal_and_falls_back_to_raw_answers(backend, scheduler):
    backend.on("GET", "/api/student-evaluations/e1", json={"item": {"id": "e1", "answers": {"b": 2, "a": 1}}})
    async with backend.client() as client:
        session = FeedbackSession(client, BASE_URL, scheduler=scheduler)
        await session.load("e1")
    assert session.schema is None
    assert session.schema_error == "Not Found"
    assert session.required_ids == []
    assert session.extra_answers() == [("a", 1), ("b", 2)]
    assert session.score().max_score == 0


async def test_unusable_schema_keeps_raw_required_ids(backend, scheduler):
    backend.on("GET", SCHEMA_PATH, json={"title": "Broken", "required": ["comment"], "questions": []})
    backend.on("GET", "/api/student-evaluations/e1", json={"item": {"id": "e1"}})
    async with backend.client() as client:
        session = FeedbackSession(client, BASE_URL, scheduler=scheduler)
        await session.load("e1")
    assert session.schema is None
    assert session.raw_schema is not None
    assert session.schema_error == "No usable sections in feedback schema"
    assert session.completion().missing == ["comment"]


async def test_item_failure_raises_ingestion_failure(backend, scheduler):
    backend.on("GET", SCHEMA_PATH, json=RATING_SCHEMA)
    async with backend.client() as client:
        session = FeedbackSession(client, BASE_URL, scheduler=scheduler)
        with pytest.raises(IngestionFailure):
            await session.load("missing")
    assert session.item_error == "Not Found"
    assert session.item is None


async def test_superseded_load_is_dropped(backend, scheduler):
    entered = asyncio.Event()
    release = asyncio.Event()

    async def slow_item(request):
        entered.set()
        await release.wait()
        return httpx.Response(200, json={"item": {"id": "old", "answers": {"q1": 1}}})

    backend.on("GET", SCHEMA_PATH, json=RATING_SCHEMA)
    backend.on_call("GET", "/api/student-evaluations/old", slow_item)
    backend.on("GET", "/api/student-evaluations/new", json={"item": {"id": "new", "answers": {"q1": 5}}})
    async with backend.client() as client:
        session = FeedbackSession(client, BASE_URL, scheduler=scheduler)
        first = asyncio.ensure_future(session.load("old"))
        await entered.wait()
        await session.load("new")
        release.set()
        with pytest.raises(StaleResult):
            await first
    assert session.item.id == "new"
    assert session.store.get("q1") == 5


async def test_refresh_keeps_local_draft(backend, scheduler):
    backend.on("GET", SCHEMA_PATH, json=RATING_SCHEMA)
    backend.on("GET", "/api/student-evaluations/e1", json={"item": {"id": "e1", "answers": {"q1": 1}}})
    async with backend.client() as client:
        session = FeedbackSession(client, BASE_URL, scheduler=scheduler)
        await session.load("e1")
        session.set_answer("q1", 4)
        await session.refresh()
    assert session.store.get("q1") == 4
    assert session.store.dirty


async def test_edits_on_submitted_item_are_refused(backend, scheduler):
    backend.on("GET", SCHEMA_PATH, json=RATING_SCHEMA)
    backend.on("GET", "/api/student-evaluations/e1", json={"item": {"id": "e1", "status": "submitted"}})
    async with backend.client() as client:
        session = FeedbackSession(client, BASE_URL, scheduler=scheduler)
        await session.load("e1")
        with pytest.raises(NotEditable):
            session.set_answer("q1", 3)


async def test_unloaded_session_refuses_persistence(backend, scheduler):
    async with backend.client() as client:
        session = FeedbackSession(client, BASE_URL, scheduler=scheduler)
        with pytest.raises(NotEditable):
            await session.save()
        with pytest.raises(IngestionFailure):
            await session.refresh()


# -----
# Against the service app
# -----


def _asgi_client(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://feedback.test")


async def test_session_round_trip_against_service(clean_db, scheduler):
    from defense_feedback.logic import evaluation_service
    from defense_feedback.logic.default_form import DEFAULT_FORM_SCHEMA
    from defense_feedback.main import create_app

    item, _ = evaluation_service.ensure("sched-1", "student-1")
    ratings = [q["id"] for s in DEFAULT_FORM_SCHEMA["sections"] for q in s["questions"] if q["type"] == "rating"]

    async with _asgi_client(create_app()) as client:
        session = FeedbackSession(client, BASE_URL, scheduler=scheduler)
        await session.load(item.id)
        assert session.required_ids == ratings

        blocked = await session.submit()
        assert blocked.reason == "missing_required"
        assert blocked.missing == ratings

        for qid in ratings:
            session.set_answer(qid, 4)
        session.set_answer("what_went_well", "Clear schedule")
        assert scheduler.fire_pending() == 1
        await session.coordinator.drain()
        assert not session.store.dirty

        outcome = await session.submit()
        assert outcome.submitted
        assert outcome.item.status == "submitted"
        assert not session.editable

    stored = evaluation_service.get(item.id)
    assert stored.status == "submitted"
    assert stored.answers["what_went_well"] == "Clear schedule"
    score = evaluation_service.get_score(item.id)
    assert score["total_score"] == 32
    assert score["max_score"] == 40
    assert score["percentage"] == pytest.approx(session.score().percentage)
