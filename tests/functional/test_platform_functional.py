"""Functional tests for configuration loading, migrations, events and logging."""

from __future__ import annotations

import json
import logging

import pytest
from pydantic import ValidationError
from sqlalchemy import create_engine, inspect

from defense_feedback import config as config_module
from defense_feedback.config import load_config
from defense_feedback.db.migrations_runner import apply_migrations
from defense_feedback.logic import events
from defense_feedback.logic.feedback_session import build_http_client, session_from_config
from defense_feedback.logging_setup import RequestIdFilter, request_id_var


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Run load_config from an empty directory with no feedback env overrides."""
    monkeypatch.chdir(tmp_path)
    for key in (
        "FEEDBACK_AUTOSAVE_QUIET_SECONDS",
        "FEEDBACK_API_BASE_URL",
        "FEEDBACK_HTTP_TIMEOUT_SECONDS",
        "MIGRATIONS_DIR",
    ):
        monkeypatch.delenv(key, raising=False)
    return tmp_path


def test_config_defaults(isolated_config):
    cfg = load_config()
    assert cfg.feedback.autosave_quiet_seconds == 1.2
    assert cfg.feedback.api_base_url == "http://localhost:8000/api"
    assert cfg.http.timeout_seconds == 10.0
    assert cfg.database.dsn.startswith("sqlite")
    assert cfg.database.auto_apply_migrations is False
    assert cfg.database.migrations_dir == config_module.DEFAULT_MIGRATIONS_DIR


def test_config_precedence_env_over_files_over_json(isolated_config, monkeypatch):
    (isolated_config / "feedback_config.json").write_text(
        json.dumps({"feedback": {"autosave_quiet_seconds": 3, "api_base_url": "https://json.example/api/"}}),
        encoding="utf-8",
    )
    (isolated_config / "config").mkdir()
    (isolated_config / "config" / "feedback.api_base_url").write_text("https://file.example/api\n", encoding="utf-8")

    cfg = load_config()
    assert cfg.feedback.autosave_quiet_seconds == 3.0
    assert cfg.feedback.api_base_url == "https://file.example/api"

    monkeypatch.setenv("FEEDBACK_API_BASE_URL", "https://env.example/api/")
    monkeypatch.setenv("FEEDBACK_AUTOSAVE_QUIET_SECONDS", "0.5")
    cfg = load_config()
    assert cfg.feedback.api_base_url == "https://env.example/api"
    assert cfg.feedback.autosave_quiet_seconds == 0.5


@pytest.mark.parametrize(
    "key,value",
    [
        ("FEEDBACK_AUTOSAVE_QUIET_SECONDS", "0"),
        ("FEEDBACK_AUTOSAVE_QUIET_SECONDS", "-1"),
        ("FEEDBACK_API_BASE_URL", "ftp://nope"),
        ("FEEDBACK_HTTP_TIMEOUT_SECONDS", "0"),
    ],
)
def test_invalid_config_values_are_rejected(isolated_config, monkeypatch, key, value):
    monkeypatch.setenv(key, value)
    with pytest.raises(ValidationError):
        load_config()


def test_non_numeric_quiet_period_raises_value_error(isolated_config, monkeypatch):
    monkeypatch.setenv("FEEDBACK_AUTOSAVE_QUIET_SECONDS", "soon")
    with pytest.raises(ValueError):
        load_config()


def test_session_and_client_follow_config(isolated_config, monkeypatch, scheduler):
    monkeypatch.setenv("FEEDBACK_API_BASE_URL", "https://feedback.example/api/")
    monkeypatch.setenv("FEEDBACK_AUTOSAVE_QUIET_SECONDS", "2.5")
    monkeypatch.setenv("FEEDBACK_HTTP_TIMEOUT_SECONDS", "4")
    cfg = load_config()
    client = build_http_client(cfg)
    assert client.timeout.read == 4.0
    session = session_from_config(cfg, client, scheduler=scheduler)
    assert session.base_url == "https://feedback.example/api"
    assert session.quiet_period == 2.5
    assert session.schema_sources[0].url == "https://feedback.example/api/student-evaluations/schema"


def test_migrations_apply_once_in_order(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'm.db'}", future=True)
    first = apply_migrations(engine, config_module.DEFAULT_MIGRATIONS_DIR)
    assert first == sorted(first)
    assert first[0].startswith("001_")
    assert apply_migrations(engine, config_module.DEFAULT_MIGRATIONS_DIR) == []
    tables = set(inspect(engine).get_table_names())
    assert {"student_feedback_forms", "student_evaluations", "student_evaluation_scores", "schema_migrations"} <= tables
    engine.dispose()


def test_missing_migrations_dir_applies_nothing(tmp_path):
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    assert apply_migrations(engine, tmp_path / "absent") == []


def test_semicolons_inside_comments_do_not_split_statements(tmp_path):
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "001_notes.sql").write_text(
        "-- 001_notes.sql\n"
        "-- status moves draft -> final; body is free text.\n"
        "CREATE TABLE IF NOT EXISTS notes (\n"
        "  id TEXT PRIMARY KEY,\n"
        "  -- trailing remark; still a comment\n"
        "  body TEXT NOT NULL\n"
        ");\n"
        "CREATE INDEX IF NOT EXISTS notes_body_ix ON notes (body);\n",
        encoding="utf-8",
    )
    engine = create_engine(f"sqlite:///{tmp_path / 'notes.db'}", future=True)
    assert apply_migrations(engine, migrations) == ["001_notes.sql"]
    inspector = inspect(engine)
    assert [c["name"] for c in inspector.get_columns("notes")] == ["id", "body"]
    assert [ix["name"] for ix in inspector.get_indexes("notes")] == ["notes_body_ix"]
    engine.dispose()


def test_event_subscribers_receive_events_and_failures_are_isolated(caplog):
    seen = []

    def broken(event_type, payload):
        raise RuntimeError("subscriber bug")

    unsubscribe_broken = events.subscribe(broken)
    unsubscribe = events.subscribe(lambda t, p: seen.append((t, p["id"])))
    try:
        with caplog.at_level(logging.ERROR, logger="defense_feedback.logic.events"):
            events.publish(events.EVALUATION_LOCKED, {"id": "e1"})
    finally:
        unsubscribe_broken()
        unsubscribe()
    events.publish(events.EVALUATION_LOCKED, {"id": "e2"})

    assert seen == [(events.EVALUATION_LOCKED, "e1")]
    assert any("event_subscriber_failed" in r.getMessage() for r in caplog.records)
    buffered = events.get_buffered_events()
    assert [e["payload"]["id"] for e in buffered][-2:] == ["e1", "e2"]
    assert events.get_buffered_events() == []


def test_request_id_filter_stamps_records():
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
    token = request_id_var.set("req-42")
    try:
        RequestIdFilter().filter(record)
    finally:
        request_id_var.reset(token)
    assert record.request_id == "req-42"

    other = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
    RequestIdFilter().filter(other)
    assert other.request_id == "-"
