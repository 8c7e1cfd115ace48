"""Functional tests for the draft AnswerStore."""

from __future__ import annotations

import pytest

from defense_feedback.logic.answer_store import AnswerStore


def test_load_then_snapshot_round_trips():
    answers = {"q1": 3, "q2": ["a", "b"], "q3": None, "q4": {"nested": True}}
    store = AnswerStore()
    store.load(answers)
    assert dict(store.snapshot()) == answers
    assert not store.dirty
    assert not store.needs_save()


def test_snapshot_is_read_only_and_detached():
    store = AnswerStore({"q": ["a"]})
    snap = store.snapshot()
    with pytest.raises(TypeError):
        snap["q"] = "x"  # type: ignore[index]
    snap["q"].append("b")
    assert store.get("q") == ["a"]


def test_set_copies_value_and_marks_dirty():
    store = AnswerStore({"q": 1})
    value = ["x"]
    store.set("tags", value)
    value.append("y")
    assert store.get("tags") == ["x"]
    assert store.dirty
    assert store.needs_save()


def test_clear_writes_none():
    store = AnswerStore({"q": 1})
    store.clear("q")
    assert "q" in store
    assert store.get("q") is None
    assert store.dirty


def test_listeners_are_notified_and_can_unsubscribe():
    store = AnswerStore()
    seen = []
    unsubscribe = store.subscribe(seen.append)
    store.set("a", 1)
    store.clear("b")
    unsubscribe()
    store.set("c", 1)
    assert seen == ["a", "b"]


def test_mark_saved_keeps_dirty_when_edited_after_snapshot():
    store = AnswerStore({"q": 1})
    store.set("q", 2)
    saved = store.serialized()
    store.set("q", 3)
    store.mark_saved(saved)
    assert store.dirty
    store.mark_saved(store.serialized())
    assert not store.dirty
    assert store.matches_baseline()


def test_load_resets_baseline_and_dirty():
    store = AnswerStore({"q": 1})
    store.set("q", 2)
    store.load({"other": True})
    assert not store.dirty
    assert dict(store.snapshot()) == {"other": True}
    assert store.matches_baseline()


def test_baseline_comparison_is_structural():
    store = AnswerStore({"b": 1, "a": [1, 2]})
    assert store.baseline == AnswerStore({"a": [1, 2], "b": 1}).baseline
