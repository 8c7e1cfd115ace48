"""Functional tests for the required-id and rating-question indexes."""

from __future__ import annotations

from defense_feedback.logic import rating_index, required_index
from defense_feedback.logic.default_form import DEFAULT_FORM_SCHEMA
from defense_feedback.logic.gating import evaluate_gating, required_ids_for
from defense_feedback.logic.schema_normalizer import normalize


def test_required_index_collects_required_arrays_at_any_depth():
    raw = {
        "required": ["top"],
        "definitions": {"inner": {"required": ["deep", "  "]}},
        "sections": [{"questions": [{"id": "q1", "required": True}, {"id": "q2", "required": "true"}]}],
    }
    assert required_index.build(raw) == {"top", "deep", "q1"}


def test_required_index_uses_question_id_fallback_keys():
    raw = {"fields": [{"field": "f1", "required": True}, {"questionId": "f2", "required": True}]}
    assert required_index.build(raw) == {"f1", "f2"}


def test_required_index_agrees_on_raw_and_canonical_forms():
    raw = {"properties": {"comment": {"type": "string"}, "extra": {"type": "string"}}, "required": ["comment"]}
    canonical = normalize(raw)
    assert required_index.build(raw) == {"comment"}
    assert required_index.build(canonical) == {"comment"}


def test_required_ids_for_takes_union_of_raw_and_canonical():
    # "ghost" is required by the raw schema but owns no question
    raw = {"questions": [{"id": "q1", "required": True}], "required": ["ghost"]}
    assert required_ids_for(raw) == ["ghost", "q1"]


def test_default_form_requires_all_ratings_in_form_order():
    assert required_index.build_ordered(DEFAULT_FORM_SCHEMA) == [
        q["id"] for s in DEFAULT_FORM_SCHEMA["sections"] for q in s["questions"] if q["type"] == "rating"
    ]


def test_required_ids_follow_the_order_they_are_found():
    raw = {
        "sections": [
            {"questions": [{"id": "zeta", "required": True}, {"id": "alpha", "required": True}]},
            {"questions": [{"id": "mid", "required": True}, {"id": "zeta", "required": True}]},
        ]
    }
    assert required_index.build_ordered(raw) == ["zeta", "alpha", "mid"]
    assert required_ids_for(raw) == ["zeta", "alpha", "mid"]
    verdict = evaluate_gating(raw, {"alpha": 3})
    assert [b["question_id"] for b in verdict["blocking_items"]] == ["zeta", "mid"]


def test_merged_appends_canonical_only_ids_after_raw_ones():
    raw = {"properties": {"b": {"type": "string"}, "a": {"type": "string"}}, "required": ["b"]}
    canonical = normalize(
        {"questions": [{"id": "c", "type": "text", "required": True}, {"id": "b", "type": "text", "required": True}]}
    )
    assert required_index.merged(raw, canonical) == ["b", "c"]
    assert required_index.merged(None, canonical) == ["c", "b"]
    assert required_index.merged(None, None) == []


def test_rating_index_defaults_swaps_and_dedupes_case_insensitively():
    raw = {
        "questions": [
            {"id": "Q1", "type": "rating", "label": "First"},
            {"id": "q1", "type": "RATING", "label": "Duplicate"},
            {"id": "q2", "type": "rating", "scale": {"min": 10, "max": 0}, "required": True},
            {"id": "q3", "type": "text"},
        ]
    }
    ratings = rating_index.build(raw)
    assert [r.id for r in ratings] == ["Q1", "q2"]
    assert (ratings[0].min, ratings[0].max, ratings[0].label) == (1, 5, "First")
    assert (ratings[1].min, ratings[1].max, ratings[1].required) == (0, 10, True)


def test_rating_index_on_canonical_schema_matches_normalized_scales():
    canonical = normalize(DEFAULT_FORM_SCHEMA)
    ratings = rating_index.build(canonical)
    assert len(ratings) == 8
    assert all((r.min, r.max) == (1, 5) for r in ratings)


def test_gating_verdict_lists_blocking_items():
    raw = {"questions": [{"id": "q1", "type": "rating", "required": True}, {"id": "q2", "required": True}]}
    verdict = evaluate_gating(raw, {"q1": 0, "q2": "  "})
    assert verdict == {"ok": False, "blocking_items": [{"question_id": "q2", "reason": "missing_required_answer"}]}
    assert evaluate_gating(raw, {"q1": 4, "q2": "fine"}) == {"ok": True, "blocking_items": []}
