"""Default student feedback form seeded into an empty form registry."""

from __future__ import annotations

from typing import Any, Dict, List


def _rating(qid: str, label: str, low: str, high: str, required: bool) -> Dict[str, Any]:
    return {
        "id": qid,
        "type": "rating",
        "label": label,
        "scale": {"min": 1, "max": 5, "minLabel": low, "maxLabel": high},
        "required": required,
    }


def _text(qid: str, label: str, placeholder: str) -> Dict[str, Any]:
    return {
        "id": qid,
        "type": "text",
        "label": label,
        "placeholder": placeholder,
        "required": False,
        "maxLength": 1000,
    }


DEFAULT_FORM_KEY = "student-feedback-v1"
DEFAULT_FORM_TITLE = "Student Feedback Form"
DEFAULT_FORM_DESCRIPTION = "Your feedback helps improve the thesis defense experience. Please answer honestly."

_SECTIONS: List[Dict[str, Any]] = [
    {
        "id": "overall",
        "title": "Overall Experience",
        "questions": [
            _rating("overall_satisfaction", "Overall satisfaction with the defense process", "Poor", "Excellent", True),
            _rating("schedule_clarity", "Clarity of schedule, venue, and instructions", "Unclear", "Very clear", True),
            _rating("time_management", "Time management during the defense", "Poor", "Excellent", True),
        ],
    },
    {
        "id": "panel",
        "title": "Panel & Feedback Quality",
        "questions": [
            _rating("feedback_helpfulness", "Helpfulness of panel feedback", "Not helpful", "Very helpful", True),
            _rating("feedback_fairness", "Fairness and professionalism of evaluation", "Unfair", "Very fair", True),
            _rating("feedback_clarity", "Clarity of comments and recommendations", "Unclear", "Very clear", True),
        ],
    },
    {
        "id": "facilities",
        "title": "Facilities & Logistics",
        "questions": [
            _rating("venue_readiness", "Venue readiness (room, equipment, setup)", "Poor", "Excellent", True),
            _rating("audio_visual", "Audio/visual support and presentation setup", "Poor", "Excellent", True),
        ],
    },
    {
        "id": "open_ended",
        "title": "Suggestions",
        "questions": [
            _text("what_went_well", "What went well during the defense?", "Share what worked best..."),
            _text("what_to_improve", "What should be improved?", "Share suggestions..."),
            _text("other_comments", "Other comments", "Anything else you want to add..."),
        ],
    },
]

DEFAULT_FORM_SCHEMA: Dict[str, Any] = {
    "version": 1,
    "key": DEFAULT_FORM_KEY,
    "title": DEFAULT_FORM_TITLE,
    "description": DEFAULT_FORM_DESCRIPTION,
    "sections": _SECTIONS,
}

__all__ = [
    "DEFAULT_FORM_KEY",
    "DEFAULT_FORM_TITLE",
    "DEFAULT_FORM_DESCRIPTION",
    "DEFAULT_FORM_SCHEMA",
]
