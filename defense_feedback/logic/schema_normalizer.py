"""Normalize heterogeneous feedback schema dialects into a canonical model.

Three dialects are understood, tried in a fixed order:

1. Sectioned: a `sections` array whose elements carry `questions`/`fields`.
2. Flat: a top-level `questions`/`fields` array, wrapped into one section.
3. Property-schema: JSON-schema-like `properties` plus an optional
   `required` string array; each property key becomes a question.

Each dialect is an independent, pure strategy returning a list of sections
or None. The first strategy yielding at least one non-empty section wins.
Malformed individual questions are dropped; they never invalidate the
schema as a whole.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Set
import logging

from defense_feedback.logic.coercion import (
    first_string,
    humanize_key,
    is_record,
    ordered_bounds,
    slugify,
    to_finite_number,
    to_string_safe,
)
from defense_feedback.logic.errors import NormalizationFailure
from defense_feedback.models.feedback_schema import (
    CanonicalSchema,
    ChoiceOption,
    Question,
    Scale,
    Section,
)
from defense_feedback.models.question_kind import QuestionKind

logger = logging.getLogger(__name__)

DEFAULT_QUESTION_LABEL = "Untitled question"
DEFAULT_SECTION_TITLE = "Section"
DEFAULT_FORM_TITLE = "Feedback Form"
SINGLE_SECTION_ID = "feedback"
DEFAULT_SCALE_MIN = 1.0
DEFAULT_SCALE_MAX = 5.0

QUESTION_ID_KEYS = ("id", "key", "name", "field", "questionId")

# Explicit `type` spellings accepted per canonical kind (compared lowercased)
TYPE_ALIASES: Dict[str, str] = {
    "rating": QuestionKind.RATING,
    "textarea": QuestionKind.TEXTAREA,
    "multiline": QuestionKind.TEXTAREA,
    "text": QuestionKind.TEXT,
    "string": QuestionKind.TEXT,
    "number": QuestionKind.NUMBER,
    "numeric": QuestionKind.NUMBER,
    "integer": QuestionKind.NUMBER,
    "boolean": QuestionKind.BOOLEAN,
    "yesno": QuestionKind.BOOLEAN,
    "choice": QuestionKind.CHOICE,
    "select": QuestionKind.CHOICE,
    "radio": QuestionKind.CHOICE,
    "multichoice": QuestionKind.MULTICHOICE,
    "checkbox": QuestionKind.MULTICHOICE,
    "multi-select": QuestionKind.MULTICHOICE,
}


def pick_question_id(raw: Dict[str, Any]) -> Optional[str]:
    return first_string(*(raw.get(k) for k in QUESTION_ID_KEYS))


def pick_label(raw: Dict[str, Any]) -> str:
    return (
        first_string(raw.get("label"), raw.get("title"), raw.get("question"), raw.get("name"))
        or DEFAULT_QUESTION_LABEL
    )


def pick_description(raw: Dict[str, Any]) -> Optional[str]:
    return first_string(raw.get("description"), raw.get("help"), raw.get("hint"))


def normalize_options(raw: Any) -> Optional[List[ChoiceOption]]:
    """Accept a list of strings/objects, or an object carrying an `enum` list."""
    if not raw:
        return None
    if isinstance(raw, list):
        out: List[ChoiceOption] = []
        for item in raw:
            if isinstance(item, str) and item.strip():
                out.append(ChoiceOption(value=item, label=item))
            elif is_record(item):
                value = first_string(item.get("value"), item.get("id"), item.get("key"), item.get("name"))
                label = first_string(item.get("label"), item.get("title"), item.get("name"), item.get("value"))
                if value:
                    out.append(ChoiceOption(value=value, label=label or value))
        return out or None
    if is_record(raw) and isinstance(raw.get("enum"), list):
        return normalize_options(raw["enum"])
    return None


def _question_options(raw: Dict[str, Any]) -> Optional[List[ChoiceOption]]:
    for key in ("options", "choices", "items", "enum"):
        opts = normalize_options(raw.get(key))
        if opts:
            return opts
    return None


def resolve_type(raw: Dict[str, Any], has_scale: bool, options: Optional[List[ChoiceOption]]) -> str:
    explicit = to_string_safe(raw.get("type"))
    if explicit is not None:
        kind = TYPE_ALIASES.get(explicit.lower())
        if kind is not None:
            return kind
    if has_scale:
        return QuestionKind.RATING
    if options:
        return QuestionKind.MULTICHOICE if raw.get("multiple") is True else QuestionKind.CHOICE
    if raw.get("multiline") is True:
        return QuestionKind.TEXTAREA
    return QuestionKind.UNKNOWN


def read_scale(raw: Dict[str, Any]) -> tuple[Optional[float], Optional[float]]:
    scale = raw.get("scale")
    if not is_record(scale):
        return None, None
    return to_finite_number(scale.get("min")), to_finite_number(scale.get("max"))


def normalize_question(raw: Any) -> Optional[Question]:
    """Normalize one question-like node, or return None to drop it."""
    if not is_record(raw):
        return None
    qid = pick_question_id(raw)
    if not qid:
        return None

    scale_min, scale_max = read_scale(raw)
    options = _question_options(raw)
    qtype = resolve_type(raw, scale_min is not None or scale_max is not None, options)

    scale = None
    if qtype == QuestionKind.RATING:
        lo, hi = ordered_bounds(
            DEFAULT_SCALE_MIN if scale_min is None else scale_min,
            DEFAULT_SCALE_MAX if scale_max is None else scale_max,
        )
        scale = Scale(min=lo, max=hi)

    return Question(
        id=qid,
        type=qtype,
        label=pick_label(raw),
        description=pick_description(raw),
        required=raw.get("required") is True,
        placeholder=to_string_safe(raw.get("placeholder")),
        options=options,
        scale=scale,
    )


def _unique_questions(raws: List[Any], seen: Set[str]) -> List[Question]:
    out: List[Question] = []
    for raw in raws:
        q = normalize_question(raw)
        if q is None:
            continue
        if q.id in seen:
            logger.warning("normalize_duplicate_question_dropped id=%s", q.id)
            continue
        seen.add(q.id)
        out.append(q)
    return out


def _question_list(node: Dict[str, Any]) -> Optional[List[Any]]:
    if isinstance(node.get("questions"), list):
        return node["questions"]
    if isinstance(node.get("fields"), list):
        return node["fields"]
    return None


def _single_section(node: Dict[str, Any], questions: List[Question]) -> List[Section]:
    return [
        Section(
            id=SINGLE_SECTION_ID,
            title=to_string_safe(node.get("title")) or DEFAULT_FORM_TITLE,
            description=to_string_safe(node.get("description")),
            questions=questions,
        )
    ]


def from_sections(node: Any) -> Optional[List[Section]]:
    if not is_record(node) or not isinstance(node.get("sections"), list):
        return None
    seen: Set[str] = set()
    sections: List[Section] = []
    for sec in node["sections"]:
        if not is_record(sec):
            continue
        questions = _unique_questions(_question_list(sec) or [], seen)
        if not questions:
            continue
        title = first_string(sec.get("title"), sec.get("name"), sec.get("label")) or DEFAULT_SECTION_TITLE
        sections.append(
            Section(
                id=first_string(sec.get("id"), sec.get("key"), sec.get("name")) or slugify(title),
                title=title,
                description=to_string_safe(sec.get("description")),
                questions=questions,
            )
        )
    return sections or None


def from_questions(node: Any) -> Optional[List[Section]]:
    if not is_record(node):
        return None
    raws = _question_list(node)
    if raws is None:
        return None
    questions = _unique_questions(raws, set())
    if not questions:
        return None
    return _single_section(node, questions)


def _property_type(value: Dict[str, Any], options: Optional[List[ChoiceOption]]) -> str:
    value_type = (to_string_safe(value.get("type")) or "").lower()
    if value_type == "boolean":
        return QuestionKind.BOOLEAN
    if value_type in ("number", "integer"):
        return QuestionKind.NUMBER
    if options:
        return QuestionKind.CHOICE
    if value_type == "string":
        return QuestionKind.TEXT
    return QuestionKind.UNKNOWN


def from_properties(node: Any) -> Optional[List[Section]]:
    if not is_record(node) or not is_record(node.get("properties")):
        return None
    required_raw = node.get("required") if isinstance(node.get("required"), list) else []
    required = {k for k in required_raw if isinstance(k, str)}

    questions: List[Question] = []
    for key, value in node["properties"].items():
        if not is_record(value) or not to_string_safe(key):
            continue
        options = normalize_options(value)
        questions.append(
            Question(
                id=key,
                type=_property_type(value, options),
                label=first_string(value.get("title"), value.get("label")) or humanize_key(key),
                description=to_string_safe(value.get("description")),
                required=key in required,
                placeholder=to_string_safe(value.get("placeholder")),
                options=options,
                scale=None,
            )
        )
    if not questions:
        return None
    return _single_section(node, questions)


DialectStrategy = Callable[[Any], Optional[List[Section]]]

DIALECT_STRATEGIES: List[tuple[str, DialectStrategy]] = [
    ("sectioned", from_sections),
    ("flat", from_questions),
    ("property_schema", from_properties),
]


def normalize(raw: Any) -> Optional[CanonicalSchema]:
    """Return the canonical schema for `raw`, or None when no dialect fits."""
    if not is_record(raw):
        return None
    for name, strategy in DIALECT_STRATEGIES:
        sections = strategy(raw)
        if sections:
            logger.debug("normalize_dialect_matched dialect=%s sections=%s", name, len(sections))
            return CanonicalSchema(
                title=to_string_safe(raw.get("title")) or DEFAULT_FORM_TITLE,
                description=to_string_safe(raw.get("description")),
                sections=sections,
            )
    logger.info("normalize_no_dialect_matched keys=%s", sorted(raw.keys()))
    return None


def require_canonical(raw: Any) -> CanonicalSchema:
    """normalize() for callers that have no raw-answer display to fall back to."""
    canonical = normalize(raw)
    if canonical is None:
        raise NormalizationFailure()
    return canonical


def extra_answers(answers: Dict[str, Any], schema: Optional[CanonicalSchema]) -> List[tuple[str, Any]]:
    """Answers no canonical question owns, sorted by key, for raw display."""
    known = set(schema.question_index()) if schema is not None else set()
    return sorted(((k, v) for k, v in answers.items() if k not in known), key=lambda kv: kv[0])


def seed_answers_template(schema: Optional[CanonicalSchema]) -> Dict[str, Any]:
    if schema is None:
        return {}
    return {q.id: None for q in schema.questions()}


__all__ = [
    "DIALECT_STRATEGIES",
    "DEFAULT_QUESTION_LABEL",
    "QUESTION_ID_KEYS",
    "pick_question_id",
    "pick_label",
    "normalize_options",
    "normalize_question",
    "from_sections",
    "from_questions",
    "from_properties",
    "normalize",
    "require_canonical",
    "extra_answers",
    "seed_answers_template",
]
