"""Pydantic models for the canonical feedback schema and derived summaries.

These are the shapes produced by the normalization engine regardless of
which dialect the schema source used. Derived values are frozen so a
canonical schema is replaced wholesale rather than mutated.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


QuestionType = Literal[
    "rating", "text", "textarea", "number", "boolean", "choice", "multichoice", "unknown"
]


class ChoiceOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str
    label: str


class Scale(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: float
    max: float

    @model_validator(mode="after")
    def _ordered(self) -> "Scale":
        if self.min > self.max:
            raise ValueError("scale.min must not exceed scale.max")
        return self


class Question(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: QuestionType = "unknown"
    label: str
    description: Optional[str] = None
    required: bool = False
    placeholder: Optional[str] = None
    options: Optional[List[ChoiceOption]] = None
    scale: Optional[Scale] = None


class Section(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: Optional[str] = None
    questions: List[Question] = Field(min_length=1)


class CanonicalSchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    description: Optional[str] = None
    sections: List[Section]

    def questions(self) -> List[Question]:
        """Return every question in section order."""
        return [q for sec in self.sections for q in sec.questions]

    def question_index(self) -> Dict[str, Question]:
        return {q.id: q for q in self.questions()}

    def label_by_id(self) -> Dict[str, str]:
        return {q.id: q.label for q in self.questions()}


class RatingQuestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: Optional[str] = None
    min: float = 1
    max: float = 5
    required: bool = False
    description: Optional[str] = None


class ScoreBreakdownEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: float
    value: Optional[float] = None
    min: float
    max: float
    label: Optional[str] = None


class ScoreSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_score: float = 0
    max_score: float = 0
    percentage: float = 0
    rating_questions: int = 0
    breakdown: Dict[str, ScoreBreakdownEntry] = Field(default_factory=dict)


class CompletionSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    required: int = 0
    answered: int = 0
    missing: List[str] = Field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.missing


AnswerMap = Dict[str, Any]


__all__ = [
    "QuestionType",
    "ChoiceOption",
    "Scale",
    "Question",
    "Section",
    "CanonicalSchema",
    "RatingQuestion",
    "ScoreBreakdownEntry",
    "ScoreSummary",
    "CompletionSummary",
    "AnswerMap",
]
