"""Strict domain entities consumed by the scoring engine.

Rows coming out of the database are normalised into these models exactly once
(see `ingest.py`); the engine never guesses at field names afterwards.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator


class QuestionType(str, Enum):
    LIKERT_4 = "likert-4"
    LIKERT_6 = "likert-6"
    TEXT = "text"
    DROPDOWN = "dropdown"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    DATE = "date"
    NUMBER = "number"


LIKERT_TYPES = frozenset({QuestionType.LIKERT_4, QuestionType.LIKERT_6})
SELECTION_TYPES = frozenset({QuestionType.DROPDOWN, QuestionType.RADIO, QuestionType.CHECKBOX})


class SurveyMode(str, Enum):
    WEIGHTED = "weighted"
    UNWEIGHTED = "unweighted"


class SurveyCategory(str, Enum):
    CALCULATE = "calculate"
    NON_CALCULATE = "non_calculate"


class PeriodType(str, Enum):
    QUARTERLY = "quarterly"
    SEMESTER = "semester"
    ANNUAL = "annual"


Id = Union[int, str]


class Question(BaseModel):
    id: Id
    text: str
    type: QuestionType = QuestionType.LIKERT_4
    required: bool = True
    weight: int = Field(default=0, ge=0, le=100)
    options: List[str] = []

    @property
    def is_likert(self) -> bool:
        return self.type in LIKERT_TYPES


class Indicator(BaseModel):
    id: Id
    title: str
    description: str = ""
    weight: int = Field(default=0, ge=0)
    questions: List[Question] = []


class DemographicField(BaseModel):
    id: Id
    label: str
    type: QuestionType = QuestionType.TEXT
    required: bool = True
    options: List[str] = []

    @field_validator("type")
    @classmethod
    def _not_likert(cls, v: QuestionType) -> QuestionType:
        if v in LIKERT_TYPES:
            raise ValueError("demographic fields cannot use a Likert scale")
        return v

    @model_validator(mode="after")
    def _selection_needs_options(self):
        if self.type in SELECTION_TYPES and not self.options:
            raise ValueError(f"field '{self.label}' of type {self.type.value} needs options")
        return self


class SurveyPeriod(BaseModel):
    """Reporting window. `value` (Q3, S1, TAHUN) wins over the legacy fields."""
    type: PeriodType = PeriodType.QUARTERLY
    year: int
    value: Optional[str] = None
    quarter: Optional[str] = None
    semester: Optional[str] = None

    @field_validator("value", "quarter", "semester", mode="before")
    @classmethod
    def _blank_is_none(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None


class Survey(BaseModel):
    id: Id
    title: str
    description: str = ""
    is_active: bool = True
    type: SurveyMode = SurveyMode.UNWEIGHTED
    survey_category: SurveyCategory = SurveyCategory.CALCULATE
    period: SurveyPeriod
    indicators: List[Indicator] = []
    demographic_fields: List[DemographicField] = []

    @property
    def is_weighted(self) -> bool:
        return self.type == SurveyMode.WEIGHTED

    @property
    def is_calculated(self) -> bool:
        return self.survey_category == SurveyCategory.CALCULATE

    def questions(self) -> List[Question]:
        return [q for ind in self.indicators for q in ind.questions]

    def likert_questions(self) -> List[Question]:
        return [q for q in self.questions() if q.is_likert]

    def question_index(self) -> dict:
        return {q.id: q for q in self.questions()}


class AnswerRecord(BaseModel):
    question_id: Id
    score: Optional[float] = None
    value: Any = None


class DemographicAnswer(BaseModel):
    field_id: Id
    value: Any = None


class ResponseRecord(BaseModel):
    id: Id
    survey_id: Id
    periode_survei: Optional[str] = None
    answers: List[AnswerRecord] = []
    demographic_data: List[DemographicAnswer] = []

    def scores_by_question(self) -> dict:
        return {a.question_id: a.score for a in self.answers}
