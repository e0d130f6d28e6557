"""Respondent-side state machine: DEMOGRAPHICS -> QUESTIONS -> REVIEW -> SUBMITTED.

Independent of the scoring engine; it only decides whether a response may move
forward and whether it is complete.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from entities import Question, QuestionType, ResponseRecord, Survey


class Step(str, Enum):
    DEMOGRAPHICS = "demographics"
    QUESTIONS = "questions"
    REVIEW = "review"
    SUBMITTED = "submitted"


class FlowError(ValueError):
    """Illegal transition or mutation of a response in progress."""


@dataclass(frozen=True)
class Progress:
    completed_questions: int
    total_questions: int
    completion_percentage: float


def is_blank(value: Any, question: Optional[Question] = None) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    if question is not None and question.is_likert:
        return value == 0
    return False


class ResponseFlow:
    def __init__(self, survey: Survey):
        self.survey = survey
        self.questions: List[Question] = survey.questions()
        self.step = Step.DEMOGRAPHICS
        self.cursor = 0
        self.demographics: Dict[Any, Any] = {}
        self.answers: Dict[Any, Any] = {}
        self._fields = {f.id: f for f in survey.demographic_fields}
        self._questions = {q.id: q for q in self.questions}

    # --- mutation -------------------------------------------------------
    def _ensure_open(self):
        if self.step is Step.SUBMITTED:
            raise FlowError("Response already submitted")

    def set_demographic(self, field_id, value):
        self._ensure_open()
        if field_id not in self._fields:
            raise FlowError(f"Unknown demographic field {field_id!r}")
        self.demographics[field_id] = value

    def answer(self, question_id, value):
        self._ensure_open()
        question = self._questions.get(question_id)
        if question is None:
            raise FlowError(f"Unknown question {question_id!r}")
        if question.is_likert and not is_blank(value, question):
            points = 6 if question.type is QuestionType.LIKERT_6 else 4
            if (
                not isinstance(value, (int, float))
                or isinstance(value, bool)
                or not 1 <= value <= points
                or not float(value).is_integer()
            ):
                raise FlowError(f"Answer for question {question_id!r} must be a whole number between 1 and {points}")
        self.answers[question_id] = value

    # --- checks ---------------------------------------------------------
    def missing_demographics(self) -> List:
        return [
            f.id for f in self.survey.demographic_fields
            if f.required and is_blank(self.demographics.get(f.id))
        ]

    def missing_questions(self) -> List:
        return [
            q.id for q in self.questions
            if q.required and is_blank(self.answers.get(q.id), q)
        ]

    @property
    def current_question(self) -> Optional[Question]:
        if self.step is not Step.QUESTIONS or not self.questions:
            return None
        return self.questions[self.cursor]

    def progress(self) -> Progress:
        total = len(self.questions)
        done = sum(1 for q in self.questions if not is_blank(self.answers.get(q.id), q))
        return Progress(done, total, (done / total * 100) if total else 0.0)

    # --- transitions ----------------------------------------------------
    def next_step(self) -> Step:
        self._ensure_open()
        if self.step is Step.DEMOGRAPHICS:
            missing = self.missing_demographics()
            if missing:
                raise FlowError(f"Required demographic fields missing: {missing}")
            self.step = Step.QUESTIONS if self.questions else Step.REVIEW
            self.cursor = 0
        elif self.step is Step.QUESTIONS:
            if self.cursor < len(self.questions) - 1:
                self.cursor += 1
            else:
                self.step = Step.REVIEW
        else:
            raise FlowError("Use submit() to leave the review step")
        return self.step

    def previous_step(self) -> Step:
        self._ensure_open()
        if self.step is Step.QUESTIONS:
            if self.cursor > 0:
                self.cursor -= 1
            else:
                self.step = Step.DEMOGRAPHICS
        elif self.step is Step.REVIEW:
            if self.questions:
                self.step = Step.QUESTIONS
                self.cursor = len(self.questions) - 1
            else:
                self.step = Step.DEMOGRAPHICS
        else:
            raise FlowError("Already at the first step")
        return self.step

    def submit(self) -> Step:
        self._ensure_open()
        if self.step is not Step.REVIEW:
            raise FlowError(f"Cannot submit from step {self.step.value}")
        missing = self.missing_questions()
        if missing:
            raise FlowError(f"Required questions unanswered: {missing}")
        self.step = Step.SUBMITTED
        return self.step

    def run_to_review(self) -> Step:
        """Walk forward from the current step to REVIEW (used for one-shot submissions)."""
        while self.step not in (Step.REVIEW, Step.SUBMITTED):
            self.next_step()
        return self.step


def is_complete(survey: Survey, response: ResponseRecord) -> bool:
    """True once every required question and demographic field has a non-blank answer."""
    questions = survey.question_index()
    answers = {}
    for a in response.answers:
        q = questions.get(a.question_id)
        answers[a.question_id] = a.score if (q is not None and q.is_likert) else a.value
    demo = {d.field_id: d.value for d in response.demographic_data}
    for q in questions.values():
        if q.required and is_blank(answers.get(q.id), q):
            return False
    for f in survey.demographic_fields:
        if f.required and is_blank(demo.get(f.id)):
            return False
    return True
