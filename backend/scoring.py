"""Scoring engine: scale normalisation, per-question statistics, indicator and survey roll-ups.

All functions are pure and operate on already-fetched data; none of them touch
the database. Data-quality problems (no answers, zero weights, non-Likert
questions) degrade to zero-valued results instead of raising.
"""
from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from numbers import Real
from typing import Iterable, List, Optional, Sequence

import ikm
from entities import Question, QuestionType

log = logging.getLogger(__name__)

LIKERT6_DIVISOR = 1.5

_SCALE_POINTS = {QuestionType.LIKERT_4: 4, QuestionType.LIKERT_6: 6}


class RespondentCountStrategy(str, Enum):
    # n = the largest per-question response count in the indicator
    MAX_PER_QUESTION = "max-per-question"
    # n = responses that answered at least one question of the indicator
    ANSWERING_RESPONDENTS = "answering-respondents"


RESPONDENT_COUNT_STRATEGY = RespondentCountStrategy.MAX_PER_QUESTION


@dataclass(frozen=True)
class Bucket:
    score: int
    count: int
    percentage: float


@dataclass(frozen=True)
class QuestionAggregate:
    average: float = 0.0
    min: float = 0.0
    max: float = 0.0
    median: float = 0.0
    mode: float = 0.0
    std_dev: float = 0.0
    response_count: int = 0
    total: float = 0.0
    distribution: List[Bucket] = field(default_factory=list)
    weight: int = 0


@dataclass(frozen=True)
class IndicatorCalculation:
    respondents: int
    questions: int
    raw_total: float
    denominator: float
    formula: str


@dataclass(frozen=True)
class IndicatorScore:
    score: float
    weighted_contribution: float
    weight: int = 0
    calculation: Optional[IndicatorCalculation] = None


@dataclass(frozen=True)
class SurveyAggregate:
    average_score: float
    satisfaction_index: float
    quality: ikm.QualityCategory


# ------------------------
# Scale normaliser
# ------------------------
def _as_type(question_type) -> Optional[QuestionType]:
    try:
        return QuestionType(question_type)
    except ValueError:
        return None


def scale_points(question_type) -> int:
    """Number of levels of a Likert scale (4 or 6); 0 for non-Likert types."""
    return _SCALE_POINTS.get(_as_type(question_type), 0)


def normalize(raw_score, question_type) -> Optional[float]:
    """Project a raw Likert answer onto the 4-point comparison scale.

    Args:
        raw_score (float|None): Answer as stored. 0 and None mean "not answered".
        question_type (str|QuestionType): The owning question's type.

    Returns:
        float|None: The comparable value, or None when the answer must be
        left out of numeric aggregation.

    Raises:
        TypeError: If `raw_score` is not a number.
    """
    if raw_score is None:
        return None
    if isinstance(raw_score, bool) or not isinstance(raw_score, Real):
        raise TypeError(f"raw score must be a number, got {type(raw_score).__name__}")
    if math.isnan(raw_score) or raw_score == 0:
        return None
    qtype = _as_type(question_type)
    if qtype is QuestionType.LIKERT_6:
        return raw_score / LIKERT6_DIVISOR
    if qtype is QuestionType.LIKERT_4:
        return float(raw_score)
    log.debug("Skipping numeric normalisation for question type %r", question_type)
    return None


# ------------------------
# Question aggregator
# ------------------------
def _median(values: Sequence[float]) -> float:
    ordered = sorted(values)
    n = len(ordered)
    mid = n // 2
    if n % 2:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) / 2


def _mode(values: Sequence[float]) -> float:
    counts = Counter(values)
    best = max(counts.values())
    return min(v for v, c in counts.items() if c == best)


def scored_value(raw_score, question_type) -> Optional[float]:
    """Normalised value of an answer that sits on one of the integer scale levels.

    Fractional or out-of-range answers give None and are logged.
    """
    v = normalize(raw_score, question_type)
    if v is None:
        return None
    points = scale_points(question_type)
    if not (1 <= raw_score <= points and float(raw_score).is_integer()):
        log.warning("Dropping answer %r outside the 1..%d integer scale", raw_score, points)
        return None
    return v


def _distribution(raw_scores: Sequence[float], points: int) -> List[Bucket]:
    n = len(raw_scores)
    out = []
    for score in range(1, points + 1):
        count = sum(1 for r in raw_scores if r == score)
        out.append(Bucket(score=score, count=count, percentage=(count / n * 100) if n else 0.0))
    return out


def aggregate_question(answers: Iterable, question_type=QuestionType.LIKERT_4, weight: int = 0) -> QuestionAggregate:
    """Statistics for one question across every response in scope.

    `answers` are raw stored scores. Unanswered entries (None / 0) are dropped,
    the rest are normalised before average, extrema, median, mode and
    population standard deviation are taken. The distribution tallies the raw
    integer levels 1..4 or 1..6.
    """
    if isinstance(answers, (str, bytes)) or not isinstance(answers, Iterable):
        raise TypeError("answers must be an iterable of numbers")
    points = scale_points(question_type)
    if not points:
        return QuestionAggregate(weight=weight)

    raw_kept: List[float] = []
    values: List[float] = []
    for raw in answers:
        v = scored_value(raw, question_type)
        if v is None:
            continue
        raw_kept.append(raw)
        values.append(v)

    n = len(values)
    if n == 0:
        return QuestionAggregate(distribution=_distribution([], points), weight=weight)

    total = sum(values)
    average = total / n
    variance = sum((v - average) ** 2 for v in values) / n
    return QuestionAggregate(
        average=average,
        min=min(values),
        max=max(values),
        median=_median(values),
        mode=_mode(values),
        std_dev=math.sqrt(variance),
        response_count=n,
        total=total,
        distribution=_distribution(raw_kept, points),
        weight=weight,
    )


def question_answers(question: Question, responses) -> List[Optional[float]]:
    """Collect the raw scores given to `question` across `responses`."""
    out = []
    for resp in responses:
        for a in resp.answers:
            if a.question_id == question.id:
                out.append(a.score)
    return out


# ------------------------
# Indicator scorer
# ------------------------
def score_indicator(
    questions: Sequence[QuestionAggregate],
    is_weighted: bool,
    indicator_weight: int = 0,
    strategy: RespondentCountStrategy | str = RESPONDENT_COUNT_STRATEGY,
    respondent_count: Optional[int] = None,
) -> IndicatorScore:
    """Composite score of one indicator.

    Weighted surveys use the weighted mean of question averages. Unweighted
    surveys use S / (n x p), where S is the sum of every normalised answer in
    the indicator, p the number of scored questions and n is chosen by
    `strategy`. With `answering-respondents` the caller passes
    `respondent_count`.
    """
    strategy = RespondentCountStrategy(strategy)
    p = len(questions)
    raw_total = sum(q.total for q in questions)

    if is_weighted:
        total_weight = sum(q.weight for q in questions)
        if total_weight == 0:
            if p:
                log.warning("Indicator has questions but a total question weight of 0; scoring as 0")
            score = 0.0
        else:
            score = sum(q.average * q.weight for q in questions) / total_weight
        n = max((q.response_count for q in questions), default=0)
        calc = IndicatorCalculation(
            respondents=n,
            questions=p,
            raw_total=raw_total,
            denominator=float(total_weight),
            formula="Skor = Σ(rata-rata pertanyaan × bobot) ÷ Σ bobot",
        )
        return IndicatorScore(
            score=score,
            weighted_contribution=score * indicator_weight / 100,
            weight=indicator_weight,
            calculation=calc,
        )

    if strategy is RespondentCountStrategy.ANSWERING_RESPONDENTS:
        if respondent_count is None:
            raise ValueError("respondent_count is required for the answering-respondents strategy")
        n = respondent_count
    else:
        n = max((q.response_count for q in questions), default=0)
    denominator = n * p
    score = raw_total / denominator if denominator else 0.0
    calc = IndicatorCalculation(
        respondents=n,
        questions=p,
        raw_total=raw_total,
        denominator=float(denominator),
        formula=f"Skor = S ÷ (n × p) = {raw_total:.2f} ÷ ({n} × {p})",
    )
    return IndicatorScore(score=score, weighted_contribution=score, weight=indicator_weight, calculation=calc)


# ------------------------
# Survey aggregator
# ------------------------
def average_score(indicators: Sequence[IndicatorScore], is_weighted: bool) -> float:
    """Overall score before clamping: weighted mean or plain mean of indicator scores."""
    if not indicators:
        return 0.0
    if is_weighted:
        total_weight = sum(i.weight for i in indicators)
        if total_weight == 0:
            log.warning("Survey indicators carry a total weight of 0; overall score is 0")
            return 0.0
        return sum(i.score * i.weight for i in indicators) / total_weight
    return sum(i.score for i in indicators) / len(indicators)


def aggregate_survey(
    indicators: Sequence[IndicatorScore],
    is_weighted: bool,
    variant: ikm.IndexVariant | str = ikm.IndexVariant.ROUNDED,
) -> SurveyAggregate:
    """Overall average, satisfaction index and quality band for a survey.

    When no indicator rests on a scored answer (every calculation counts 0
    respondents) the index is 0 and the band is "Tidak ada data".

    Raises:
        ValueError: for an unknown index variant.
    """
    variant = ikm.IndexVariant(variant)
    avg = ikm.clamp_score(average_score(indicators, is_weighted))
    if not indicators:
        return SurveyAggregate(average_score=0.0, satisfaction_index=0.0, quality=ikm.NO_DATA)
    if not any(i.calculation is None or i.calculation.respondents for i in indicators):
        return SurveyAggregate(average_score=avg, satisfaction_index=0.0, quality=ikm.NO_DATA)
    index = ikm.satisfaction_index(avg, variant)
    return SurveyAggregate(average_score=avg, satisfaction_index=index, quality=ikm.quality_category(index))


def overall_distribution(aggregates: Iterable[QuestionAggregate], points: int = 6) -> List[Bucket]:
    """Merge per-question distributions into one 1..`points` histogram."""
    counts = Counter()
    for agg in aggregates:
        for b in agg.distribution:
            counts[b.score] += b.count
    total = sum(counts[s] for s in range(1, points + 1))
    return [
        Bucket(score=s, count=counts[s], percentage=(counts[s] / total * 100) if total else 0.0)
        for s in range(1, points + 1)
    ]
