"""Survey results: the full scoring pipeline over one consistent snapshot.

`compute_survey_result` is pure and recomputes everything from the rows it is
given; `fetch_survey_result` is the database-facing entry point used by the
API. Nothing is cached between calls.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

import config
import demographics
import ikm
import models
import periods
import scoring
from entities import Question, ResponseRecord, Survey
from ingest import response_from_row, survey_from_row
from schemas import (
    CalculationOut, DemographicBreakdownOut, DistributionOut, QualityOut,
    QuestionDetail, SurveyResult, TrendOut, TrendPoint, WeightedScore,
)

log = logging.getLogger(__name__)


def build_question_detail(question: Question, aggregate: scoring.QuestionAggregate) -> QuestionDetail:
    return QuestionDetail(
        question_id=question.id,
        question_text=question.text,
        question_type=question.type.value,
        average_score=aggregate.average,
        min=aggregate.min,
        max=aggregate.max,
        median=aggregate.median,
        mode=aggregate.mode,
        std_dev=aggregate.std_dev,
        weight=question.weight,
        response_count=aggregate.response_count,
        score_label=ikm.score_label(aggregate.average),
        distribution=[DistributionOut.model_validate(b) for b in aggregate.distribution],
    )


def answering_respondents(questions: Sequence[Question], responses: Sequence[ResponseRecord]) -> int:
    """Responses that gave a scored answer to at least one of `questions`."""
    types = {q.id: q.type for q in questions}
    count = 0
    for resp in responses:
        for a in resp.answers:
            if a.question_id in types and scoring.scored_value(a.score, types[a.question_id]) is not None:
                count += 1
                break
    return count


def _score_indicator(indicator, responses, is_weighted, strategy):
    likert = [q for q in indicator.questions if q.is_likert]
    aggregates = [
        scoring.aggregate_question(scoring.question_answers(q, responses), q.type, q.weight)
        for q in likert
    ]
    n = None
    if strategy is scoring.RespondentCountStrategy.ANSWERING_RESPONDENTS:
        n = answering_respondents(likert, responses)
    score = scoring.score_indicator(aggregates, is_weighted, indicator.weight, strategy, n)
    return likert, aggregates, score


def _label_for(periode: Optional[str]) -> Optional[str]:
    if periode is None:
        return None
    try:
        return periods.period_label(periode)
    except ValueError:
        log.warning("Cannot label period %r", periode)
        return periode


def compute_survey_result(
    survey: Survey,
    responses: Sequence[ResponseRecord],
    periode: Optional[str] = None,
    index_variant: ikm.IndexVariant | str = ikm.IndexVariant.ROUNDED,
    strategy: scoring.RespondentCountStrategy | str = scoring.RESPONDENT_COUNT_STRATEGY,
    trend_periodes: Optional[Sequence[str]] = None,
) -> SurveyResult:
    """Score a survey over the responses of one period.

    Args:
        survey (Survey): Survey with its indicators and questions.
        responses (Sequence[ResponseRecord]): Every stored response; filtered
            here by exact `periode_survei` match when `periode` is given.
        periode (str|None): Canonical period string, e.g. "Q3-2025".
        index_variant (IndexVariant|str): Satisfaction index conversion.
        strategy (RespondentCountStrategy|str): `n` in the unweighted S/(n x p) rule.
        trend_periodes (Sequence[str]|None): Periods to compare in `trend`.

    Returns:
        SurveyResult
    """
    index_variant = ikm.IndexVariant(index_variant)
    strategy = scoring.RespondentCountStrategy(strategy)
    in_scope = periods.filter_responses(responses, periode)

    indicator_scores: List[WeightedScore] = []
    scores: List[scoring.IndicatorScore] = []
    all_aggregates: List[scoring.QuestionAggregate] = []
    for indicator in survey.indicators:
        likert, aggregates, score = _score_indicator(indicator, in_scope, survey.is_weighted, strategy)
        scores.append(score)
        all_aggregates.extend(aggregates)
        indicator_scores.append(WeightedScore(
            indicator_id=indicator.id,
            indicator_title=indicator.title,
            score=score.score,
            weight=indicator.weight,
            weighted_score=score.weighted_contribution,
            index_percent=ikm.index_percent(score.score),
            score_label=ikm.score_label(score.score),
            calculation=CalculationOut.model_validate(score.calculation) if score.calculation else None,
            question_details=[build_question_detail(q, agg) for q, agg in zip(likert, aggregates)],
        ))

    overall = scoring.aggregate_survey(scores, survey.is_weighted, index_variant)
    satisfaction = overall.satisfaction_index
    quality = overall.quality
    if not survey.is_calculated:
        satisfaction, quality = 0.0, ikm.NO_DATA

    result = SurveyResult(
        survey_id=survey.id,
        survey_title=survey.title,
        survey_type=survey.type.value,
        periode=periode,
        period_label=_label_for(periode),
        total_responses=len(in_scope),
        average_score=overall.average_score,
        satisfaction_index=satisfaction,
        index_variant=index_variant.value,
        index_percent=ikm.index_percent(overall.average_score) if survey.is_calculated else 0,
        conversion_value=ikm.conversion_value(satisfaction),
        quality=QualityOut(mutu=quality.mutu, kinerja=quality.kinerja, description=quality.description),
        indicator_scores=indicator_scores,
        overall_distribution=[
            DistributionOut.model_validate(b) for b in scoring.overall_distribution(all_aggregates)
        ],
        demographic_breakdown=[
            DemographicBreakdownOut.model_validate(b)
            for b in demographics.breakdown_all(survey.demographic_fields, in_scope)
        ],
        calculated_at=datetime.now(timezone.utc),
    )
    if trend_periodes:
        points = compare_periods(survey, responses, trend_periodes, index_variant, strategy)
        result.trend = trend_summary(points)
    log.debug("Scored survey %s (%s): %d responses, avg %.3f",
              survey.id, periode or "all periods", len(in_scope), overall.average_score)
    return result


# ------------------------
# Period comparison
# ------------------------
def compare_periods(
    survey: Survey,
    responses: Sequence[ResponseRecord],
    periodes: Sequence[str],
    index_variant: ikm.IndexVariant | str = ikm.IndexVariant.ROUNDED,
    strategy: scoring.RespondentCountStrategy | str = scoring.RESPONDENT_COUNT_STRATEGY,
) -> List[TrendPoint]:
    """One point per requested period, in the order given."""
    points = []
    for periode in periodes:
        in_scope = periods.filter_responses(responses, periode)
        scores = [_score_indicator(ind, in_scope, survey.is_weighted, scoring.RespondentCountStrategy(strategy))[2]
                  for ind in survey.indicators]
        overall = scoring.aggregate_survey(scores, survey.is_weighted, index_variant)
        points.append(TrendPoint(
            periode=periode,
            label=_label_for(periode),
            respondent_count=len(in_scope),
            average_score=overall.average_score,
            satisfaction_index=overall.satisfaction_index if survey.is_calculated else 0.0,
        ))
    return points


def trend_summary(points: Sequence[TrendPoint]) -> TrendOut:
    """Latest two periods with data; `available` only when there are two."""
    with_data = [p for p in points if p.respondent_count > 0]
    if len(with_data) < 2:
        current = with_data[-1].average_score if with_data else 0.0
        return TrendOut(available=False, current_score=current, points=list(points))
    return TrendOut(
        available=True,
        previous_score=with_data[-2].average_score,
        current_score=with_data[-1].average_score,
        points=list(points),
    )


# ------------------------
# Repository
# ------------------------
class SurveyRepository:
    """Loads surveys and responses through SQLAlchemy and returns entities."""

    def __init__(self, db: Session):
        self.db = db

    def get_survey(self, survey_id: int) -> Optional[Survey]:
        row = self.db.execute(
            select(models.Survey)
            .where(models.Survey.id == survey_id)
            .options(
                selectinload(models.Survey.indicators).selectinload(models.Indicator.questions),
                selectinload(models.Survey.demographic_fields),
            )
        ).scalar_one_or_none()
        return survey_from_row(row) if row else None

    def list_responses(self, survey_id: int, periode: Optional[str] = None) -> List[ResponseRecord]:
        stmt = (
            select(models.Response)
            .where(models.Response.survey_id == survey_id)
            .options(
                selectinload(models.Response.answers),
                selectinload(models.Response.demographic_responses),
            )
            .order_by(models.Response.id)
        )
        if periode is not None:
            stmt = stmt.where(models.Response.periode_survei == periode)
        return [response_from_row(r) for r in self.db.execute(stmt).scalars().all()]


def fetch_survey_result(
    db: Session,
    survey_id: int,
    periode: Optional[str] = None,
    index_variant: Optional[str] = None,
    strategy: Optional[str] = None,
    trend_periodes: Optional[Sequence[str]] = None,
) -> Optional[SurveyResult]:
    """Load a survey and its responses, then score them. None if the survey does not exist."""
    repo = SurveyRepository(db)
    survey = repo.get_survey(survey_id)
    if survey is None:
        return None
    # trend needs every period, so only narrow the query when no trend is asked for
    responses = repo.list_responses(survey_id, None if trend_periodes else periode)
    return compute_survey_result(
        survey,
        responses,
        periode=periode,
        index_variant=index_variant or config.IKM_INDEX_VARIANT,
        strategy=strategy or config.RESPONDENT_COUNT_STRATEGY,
        trend_periodes=trend_periodes,
    )
