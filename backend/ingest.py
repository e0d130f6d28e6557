"""Turn ORM rows into the strict entities the engine works on.

Options and list answers are stored as JSON text; they are decoded here and
nowhere else.
"""
import json
import logging
from typing import Any, List, Optional

import models
from entities import (
    AnswerRecord, DemographicAnswer, DemographicField, Indicator, Question,
    ResponseRecord, Survey, SurveyPeriod,
)

log = logging.getLogger(__name__)


def encode_options(options: Optional[List[str]]) -> Optional[str]:
    return json.dumps(list(options)) if options else None


def decode_options(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        log.warning("Options column is not JSON, treating as comma separated: %r", raw)
        return [o.strip() for o in raw.split(",") if o.strip()]
    return [str(o) for o in data] if isinstance(data, list) else [str(data)]


def encode_value(value: Any) -> Optional[str]:
    """Text column form of a non-Likert answer."""
    if value is None:
        return None
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(list(value) if isinstance(value, tuple) else value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def decode_value(raw: Optional[str]) -> Any:
    if raw is None:
        return None
    if raw.startswith("["):
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return raw
    return raw


def survey_from_row(row: models.Survey) -> Survey:
    return Survey(
        id=row.id,
        title=row.title,
        description=row.description or "",
        is_active=bool(row.is_active),
        type=row.type,
        survey_category=row.survey_category,
        period=SurveyPeriod(type=row.period_type, year=row.period_year, value=row.period),
        indicators=[
            Indicator(
                id=ind.id,
                title=ind.title,
                description=ind.description or "",
                weight=ind.weight or 0,
                questions=[
                    Question(
                        id=q.id,
                        text=q.text,
                        type=q.type,
                        required=bool(q.required),
                        weight=q.weight or 0,
                        options=decode_options(q.options),
                    )
                    for q in ind.questions
                ],
            )
            for ind in row.indicators
        ],
        demographic_fields=[
            DemographicField(
                id=f.id,
                label=f.label,
                type=f.type,
                required=bool(f.required),
                options=decode_options(f.options),
            )
            for f in row.demographic_fields
        ],
    )


def response_from_row(row: models.Response) -> ResponseRecord:
    return ResponseRecord(
        id=row.id,
        survey_id=row.survey_id,
        periode_survei=row.periode_survei,
        answers=[
            AnswerRecord(question_id=a.question_id, score=a.score, value=decode_value(a.value))
            for a in row.answers
        ],
        demographic_data=[
            DemographicAnswer(field_id=d.field_id, value=decode_value(d.value))
            for d in row.demographic_responses
        ],
    )
