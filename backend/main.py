import logging
from typing import List, Optional
from fastapi import FastAPI, Depends, HTTPException, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError
from sqlalchemy.orm import Session
from sqlalchemy import select, func

import pandas as pd

import config
import demographics
import entities
import periods
from db import Base, engine, get_db
from ikm import IndexVariant
from ingest import encode_options, encode_value
from models import (
    Survey, Indicator, Question, DemographicField, Respondent, Response as SurveyResponse,
    Answer, DemographicResponse,
)
from response_flow import FlowError, ResponseFlow, is_blank
from results import SurveyRepository, compare_periods, fetch_survey_result, trend_summary
from schemas import *
from scoring import RespondentCountStrategy
from security import verify_admin

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
log = logging.getLogger(__name__)

app = FastAPI(title="IKM Survey API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

Base.metadata.create_all(bind=engine)


def _survey_period(p: PeriodIn) -> entities.SurveyPeriod:
    return entities.SurveyPeriod(**p.model_dump())

def _get_survey_or_404(db: Session, survey_id: int) -> Survey:
    s = db.get(Survey, survey_id)
    if not s:
        raise HTTPException(404, "Survey not found")
    return s

def _period_of(s: Survey) -> entities.SurveyPeriod:
    return entities.SurveyPeriod(type=s.period_type, year=s.period_year, value=s.period)

def _check_demographic_field(f: DemographicFieldCreate) -> None:
    """Reject Likert demographic fields and selection fields without options (422)."""
    try:
        entities.DemographicField(id=0, label=f.label, type=f.type, required=f.required, options=f.options)
    except ValidationError as e:
        raise HTTPException(422, e.errors(include_url=False, include_context=False))

def _add_questions(indicator: Indicator, questions: List[QuestionCreate], db: Session) -> None:
    for q in sorted(questions, key=lambda x: x.order_index):
        text = (q.text or "").strip()
        if not text:
            continue
        db.add(Question(indicator=indicator, text=text, order_index=q.order_index, type=q.type.value,
                        required=q.required, weight=q.weight, options=encode_options(q.options)))

def _survey_out(s: Survey, db: Session) -> dict:
    resolved = periods.resolve_period(_period_of(s))
    count = db.execute(
        select(func.count()).select_from(SurveyResponse).where(SurveyResponse.survey_id == s.id)
    ).scalar_one()
    return {
        "id": s.id,
        "title": s.title,
        "description": s.description,
        "type": s.type,
        "survey_category": s.survey_category,
        "is_active": bool(s.is_active),
        "period": {
            "type": s.period_type,
            "year": s.period_year,
            "value": resolved.code,
            "canonical_value": resolved.canonical_value,
            "display_label": resolved.display_label,
            "month_range_label": resolved.month_range_label,
        },
        "response_count": count,
        "created_at": s.created_at,
    }

def _structure_out(survey: entities.Survey) -> dict:
    return {
        "indicators": [i.model_dump(mode="json") for i in survey.indicators],
        "demographic_fields": [f.model_dump(mode="json") for f in survey.demographic_fields],
    }


@app.get("/health")
def health():
    """Basic readiness check.

    Returns:
        dict: {"ok": True}
    """
    return {"ok": True}

# ------------------------
# Admin: surveys
# ------------------------
@app.post("/admin/surveys", dependencies=[Depends(verify_admin)])
def create_survey(payload: SurveyCreate, db: Session = Depends(get_db)):
    """Create a survey with its period, indicators, questions and demographic fields.

    Args:
        payload (SurveyCreate): Title (required), type, category, period, indicators[], demographic_fields[].
        db (Session): DB session.

    Returns:
        dict: {"id": <new_survey_id>, "periode": <canonical period>}

    Raises:
        HTTPException: 400 if title is blank; 422 for an invalid demographic field.
    """
    title = (payload.title or "").strip()
    if not title:
        raise HTTPException(status_code=400, detail="Title is required")
    for f in payload.demographic_fields:
        _check_demographic_field(f)

    period = _survey_period(payload.period)
    survey = Survey(
        title=title,
        description=(payload.description or "").strip() or None,
        type=payload.type.value,
        survey_category=payload.survey_category.value,
        is_active=payload.is_active,
        period_type=period.type.value,
        period_year=period.year,
        period=periods.period_code(period),
    )
    db.add(survey)
    db.flush()

    for i, ind in enumerate(payload.indicators):
        row = Indicator(survey_id=survey.id, title=ind.title.strip(), description=ind.description,
                        weight=ind.weight, order_index=ind.order_index or i)
        db.add(row)
        _add_questions(row, ind.questions, db)

    for f in payload.demographic_fields:
        db.add(DemographicField(survey_id=survey.id, label=f.label, type=f.type.value, required=f.required,
                                options=encode_options(f.options), field_order=f.field_order))

    db.commit()
    log.info("Created survey %s (%s, %s)", survey.id, survey.type, periods.canonical_periode(period))
    return {"id": survey.id, "periode": periods.canonical_periode(period)}

@app.get("/admin/surveys", dependencies=[Depends(verify_admin)])
def list_surveys(db: Session = Depends(get_db)):
    """List all surveys with their resolved period and response count.

    Returns:
        list[dict]
    """
    rows = db.execute(select(Survey).order_by(Survey.id)).scalars().all()
    return [_survey_out(s, db) for s in rows]

@app.get("/admin/surveys/{survey_id}/detail", dependencies=[Depends(verify_admin)])
def survey_detail(survey_id: int, db: Session = Depends(get_db)):
    """Survey with ordered indicators, questions and demographic fields.

    Raises:
        HTTPException: 404 if survey not found.
    """
    s = _get_survey_or_404(db, survey_id)
    survey = SurveyRepository(db).get_survey(survey_id)
    return {"survey": _survey_out(s, db), **_structure_out(survey)}

@app.patch("/admin/surveys/{survey_id}", dependencies=[Depends(verify_admin)])
def update_survey(survey_id: int, body: SurveyUpdate, db: Session = Depends(get_db)):
    """Update survey metadata.

    The scoring mode (weighted/unweighted) is fixed once responses exist.

    Raises:
        HTTPException: 404 if survey not found; 409 on a type change after responses exist.
    """
    s = _get_survey_or_404(db, survey_id)
    if body.type is not None and body.type.value != s.type:
        has_responses = db.execute(
            select(func.count()).select_from(SurveyResponse).where(SurveyResponse.survey_id == s.id)
        ).scalar_one()
        if has_responses:
            raise HTTPException(409, "Survey type cannot change after responses exist")
        s.type = body.type.value
    if body.title is not None:
        title = body.title.strip()
        if not title:
            raise HTTPException(400, "Title is required")
        s.title = title
    if body.description is not None:
        s.description = body.description.strip() or None
    if body.survey_category is not None:
        s.survey_category = body.survey_category.value
    if body.is_active is not None:
        s.is_active = body.is_active
    if body.period is not None:
        period = _survey_period(body.period)
        s.period_type, s.period_year, s.period = period.type.value, period.year, periods.period_code(period)
    db.commit()
    return _survey_out(s, db)

@app.post("/admin/surveys/{survey_id}/toggle-active", dependencies=[Depends(verify_admin)])
def toggle_active(survey_id: int, db: Session = Depends(get_db)):
    """Flip `is_active`; inactive surveys are hidden from the public endpoints.

    Returns:
        dict: {"id", "is_active"}
    """
    s = _get_survey_or_404(db, survey_id)
    s.is_active = not bool(s.is_active)
    db.commit()
    return {"id": s.id, "is_active": s.is_active}

@app.delete("/admin/surveys/{survey_id}", dependencies=[Depends(verify_admin)])
def delete_survey(survey_id: int, db: Session = Depends(get_db)):
    """Hard-delete a survey and all related rows (via FKs).

    Returns:
        dict: {"ok": True}

    Raises:
        HTTPException: 404 if survey not found.
    """
    s = _get_survey_or_404(db, survey_id)
    db.delete(s)
    db.commit()
    return {"ok": True}

# ------------------------
# Admin: indicators, questions, demographic fields
# ------------------------
@app.post("/admin/surveys/{survey_id}/indicators", dependencies=[Depends(verify_admin)])
def add_indicator(survey_id: int, body: IndicatorCreate, db: Session = Depends(get_db)):
    """Add an indicator (with optional questions) to a survey.

    Returns:
        dict: {"id": <new_indicator_id>}
    """
    _get_survey_or_404(db, survey_id)
    row = Indicator(survey_id=survey_id, title=body.title.strip(), description=body.description,
                    weight=body.weight, order_index=body.order_index)
    db.add(row)
    _add_questions(row, body.questions, db)
    db.commit()
    return {"id": row.id}

@app.delete("/admin/indicators/{indicator_id}", dependencies=[Depends(verify_admin)])
def delete_indicator(indicator_id: int, db: Session = Depends(get_db)):
    """Delete an indicator and its questions.

    Raises:
        HTTPException: 404 if indicator not found.
    """
    row = db.get(Indicator, indicator_id)
    if not row:
        raise HTTPException(404, "Indicator not found")
    db.delete(row)
    db.commit()
    return {"ok": True}

@app.post("/admin/indicators/{indicator_id}/questions", dependencies=[Depends(verify_admin)])
def add_question(indicator_id: int, q: QuestionCreate, db: Session = Depends(get_db)):
    """Add a question to an indicator.

    Args:
        indicator_id (int): Indicator ID.
        q (QuestionCreate): {text, order_index, type, required, weight, options}.

    Returns:
        dict: {"id": <new_question_id>}

    Raises:
        HTTPException: 404 if indicator not found; 400 if text is blank.
    """
    ind = db.get(Indicator, indicator_id)
    if not ind:
        raise HTTPException(404, "Indicator not found")
    text = (q.text or "").strip()
    if not text:
        raise HTTPException(400, "Question text is required")
    row = Question(indicator_id=ind.id, text=text, order_index=q.order_index, type=q.type.value,
                   required=q.required, weight=q.weight, options=encode_options(q.options))
    db.add(row)
    db.commit()
    return {"id": row.id}

@app.delete("/admin/questions/{question_id}", dependencies=[Depends(verify_admin)])
def delete_question(question_id: int, db: Session = Depends(get_db)):
    """Delete a question and its answers (via FK).

    Raises:
        HTTPException: 404 if question not found.
    """
    q = db.get(Question, question_id)
    if not q:
        raise HTTPException(status_code=404, detail="Question not found")
    db.delete(q)
    db.commit()
    return {"ok": True}

@app.post("/admin/surveys/{survey_id}/demographic-fields", dependencies=[Depends(verify_admin)])
def add_demographic_field(survey_id: int, body: DemographicFieldCreate, db: Session = Depends(get_db)):
    """Add a demographic field to a survey.

    Raises:
        HTTPException: 404 if survey not found; 422 for a Likert type or missing options.
    """
    _get_survey_or_404(db, survey_id)
    _check_demographic_field(body)
    row = DemographicField(survey_id=survey_id, label=body.label, type=body.type.value, required=body.required,
                           options=encode_options(body.options), field_order=body.field_order)
    db.add(row)
    db.commit()
    return {"id": row.id}

@app.delete("/admin/demographic-fields/{field_id}", dependencies=[Depends(verify_admin)])
def delete_demographic_field(field_id: int, db: Session = Depends(get_db)):
    row = db.get(DemographicField, field_id)
    if not row:
        raise HTTPException(404, "Demographic field not found")
    db.delete(row)
    db.commit()
    return {"ok": True}

@app.get("/admin/surveys/{survey_id}/period", response_model=PeriodOut, dependencies=[Depends(verify_admin)])
def survey_period(survey_id: int, db: Session = Depends(get_db)):
    """Resolved reporting period of a survey (code, canonical value and labels)."""
    s = _get_survey_or_404(db, survey_id)
    r = periods.resolve_period(_period_of(s))
    return PeriodOut(type=r.type, year=r.year, code=r.code, canonical_value=r.canonical_value,
                     display_label=r.display_label, month_range_label=r.month_range_label)

# ------------------------
# Public: take a survey
# ------------------------
@app.get("/public/surveys/{survey_id}")
def load_public_survey(survey_id: int, db: Session = Depends(get_db)):
    """Survey content for respondents.

    Raises:
        HTTPException: 404 if the survey does not exist or is inactive.
    """
    s = db.get(Survey, survey_id)
    if not s or not s.is_active:
        raise HTTPException(404, "Survey not found or inactive")
    survey = SurveyRepository(db).get_survey(survey_id)
    resolved = periods.resolve_period(survey.period)
    return {
        "survey": {"id": s.id, "title": s.title, "description": s.description, "type": s.type},
        "period": {"canonical_value": resolved.canonical_value, "display_label": resolved.display_label,
                   "month_range_label": resolved.month_range_label},
        **_structure_out(survey),
    }

@app.post("/public/surveys/{survey_id}/responses")
def submit_response(survey_id: int, body: ResponseSubmit, db: Session = Depends(get_db)):
    """Validate and store one complete response.

    The submission is replayed through the response flow: required demographic
    fields gate the questions, required questions gate submission, Likert
    answers must lie on their scale. The response is tagged with the survey's
    canonical period.

    Args:
        survey_id (int): Survey PK.
        body (ResponseSubmit): {respondent, demographics[], answers[]}

    Returns:
        dict: {"response_id", "periode_survei"}

    Raises:
        HTTPException: 404 if survey missing/inactive; 400 if the response is incomplete or invalid.
    """
    s = db.get(Survey, survey_id)
    if not s or not s.is_active:
        raise HTTPException(404, "Survey not found or inactive")
    survey = SurveyRepository(db).get_survey(survey_id)

    flow = ResponseFlow(survey)
    try:
        for d in body.demographics:
            flow.set_demographic(d.field_id, d.value)
        for a in body.answers:
            flow.answer(a.question_id, a.value)
        flow.run_to_review()
        flow.submit()
    except FlowError as e:
        raise HTTPException(400, str(e))

    periode = periods.canonical_periode(survey.period)
    respondent = Respondent(survey_id=s.id, name=body.respondent.name, email=body.respondent.email,
                            phone=body.respondent.phone, periode_survei=periode)
    db.add(respondent)
    db.flush()
    resp = SurveyResponse(survey_id=s.id, respondent_id=respondent.id, periode_survei=periode)
    db.add(resp)
    db.flush()

    questions = survey.question_index()
    for qid, value in flow.answers.items():
        q = questions[qid]
        if is_blank(value, q):
            continue
        if q.is_likert:
            db.add(Answer(response_id=resp.id, question_id=qid, score=float(value)))
        else:
            db.add(Answer(response_id=resp.id, question_id=qid, value=encode_value(value)))
    for fid, value in flow.demographics.items():
        if is_blank(value):
            continue
        db.add(DemographicResponse(response_id=resp.id, field_id=fid, value=encode_value(value)))
    db.commit()
    log.info("Stored response %s for survey %s (%s)", resp.id, s.id, periode)
    return {"response_id": resp.id, "periode_survei": periode}

# ------------------------
# Admin: results
# ------------------------
@app.get("/admin/surveys/{survey_id}/results", response_model=SurveyResult, dependencies=[Depends(verify_admin)])
def survey_results(
    survey_id: int,
    periode: Optional[str] = None,
    index_variant: Optional[IndexVariant] = None,
    strategy: Optional[RespondentCountStrategy] = None,
    db: Session = Depends(get_db),
):
    """Scored results of a survey, optionally restricted to one period.

    Args:
        periode (str|None): Canonical period string ("Q3-2025"); exact match on responses.
        index_variant (IndexVariant|None): "rounded" or "linear"; defaults to IKM_INDEX_VARIANT.
        strategy (RespondentCountStrategy|None): n in S/(n x p); defaults to RESPONDENT_COUNT_STRATEGY.

    Raises:
        HTTPException: 404 if survey not found.
    """
    result = fetch_survey_result(
        db, survey_id, periode,
        index_variant=index_variant.value if index_variant else None,
        strategy=strategy.value if strategy else None,
    )
    if result is None:
        raise HTTPException(404, "Survey not found")
    return result

@app.get("/admin/surveys/{survey_id}/trend", response_model=TrendOut, dependencies=[Depends(verify_admin)])
def survey_trend(
    survey_id: int,
    periodes: Optional[List[str]] = Query(default=None),
    index_variant: Optional[IndexVariant] = None,
    db: Session = Depends(get_db),
):
    """Per-period comparison. Without `periodes`, every period of the survey's year is used.

    Raises:
        HTTPException: 404 if survey not found.
    """
    repo = SurveyRepository(db)
    survey = repo.get_survey(survey_id)
    if survey is None:
        raise HTTPException(404, "Survey not found")
    wanted = periodes or periods.periods_of_year(survey.period.type, survey.period.year)
    points = compare_periods(
        survey, repo.list_responses(survey_id), wanted,
        index_variant=(index_variant.value if index_variant else config.IKM_INDEX_VARIANT),
        strategy=config.RESPONDENT_COUNT_STRATEGY,
    )
    return trend_summary(points)

@app.get("/admin/surveys/{survey_id}/demographics", response_model=List[DemographicBreakdownOut],
         dependencies=[Depends(verify_admin)])
def survey_demographics(survey_id: int, periode: Optional[str] = None, db: Session = Depends(get_db)):
    """Frequency table for every demographic field.

    Raises:
        HTTPException: 404 if survey not found.
    """
    repo = SurveyRepository(db)
    survey = repo.get_survey(survey_id)
    if survey is None:
        raise HTTPException(404, "Survey not found")
    tables = demographics.breakdown_all(survey.demographic_fields, repo.list_responses(survey_id, periode))
    return [DemographicBreakdownOut.model_validate(t) for t in tables]

# ------------------------
# Admin: view/export responses
# ------------------------
def _responses_query(survey_id: int, periode: Optional[str] = None):
    q = (
        select(
            SurveyResponse.id.label("response_id"),
            SurveyResponse.periode_survei,
            Respondent.name.label("respondent_name"),
            Respondent.email.label("respondent_email"),
            Indicator.title.label("indicator"),
            Question.id.label("question_id"),
            Question.text.label("question"),
            Question.type.label("question_type"),
            Answer.score,
            Answer.value,
        )
        .join(Respondent, Respondent.id == SurveyResponse.respondent_id, isouter=True)
        .join(Answer, Answer.response_id == SurveyResponse.id)
        .join(Question, Question.id == Answer.question_id)
        .join(Indicator, Indicator.id == Question.indicator_id)
        .where(SurveyResponse.survey_id == survey_id)
        .order_by(SurveyResponse.id, Indicator.order_index, Question.order_index)
    )
    if periode is not None:
        q = q.where(SurveyResponse.periode_survei == periode)
    return q

@app.get("/admin/surveys/{survey_id}/responses", dependencies=[Depends(verify_admin)])
def survey_responses(survey_id: int, periode: Optional[str] = None, db: Session = Depends(get_db)):
    """Return a flat list of answers for a survey (for admin views).

    Returns:
        list[dict]: One row per stored answer.

    Raises:
        HTTPException: 404 if survey not found.
    """
    _get_survey_or_404(db, survey_id)
    rows = db.execute(_responses_query(survey_id, periode)).mappings().all()
    return [dict(r) for r in rows]

@app.get("/admin/surveys/{survey_id}/export.csv", dependencies=[Depends(verify_admin)])
def export_csv(survey_id: int, periode: Optional[str] = None, db: Session = Depends(get_db)):
    """Export survey answers as CSV (sorted by response, then indicator and question order).

    Returns:
        Response: text/csv attachment `survey_<id>_responses.csv`.
    """
    _get_survey_or_404(db, survey_id)
    df = pd.read_sql(_responses_query(survey_id, periode), db.bind)
    csv_bytes = df.to_csv(index=False).encode("utf-8")
    suffix = f"_{periode}" if periode else ""
    return Response(content=csv_bytes, media_type="text/csv",
                    headers={"Content-Disposition": f"attachment; filename=survey_{survey_id}{suffix}_responses.csv"})
