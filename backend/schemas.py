# schemas.py
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, List, Optional, Literal, Union

from entities import PeriodType, QuestionType, SurveyCategory, SurveyMode

# ------------------------
# Admin payloads
# ------------------------
class PeriodIn(BaseModel):
    type: PeriodType = PeriodType.QUARTERLY
    year: int = Field(..., ge=2000, le=2100)
    value: Optional[str] = None
    quarter: Optional[str] = None
    semester: Optional[str] = None

class QuestionCreate(BaseModel):
    text: str
    order_index: int = 0
    type: QuestionType = QuestionType.LIKERT_4
    required: bool = True
    weight: int = Field(0, ge=0, le=100)
    options: List[str] = []

class IndicatorCreate(BaseModel):
    title: str
    description: Optional[str] = None
    weight: int = Field(0, ge=0, le=100)
    order_index: int = 0
    questions: List[QuestionCreate] = []

class DemographicFieldCreate(BaseModel):
    label: str
    type: QuestionType = QuestionType.TEXT
    required: bool = True
    options: List[str] = []
    field_order: int = 1

class SurveyCreate(BaseModel):
    title: str
    description: Optional[str] = None
    type: SurveyMode = SurveyMode.UNWEIGHTED
    survey_category: SurveyCategory = SurveyCategory.CALCULATE
    is_active: bool = True
    period: PeriodIn
    indicators: List[IndicatorCreate] = []
    demographic_fields: List[DemographicFieldCreate] = []

class SurveyUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[SurveyMode] = None
    survey_category: Optional[SurveyCategory] = None
    is_active: Optional[bool] = None
    period: Optional[PeriodIn] = None

# ------------------------
# Public payloads
# ------------------------
class RespondentIn(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

class AnswerIn(BaseModel):
    question_id: int
    value: Any = None

class DemographicIn(BaseModel):
    field_id: int
    value: Any = None

class ResponseSubmit(BaseModel):
    respondent: RespondentIn = RespondentIn()
    demographics: List[DemographicIn] = []
    answers: List[AnswerIn] = []

# ------------------------
# Results (camelCase on the wire)
# ------------------------
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

class DistributionOut(CamelModel):
    score: int
    count: int
    percentage: float

class QuestionDetail(CamelModel):
    question_id: Union[int, str]
    question_text: str
    question_type: str
    average_score: float
    min: float
    max: float
    median: float
    mode: float
    std_dev: float
    weight: int
    response_count: int
    score_label: str
    distribution: List[DistributionOut] = []

class CalculationOut(CamelModel):
    respondents: int
    questions: int
    raw_total: float
    denominator: float
    formula: str

class WeightedScore(CamelModel):
    indicator_id: Union[int, str]
    indicator_title: str
    score: float
    weight: int
    weighted_score: float
    index_percent: int
    score_label: str
    calculation: Optional[CalculationOut] = None
    question_details: List[QuestionDetail] = []

class SliceOut(CamelModel):
    name: str
    count: int
    percentage: float

class DemographicBreakdownOut(CamelModel):
    field_id: Union[int, str]
    label: str
    total: int
    distribution: List[SliceOut] = []

class QualityOut(CamelModel):
    mutu: Optional[str] = None
    kinerja: str
    description: str

class TrendPoint(CamelModel):
    periode: str
    label: str
    respondent_count: int
    average_score: float
    satisfaction_index: float

class TrendOut(CamelModel):
    available: bool = False
    previous_score: float = 0.0
    current_score: float = 0.0
    points: List[TrendPoint] = []

class SurveyResult(CamelModel):
    survey_id: Union[int, str]
    survey_title: str
    survey_type: str
    periode: Optional[str] = None
    period_label: Optional[str] = None
    total_responses: int
    average_score: float
    satisfaction_index: float
    index_variant: Literal["rounded", "linear"]
    index_percent: int
    conversion_value: float
    quality: QualityOut
    indicator_scores: List[WeightedScore] = []
    overall_distribution: List[DistributionOut] = []
    demographic_breakdown: List[DemographicBreakdownOut] = []
    trend: TrendOut = TrendOut()
    calculated_at: datetime

class PeriodOut(CamelModel):
    type: PeriodType
    year: int
    code: str
    canonical_value: str
    display_label: str
    month_range_label: str
