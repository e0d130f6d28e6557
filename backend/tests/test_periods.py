from datetime import date
import logging

import pytest

import periods
from entities import PeriodType, SurveyPeriod

def test_quarter_three_labels():
    r = periods.resolve_period(SurveyPeriod(type="quarterly", year=2025, value="Q3"))
    assert r.display_label == "Triwulan 3 2025"
    assert r.month_range_label == "Juli-September"
    assert r.canonical_value == "Q3-2025"
    assert r.code == "Q3"

def test_semester_and_annual_labels():
    s = periods.resolve_period(SurveyPeriod(type="semester", year=2024, value="S2"))
    assert (s.display_label, s.month_range_label, s.canonical_value) == ("Semester 2 2024", "Juli-Desember", "S2-2024")
    a = periods.resolve_period(SurveyPeriod(type="annual", year=2023))
    assert (a.display_label, a.month_range_label, a.canonical_value) == ("Tahun 2023", "", "TAHUN-2023")
    assert a.number is None

def test_value_wins_over_legacy_fields():
    p = SurveyPeriod(type="quarterly", year=2025, value="Q4", quarter="2")
    assert periods.period_code(p) == "Q4"

def test_legacy_fields_used_when_value_missing():
    assert periods.period_code(SurveyPeriod(type="quarterly", year=2025, quarter="Q2")) == "Q2"
    assert periods.period_code(SurveyPeriod(type="semester", year=2025, semester="2")) == "S2"
    assert periods.period_code(SurveyPeriod(type="semester", year=2025, value="  ", semester="S2")) == "S2"

def test_defaults_to_one_when_nothing_stored():
    assert periods.period_code(SurveyPeriod(type="quarterly", year=2025)) == "Q1"
    assert periods.period_code(SurveyPeriod(type="semester", year=2025)) == "S1"

@pytest.mark.parametrize("period_type,value", [
    ("quarterly", "Q7"),
    ("quarterly", "S1"),
    ("semester", "S3"),
    ("semester", "abc"),
])
def test_malformed_code_falls_back_to_one_with_warning(period_type, value, caplog):
    with caplog.at_level(logging.WARNING, logger="periods"):
        n = periods.period_number(SurveyPeriod(type=period_type, year=2025, value=value))
    assert n == 1
    assert "falling back" in caplog.text

@pytest.mark.parametrize("period", [
    SurveyPeriod(type="quarterly", year=2025, value="Q1"),
    SurveyPeriod(type="quarterly", year=2026, value="Q4"),
    SurveyPeriod(type="semester", year=2024, value="S2"),
    SurveyPeriod(type="annual", year=2025),
])
def test_canonical_string_round_trip(period):
    decoded = periods.parse_periode(periods.canonical_periode(period))
    assert decoded.type == period.type
    assert decoded.year == period.year
    assert periods.period_number(decoded) == periods.period_number(period)

@pytest.mark.parametrize("text", ["Q5-2025", "2025-Q1", "X1-2025", "", "TAHUN"])
def test_parse_rejects_malformed_strings(text):
    with pytest.raises(ValueError):
        periods.parse_periode(text)

def test_period_label():
    assert periods.period_label("S1-2025") == "Semester 1 2025"

def test_filter_is_exact_match():
    class R:
        def __init__(self, p):
            self.periode_survei = p
    rs = [R("Q1-2025"), R("Q1-2025 "), R("q1-2025"), R(None), R("Q2-2025")]
    assert len(periods.filter_responses(rs, "Q1-2025")) == 1
    assert len(periods.filter_responses(rs, None)) == len(rs)

def test_period_from_date():
    assert periods.canonical_periode(periods.period_from_date(date(2025, 8, 17), "quarterly")) == "Q3-2025"
    assert periods.canonical_periode(periods.period_from_date(date(2025, 6, 30), "semester")) == "S1-2025"
    assert periods.canonical_periode(periods.period_from_date(date(2025, 1, 1), PeriodType.ANNUAL)) == "TAHUN-2025"

def test_periods_of_year():
    assert periods.periods_of_year("quarterly", 2025) == ["Q1-2025", "Q2-2025", "Q3-2025", "Q4-2025"]
    assert periods.periods_of_year("semester", 2025) == ["S1-2025", "S2-2025"]
    assert periods.periods_of_year("annual", 2025) == ["TAHUN-2025"]
