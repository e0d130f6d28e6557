"""Reporting-period resolution: short codes, labels and response filtering.

A survey period is stored as a type (quarterly / semester / annual), a year
and a short code (`Q3`, `S1`, `TAHUN`). Responses carry the canonical string
`"{code}-{year}"` in `periode_survei`.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional

from entities import PeriodType, SurveyPeriod

log = logging.getLogger(__name__)

ANNUAL_CODE = "TAHUN"

QUARTER_MONTHS = {1: "Januari-Maret", 2: "April-Juni", 3: "Juli-September", 4: "Oktober-Desember"}
SEMESTER_MONTHS = {1: "Januari-Juni", 2: "Juli-Desember"}

_PREFIX = {PeriodType.QUARTERLY: "Q", PeriodType.SEMESTER: "S"}
_VALID = {PeriodType.QUARTERLY: QUARTER_MONTHS, PeriodType.SEMESTER: SEMESTER_MONTHS}
_PERIODE_RE = re.compile(r"^(?:(Q)([1-4])|(S)([12])|(TAHUN))-(\d{4})$")


@dataclass(frozen=True)
class ResolvedPeriod:
    type: PeriodType
    year: int
    number: Optional[int]
    code: str
    canonical_value: str
    display_label: str
    month_range_label: str


def _extract_number(raw, period_type: PeriodType, source: str) -> int:
    prefix = _PREFIX[period_type]
    text = str(raw).strip().upper()
    if text.startswith(prefix):
        text = text[len(prefix):]
    if text.isdigit() and int(text) in _VALID[period_type]:
        return int(text)
    log.warning("Invalid %s %s %r, falling back to %s1", period_type.value, source, raw, prefix)
    return 1


def period_number(period: SurveyPeriod) -> Optional[int]:
    """Quarter or semester number of `period`, re-derived from its stored code."""
    if period.type is PeriodType.ANNUAL:
        return None
    if period.value is not None:
        return _extract_number(period.value, period.type, "period code")
    legacy = period.quarter if period.type is PeriodType.QUARTERLY else period.semester
    if legacy is None:
        log.debug("No %s number stored, defaulting to 1", period.type.value)
        return 1
    return _extract_number(legacy, period.type, "field")


def period_code(period: SurveyPeriod) -> str:
    """Short code to persist in the survey's `period` column."""
    n = period_number(period)
    if n is None:
        return ANNUAL_CODE
    return f"{_PREFIX[period.type]}{n}"


def canonical_periode(period: SurveyPeriod) -> str:
    return f"{period_code(period)}-{period.year}"


def resolve_period(period: SurveyPeriod) -> ResolvedPeriod:
    """Labels and canonical value for a survey period.

    Args:
        period (SurveyPeriod): Stored period. `value` wins over `quarter`/`semester`.

    Returns:
        ResolvedPeriod: e.g. Q3 2025 -> "Triwulan 3 2025" / "Juli-September".
    """
    n = period_number(period)
    code = period_code(period)
    if period.type is PeriodType.QUARTERLY:
        display, months = f"Triwulan {n} {period.year}", QUARTER_MONTHS[n]
    elif period.type is PeriodType.SEMESTER:
        display, months = f"Semester {n} {period.year}", SEMESTER_MONTHS[n]
    else:
        display, months = f"Tahun {period.year}", ""
    return ResolvedPeriod(
        type=period.type,
        year=period.year,
        number=n,
        code=code,
        canonical_value=f"{code}-{period.year}",
        display_label=display,
        month_range_label=months,
    )


def parse_periode(text: str) -> SurveyPeriod:
    """Decode a canonical `"{code}-{year}"` string back into a period.

    Raises:
        ValueError: If `text` is not a canonical period string.
    """
    m = _PERIODE_RE.match((text or "").strip().upper())
    if not m:
        raise ValueError(f"Not a period string: {text!r}")
    year = int(m.group(6))
    if m.group(1):
        return SurveyPeriod(type=PeriodType.QUARTERLY, year=year, value=f"Q{m.group(2)}")
    if m.group(3):
        return SurveyPeriod(type=PeriodType.SEMESTER, year=year, value=f"S{m.group(4)}")
    return SurveyPeriod(type=PeriodType.ANNUAL, year=year, value=ANNUAL_CODE)


def period_label(text: str) -> str:
    """Display label for a canonical period string."""
    return resolve_period(parse_periode(text)).display_label


def matches_period(response, periode: Optional[str]) -> bool:
    if periode is None:
        return True
    return getattr(response, "periode_survei", None) == periode


def filter_responses(responses: Iterable, periode: Optional[str]) -> List:
    """Keep the responses whose stored `periode_survei` equals `periode` exactly."""
    return [r for r in responses if matches_period(r, periode)]


def period_from_date(d: date, period_type: PeriodType | str) -> SurveyPeriod:
    period_type = PeriodType(period_type)
    if period_type is PeriodType.QUARTERLY:
        q = (d.month - 1) // 3 + 1
        return SurveyPeriod(type=period_type, year=d.year, value=f"Q{q}")
    if period_type is PeriodType.SEMESTER:
        s = 1 if d.month <= 6 else 2
        return SurveyPeriod(type=period_type, year=d.year, value=f"S{s}")
    return SurveyPeriod(type=period_type, year=d.year, value=ANNUAL_CODE)


def periods_of_year(period_type: PeriodType | str, year: int) -> List[str]:
    """All canonical period strings of one type within `year`, in calendar order."""
    period_type = PeriodType(period_type)
    if period_type is PeriodType.ANNUAL:
        return [f"{ANNUAL_CODE}-{year}"]
    prefix = _PREFIX[period_type]
    return [f"{prefix}{n}-{year}" for n in _VALID[period_type]]
