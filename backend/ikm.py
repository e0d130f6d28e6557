"""Satisfaction index (IKM) conversions, quality bands and score labels."""
from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import NamedTuple, Optional

SCORE_CEILING = 6.0


class IndexVariant(str, Enum):
    # (x - 1) / 5 * 3 + 1, continuous 1-6 -> 1-4
    LINEAR = "linear"
    # round(x * 0.75 + 0.25) clamped to [1, 4]
    ROUNDED = "rounded"


class QualityCategory(NamedTuple):
    mutu: Optional[str]
    kinerja: str

    @property
    def description(self) -> str:
        if self.mutu is None:
            return self.kinerja
        return f"{self.kinerja} ({self.mutu})"


NO_DATA = QualityCategory(None, "Tidak ada data")
SANGAT_BAIK = QualityCategory("A", "Sangat Baik")
BAIK = QualityCategory("B", "Baik")
KURANG_BAIK = QualityCategory("C", "Kurang Baik")
TIDAK_BAIK = QualityCategory("D", "Tidak Baik")

# lower bound (inclusive) on the 1-4 index and the 0-100 conversion value
_INDEX_BANDS = ((3.26, SANGAT_BAIK), (2.51, BAIK), (1.76, KURANG_BAIK), (1.00, TIDAK_BAIK))
_CONVERSION_BANDS = ((81.26, SANGAT_BAIK), (62.51, BAIK), (43.76, KURANG_BAIK), (25.00, TIDAK_BAIK))

SCORE_LABELS = (
    "Sangat Tidak Memuaskan",
    "Tidak Memuaskan",
    "Kurang Memuaskan",
    "Cukup Memuaskan",
    "Memuaskan",
    "Sangat Memuaskan",
)


def round_half_up(x: float) -> int:
    """Round .5 away from zero on the positive side, like the web client did."""
    return int(math.floor(x + 0.5))


def _finite(x) -> bool:
    return x is not None and not (isinstance(x, float) and math.isnan(x))


def clamp_score(score: float) -> float:
    if not _finite(score):
        return 0.0
    return min(SCORE_CEILING, max(0.0, float(score)))


def linear_index(score: float) -> float:
    if not _finite(score):
        return 1.0
    return (score - 1) / 5 * 3 + 1


def rounded_index(score: float) -> int:
    if not _finite(score):
        return 1
    return max(1, min(4, round_half_up(score * 0.75 + 0.25)))


def satisfaction_index(score: float, variant: IndexVariant | str = IndexVariant.ROUNDED) -> float:
    """Convert an average score to the 1-4 IKM scale with an explicit variant.

    Raises:
        ValueError: for an unknown variant name.
    """
    variant = IndexVariant(variant)
    if variant is IndexVariant.LINEAR:
        return linear_index(score)
    return float(rounded_index(score))


def index_percent(score: float) -> int:
    """Map a 1-6 score onto 0-100 (the indicator-card percentage)."""
    if not _finite(score):
        return 0
    return max(0, min(100, round_half_up((score - 1) / 5 * 100)))


def conversion_value(index: float) -> float:
    """Nilai Konversi Indeks: the 1-4 index expressed on 25-100."""
    return index * 25


def _band(value, bands, low, high) -> QualityCategory:
    if not _finite(value):
        return NO_DATA
    # half-up to 2 decimals, so 1.755 lands in C rather than D
    value = float(Decimal(repr(float(value))).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
    if value < low or value > high:
        return NO_DATA
    for floor, category in bands:
        if value >= floor:
            return category
    return NO_DATA


def quality_category(index: float) -> QualityCategory:
    return _band(index, _INDEX_BANDS, 1.0, 4.0)


def quality_category_from_conversion(value: float) -> QualityCategory:
    return _band(value, _CONVERSION_BANDS, 25.0, 100.0)


def score_label(score: Optional[float]) -> str:
    if not _finite(score):
        return SCORE_LABELS[0]
    for i, floor in enumerate((5.5, 4.5, 3.5, 2.5, 1.5)):
        if score >= floor:
            return SCORE_LABELS[5 - i]
    return SCORE_LABELS[0]
