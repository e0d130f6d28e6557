"""Per-field frequency tables for demographic answers."""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Slice:
    name: str
    count: int
    percentage: float


@dataclass(frozen=True)
class DemographicBreakdown:
    field_id: Any
    label: str
    total: int = 0
    distribution: List[Slice] = field(default_factory=list)


def bucket_name(value: Any) -> str:
    """Literal string form used for grouping.

    A multi-select answer stays ONE composite bucket ("A,B"); options are not
    counted individually.
    """
    if isinstance(value, (list, tuple)):
        return ",".join(bucket_name(v) for v in value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return isinstance(value, (list, tuple)) and len(value) == 0


def breakdown(field_id, answers: Iterable[Any], label: Optional[str] = None) -> DemographicBreakdown:
    """Frequency distribution of one field's answers, largest bucket first.

    Args:
        field_id: Demographic field identifier.
        answers (Iterable): Raw answer values for this field.
        label (str|None): Field label; defaults to "Field <id>".

    Returns:
        DemographicBreakdown: buckets sorted by count (ties keep encounter order).
    """
    counts: Counter = Counter()
    for value in answers:
        if _is_blank(value):
            continue
        counts[bucket_name(value)] += 1

    total = sum(counts.values())
    # Counter preserves insertion order and sorted() is stable.
    ordered = sorted(counts.items(), key=lambda kv: -kv[1])
    return DemographicBreakdown(
        field_id=field_id,
        label=label or f"Field {field_id}",
        total=total,
        distribution=[
            Slice(name=name, count=count, percentage=(count / total * 100) if total else 0.0)
            for name, count in ordered
        ],
    )


def breakdown_all(fields, responses) -> List[DemographicBreakdown]:
    """Breakdowns for every declared field plus any field that only appears in answers."""
    labels = {f.id: f.label for f in fields}
    by_field: dict = {f.id: [] for f in fields}
    for resp in responses:
        for item in resp.demographic_data:
            if item.field_id not in by_field:
                log.warning("Demographic answer for undeclared field %r", item.field_id)
                by_field[item.field_id] = []
            by_field[item.field_id].append(item.value)
    return [breakdown(fid, values, labels.get(fid)) for fid, values in by_field.items()]
