"""Summary statistics helpers used by the dashboard statistics cards."""

from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any, Callable, Iterable, Sequence


def to_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    try:
        parsed = float(str(value).strip())
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


def round_half_up(value: float, digits: int = 0) -> float | int:
    scale = 10 ** digits
    rounded = math.floor(value * scale + 0.5) / scale
    return int(rounded) if digits == 0 else rounded


def count_where(records: Iterable[dict], predicate: Callable[[dict], bool]) -> int:
    return sum(1 for r in records if predicate(r))


def field_equals(field_id: str, value: Any) -> Callable[[dict], bool]:
    return lambda record: record.get(field_id) == value


def distinct_count(records: Iterable[dict], field_id: str) -> int:
    """Number of distinct non-empty values of ``field_id``."""
    return len({r.get(field_id) for r in records if r.get(field_id) not in (None, "")})


def total(records: Iterable[dict], field_id: str) -> float | int:
    values = [to_number(r.get(field_id)) for r in records]
    result = sum(v for v in values if v is not None)
    return int(result) if float(result).is_integer() else result


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def field_mean(records: Iterable[dict], field_id: str, digits: int = 0) -> float | int:
    """Mean of the numeric values of ``field_id``, rounded half-up; 0 for no values."""
    values = [v for v in (to_number(r.get(field_id)) for r in records) if v is not None]
    return round_half_up(mean(values), digits)


def years_between(start: Any, today: date | None = None) -> int | None:
    if isinstance(start, datetime):
        start = start.date()
    if isinstance(start, str):
        try:
            start = date.fromisoformat(start.strip()[:10])
        except ValueError:
            return None
    if not isinstance(start, date):
        return None
    today = today or date.today()
    years = today.year - start.year - ((today.month, today.day) < (start.month, start.day))
    return max(years, 0)


def percentage(part: float, whole: float) -> int:
    if not whole:
        return 0
    return round_half_up(part * 100.0 / whole)
