"""Client-side list filtering and sorting over plain record dicts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable, List, Sequence

ASC = "asc"
DESC = "desc"


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(_as_text(v) for v in value)
    return str(value)


def matches(record: dict, term: str, fields: Iterable[str]) -> bool:
    needle = term.strip().lower()
    if not needle:
        return True
    for field_id in fields:
        if needle in _as_text(record.get(field_id)).lower():
            return True
    return False


def filter_records(records: Sequence[dict], term: str | None, fields: Sequence[str]) -> list[dict]:
    """Keep records whose searchable attributes contain ``term``.

    An empty or whitespace-only term returns the input unchanged. Matching is a
    case-insensitive substring test, OR-ed across ``fields``; order is preserved.
    """
    if term is None or not term.strip():
        return list(records)
    return [r for r in records if matches(r, term, fields)]


@dataclass(frozen=True)
class SortState:
    key: str | None = None
    direction: str = ASC

    def select(self, key: str) -> "SortState":
        if key == self.key:
            return SortState(key=key, direction=DESC if self.direction == ASC else ASC)
        return SortState(key=key, direction=ASC)

    @property
    def descending(self) -> bool:
        return self.direction == DESC

    def as_dict(self) -> dict:
        return {"key": self.key, "direction": self.direction}


def _parse_date(value: str) -> date | None:
    try:
        if len(value) == 10:
            return date.fromisoformat(value)
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def sort_value(value: Any) -> tuple:
    # (type rank, comparable) so mixed columns never compare str with int
    if isinstance(value, bool):
        return (0, int(value))
    if isinstance(value, (int, float)):
        return (0, value)
    if isinstance(value, datetime):
        return (1, value.date())
    if isinstance(value, date):
        return (1, value)
    text = str(value)
    parsed = _parse_date(text) if text[:4].isdigit() and text[4:5] == "-" else None
    if parsed is not None:
        return (1, parsed)
    return (2, text.casefold())


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def sort_records(records: Sequence[dict], state: SortState) -> list[dict]:
    """Stable sort by ``state.key``; records missing the key always go last."""
    if not state.key:
        return list(records)
    present: List[dict] = []
    missing: List[dict] = []
    for record in records:
        (missing if _is_missing(record.get(state.key)) else present).append(record)
    ordered = sorted(present, key=lambda r: sort_value(r.get(state.key)), reverse=state.descending)
    return ordered + missing
