"""Scholar Hub list pipeline utilities."""

from .listing import ASC, DESC, SortState, filter_records, sort_records
from .stats import count_where, distinct_count, field_mean, round_half_up

__all__ = [
    "ASC",
    "DESC",
    "SortState",
    "count_where",
    "distinct_count",
    "field_mean",
    "filter_records",
    "round_half_up",
    "sort_records",
]
