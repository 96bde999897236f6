"""Statistics cards for each dashboard page.

Every function takes the full (unfiltered) record list and returns plain
numbers. An empty list yields zeros, never an error.
"""

from __future__ import annotations

from datetime import date
from typing import Callable, Dict, Sequence

from scholar.stats import (
    count_where,
    distinct_count,
    field_equals,
    field_mean,
    mean,
    percentage,
    round_half_up,
    to_number,
    total,
    years_between,
)

PASSING_PERCENT = 60.0


def staff_stats(records: Sequence[dict], today: date | None = None) -> dict:
    tenures = [years_between(r.get("HireDate"), today) for r in records]
    tenures = [t for t in tenures if t is not None]
    return {
        "count": len(records),
        "departments": distinct_count(records, "Department"),
        "positions": distinct_count(records, "Position"),
        "active": count_where(records, field_equals("Status", "Active")),
        "average_tenure": round_half_up(mean(tenures)),
    }


def student_stats(records: Sequence[dict], today: date | None = None) -> dict:
    return {
        "count": len(records),
        "active": count_where(records, field_equals("Status", "Active")),
        "grade_levels": distinct_count(records, "GradeLevel"),
        "average_gpa": field_mean(records, "GPA", digits=1),
    }


def child_stats(records: Sequence[dict], today: date | None = None) -> dict:
    return {
        "count": len(records),
        "average_grade": field_mean(records, "GradeAverage"),
        "average_attendance": field_mean(records, "Attendance"),
        "pending_assignments": total(records, "PendingAssignments"),
    }


def class_stats(records: Sequence[dict], today: date | None = None) -> dict:
    return {
        "count": len(records),
        "subjects": distinct_count(records, "Subject"),
        "enrolled": total(records, "Enrolled"),
        "average_enrolment": field_mean(records, "Enrolled"),
    }


def _grade_percent(record: dict) -> float | None:
    score = to_number(record.get("Score"))
    max_score = to_number(record.get("MaxScore"))
    if score is None or not max_score:
        return None
    return score * 100.0 / max_score


def grade_stats(records: Sequence[dict], today: date | None = None) -> dict:
    percents = [p for p in (_grade_percent(r) for r in records) if p is not None]
    return {
        "count": len(records),
        "students": distinct_count(records, "StudentName"),
        "average_percent": round_half_up(mean(percents)),
        "passing": sum(1 for p in percents if p >= PASSING_PERCENT),
    }


def attendance_stats(records: Sequence[dict], today: date | None = None) -> dict:
    present = count_where(records, field_equals("Status", "Present"))
    late = count_where(records, field_equals("Status", "Late"))
    return {
        "count": len(records),
        "present": present,
        "absent": count_where(records, field_equals("Status", "Absent")),
        "late": late,
        # late arrivals still count as attended
        "rate": percentage(present + late, len(records)),
    }


STATS: Dict[str, Callable[..., dict]] = {
    "staff": staff_stats,
    "student": student_stats,
    "child": child_stats,
    "class": class_stats,
    "grade": grade_stats,
    "attendance": attendance_stats,
}


def aggregate(entity_id: str, records: Sequence[dict], today: date | None = None) -> dict:
    fn = STATS.get(entity_id)
    if fn is None:
        return {"count": len(records)}
    return fn(records, today)
