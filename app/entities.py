"""Entity schemas for every dashboard page."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Tuple

TEXT = "text"
EMAIL = "email"
PHONE = "phone"
NUMBER = "number"
DATE = "date"
ENUM = "enum"
LIST = "list"

_CAMEL_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def humanize(field_id: str) -> str:
    return _CAMEL_RE.sub(" ", field_id)


@dataclass(frozen=True)
class FieldDef:
    id: str
    kind: str = TEXT
    label: str | None = None
    required: bool = False
    options: Tuple[str, ...] = ()
    suggestions: Tuple[str, ...] = ()
    minimum: float | None = None
    maximum: float | None = None
    integer: bool = False
    default: object = None
    invalid_message: str | None = None
    backend: str | None = None

    @property
    def display_label(self) -> str:
        return self.label or humanize(self.id)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "label": self.display_label,
            "required": self.required,
            "options": list(self.options or self.suggestions),
        }


@dataclass(frozen=True)
class EntitySchema:
    id: str
    table: str
    label: str
    fields: Tuple[FieldDef, ...]
    search_fields: Tuple[str, ...]
    category_field: str | None = None
    order_by: str = "Name"
    checks: Tuple[Callable[[dict], Dict[str, str]], ...] = field(default=(), compare=False)

    def get_field(self, field_id: str) -> FieldDef | None:
        for f in self.fields:
            if f.id == field_id:
                return f
        return None

    @property
    def field_ids(self) -> list[str]:
        return [f.id for f in self.fields]

    @property
    def read_fields(self) -> list[str]:
        return ["Id", *self.field_ids]

    @property
    def status_field(self) -> FieldDef | None:
        f = self.get_field("Status")
        return f if f is not None and f.kind == ENUM else None

    def empty_draft(self) -> dict:
        draft: dict = {}
        for f in self.fields:
            if f.default is not None:
                draft[f.id] = f.default
            elif f.kind == LIST:
                draft[f.id] = []
            else:
                draft[f.id] = ""
        return draft


def _score_within_max(draft: dict) -> Dict[str, str]:
    try:
        score = float(draft.get("Score"))
        max_score = float(draft.get("MaxScore"))
    except (TypeError, ValueError):
        return {}
    if max_score and score > max_score:
        return {"Score": "Score cannot exceed Max Score"}
    return {}


STAFF_DEPARTMENTS = (
    "Administration",
    "Teaching",
    "IT Support",
    "Maintenance",
    "Security",
    "Library",
    "Cafeteria",
    "Medical",
    "Transportation",
    "Other",
)

STAFF_POSITIONS = (
    "Principal",
    "Vice Principal",
    "Teacher",
    "Assistant Teacher",
    "Librarian",
    "IT Administrator",
    "Accountant",
    "Secretary",
    "Janitor",
    "Security Guard",
    "Nurse",
    "Driver",
    "Cook",
    "Other",
)

GRADE_LEVELS = ("9th Grade", "10th Grade", "11th Grade", "12th Grade")

# staff_c columns keep their plain names on the record store
STAFF = EntitySchema(
    id="staff",
    table="staff_c",
    label="Staff member",
    fields=(
        FieldDef("Name", required=True),
        FieldDef("Email", kind=EMAIL, required=True, backend="Email"),
        FieldDef("Phone", kind=PHONE, backend="Phone"),
        FieldDef("Department", required=True, suggestions=STAFF_DEPARTMENTS, backend="Department"),
        FieldDef("Position", required=True, suggestions=STAFF_POSITIONS, backend="Position"),
        FieldDef("Status", kind=ENUM, options=("Active", "Inactive", "On Leave"), default="Active", backend="Status"),
        FieldDef("HireDate", kind=DATE, backend="HireDate"),
        FieldDef(
            "Salary",
            kind=NUMBER,
            minimum=0,
            invalid_message="Please enter a valid salary amount",
            backend="Salary",
        ),
    ),
    search_fields=("Name", "Email", "Department", "Position"),
    category_field="Department",
)

STUDENT = EntitySchema(
    id="student",
    table="student_c",
    label="Student",
    fields=(
        FieldDef("Name", required=True),
        FieldDef("Email", kind=EMAIL, required=True),
        FieldDef("Phone", kind=PHONE),
        FieldDef("GradeLevel", required=True, suggestions=GRADE_LEVELS),
        FieldDef("ClassName", label="Class"),
        FieldDef("Status", kind=ENUM, options=("Active", "Inactive", "Graduated"), default="Active"),
        FieldDef("EnrollmentDate", kind=DATE),
        FieldDef("GPA", kind=NUMBER, minimum=0, maximum=4, invalid_message="GPA must be between 0 and 4"),
    ),
    search_fields=("Name", "Email", "GradeLevel", "ClassName"),
    category_field="GradeLevel",
)

CHILD = EntitySchema(
    id="child",
    table="parent_child_c",
    label="Child",
    fields=(
        FieldDef("Name", required=True),
        FieldDef("GradeLevel", required=True, suggestions=GRADE_LEVELS),
        FieldDef("ClassName", label="Class"),
        FieldDef("GradeAverage", kind=NUMBER, minimum=0, maximum=100),
        FieldDef("Attendance", kind=NUMBER, minimum=0, maximum=100),
        FieldDef("PendingAssignments", kind=NUMBER, minimum=0, integer=True, default=0),
        FieldDef("LastActivity", kind=DATE),
        FieldDef("Subjects", kind=LIST),
    ),
    search_fields=("Name", "GradeLevel", "ClassName"),
    category_field="GradeLevel",
)

CLASS = EntitySchema(
    id="class",
    table="class_c",
    label="Class",
    fields=(
        FieldDef("Name", required=True),
        FieldDef("Subject", required=True),
        FieldDef("Teacher", required=True),
        FieldDef("Room"),
        FieldDef("Schedule"),
        FieldDef("Capacity", kind=NUMBER, minimum=0, integer=True),
        FieldDef("Enrolled", kind=NUMBER, minimum=0, integer=True, default=0),
        FieldDef("Status", kind=ENUM, options=("Active", "Inactive"), default="Active"),
    ),
    search_fields=("Name", "Subject", "Teacher", "Room"),
    category_field="Subject",
)

GRADE = EntitySchema(
    id="grade",
    table="grade_c",
    label="Grade",
    fields=(
        FieldDef("Name", label="Assignment", required=True),
        FieldDef("StudentName", label="Student", required=True),
        FieldDef("ClassName", label="Class", required=True),
        FieldDef("Score", kind=NUMBER, required=True, minimum=0),
        FieldDef("MaxScore", kind=NUMBER, minimum=0, default=100),
        FieldDef("GradedOn", kind=DATE),
    ),
    search_fields=("Name", "StudentName", "ClassName"),
    category_field="ClassName",
    checks=(_score_within_max,),
)

ATTENDANCE = EntitySchema(
    id="attendance",
    table="attendance_c",
    label="Attendance record",
    fields=(
        FieldDef("Name", label="Student", required=True),
        FieldDef("ClassName", label="Class", required=True),
        FieldDef("Date", kind=DATE, required=True),
        FieldDef("Status", kind=ENUM, options=("Present", "Absent", "Late", "Excused"), default="Present"),
        FieldDef("Notes"),
    ),
    search_fields=("Name", "ClassName", "Status"),
    category_field="ClassName",
)

ENTITIES: Dict[str, EntitySchema] = {
    schema.id: schema for schema in (STAFF, STUDENT, CHILD, CLASS, GRADE, ATTENDANCE)
}


def get_schema(entity_id: str) -> EntitySchema | None:
    return ENTITIES.get(entity_id.strip("/").strip())
