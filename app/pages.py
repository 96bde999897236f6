"""Page controllers: list state, view derivation, record form and delete confirmation."""

from __future__ import annotations

import copy
import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from app.entities import LIST, EntitySchema, get_schema
from app.errors import InvalidTransition, RecordStoreError, UnknownToken, ValidationFailed
from app.page_stats import aggregate
from app.records_validation import validate_draft
from app.services import EntityService
from notifications import NotificationQueue
from scholar.listing import SortState, filter_records, sort_records

logger = logging.getLogger("scholar.pages")

CLOSED = "closed"
OPEN = "open"
SUBMITTING = "submitting"

CREATE = "create"
EDIT = "edit"


@dataclass(frozen=True)
class PageMeta:
    id: str
    entity: str
    title: str
    subtitle: str
    noun: str
    plural: str
    search_placeholder: str
    cards: Tuple[Tuple[str, str, str], ...] = ()

    @property
    def add_label(self) -> str:
        return f"Add {self.noun.title()}"

    @property
    def created_message(self) -> str:
        return f"{self.noun.capitalize()} added successfully"

    @property
    def updated_message(self) -> str:
        return f"{self.noun.capitalize()} updated successfully"

    @property
    def deleted_message(self) -> str:
        return f"{self.noun.capitalize()} deleted successfully"

    @property
    def save_failed_message(self) -> str:
        return f"Failed to save {self.noun}"

    @property
    def delete_failed_message(self) -> str:
        return f"Failed to delete {self.noun}"

    @property
    def load_failed_message(self) -> str:
        return f"Failed to load {self.plural}"

    @property
    def delete_prompt(self) -> str:
        return f"Are you sure you want to delete this {self.noun}?"

    @property
    def loading_message(self) -> str:
        return f"Loading {self.plural}..."

    def empty_state(self, searching: bool) -> dict:
        return {
            "title": f"No {self.plural} found",
            "description": "Try adjusting your search criteria" if searching else f"Start by adding your first {self.noun}",
            "action_label": self.add_label,
        }


PAGES: Dict[str, PageMeta] = {
    meta.id: meta
    for meta in (
        PageMeta(
            id="students",
            entity="student",
            title="Student Management",
            subtitle="Manage your institution's students",
            noun="student",
            plural="students",
            search_placeholder="Search students by name, email, grade, or class...",
            cards=(
                ("count", "Total Students", ""),
                ("active", "Active Students", ""),
                ("grade_levels", "Grade Levels", ""),
                ("average_gpa", "Average GPA", ""),
            ),
        ),
        PageMeta(
            id="staff",
            entity="staff",
            title="Staff Management",
            subtitle="Manage your institution's staff members",
            noun="staff member",
            plural="staff members",
            search_placeholder="Search staff by name, email, department, or position...",
            cards=(
                ("count", "Total Staff", ""),
                ("departments", "Departments", ""),
                ("positions", "Positions", ""),
                ("active", "Active Staff", ""),
            ),
        ),
        PageMeta(
            id="parents",
            entity="child",
            title="Parents Dashboard",
            subtitle="Follow your children's progress",
            noun="child",
            plural="children",
            search_placeholder="Search by name, grade, or class...",
            cards=(
                ("count", "Total Children", ""),
                ("average_grade", "Average Grade", "%"),
                ("average_attendance", "Average Attendance", "%"),
                ("pending_assignments", "Pending Assignments", ""),
            ),
        ),
        PageMeta(
            id="classes",
            entity="class",
            title="Class Management",
            subtitle="Organize classes, teachers and rooms",
            noun="class",
            plural="classes",
            search_placeholder="Search classes by name, subject, teacher, or room...",
            cards=(
                ("count", "Total Classes", ""),
                ("subjects", "Subjects", ""),
                ("enrolled", "Enrolled Students", ""),
                ("average_enrolment", "Average Class Size", ""),
            ),
        ),
        PageMeta(
            id="grades",
            entity="grade",
            title="Grade Book",
            subtitle="Record and review assignment scores",
            noun="grade",
            plural="grades",
            search_placeholder="Search grades by assignment, student, or class...",
            cards=(
                ("count", "Total Grades", ""),
                ("students", "Students Graded", ""),
                ("average_percent", "Average Score", "%"),
                ("passing", "Passing", ""),
            ),
        ),
        PageMeta(
            id="attendance",
            entity="attendance",
            title="Attendance",
            subtitle="Track daily attendance by class",
            noun="attendance record",
            plural="attendance records",
            search_placeholder="Search attendance by student, class, or status...",
            cards=(
                ("count", "Total Records", ""),
                ("present", "Present", ""),
                ("absent", "Absent", ""),
                ("rate", "Attendance Rate", "%"),
            ),
        ),
    )
}


def get_page(page_id: str) -> PageMeta | None:
    return PAGES.get(page_id.strip("/").strip())


def _form_value(schema: EntitySchema, field_id: str, value: Any) -> Any:
    f = schema.get_field(field_id)
    if value is None:
        if f is not None and f.default is not None:
            return f.default
        return [] if f is not None and f.kind == LIST else ""
    return copy.deepcopy(value)


class FormState:
    """Record form: ``closed`` -> ``open`` -> ``submitting`` -> ``closed``.

    A submit only leaves ``open`` when the draft validates; a failed store
    write returns to ``open`` with the draft intact. Cancelling is refused
    while a submit is in flight.
    """

    def __init__(self) -> None:
        self.status = CLOSED
        self.mode: str | None = None
        self.record_id: Any = None
        self.draft: dict = {}
        self.errors: Dict[str, str] = {}

    def _require(self, *allowed: str) -> None:
        if self.status not in allowed:
            raise InvalidTransition(f"Form is {self.status}", state=self.status)

    def _reset(self) -> None:
        self.status = CLOSED
        self.mode = None
        self.record_id = None
        self.draft = {}
        self.errors = {}

    def open_new(self, schema: EntitySchema) -> None:
        self._require(CLOSED, OPEN)
        self.status = OPEN
        self.mode = CREATE
        self.record_id = None
        self.draft = schema.empty_draft()
        self.errors = {}

    def open_edit(self, schema: EntitySchema, record: dict) -> None:
        self._require(CLOSED, OPEN)
        self.status = OPEN
        self.mode = EDIT
        self.record_id = record.get("Id")
        self.draft = {fid: _form_value(schema, fid, record.get(fid)) for fid in schema.field_ids}
        self.errors = {}

    def edit_field(self, field_id: str, value: Any) -> None:
        self._require(OPEN)
        self.draft[field_id] = value
        self.errors.pop(field_id, None)

    def begin_submit(self, schema: EntitySchema) -> bool:
        self._require(OPEN)
        self.errors = validate_draft(schema, self.draft)
        if self.errors:
            return False
        self.status = SUBMITTING
        return True

    def submit_succeeded(self) -> None:
        self._require(SUBMITTING)
        self._reset()

    def submit_failed(self, errors: Dict[str, str] | None = None) -> None:
        self._require(SUBMITTING)
        self.status = OPEN
        self.errors = dict(errors or {})

    def cancel(self) -> None:
        if self.status == SUBMITTING:
            raise InvalidTransition("Cannot close the form while saving", state=self.status)
        self._reset()

    def as_dict(self) -> dict:
        return {
            "status": self.status,
            "mode": self.mode,
            "record_id": self.record_id,
            "draft": copy.deepcopy(self.draft),
            "errors": dict(self.errors),
        }


class DeleteConfirmations:
    """Two-step delete: a request yields a token that must be confirmed or cancelled.

    A new request for a record replaces that record's earlier token, and at most
    ``max_pending`` tokens are kept (oldest dropped first).
    """

    def __init__(self, max_pending: int = 100) -> None:
        self._pending: Dict[str, Any] = {}
        self._max_pending = max(int(max_pending), 1)

    def request(self, record_id: Any) -> str:
        for stale in [t for t, rid in self._pending.items() if rid == record_id]:
            del self._pending[stale]
        while len(self._pending) >= self._max_pending:
            del self._pending[next(iter(self._pending))]
        token = uuid.uuid4().hex
        self._pending[token] = record_id
        return token

    def peek(self, token: str) -> Any:
        if token not in self._pending:
            raise UnknownToken("Delete request not found or already resolved", token=token)
        return self._pending[token]

    def confirm(self, token: str) -> Any:
        record_id = self.peek(token)
        del self._pending[token]
        return record_id

    def cancel(self, token: str) -> bool:
        return self._pending.pop(token, None) is not None

    def pending(self) -> dict:
        return dict(self._pending)


class RequestTracker:
    """Generation counter for list loads; only the latest issued load may land."""

    def __init__(self) -> None:
        self._latest = 0
        self._lock = threading.Lock()

    def issue(self) -> int:
        with self._lock:
            self._latest += 1
            return self._latest

    @property
    def latest(self) -> int:
        return self._latest

    def is_current(self, generation: int) -> bool:
        return generation == self._latest


@dataclass
class PageState:
    page: str
    records: List[dict] = field(default_factory=list)
    loading: bool = False
    loaded: bool = False
    error: str | None = None
    search: str = ""
    sort: SortState = field(default_factory=SortState)
    form: FormState = field(default_factory=FormState)
    generation: int = 0


def _cards(meta: PageMeta | None, stats: dict) -> list[dict]:
    if meta is None:
        return []
    cards = []
    for key, title, suffix in meta.cards:
        value = stats.get(key, 0)
        cards.append({"key": key, "title": title, "value": value, "display": f"{value}{suffix}"})
    return cards


def derive_view(state: PageState, schema: EntitySchema) -> dict:
    """Pure view model for one page: visible rows, statistics and UI flags."""
    meta = get_page(state.page)
    visible = filter_records(state.records, state.search, schema.search_fields)
    visible = sort_records(visible, state.sort)
    stats = aggregate(schema.id, state.records)
    view = {
        "page": state.page,
        "entity": schema.id,
        "title": meta.title if meta else schema.label,
        "subtitle": meta.subtitle if meta else "",
        "search_placeholder": meta.search_placeholder if meta else "",
        "search": state.search,
        "sort": state.sort.as_dict(),
        "loading": state.loading,
        "loading_message": meta.loading_message if meta else "Loading...",
        "error": {"message": state.error, "retry": True} if state.error else None,
        "records": copy.deepcopy(visible),
        "total": len(state.records),
        "visible": len(visible),
        "stats": stats,
        "cards": _cards(meta, stats),
        "fields": [f.as_dict() for f in schema.fields],
        "form": state.form.as_dict(),
        "empty": None,
    }
    if not state.loading and not state.error and not visible and meta is not None:
        view["empty"] = meta.empty_state(bool(state.search.strip()))
    return view


class PageController:
    def __init__(self, meta: PageMeta, service: EntityService, notifications: NotificationQueue) -> None:
        self.meta = meta
        self.service = service
        self.schema = service.schema
        self.notifications = notifications
        self.state = PageState(page=meta.id)
        self.tracker = RequestTracker()
        self.deletes = DeleteConfirmations()
        self._lock = threading.RLock()

    def view(self) -> dict:
        with self._lock:
            return derive_view(self.state, self.schema)

    def begin_load(self) -> int:
        with self._lock:
            generation = self.tracker.issue()
            self.state.loading = True
            self.state.error = None
            return generation

    def finish_load(self, generation: int, records: list[dict] | None = None, error: str | None = None) -> bool:
        """Apply a load result; results from superseded loads are dropped."""
        with self._lock:
            if not self.tracker.is_current(generation):
                logger.info("page_load_stale page=%s generation=%s latest=%s", self.meta.id, generation, self.tracker.latest)
                return False
            self.state.loading = False
            self.state.generation = generation
            if error is not None:
                self.state.error = error
                return True
            self.state.records = list(records or [])
            self.state.loaded = True
            return True

    def load(self) -> dict:
        generation = self.begin_load()
        try:
            records = self.service.get_all()
        except RecordStoreError as exc:
            logger.error("page_load_failed page=%s error=%s", self.meta.id, exc.message)
            self.finish_load(generation, error=exc.message or self.meta.load_failed_message)
        else:
            self.finish_load(generation, records=records)
        return self.view()

    def set_search(self, term: str | None) -> dict:
        with self._lock:
            self.state.search = term or ""
            return derive_view(self.state, self.schema)

    def select_sort(self, key: str) -> dict:
        if key != "Id" and self.schema.get_field(key) is None:
            raise ValidationFailed(f"Unknown sort field: {key}", errors={"key": "Unknown field"})
        with self._lock:
            self.state.sort = self.state.sort.select(key)
            return derive_view(self.state, self.schema)

    def _find(self, record_id: Any) -> dict | None:
        for record in self.state.records:
            if str(record.get("Id")) == str(record_id):
                return record
        return None

    def open_form(self, record_id: Any = None) -> dict:
        if record_id is None:
            with self._lock:
                self.state.form.open_new(self.schema)
                return derive_view(self.state, self.schema)
        with self._lock:
            record = self._find(record_id)
        if record is None:
            record = self.service.get_by_id(record_id)
        with self._lock:
            self.state.form.open_edit(self.schema, record)
            return derive_view(self.state, self.schema)

    def edit_form(self, changes: dict) -> dict:
        with self._lock:
            for field_id, value in (changes or {}).items():
                self.state.form.edit_field(field_id, value)
            return derive_view(self.state, self.schema)

    def cancel_form(self) -> dict:
        with self._lock:
            self.state.form.cancel()
            return derive_view(self.state, self.schema)

    def _patch(self, record: dict) -> None:
        for idx, existing in enumerate(self.state.records):
            if existing.get("Id") == record.get("Id"):
                self.state.records[idx] = record
                return
        self.state.records.append(record)

    def submit_form(self) -> dict:
        with self._lock:
            form = self.state.form
            if not form.begin_submit(self.schema):
                return derive_view(self.state, self.schema)
            mode, record_id, draft = form.mode, form.record_id, copy.deepcopy(form.draft)
        try:
            if mode == EDIT:
                record = self.service.update(record_id, draft)
            else:
                record = self.service.create(draft)
        except ValidationFailed as exc:
            with self._lock:
                self.state.form.submit_failed(exc.errors)
                return derive_view(self.state, self.schema)
        except RecordStoreError as exc:
            logger.error("page_save_failed page=%s mode=%s error=%s", self.meta.id, mode, exc.message)
            with self._lock:
                self.state.form.submit_failed()
                self.notifications.error(exc.message or self.meta.save_failed_message, page=self.meta.id)
                return derive_view(self.state, self.schema)
        with self._lock:
            self._patch(record)
            self.state.form.submit_succeeded()
            message = self.meta.updated_message if mode == EDIT else self.meta.created_message
            self.notifications.success(message, page=self.meta.id)
            return derive_view(self.state, self.schema)

    def request_delete(self, record_id: Any) -> dict:
        with self._lock:
            token = self.deletes.request(record_id)
        return {"token": token, "record_id": record_id, "prompt": self.meta.delete_prompt}

    def confirm_delete(self, token: str) -> bool:
        with self._lock:
            record_id = self.deletes.confirm(token)
        try:
            self.service.delete(record_id)
        except RecordStoreError as exc:
            logger.error("page_delete_failed page=%s id=%s error=%s", self.meta.id, record_id, exc.message)
            self.notifications.error(exc.message or self.meta.delete_failed_message, page=self.meta.id)
            return False
        with self._lock:
            self.state.records = [r for r in self.state.records if str(r.get("Id")) != str(record_id)]
        self.notifications.success(self.meta.deleted_message, page=self.meta.id)
        return True

    def cancel_delete(self, token: str) -> bool:
        with self._lock:
            return self.deletes.cancel(token)


def build_controllers(services: Dict[str, EntityService], notifications: NotificationQueue) -> Dict[str, PageController]:
    controllers: Dict[str, PageController] = {}
    for meta in PAGES.values():
        if get_schema(meta.entity) is None or meta.entity not in services:
            continue
        controllers[meta.id] = PageController(meta, services[meta.entity], notifications)
    return controllers
