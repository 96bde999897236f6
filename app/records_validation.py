"""Draft validation and write-payload cleaning for entity records."""

from __future__ import annotations

import math
import re
from datetime import date
from typing import Any, Dict

from app.entities import DATE, EMAIL, ENUM, LIST, NUMBER, PHONE, EntitySchema, FieldDef

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^[+]?[1-9]\d{0,15}$")
_WS_RE = re.compile(r"\s")


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def parse_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    try:
        parsed = float(str(value).strip())
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def split_list(value: Any) -> list[str] | None:
    if isinstance(value, (list, tuple)):
        if not all(isinstance(v, str) for v in value):
            return None
        return [v.strip() for v in value if v.strip()]
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return None


def _number_error(field: FieldDef, value: Any) -> str | None:
    label = field.display_label
    number = parse_number(value)
    if number is None:
        return field.invalid_message or f"Please enter a valid {label.lower()}"
    if field.integer and not number.is_integer():
        return f"{label} must be a whole number"
    low, high = field.minimum, field.maximum
    if (low is not None and number < low) or (high is not None and number > high):
        if field.invalid_message:
            return field.invalid_message
        if low is not None and high is not None:
            return f"{label} must be between {low:g} and {high:g}"
        if low is not None:
            return f"{label} cannot be less than {low:g}"
        return f"{label} cannot be greater than {high:g}"
    return None


def _field_error(field: FieldDef, value: Any) -> str | None:
    label = field.display_label
    if is_blank(value):
        return f"{label} is required" if field.required else None
    if field.kind == EMAIL:
        if not isinstance(value, str) or not EMAIL_RE.match(value.strip()):
            return "Please enter a valid email address"
    elif field.kind == PHONE:
        if not PHONE_RE.match(_WS_RE.sub("", str(value))):
            return "Please enter a valid phone number"
    elif field.kind == NUMBER:
        return _number_error(field, value)
    elif field.kind == ENUM:
        if value not in field.options:
            return f"{label} must be one of {', '.join(field.options)}"
    elif field.kind == DATE:
        try:
            date.fromisoformat(str(value).strip())
        except ValueError:
            return f"{label} must be a valid date (YYYY-MM-DD)"
    elif field.kind == LIST:
        if split_list(value) is None:
            return f"{label} must be a list of text values"
    elif not isinstance(value, (str, int, float)):
        return f"{label} must be text"
    return None


def validate_draft(schema: EntitySchema, draft: dict) -> Dict[str, str]:
    """Map each invalid field to its message; an empty mapping means the draft is valid.

    Every rule runs on every call. A field reports only its first failing rule,
    and required checks come before format checks.
    """
    if not isinstance(draft, dict):
        return {"_": "Record data must be an object"}
    errors: Dict[str, str] = {}

    def _add_error(field_id: str, message: str) -> None:
        errors.setdefault(field_id, message)

    for field in schema.fields:
        message = _field_error(field, draft.get(field.id))
        if message:
            _add_error(field.id, message)
    for check in schema.checks:
        for field_id, message in (check(draft) or {}).items():
            _add_error(field_id, message)
    return errors


def _apply_defaults(schema: EntitySchema, data: dict) -> dict:
    updated = dict(data)
    for field in schema.fields:
        if field.default is None:
            continue
        if not is_blank(updated.get(field.id)):
            continue
        updated[field.id] = field.default
    return updated


def _clean_value(field: FieldDef, value: Any) -> Any:
    if field.kind == NUMBER:
        if is_blank(value):
            return None
        number = parse_number(value)
        if number is None:
            return value
        return int(number) if field.integer and number.is_integer() else number
    if field.kind == LIST:
        if value is None:
            return []
        parsed = split_list(value)
        return parsed if parsed is not None else value
    if value is None:
        return ""
    return value.strip() if isinstance(value, str) else value


def clean_draft(schema: EntitySchema, draft: dict, for_create: bool) -> dict:
    """Project ``draft`` onto the writable fields and coerce values for the store.

    ``Id`` and unknown keys are dropped. Creates fill schema defaults for blank
    fields and write every field; updates only write the fields present.
    """
    data = {k: v for k, v in draft.items() if schema.get_field(k) is not None}
    if for_create:
        data = _apply_defaults(schema, data)
    clean: dict = {}
    for field in schema.fields:
        if field.id not in data and not for_create:
            continue
        clean[field.id] = _clean_value(field, data.get(field.id))
    return clean


def validate_record_payload(
    schema: EntitySchema,
    data: Any,
    for_create: bool,
    existing: dict | None = None,
) -> tuple[Dict[str, str], dict]:
    """Validate a create draft or a partial update and return ``(errors, clean)``.

    Updates only check the fields they carry, except that a defaulted field
    cannot be blanked and cross-field checks run over ``existing`` merged with
    the update.
    """
    if not isinstance(data, dict):
        return {"_": "Record data must be an object"}, {}
    clean = clean_draft(schema, data, for_create=for_create)
    if for_create:
        return validate_draft(schema, clean), clean
    errors = {k: v for k, v in validate_draft(schema, clean).items() if k in clean}
    for field in schema.fields:
        if field.id in clean and field.default is not None and is_blank(clean[field.id]):
            errors.setdefault(field.id, f"{field.display_label} is required")
    merged = {**(existing or {}), **clean}
    for check in schema.checks:
        for field_id, message in (check(merged) or {}).items():
            errors.setdefault(field_id, message)
    return errors, clean
