"""Translation between canonical field names and record store field names."""

from __future__ import annotations

import re
from typing import Dict, Iterable

from app.entities import EntitySchema

SYSTEM_FIELDS = ("Id", "Name")
CUSTOM_SUFFIX = "_c"

_SNAKE_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def backend_field_name(field_id: str, suffix: str = CUSTOM_SUFFIX) -> str:
    """``HireDate`` -> ``hire_date_c``; system fields keep their names."""
    if field_id in SYSTEM_FIELDS:
        return field_id
    return f"{_SNAKE_RE.sub('_', field_id).lower()}{suffix}"


class FieldMap:
    def __init__(self, mapping: Dict[str, str]) -> None:
        self._to_backend = dict(mapping)
        self._to_backend.setdefault("Id", "Id")
        self._to_canonical = {backend: canonical for canonical, backend in self._to_backend.items()}

    @classmethod
    def for_schema(cls, schema: EntitySchema, suffix: str = CUSTOM_SUFFIX) -> "FieldMap":
        mapping = {f.id: f.backend or backend_field_name(f.id, suffix) for f in schema.fields}
        return cls(mapping)

    def backend_name(self, field_id: str) -> str:
        try:
            return self._to_backend[field_id]
        except KeyError:
            raise KeyError(f"Unknown field: {field_id}") from None

    def canonical_name(self, backend_id: str) -> str | None:
        return self._to_canonical.get(backend_id)

    def backend_names(self, field_ids: Iterable[str]) -> list[str]:
        return [self.backend_name(f) for f in field_ids]

    def to_backend(self, record: dict) -> dict:
        out = {}
        for key, value in record.items():
            if key in self._to_backend:
                out[self._to_backend[key]] = value
        return out

    def to_canonical(self, record: dict) -> dict:
        out = {}
        for key, value in record.items():
            canonical = self._to_canonical.get(key)
            if canonical is not None:
                out[canonical] = value
        return out
