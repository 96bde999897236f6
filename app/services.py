"""Per-entity record services over a table-level record store."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Protocol

from app.entities import EntitySchema
from app.errors import NotFound, StoreRejected, ValidationFailed
from app.outcomes import BatchResult, Paging
from app.records_validation import validate_record_payload
from scholar.listing import ASC, SortState, sort_records

logger = logging.getLogger("scholar.records")


class RecordStore(Protocol):
    def fetch_all(
        self,
        table: str,
        fields: list[str] | None = None,
        where: dict | None = None,
        order_by: list[tuple[str, str]] | None = None,
        paging: Paging | None = None,
    ) -> list[dict]: ...

    def fetch_by_id(self, table: str, record_id: Any, fields: list[str] | None = None) -> dict: ...

    def create(self, table: str, records: list[dict]) -> BatchResult: ...

    def update(self, table: str, records: list[dict]) -> BatchResult: ...

    def delete(self, table: str, ids: list[Any]) -> BatchResult: ...


def _record_id(value: Any, table: str) -> int:
    if isinstance(value, bool):
        raise NotFound(f"Record {value} not found", table=table, record_id=value)
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        raise NotFound(f"Record {value} not found", table=table, record_id=value) from None


class EntityService:
    """CRUD for one entity type. Holds no cache; every call reaches the store."""

    def __init__(self, schema: EntitySchema, store: RecordStore, paging: Paging | None = None) -> None:
        self.schema = schema
        self._store = store
        self._paging = paging or Paging()

    @property
    def table(self) -> str:
        return self.schema.table

    def _ordered(self, records: list[dict]) -> list[dict]:
        return sort_records(records, SortState(key=self.schema.order_by, direction=ASC))

    def get_all(self) -> list[dict]:
        records = self._store.fetch_all(
            self.table,
            fields=self.schema.read_fields,
            order_by=[(self.schema.order_by, "ASC")],
            paging=self._paging,
        )
        return self._ordered(records)

    def get_by_id(self, record_id: Any) -> dict:
        return self._store.fetch_by_id(self.table, _record_id(record_id, self.table), self.schema.read_fields)

    def get_by(self, field_id: str, value: Any) -> list[dict]:
        if self.schema.get_field(field_id) is None:
            raise ValidationFailed(f"Unknown field: {field_id}", errors={field_id: "Unknown field"})
        records = self._store.fetch_all(
            self.table,
            fields=self.schema.read_fields,
            where={field_id: value},
            order_by=[(self.schema.order_by, "ASC")],
            paging=self._paging,
        )
        return self._ordered(records)

    def get_by_category(self, value: Any) -> list[dict]:
        if not self.schema.category_field:
            raise ValidationFailed(f"{self.schema.label} has no category field")
        return self.get_by(self.schema.category_field, value)

    def _field_id_for_label(self, label: str) -> str:
        for f in self.schema.fields:
            if label in (f.id, f.display_label):
                return f.id
        return label

    def _raise_for_write(self, batch: BatchResult) -> None:
        if not batch.failed:
            return
        for outcome in batch.failures:
            if outcome.not_found:
                raise NotFound(f"Record {outcome.record_id} not found", table=self.table, record_id=outcome.record_id)
        field_errors: Dict[str, str] = {}
        for outcome in batch.failures:
            for label, message in outcome.field_errors.items():
                field_errors.setdefault(self._field_id_for_label(label), message)
        if field_errors:
            raise ValidationFailed(", ".join(batch.messages), errors=field_errors)
        batch.raise_for_failures()

    def _validated(self, draft: Any, for_create: bool, existing: dict | None = None) -> dict:
        errors, clean = validate_record_payload(self.schema, draft, for_create=for_create, existing=existing)
        if errors:
            raise ValidationFailed("Validation failed", errors=errors)
        return clean

    def create(self, draft: dict) -> dict:
        clean = self._validated(draft, for_create=True)
        batch = self._store.create(self.table, [clean])
        self._raise_for_write(batch)
        records = batch.records()
        if not records:
            raise StoreRejected(f"Failed to create {self.schema.label.lower()}")
        logger.info("record_created table=%s id=%s", self.table, records[0].get("Id"))
        return records[0]

    def update(self, record_id: Any, draft: dict) -> dict:
        existing = self.get_by_id(record_id)
        clean = self._validated(draft, for_create=False, existing=existing)
        clean["Id"] = existing["Id"]
        batch = self._store.update(self.table, [clean])
        self._raise_for_write(batch)
        records = batch.records()
        logger.info("record_updated table=%s id=%s", self.table, existing["Id"])
        if records:
            return records[0]
        merged = dict(existing)
        merged.update(clean)
        return merged

    def delete(self, record_id: Any) -> bool:
        existing = self.get_by_id(record_id)
        batch = self._store.delete(self.table, [existing["Id"]])
        self._raise_for_write(batch)
        logger.info("record_deleted table=%s id=%s", self.table, existing["Id"])
        return True

    def delete_many(self, record_ids: Iterable[Any]) -> BatchResult:
        ids = [_record_id(rid, self.table) for rid in record_ids]
        if not ids:
            return BatchResult([])
        batch = self._store.delete(self.table, ids)
        logger.info(
            "records_deleted table=%s requested=%s deleted=%s",
            self.table,
            len(ids),
            len(batch.succeeded),
        )
        return batch


def build_services(schemas: Iterable[EntitySchema], store: RecordStore, paging: Paging | None = None) -> Dict[str, EntityService]:
    return {schema.id: EntityService(schema, store, paging=paging) for schema in schemas}
