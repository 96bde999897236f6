"""Remote record store: canonical records over the HTTP record store client."""

from __future__ import annotations

from typing import Any, Dict, Iterable

from app.entities import EntitySchema
from app.field_mapping import FieldMap
from app.outcomes import BatchResult, Paging, RecordOutcome
from app.record_client import RecordStoreClient


class RemoteRecordStore:
    """Same table-level contract as ``MemoryRecordStore``.

    Records go in and come out with canonical field names; the ``FieldMap`` of
    each table is the only place backend names appear.
    """

    def __init__(self, client: RecordStoreClient, schemas: Iterable[EntitySchema]) -> None:
        self._client = client
        self._maps: Dict[str, FieldMap] = {schema.table: FieldMap.for_schema(schema) for schema in schemas}
        self._fields: Dict[str, list[str]] = {schema.table: schema.read_fields for schema in schemas}

    def _map(self, table: str) -> FieldMap:
        try:
            return self._maps[table]
        except KeyError:
            raise KeyError(f"Unknown table: {table}") from None

    def _translate(self, table: str, batch: BatchResult) -> BatchResult:
        fmap = self._map(table)
        outcomes = []
        for outcome in batch.outcomes:
            data = fmap.to_canonical(outcome.data) if isinstance(outcome.data, dict) else None
            outcomes.append(
                RecordOutcome(
                    success=outcome.success,
                    data=data,
                    messages=list(outcome.messages),
                    record_id=outcome.record_id,
                    not_found=outcome.not_found,
                    field_errors=dict(outcome.field_errors),
                )
            )
        return BatchResult(outcomes)

    def fetch_all(
        self,
        table: str,
        fields: list[str] | None = None,
        where: dict | None = None,
        order_by: list[tuple[str, str]] | None = None,
        paging: Paging | None = None,
    ) -> list[dict]:
        fmap = self._map(table)
        rows = self._client.fetch_records(
            table,
            fmap.backend_names(fields or self._fields[table]),
            where={fmap.backend_name(k): v for k, v in (where or {}).items()},
            order_by=[(fmap.backend_name(k), d) for k, d in (order_by or [])],
            paging=paging,
        )
        return [fmap.to_canonical(row) for row in rows]

    def fetch_by_id(self, table: str, record_id: Any, fields: list[str] | None = None) -> dict:
        fmap = self._map(table)
        row = self._client.get_record_by_id(table, record_id, fmap.backend_names(fields or self._fields[table]))
        return fmap.to_canonical(row)

    def create(self, table: str, records: list[dict]) -> BatchResult:
        fmap = self._map(table)
        batch = self._client.create_record(table, [fmap.to_backend(r) for r in records])
        return self._translate(table, batch)

    def update(self, table: str, records: list[dict]) -> BatchResult:
        fmap = self._map(table)
        batch = self._client.update_record(table, [fmap.to_backend(r) for r in records])
        return self._translate(table, batch)

    def delete(self, table: str, ids: list[Any]) -> BatchResult:
        return self._client.delete_record(table, list(ids))
