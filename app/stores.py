"""In-memory fallback record store used when the remote store is not configured."""

from __future__ import annotations

import copy
import logging
import random
import time
from typing import Any, Dict, Iterable, List

from app.errors import NotFound
from app.outcomes import BatchResult, Paging, RecordOutcome
from scholar.listing import SortState, sort_records

logger = logging.getLogger("scholar.store")


def _coerce_id(record_id: Any) -> Any:
    try:
        return int(record_id)
    except (TypeError, ValueError):
        return record_id


class MemoryRecordStore:
    """Table-level record store backed by process-local ordered lists.

    Ids are ``max(existing) + 1`` per table, which is only safe for a single
    writer. Every call sleeps ``latency_ms`` (plus up to ``jitter_ms``) first.
    """

    def __init__(
        self,
        seed: Dict[str, List[dict]] | None = None,
        latency_ms: float = 0.0,
        jitter_ms: float = 0.0,
        sleep=time.sleep,
    ) -> None:
        self._tables: Dict[str, List[dict]] = {}
        self._latency_ms = max(float(latency_ms or 0.0), 0.0)
        self._jitter_ms = max(float(jitter_ms or 0.0), 0.0)
        self._sleep = sleep
        for table, rows in (seed or {}).items():
            self._tables[table] = [copy.deepcopy(r) for r in rows if isinstance(r, dict)]

    def _delay(self) -> None:
        delay_ms = self._latency_ms
        if self._jitter_ms:
            delay_ms += random.uniform(0.0, self._jitter_ms)
        if delay_ms > 0:
            self._sleep(delay_ms / 1000.0)

    def _rows(self, table: str) -> List[dict]:
        return self._tables.setdefault(table, [])

    def _index_of(self, table: str, record_id: Any) -> int | None:
        wanted = _coerce_id(record_id)
        for idx, row in enumerate(self._rows(table)):
            if row.get("Id") == wanted:
                return idx
        return None

    def _next_id(self, table: str) -> int:
        ids = [r.get("Id") for r in self._rows(table) if isinstance(r.get("Id"), int)]
        return max(ids) + 1 if ids else 1

    @staticmethod
    def _project(record: dict, fields: Iterable[str] | None) -> dict:
        rec = copy.deepcopy(record)
        if fields:
            rec = {fid: rec.get(fid) for fid in fields if fid in rec}
            rec["Id"] = record.get("Id")
        return rec

    def tables(self) -> list[str]:
        return list(self._tables.keys())

    def fetch_all(
        self,
        table: str,
        fields: list[str] | None = None,
        where: dict | None = None,
        order_by: list[tuple[str, str]] | None = None,
        paging: Paging | None = None,
    ) -> list[dict]:
        self._delay()
        rows = list(self._rows(table))
        for field_id, value in (where or {}).items():
            rows = [r for r in rows if r.get(field_id) == value]
        for field_id, direction in reversed(order_by or []):
            rows = sort_records(rows, SortState(key=field_id, direction=direction.lower()))
        if paging is not None:
            rows = rows[paging.offset : paging.offset + paging.limit]
        return [self._project(r, fields) for r in rows]

    def fetch_by_id(self, table: str, record_id: Any, fields: list[str] | None = None) -> dict:
        self._delay()
        idx = self._index_of(table, record_id)
        if idx is None:
            raise NotFound(f"Record {record_id} not found", table=table, record_id=record_id)
        return self._project(self._rows(table)[idx], fields)

    def create(self, table: str, records: list[dict]) -> BatchResult:
        self._delay()
        outcomes = []
        for data in records:
            record = copy.deepcopy(data)
            record["Id"] = self._next_id(table)
            self._rows(table).append(record)
            outcomes.append(RecordOutcome(success=True, data=copy.deepcopy(record), record_id=record["Id"]))
        logger.info("memory_store_create table=%s count=%s", table, len(outcomes))
        return BatchResult(outcomes)

    def update(self, table: str, records: list[dict]) -> BatchResult:
        self._delay()
        outcomes = []
        for data in records:
            record_id = _coerce_id(data.get("Id"))
            idx = self._index_of(table, record_id)
            if idx is None:
                outcomes.append(
                    RecordOutcome(success=False, messages=[f"Record {record_id} not found"], record_id=record_id, not_found=True)
                )
                continue
            changes = copy.deepcopy(data)
            changes.pop("Id", None)
            row = self._rows(table)[idx]
            row.update(changes)
            outcomes.append(RecordOutcome(success=True, data=copy.deepcopy(row), record_id=record_id))
        return BatchResult(outcomes)

    def delete(self, table: str, ids: list[Any]) -> BatchResult:
        self._delay()
        outcomes = []
        for record_id in ids:
            idx = self._index_of(table, record_id)
            if idx is None:
                outcomes.append(
                    RecordOutcome(success=False, messages=[f"Record {record_id} not found"], record_id=record_id, not_found=True)
                )
                continue
            del self._rows(table)[idx]
            outcomes.append(RecordOutcome(success=True, record_id=_coerce_id(record_id)))
        return BatchResult(outcomes)
