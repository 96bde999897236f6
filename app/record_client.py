"""HTTP client for the remote table-oriented record store."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List
from urllib.parse import quote

import httpx

from app.errors import NotFound, StoreRejected, TransportFailure
from app.outcomes import BatchResult, Paging, RecordOutcome

logger = logging.getLogger("scholar.records")

GENERIC_TRANSPORT_MESSAGE = "Unable to reach the record store"


def field_spec(fields: Iterable[str]) -> list[dict]:
    return [{"field": {"Name": name}} for name in fields]


def order_spec(order_by: Iterable[tuple[str, str]] | None) -> list[dict]:
    return [{"fieldName": name, "sorttype": direction.upper()} for name, direction in (order_by or [])]


def where_spec(where: dict | None) -> list[dict]:
    return [{"FieldName": name, "Operator": "EqualTo", "Values": [value]} for name, value in (where or {}).items()]


def _response_message(res: httpx.Response) -> str:
    try:
        body = res.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if isinstance(message, str) and message.strip():
            return message.strip()
    reason = (res.reason_phrase or "").strip()
    if reason:
        return f"Record store error: {res.status_code} {reason}"
    return f"Record store error: {res.status_code}"


def _transport_message(exc: httpx.RequestError) -> str:
    text = str(exc).strip()
    return f"{GENERIC_TRANSPORT_MESSAGE}: {text}" if text else GENERIC_TRANSPORT_MESSAGE


def _result_field_errors(result: dict) -> dict:
    errors = {}
    for err in result.get("errors") or []:
        if isinstance(err, dict) and err.get("fieldLabel"):
            errors.setdefault(str(err["fieldLabel"]), str(err.get("message") or "is invalid"))
    return errors


def _result_messages(result: dict) -> list[str]:
    messages: list[str] = []
    for err in result.get("errors") or []:
        if isinstance(err, dict):
            label = err.get("fieldLabel") or err.get("field") or "Field"
            detail = err.get("message") or "is invalid"
            messages.append(f"{label}: {detail}")
        elif err:
            messages.append(str(err))
    message = result.get("message")
    if isinstance(message, str) and message.strip():
        messages.append(message.strip())
    return messages


class RecordStoreClient:
    def __init__(
        self,
        base_url: str,
        project_id: str,
        public_key: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._headers = {
            "X-Apper-Project-Id": project_id,
            "Authorization": f"Bearer {public_key}",
            "Accept": "application/json",
        }
        self._timeout = timeout
        self._transport = transport

    def _call(self, table: str, operation: str, payload: dict) -> dict:
        url = f"{self._base_url}/tables/{quote(table, safe='')}/{operation}"
        try:
            with httpx.Client(timeout=self._timeout, headers=self._headers, transport=self._transport) as client:
                res = client.post(url, json=payload)
        except httpx.RequestError as exc:
            logger.error("record_store_transport_failed table=%s operation=%s error=%s", table, operation, exc)
            raise TransportFailure(_transport_message(exc)) from exc
        if res.status_code >= 400:
            message = _response_message(res)
            logger.error("record_store_http_error table=%s operation=%s status=%s message=%s", table, operation, res.status_code, message)
            raise TransportFailure(message, status_code=res.status_code)
        try:
            body = res.json()
        except ValueError as exc:
            raise TransportFailure("Record store returned an invalid response", status_code=res.status_code) from exc
        if not isinstance(body, dict):
            raise TransportFailure("Record store returned an invalid response", status_code=res.status_code)
        if not body.get("success"):
            message = body.get("message") or f"{operation} failed"
            logger.error("record_store_rejected table=%s operation=%s message=%s", table, operation, message)
            raise StoreRejected(str(message))
        return body

    def fetch_records(
        self,
        table: str,
        fields: list[str],
        where: dict | None = None,
        order_by: list[tuple[str, str]] | None = None,
        paging: Paging | None = None,
    ) -> list[dict]:
        payload = {
            "fields": field_spec(fields),
            "where": where_spec(where),
            "orderBy": order_spec(order_by),
            "pagingInfo": (paging or Paging()).as_params(),
        }
        body = self._call(table, "fetchRecords", payload)
        data = body.get("data") or []
        return [row for row in data if isinstance(row, dict)]

    def get_record_by_id(self, table: str, record_id: Any, fields: list[str]) -> dict:
        try:
            body = self._call(table, "getRecordById", {"id": record_id, "fields": field_spec(fields)})
        except TransportFailure as exc:
            if exc.status_code == 404:
                raise NotFound(exc.message, table=table, record_id=record_id) from exc
            raise
        data = body.get("data")
        if not isinstance(data, dict):
            raise NotFound(f"Record {record_id} not found", table=table, record_id=record_id)
        return data

    def _batch(self, table: str, operation: str, body: dict, submitted_ids: List[Any]) -> BatchResult:
        results = body.get("results")
        if not isinstance(results, list):
            results = []
        outcomes: list[RecordOutcome] = []
        for idx, submitted_id in enumerate(submitted_ids):
            result = results[idx] if idx < len(results) and isinstance(results[idx], dict) else None
            if result is None:
                outcomes.append(RecordOutcome(success=False, messages=["No result returned for record"], record_id=submitted_id))
                continue
            data = result.get("data") if isinstance(result.get("data"), dict) else None
            record_id = data.get("Id") if data and data.get("Id") is not None else submitted_id
            if result.get("success"):
                outcomes.append(RecordOutcome(success=True, data=data, record_id=record_id))
            else:
                outcomes.append(
                    RecordOutcome(
                        success=False,
                        messages=_result_messages(result),
                        record_id=record_id,
                        field_errors=_result_field_errors(result),
                    )
                )
        batch = BatchResult(outcomes)
        if batch.failed:
            logger.error(
                "record_store_batch_failed table=%s operation=%s failed=%s total=%s messages=%s",
                table,
                operation,
                len(batch.failures),
                len(outcomes),
                batch.messages,
            )
        return batch

    def create_record(self, table: str, records: list[dict]) -> BatchResult:
        body = self._call(table, "createRecord", {"records": records})
        return self._batch(table, "createRecord", body, [None] * len(records))

    def update_record(self, table: str, records: list[dict]) -> BatchResult:
        body = self._call(table, "updateRecord", {"records": records})
        return self._batch(table, "updateRecord", body, [r.get("Id") for r in records])

    def delete_record(self, table: str, ids: list[Any]) -> BatchResult:
        body = self._call(table, "deleteRecord", {"RecordIds": list(ids)})
        return self._batch(table, "deleteRecord", body, list(ids))
