"""Record store error taxonomy."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class RecordStoreError(Exception):
    message: str
    code = "RECORD_STORE_ERROR"
    status = 500

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        return self.message

    def issues(self) -> list[dict]:
        return [{"code": self.code, "message": self.message, "path": None, "detail": None}]


@dataclass
class NotFound(RecordStoreError):
    table: str | None = None
    record_id: Any = None
    code = "RECORD_NOT_FOUND"
    status = 404

    def issues(self) -> list[dict]:
        return [{"code": self.code, "message": self.message, "path": "record_id", "detail": {"record_id": self.record_id}}]


@dataclass
class ValidationFailed(RecordStoreError):
    errors: Dict[str, str] = field(default_factory=dict)
    code = "VALIDATION_FAILED"
    status = 400

    def issues(self) -> list[dict]:
        if not self.errors:
            return super().issues()
        return [{"code": self.code, "message": msg, "path": field_id, "detail": None} for field_id, msg in self.errors.items()]


@dataclass
class StoreRejected(RecordStoreError):
    messages: list = field(default_factory=list)
    code = "RECORD_WRITE_FAILED"
    status = 400

    def issues(self) -> list[dict]:
        detail = {"messages": list(self.messages)} if self.messages else None
        return [{"code": self.code, "message": self.message, "path": "record", "detail": detail}]


@dataclass
class TransportFailure(RecordStoreError):
    status_code: int | None = None
    code = "STORE_UNAVAILABLE"
    status = 502


@dataclass
class PageError(Exception):
    """Page interaction refused in the current state (not a store failure)."""

    message: str
    code = "PAGE_ERROR"
    status = 400

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        return self.message

    def issues(self) -> list[dict]:
        return [{"code": self.code, "message": self.message, "path": None, "detail": None}]


@dataclass
class InvalidTransition(PageError):
    state: str | None = None
    code = "INVALID_TRANSITION"
    status = 409

    def issues(self) -> list[dict]:
        return [{"code": self.code, "message": self.message, "path": "form", "detail": {"state": self.state}}]


@dataclass
class UnknownToken(PageError):
    token: str | None = None
    code = "DELETE_TOKEN_NOT_FOUND"
    status = 404

    def issues(self) -> list[dict]:
        return [{"code": self.code, "message": self.message, "path": "token", "detail": None}]
