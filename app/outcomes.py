"""Per-record outcomes for batched store writes."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List

from app.errors import StoreRejected


@dataclass(frozen=True)
class Paging:
    limit: int = 1000
    offset: int = 0

    def as_params(self) -> dict:
        return {"limit": self.limit, "offset": self.offset}


@dataclass
class RecordOutcome:
    success: bool
    data: dict | None = None
    messages: List[str] = field(default_factory=list)
    record_id: Any = None
    not_found: bool = False
    field_errors: Dict[str, str] = field(default_factory=dict)


@dataclass
class BatchResult:
    """Outcome of one create/update/delete call; one entry per submitted record.

    The batch counts as failed when any record failed. Successful entries are
    kept so callers can see exactly which records were applied.
    """

    outcomes: List[RecordOutcome] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return any(not o.success for o in self.outcomes)

    @property
    def succeeded(self) -> list[RecordOutcome]:
        return [o for o in self.outcomes if o.success]

    @property
    def failures(self) -> list[RecordOutcome]:
        return [o for o in self.outcomes if not o.success]

    @property
    def messages(self) -> list[str]:
        out: list[str] = []
        for outcome in self.failures:
            out.extend(outcome.messages or [f"Record {outcome.record_id} failed"])
        return out

    def records(self) -> list[dict]:
        return [copy.deepcopy(o.data) for o in self.succeeded if isinstance(o.data, dict)]

    def raise_for_failures(self) -> None:
        if not self.failed:
            return
        messages = self.messages
        raise StoreRejected(", ".join(messages), messages=messages)
