"""
Import run models.

An Import moves pending -> processing -> completed | failed. Each parsed row
ends in exactly one RowOutcome: Added, Skipped (duplicate) or Errored.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class ImportStatus(Enum):
    """Lifecycle state of an import."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ImportStatus.COMPLETED, ImportStatus.FAILED)


ALLOWED_TRANSITIONS = {
    ImportStatus.PENDING: (ImportStatus.PROCESSING,),
    ImportStatus.PROCESSING: (ImportStatus.COMPLETED, ImportStatus.FAILED),
    ImportStatus.COMPLETED: (),
    ImportStatus.FAILED: (),
}


def can_transition(current: ImportStatus, target: ImportStatus) -> bool:
    """Check whether an import may move from ``current`` to ``target``."""
    return target in ALLOWED_TRANSITIONS[current]


class RowStatus(Enum):
    """Per-row status as reported in row details."""

    ADDED = "added"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass(frozen=True)
class Added:
    """Row was inserted."""
    transaction_id: int


@dataclass(frozen=True)
class Skipped:
    """Row matched an existing transaction's natural key."""


@dataclass(frozen=True)
class Errored:
    """Row was rejected by storage for a reason other than duplication."""
    message: str


RowOutcome = Union[Added, Skipped, Errored]


@dataclass
class RowDetail:
    """What happened to one parsed row."""

    row: int
    date: Optional[date]
    label: Optional[str]
    amount: Optional[Decimal]
    tags: List[str] = field(default_factory=list)
    status: RowStatus = RowStatus.ADDED
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row": self.row,
            "date": self.date.isoformat() if self.date else None,
            "label": self.label,
            "amount": str(self.amount) if self.amount is not None else None,
            "tags": list(self.tags),
            "status": self.status.value,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RowDetail":
        return cls(
            row=data["row"],
            date=date.fromisoformat(data["date"]) if data.get("date") else None,
            label=data.get("label"),
            amount=Decimal(data["amount"]) if data.get("amount") is not None else None,
            tags=list(data.get("tags") or []),
            status=RowStatus(data["status"]),
            error=data.get("error"),
        )


@dataclass
class ImportRecord:
    """Persisted import run."""

    id: int
    account_id: int
    filename: str
    status: ImportStatus = ImportStatus.PENDING
    rows_total: int = 0
    rows_imported: int = 0
    rows_skipped: int = 0
    rows_errored: int = 0
    error_details: List[Dict[str, Any]] = field(default_factory=list)
    row_details: List[Dict[str, Any]] = field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def counters_balanced(self) -> bool:
        """rows_total equals imported + skipped + errored."""
        return self.rows_total == self.rows_imported + self.rows_skipped + self.rows_errored

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "filename": self.filename,
            "status": self.status.value,
            "rows_total": self.rows_total,
            "rows_imported": self.rows_imported,
            "rows_skipped": self.rows_skipped,
            "rows_errored": self.rows_errored,
            "error_details": list(self.error_details),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class ImportResult:
    """
    Outcome of process_import.

    ``success`` is False when the import ended in ``failed`` (unknown format
    or structural parse errors); the record carries the details either way.
    """

    success: bool
    record: ImportRecord
    row_details: List[RowDetail] = field(default_factory=list)
    bank: Optional[str] = None

    @property
    def status(self) -> ImportStatus:
        return self.record.status

    @property
    def rows_total(self) -> int:
        return self.record.rows_total

    @property
    def rows_imported(self) -> int:
        return self.record.rows_imported

    @property
    def rows_skipped(self) -> int:
        return self.record.rows_skipped

    @property
    def rows_errored(self) -> int:
        return self.record.rows_errored

    @property
    def error_details(self) -> List[Dict[str, Any]]:
        return self.record.error_details

    def to_dict(self) -> Dict[str, Any]:
        data = self.record.to_dict()
        data["bank"] = self.bank
        data["row_details"] = [detail.to_dict() for detail in self.row_details]
        return data
