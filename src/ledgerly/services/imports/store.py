"""
Import record persistence and status transitions.

Status changes are compare-and-set updates, so an import can only move
along pending -> processing -> completed | failed.
"""

import json
import logging
import sqlite3
from typing import Any, Dict, List, Optional

from ledgerly.core.database import atomic
from ledgerly.core.exceptions import (
    ImportNotFoundError,
    InvalidStatusTransitionError,
    ValidationError,
)
from ledgerly.services.imports.models import ImportRecord, ImportStatus, can_transition

logger = logging.getLogger(__name__)


class ImportStore:
    """Reads and writes rows of the imports table."""

    def __init__(self, db_connection: sqlite3.Connection):
        self.conn = db_connection

    def create(self, account_id: int, filename: str) -> ImportRecord:
        """Create a pending import."""
        if not filename or not filename.strip():
            raise ValidationError("Import filename can't be blank", field="filename")

        cursor = self.conn.execute(
            "INSERT INTO imports (account_id, filename, status) VALUES (?, ?, ?)",
            (account_id, filename.strip(), ImportStatus.PENDING.value),
        )
        self.conn.commit()
        return self.get(cursor.lastrowid)

    def get(self, import_id: int) -> ImportRecord:
        """Get an import by id."""
        row = self.conn.execute("SELECT * FROM imports WHERE id = ?", (import_id,)).fetchone()
        if row is None:
            raise ImportNotFoundError(import_id)
        return self._row_to_record(row)

    def list_for_account(self, account_id: int) -> List[ImportRecord]:
        """Imports of an account, most recent first."""
        cursor = self.conn.execute(
            "SELECT * FROM imports WHERE account_id = ? ORDER BY created_at DESC, id DESC",
            (account_id,),
        )
        return [self._row_to_record(row) for row in cursor.fetchall()]

    def transition(self, record: ImportRecord, target: ImportStatus) -> ImportRecord:
        """
        Move an import to ``target`` without touching its counters.

        Raises:
            InvalidStatusTransitionError: If the stored status can't reach target
        """
        current = self.get(record.id).status
        if not can_transition(current, target):
            raise InvalidStatusTransitionError(current.value, target.value)

        cursor = self.conn.execute(
            """
            UPDATE imports SET status = ?, updated_at = CURRENT_TIMESTAMP
            WHERE id = ? AND status = ?
            """,
            (target.value, record.id, current.value),
        )
        self.conn.commit()
        if cursor.rowcount != 1:
            raise InvalidStatusTransitionError(self.get(record.id).status.value, target.value)

        logger.debug(f"Import {record.id}: {current.value} -> {target.value}")
        return self.get(record.id)

    def finalize(
        self,
        record: ImportRecord,
        status: ImportStatus,
        rows_imported: int = 0,
        rows_skipped: int = 0,
        rows_errored: int = 0,
        error_details: Optional[List[Dict[str, Any]]] = None,
        row_details: Optional[List[Dict[str, Any]]] = None,
    ) -> ImportRecord:
        """
        Write the terminal status and counters in a single update.

        rows_total is always derived from the three outcome counters.
        """
        if not status.is_terminal:
            raise InvalidStatusTransitionError(record.status.value, status.value)

        rows_total = rows_imported + rows_skipped + rows_errored

        with atomic(self.conn) as conn:
            cursor = conn.execute(
                """
                UPDATE imports SET
                    status = ?, rows_total = ?, rows_imported = ?, rows_skipped = ?,
                    rows_errored = ?, error_details = ?, row_details = ?,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = ? AND status = ?
                """,
                (
                    status.value,
                    rows_total,
                    rows_imported,
                    rows_skipped,
                    rows_errored,
                    json.dumps(error_details or [], ensure_ascii=False),
                    json.dumps(row_details or [], ensure_ascii=False),
                    record.id,
                    ImportStatus.PROCESSING.value,
                ),
            )
            updated = cursor.rowcount

        if updated != 1:
            raise InvalidStatusTransitionError(self.get(record.id).status.value, status.value)

        return self.get(record.id)

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> ImportRecord:
        return ImportRecord(
            id=row["id"],
            account_id=row["account_id"],
            filename=row["filename"],
            status=ImportStatus(row["status"]),
            rows_total=row["rows_total"],
            rows_imported=row["rows_imported"],
            rows_skipped=row["rows_skipped"],
            rows_errored=row["rows_errored"],
            error_details=json.loads(row["error_details"] or "[]"),
            row_details=json.loads(row["row_details"] or "[]"),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
