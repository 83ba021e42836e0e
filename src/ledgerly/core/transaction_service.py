"""
Transaction storage for ledgerly.

Every transaction write goes through TransactionStore.insert(), which:
- Validates required fields, source and currency before touching the database
- Inserts the transaction and its tag associations atomically
- Translates constraint failures into a typed InsertRecord instead of raising

The natural key (account_id, date, amount, original_label) is enforced by a
unique index; a hit on that index is reported as InsertResult.DUPLICATE.
"""

import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


class InsertResult(Enum):
    """Result of a transaction insert attempt."""

    SUCCESS = "success"
    DUPLICATE = "duplicate"
    CONSTRAINT_VIOLATION = "constraint_violation"


class TransactionSource(Enum):
    """Where a transaction came from."""

    CSV_IMPORT = "csv_import"
    MANUAL = "manual"


@dataclass
class NewTransaction:
    """Attributes of a transaction about to be written."""

    account_id: int
    date: date
    label: str
    original_label: str
    amount: Decimal
    currency: str = "EUR"
    bank_reference: Optional[str] = None
    import_id: Optional[int] = None
    source: TransactionSource = TransactionSource.CSV_IMPORT


@dataclass
class InsertRecord:
    """
    Result of a transaction insert.

    ``field`` and ``reason`` are set for CONSTRAINT_VIOLATION only.
    """

    result: InsertResult
    transaction_id: Optional[int] = None
    field: Optional[str] = None
    reason: Optional[str] = None

    @property
    def error_message(self) -> Optional[str]:
        """Human readable violation, e.g. ``"account_id: does not exist"``."""
        if self.result != InsertResult.CONSTRAINT_VIOLATION:
            return None
        if self.field:
            return f"{self.field}: {self.reason}"
        return self.reason


@dataclass
class StoredTransaction:
    """A persisted transaction with its tag names."""

    id: int
    account_id: int
    import_id: Optional[int]
    date: date
    label: str
    original_label: str
    amount: Decimal
    currency: str
    bank_reference: Optional[str]
    source: TransactionSource
    tags: List[str] = field(default_factory=list)


def format_amount(amount: Decimal) -> str:
    """
    Canonical text form of an amount.

    Numerically equal amounts always produce the same text, so the unique
    index compares values rather than spellings ("12.3", "12.30", "12.300").
    At least two fraction digits are kept; crypto amounts keep their precision.
    """
    if amount == 0:
        return "0.00"
    normalized = amount.normalize()
    if normalized.as_tuple().exponent > -2:
        normalized = normalized.quantize(CENTS)
    return format(normalized, "f")


class TransactionStore:
    """
    Storage layer for transactions and their tags.

    Usage:
        store = TransactionStore(conn)
        record = store.insert(NewTransaction(...), tag_ids={1, 2})
        if record.result == InsertResult.DUPLICATE:
            ...
    """

    def __init__(self, db_connection: sqlite3.Connection, supported_currencies: Optional[Iterable[str]] = None):
        """
        Initialize transaction store.

        Args:
            db_connection: SQLite database connection
            supported_currencies: Currency codes accepted on insert. None accepts any.
        """
        self.conn = db_connection
        self.supported_currencies = set(supported_currencies) if supported_currencies is not None else None

    def insert(self, txn: NewTransaction, tag_ids: Iterable[int] = ()) -> InsertRecord:
        """
        Insert a transaction and attach tags in one atomic write.

        Tags that no longer exist are ignored.

        Args:
            txn: Transaction attributes
            tag_ids: Tag ids to attach on success

        Returns:
            InsertRecord with SUCCESS, DUPLICATE or CONSTRAINT_VIOLATION
        """
        violation = self._validate(txn)
        if violation:
            return InsertRecord(
                result=InsertResult.CONSTRAINT_VIOLATION,
                field=violation[0],
                reason=violation[1],
            )

        if self.conn.in_transaction:
            self.conn.commit()

        cursor = self.conn.cursor()
        try:
            cursor.execute("BEGIN IMMEDIATE")
            cursor.execute(
                """
                INSERT INTO transactions
                (account_id, import_id, date, label, original_label, amount,
                 currency, bank_reference, source)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    txn.account_id,
                    txn.import_id,
                    txn.date.isoformat(),
                    txn.label,
                    txn.original_label,
                    format_amount(txn.amount),
                    txn.currency,
                    txn.bank_reference,
                    txn.source.value,
                ),
            )
            transaction_id = cursor.lastrowid

            for tag_id in sorted(set(tag_ids)):
                cursor.execute(
                    """
                    INSERT OR IGNORE INTO transaction_tags (transaction_id, tag_id)
                    SELECT ?, id FROM tags WHERE id = ?
                    """,
                    (transaction_id, tag_id),
                )

            self.conn.commit()

        except sqlite3.IntegrityError as e:
            self.conn.rollback()
            return self._translate_integrity_error(e, txn)
        except Exception:
            self.conn.rollback()
            raise

        return InsertRecord(result=InsertResult.SUCCESS, transaction_id=transaction_id)

    def _validate(self, txn: NewTransaction) -> Optional[Tuple[str, str]]:
        """Return (field, reason) for the first invalid attribute, if any."""
        if not txn.original_label or not txn.original_label.strip():
            return ("original_label", "can't be blank")
        if not txn.label or not txn.label.strip():
            return ("label", "can't be blank")
        if txn.date is None:
            return ("date", "can't be blank")
        try:
            if txn.amount is None or not Decimal(txn.amount).is_finite():
                return ("amount", "is invalid")
        except (InvalidOperation, TypeError, ValueError):
            return ("amount", "is invalid")
        if not txn.currency:
            return ("currency", "can't be blank")
        if self.supported_currencies is not None and txn.currency not in self.supported_currencies:
            return ("currency", "is not supported")
        if not isinstance(txn.source, TransactionSource):
            return ("source", "is invalid")
        return None

    def _translate_integrity_error(self, error: sqlite3.IntegrityError, txn: NewTransaction) -> InsertRecord:
        """Map a sqlite integrity failure onto a typed insert outcome."""
        kind = getattr(error, "sqlite_errorname", "") or ""
        message = str(error)

        if kind == "SQLITE_CONSTRAINT_UNIQUE" or message.startswith("UNIQUE constraint failed"):
            logger.debug(
                f"Duplicate transaction for account {txn.account_id}: "
                f"{txn.date} {txn.amount} {txn.original_label!r}"
            )
            return InsertRecord(result=InsertResult.DUPLICATE)

        if kind == "SQLITE_CONSTRAINT_FOREIGNKEY" or message.startswith("FOREIGN KEY constraint failed"):
            if not self._exists("accounts", txn.account_id):
                field_name = "account_id"
            elif txn.import_id is not None and not self._exists("imports", txn.import_id):
                field_name = "import_id"
            else:
                field_name = None
            return InsertRecord(
                result=InsertResult.CONSTRAINT_VIOLATION,
                field=field_name,
                reason="does not exist" if field_name else message,
            )

        if message.startswith("NOT NULL constraint failed: "):
            column = message.rsplit(".", 1)[-1]
            return InsertRecord(
                result=InsertResult.CONSTRAINT_VIOLATION,
                field=column,
                reason="can't be blank",
            )

        return InsertRecord(result=InsertResult.CONSTRAINT_VIOLATION, reason=message)

    def _exists(self, table: str, record_id: int) -> bool:
        cursor = self.conn.execute(f"SELECT 1 FROM {table} WHERE id = ?", (record_id,))
        return cursor.fetchone() is not None

    def attach_tags(self, transaction_id: int, tag_ids: Iterable[int]) -> int:
        """
        Attach tags to an existing transaction.

        Returns:
            Number of new associations created
        """
        created = 0
        for tag_id in sorted(set(tag_ids)):
            cursor = self.conn.execute(
                """
                INSERT OR IGNORE INTO transaction_tags (transaction_id, tag_id)
                SELECT ?, id FROM tags WHERE id = ?
                """,
                (transaction_id, tag_id),
            )
            created += cursor.rowcount
        self.conn.commit()
        return created

    def get_transaction(self, transaction_id: int) -> Optional[StoredTransaction]:
        """Get a transaction by id, or None."""
        cursor = self.conn.execute("SELECT * FROM transactions WHERE id = ?", (transaction_id,))
        row = cursor.fetchone()
        return self._row_to_transaction(row) if row else None

    def list_for_account(self, account_id: int) -> List[StoredTransaction]:
        """Transactions of an account, oldest first."""
        cursor = self.conn.execute(
            "SELECT * FROM transactions WHERE account_id = ? ORDER BY date, id",
            (account_id,),
        )
        return [self._row_to_transaction(row) for row in cursor.fetchall()]

    def list_for_import(self, import_id: int) -> List[StoredTransaction]:
        """Transactions created by an import, in insertion order."""
        cursor = self.conn.execute(
            "SELECT * FROM transactions WHERE import_id = ? ORDER BY id",
            (import_id,),
        )
        return [self._row_to_transaction(row) for row in cursor.fetchall()]

    def tag_ids_for(self, transaction_id: int) -> List[int]:
        """Tag ids attached to a transaction."""
        cursor = self.conn.execute(
            "SELECT tag_id FROM transaction_tags WHERE transaction_id = ? ORDER BY tag_id",
            (transaction_id,),
        )
        return [row["tag_id"] for row in cursor.fetchall()]

    def untagged(self) -> List[Tuple[int, str]]:
        """(id, label) of every transaction without tags."""
        cursor = self.conn.execute(
            """
            SELECT t.id, t.label FROM transactions t
            WHERE NOT EXISTS (
                SELECT 1 FROM transaction_tags tt WHERE tt.transaction_id = t.id
            )
            ORDER BY t.id
            """
        )
        return [(row["id"], row["label"]) for row in cursor.fetchall()]

    def _row_to_transaction(self, row: sqlite3.Row) -> StoredTransaction:
        cursor = self.conn.execute(
            """
            SELECT g.name FROM tags g
            JOIN transaction_tags tt ON tt.tag_id = g.id
            WHERE tt.transaction_id = ?
            ORDER BY g.name
            """,
            (row["id"],),
        )
        return StoredTransaction(
            id=row["id"],
            account_id=row["account_id"],
            import_id=row["import_id"],
            date=date.fromisoformat(row["date"]),
            label=row["label"],
            original_label=row["original_label"],
            amount=Decimal(row["amount"]),
            currency=row["currency"],
            bank_reference=row["bank_reference"],
            source=TransactionSource(row["source"]),
            tags=[r["name"] for r in cursor.fetchall()],
        )
