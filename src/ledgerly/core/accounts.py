"""
Bank accounts that statements are imported into.

The import pipeline only needs fetch_account() to check the target account
exists before an import is created.
"""

import logging
import sqlite3
from dataclasses import dataclass
from typing import List, Optional

from ledgerly.core.exceptions import AccountNotFoundError, ValidationError

logger = logging.getLogger(__name__)

ACCOUNT_TYPES = ("checking", "savings", "brokerage", "crypto")


@dataclass
class Account:
    """Account data class."""
    id: int
    name: str
    bank: str
    type: str = "checking"
    currency: str = "EUR"
    archived: bool = False


def _row_to_account(row: sqlite3.Row) -> Account:
    return Account(
        id=row["id"],
        name=row["name"],
        bank=row["bank"],
        type=row["type"],
        currency=row["currency"],
        archived=bool(row["archived"]),
    )


def create_account(
    conn: sqlite3.Connection,
    name: str,
    bank: str,
    type: str = "checking",
    currency: str = "EUR",
) -> Account:
    """
    Create a new account.

    Args:
        conn: Database connection
        name: Display name
        bank: Bank identifier (e.g. "boursorama")
        type: One of ACCOUNT_TYPES
        currency: Account currency code

    Returns:
        The created Account

    Raises:
        ValidationError: If a field is empty or the type is unknown
    """
    if not name or not name.strip():
        raise ValidationError("Account name can't be blank", field="name")
    if not bank or not bank.strip():
        raise ValidationError("Account bank can't be blank", field="bank")
    if type not in ACCOUNT_TYPES:
        raise ValidationError(f"Invalid account type: {type}", field="type")

    cursor = conn.execute(
        "INSERT INTO accounts (name, bank, type, currency) VALUES (?, ?, ?, ?)",
        (name.strip(), bank.strip(), type, currency.upper()),
    )
    conn.commit()
    logger.info(f"Created account {cursor.lastrowid} ({name}, {bank})")

    return Account(
        id=cursor.lastrowid,
        name=name.strip(),
        bank=bank.strip(),
        type=type,
        currency=currency.upper(),
    )


def fetch_account(conn: sqlite3.Connection, account_id: int) -> Optional[Account]:
    """Get account by id, or None if it does not exist."""
    cursor = conn.execute("SELECT * FROM accounts WHERE id = ?", (account_id,))
    row = cursor.fetchone()
    return _row_to_account(row) if row else None


def get_account(conn: sqlite3.Connection, account_id: int) -> Account:
    """Get account by id, raising AccountNotFoundError if missing."""
    account = fetch_account(conn, account_id)
    if account is None:
        raise AccountNotFoundError(account_id)
    return account


def list_accounts(conn: sqlite3.Connection, include_archived: bool = False) -> List[Account]:
    """List accounts ordered by name."""
    sql = "SELECT * FROM accounts"
    if not include_archived:
        sql += " WHERE archived = 0"
    sql += " ORDER BY name, id"
    return [_row_to_account(row) for row in conn.execute(sql).fetchall()]


def archive_account(conn: sqlite3.Connection, account_id: int) -> Account:
    """Mark an account as archived. Its transactions are kept."""
    account = get_account(conn, account_id)
    conn.execute("UPDATE accounts SET archived = 1 WHERE id = ?", (account_id,))
    conn.commit()
    account.archived = True
    return account
