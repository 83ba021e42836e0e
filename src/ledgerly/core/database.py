"""
SQLite database initialization and connection management.

Provides the schema for accounts, tags, tagging rules, imports and
transactions. Uses singleton pattern for connection management.

Notes:
- Uses check_same_thread=False so the CLI and tests can share one connection
- WAL mode is enabled for file databases
- The natural-key unique index on transactions is the only dedup guard;
  concurrent imports rely on it rather than on application locks
"""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from ledgerly.core.exceptions import DatabaseError


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS accounts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    bank TEXT NOT NULL,
    type TEXT NOT NULL DEFAULT 'checking' CHECK(type IN ('checking', 'savings', 'brokerage', 'crypto')),
    currency TEXT NOT NULL DEFAULT 'EUR',
    archived BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS tags (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    color TEXT NOT NULL DEFAULT '#6B7280',
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS tagging_rules (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    keyword TEXT NOT NULL,
    tag_id INTEGER NOT NULL,
    priority INTEGER NOT NULL DEFAULT 0,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (tag_id) REFERENCES tags(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS imports (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    account_id INTEGER NOT NULL,
    filename TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending' CHECK(status IN ('pending', 'processing', 'completed', 'failed')),
    rows_total INTEGER NOT NULL DEFAULT 0 CHECK(rows_total >= 0),
    rows_imported INTEGER NOT NULL DEFAULT 0 CHECK(rows_imported >= 0),
    rows_skipped INTEGER NOT NULL DEFAULT 0 CHECK(rows_skipped >= 0),
    rows_errored INTEGER NOT NULL DEFAULT 0 CHECK(rows_errored >= 0),
    error_details TEXT NOT NULL DEFAULT '[]',
    row_details TEXT NOT NULL DEFAULT '[]',
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (account_id) REFERENCES accounts(id)
);

CREATE TABLE IF NOT EXISTS transactions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    account_id INTEGER NOT NULL,
    import_id INTEGER,
    date DATE NOT NULL,
    label TEXT NOT NULL,
    original_label TEXT NOT NULL,
    amount TEXT NOT NULL,
    currency TEXT NOT NULL DEFAULT 'EUR',
    bank_reference TEXT,
    source TEXT NOT NULL DEFAULT 'csv_import' CHECK(source IN ('csv_import', 'manual')),
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (account_id) REFERENCES accounts(id) ON DELETE CASCADE,
    FOREIGN KEY (import_id) REFERENCES imports(id) ON DELETE SET NULL
);

CREATE TABLE IF NOT EXISTS transaction_tags (
    transaction_id INTEGER NOT NULL,
    tag_id INTEGER NOT NULL,
    PRIMARY KEY (transaction_id, tag_id),
    FOREIGN KEY (transaction_id) REFERENCES transactions(id) ON DELETE CASCADE,
    FOREIGN KEY (tag_id) REFERENCES tags(id) ON DELETE CASCADE
);

-- Natural dedup key
CREATE UNIQUE INDEX IF NOT EXISTS idx_transactions_dedup
    ON transactions(account_id, date, amount, original_label);

CREATE INDEX IF NOT EXISTS idx_transactions_account ON transactions(account_id);
CREATE INDEX IF NOT EXISTS idx_transactions_import ON transactions(import_id);
CREATE INDEX IF NOT EXISTS idx_transactions_date ON transactions(date);
CREATE INDEX IF NOT EXISTS idx_transaction_tags_tag ON transaction_tags(tag_id);
CREATE INDEX IF NOT EXISTS idx_tagging_rules_tag ON tagging_rules(tag_id);
CREATE INDEX IF NOT EXISTS idx_imports_account ON imports(account_id);
"""


class DatabaseManager:
    """
    Singleton manager for SQLite database connections.

    Usage:
        db = DatabaseManager()
        conn = db.init("/path/to/ledgerly.db")
        # Use connection...
        db.close()
    """

    _instance: Optional["DatabaseManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "DatabaseManager":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._connection = None
                    cls._instance._db_path = None
        return cls._instance

    @property
    def connection(self) -> sqlite3.Connection:
        """Get the current database connection."""
        if self._connection is None:
            raise DatabaseError("Database not initialized. Call init() first.")
        return self._connection

    @property
    def db_path(self) -> Optional[str]:
        """Path of the open database, if any."""
        return self._db_path

    def init(self, db_path: str) -> sqlite3.Connection:
        """
        Initialize the database.

        Args:
            db_path: Path to database file or ":memory:" for in-memory database

        Returns:
            Database connection

        Raises:
            DatabaseError: If initialization fails
        """
        try:
            self._db_path = db_path

            if db_path != ":memory:":
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)

            self._connection = sqlite3.connect(db_path, check_same_thread=False)
            self._connection.row_factory = sqlite3.Row

            self._connection.execute("PRAGMA foreign_keys = ON")

            if db_path != ":memory:":
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")

            self._execute_schema()

            return self._connection

        except DatabaseError:
            raise
        except Exception as e:
            raise DatabaseError(f"Failed to initialize database: {e}")

    def _execute_schema(self) -> None:
        """Create all tables if not exist."""
        try:
            self._connection.executescript(SCHEMA_SQL)
            self._connection.commit()
        except Exception as e:
            raise DatabaseError(f"Failed to execute schema: {e}")

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        """Execute a SQL statement."""
        return self.connection.execute(sql, params)

    def commit(self) -> None:
        """Commit the current transaction."""
        self.connection.commit()

    def rollback(self) -> None:
        """Rollback the current transaction."""
        self.connection.rollback()

    @contextmanager
    def transaction(self):
        """
        Context manager for atomic transactions.

        Usage:
            db = DatabaseManager()
            with db.transaction() as conn:
                conn.execute("INSERT INTO tags ...")
                conn.execute("INSERT INTO tagging_rules ...")
            # Auto-commits on success, auto-rolls back on exception

        Raises:
            DatabaseError: If transaction fails
        """
        with atomic(self.connection) as conn:
            yield conn

    def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            self._connection.close()
            self._connection = None
            self._db_path = None

    def get_tables(self) -> list:
        """Get list of all tables in database."""
        cursor = self.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
        )
        return [row[0] for row in cursor.fetchall()]

    @classmethod
    def reset_instance(cls) -> None:
        """Reset singleton instance (useful for testing)."""
        with cls._lock:
            if cls._instance and cls._instance._connection:
                cls._instance._connection.close()
            cls._instance = None


@contextmanager
def atomic(conn: sqlite3.Connection):
    """
    Run a block of statements as one write transaction on ``conn``.

    Any statement still pending from an implicit transaction is committed
    first so that BEGIN IMMEDIATE can take the write lock.
    """
    if conn.in_transaction:
        conn.commit()
    try:
        conn.execute("BEGIN IMMEDIATE")
        yield conn
        conn.commit()
    except Exception as e:
        conn.rollback()
        raise DatabaseError(f"Transaction failed: {e}") from e


def get_connection() -> sqlite3.Connection:
    """Get the current database connection (convenience function)."""
    return DatabaseManager().connection
