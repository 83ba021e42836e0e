"""
Core module - Foundation components for ledgerly.

Provides:
- DatabaseManager: SQLite database management and schema
- TransactionStore: Transaction writes with typed dedup/constraint outcomes
- Accounts: the accounts statements are imported into
- Settings: JSON + environment configuration
- Exceptions: LedgerlyError hierarchy
"""

from ledgerly.core.database import DatabaseManager, atomic, get_connection
from ledgerly.core.accounts import (
    Account,
    ACCOUNT_TYPES,
    create_account,
    fetch_account,
    get_account,
    list_accounts,
    archive_account,
)
from ledgerly.core.config import Settings, ImportSettings, DatabaseSettings, get_data_root
from ledgerly.core.transaction_service import (
    TransactionStore,
    TransactionSource,
    NewTransaction,
    InsertResult,
    InsertRecord,
    StoredTransaction,
    format_amount,
)
from ledgerly.core.exceptions import (
    LedgerlyError,
    DatabaseError,
    ValidationError,
    AccountNotFoundError,
    TagNotFoundError,
    RuleNotFoundError,
    ImportNotFoundError,
    InvalidStatusTransitionError,
)

__all__ = [
    "DatabaseManager",
    "atomic",
    "get_connection",
    "Account",
    "ACCOUNT_TYPES",
    "create_account",
    "fetch_account",
    "get_account",
    "list_accounts",
    "archive_account",
    "Settings",
    "ImportSettings",
    "DatabaseSettings",
    "get_data_root",
    "TransactionStore",
    "TransactionSource",
    "NewTransaction",
    "InsertResult",
    "InsertRecord",
    "StoredTransaction",
    "format_amount",
    "LedgerlyError",
    "DatabaseError",
    "ValidationError",
    "AccountNotFoundError",
    "TagNotFoundError",
    "RuleNotFoundError",
    "ImportNotFoundError",
    "InvalidStatusTransitionError",
]
