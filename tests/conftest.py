"""
Shared pytest fixtures for ledgerly tests.

Provides database connections, accounts, tags and sample statements.
"""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ledgerly.core.accounts import create_account
from ledgerly.core.database import DatabaseManager
from ledgerly.services.tagging.store import TagStore


BOURSORAMA_HEADER = (
    "dateOp;dateVal;label;category;categoryParent;supplierFound;amount;"
    "accountNum;accountLabel;accountBalance"
)

REVOLUT_HEADER = "Type,Product,Started Date,Completed Date,Description,Amount,Fee,Currency,State,Balance"

CAISSE_EPARGNE_HEADER = "Date;Numéro d'opération;Libellé;Débit;Crédit;Détail"


def _statement_builder(header: str):
    def build(*lines: str, encoding: str = "utf-8", newline: str = "\n") -> bytes:
        return (newline.join((header,) + lines) + newline).encode(encoding)
    return build


@pytest.fixture
def boursorama_csv():
    """Build a Boursorama export from data lines."""
    return _statement_builder(BOURSORAMA_HEADER)


@pytest.fixture
def revolut_csv():
    """Build a Revolut CSV export from data lines."""
    return _statement_builder(REVOLUT_HEADER)


@pytest.fixture
def caisse_epargne_csv():
    """Build a Caisse d'Epargne export from data lines."""
    return _statement_builder(CAISSE_EPARGNE_HEADER)


@pytest.fixture
def db_manager():
    """Provide a fresh DatabaseManager instance for each test."""
    # Reset singleton to ensure clean state
    DatabaseManager.reset_instance()
    manager = DatabaseManager()
    yield manager
    # Cleanup
    manager.close()
    DatabaseManager.reset_instance()


@pytest.fixture
def db_connection(db_manager):
    """Provide an initialized in-memory database connection."""
    conn = db_manager.init(":memory:")
    yield conn
    # Connection is closed by db_manager fixture


@pytest.fixture
def account(db_connection):
    """A checking account to import into."""
    return create_account(db_connection, "Compte courant", "boursorama")


@pytest.fixture
def tag_store(db_connection):
    """TagStore bound to the test database."""
    return TagStore(db_connection)


@pytest.fixture
def fixtures_path():
    """Get path to test fixtures directory."""
    return Path(__file__).parent / "fixtures"
