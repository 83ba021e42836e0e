"""
Unit tests for ImportStore.
"""

import pytest

from ledgerly.core.exceptions import (
    ImportNotFoundError,
    InvalidStatusTransitionError,
    ValidationError,
)
from ledgerly.services.imports.models import ImportStatus
from ledgerly.services.imports.store import ImportStore


@pytest.fixture
def import_store(db_connection):
    """ImportStore bound to the test database."""
    return ImportStore(db_connection)


class TestImportStore:
    """Tests for import persistence and transitions."""

    def test_create(self, import_store, account):
        """Test a new import is pending with zero counters."""
        record = import_store.create(account.id, " releve.csv ")

        assert record.status == ImportStatus.PENDING
        assert record.filename == "releve.csv"
        assert record.rows_total == 0
        assert record.error_details == []
        assert record.created_at is not None

    def test_blank_filename(self, import_store, account):
        """Test a filename is required."""
        with pytest.raises(ValidationError):
            import_store.create(account.id, "")

    def test_get_missing(self, import_store):
        """Test unknown import ids raise."""
        with pytest.raises(ImportNotFoundError):
            import_store.get(404)

    def test_transition_path(self, import_store, account):
        """Test pending -> processing -> completed."""
        record = import_store.create(account.id, "a.csv")

        record = import_store.transition(record, ImportStatus.PROCESSING)
        assert record.status == ImportStatus.PROCESSING

        record = import_store.finalize(record, ImportStatus.COMPLETED, rows_imported=2, rows_skipped=1)
        assert record.status == ImportStatus.COMPLETED
        assert record.rows_total == 3
        assert record.counters_balanced

    def test_cannot_skip_processing(self, import_store, account):
        """Test a pending import can't be finalized directly."""
        record = import_store.create(account.id, "a.csv")

        with pytest.raises(InvalidStatusTransitionError):
            import_store.finalize(record, ImportStatus.COMPLETED)
        assert import_store.get(record.id).status == ImportStatus.PENDING

    def test_cannot_process_twice(self, import_store, account):
        """Test the compare-and-set refuses a second start."""
        record = import_store.create(account.id, "a.csv")
        import_store.transition(record, ImportStatus.PROCESSING)

        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            import_store.transition(record, ImportStatus.PROCESSING)
        assert exc_info.value.current == "processing"

    def test_terminal_is_final(self, import_store, account):
        """Test completed and failed imports never change again."""
        record = import_store.create(account.id, "a.csv")
        record = import_store.transition(record, ImportStatus.PROCESSING)
        record = import_store.finalize(record, ImportStatus.FAILED, error_details=[{"row": 0, "message": "x"}])

        with pytest.raises(InvalidStatusTransitionError):
            import_store.finalize(record, ImportStatus.COMPLETED)
        with pytest.raises(InvalidStatusTransitionError):
            import_store.transition(record, ImportStatus.PROCESSING)

        stored = import_store.get(record.id)
        assert stored.status == ImportStatus.FAILED
        assert stored.error_details == [{"row": 0, "message": "x"}]

    def test_finalize_requires_terminal_status(self, import_store, account):
        """Test finalize only writes completed or failed."""
        record = import_store.transition(import_store.create(account.id, "a.csv"), ImportStatus.PROCESSING)
        with pytest.raises(InvalidStatusTransitionError):
            import_store.finalize(record, ImportStatus.PENDING)

    def test_details_round_trip_unicode(self, import_store, account):
        """Test JSON details keep accented text."""
        record = import_store.transition(import_store.create(account.id, "a.csv"), ImportStatus.PROCESSING)
        details = [{"row": 2, "label": "ÉLECTRICITÉ", "status": "added"}]

        record = import_store.finalize(record, ImportStatus.COMPLETED, rows_imported=1, row_details=details)

        assert record.row_details == details

    def test_list_for_account(self, import_store, account):
        """Test most recent imports come first."""
        first = import_store.create(account.id, "a.csv")
        second = import_store.create(account.id, "b.csv")

        assert [r.id for r in import_store.list_for_account(account.id)] == [second.id, first.id]
        assert import_store.list_for_account(999) == []
