"""
Integration tests - import real-shaped statements end to end.

Runs the three sample exports in tests/fixtures/bank through detection,
parsing, tagging and storage on one account.
"""

import pytest
from datetime import date
from decimal import Decimal

from ledgerly.core.transaction_service import TransactionStore
from ledgerly.services.imports.models import ImportStatus
from ledgerly.services.imports.pipeline import ImportPipeline, list_imports_for_account
from ledgerly.services.tagging.rules import apply_rules_to_untagged


@pytest.fixture
def bank_fixtures(fixtures_path):
    """Directory of sample bank exports."""
    return fixtures_path / "bank"


@pytest.fixture
def rules(tag_store):
    """A small rule set shared by the scenarios."""
    groceries = tag_store.create_tag("Groceries", "#22C55E")
    transport = tag_store.create_tag("Transport", "#3B82F6")
    income = tag_store.create_tag("Income", "#EAB308")
    tag_store.create_rule("carrefour", groceries.id, priority=10)
    tag_store.create_rule("boulangerie", groceries.id)
    tag_store.create_rule("sncf", transport.id, priority=5)
    tag_store.create_rule("salaire", income.id)
    return tag_store


@pytest.fixture
def pipeline(db_connection):
    """Pipeline with default settings."""
    return ImportPipeline(db_connection)


def _import(pipeline, account, path):
    record = pipeline.create_import(account.id, path.name)
    return pipeline.process(record, path.read_bytes())


class TestImportFlow:
    """End-to-end imports of sample exports."""

    def test_boursorama_statement(self, pipeline, account, rules, bank_fixtures, db_connection):
        """Test a Boursorama month is imported and tagged."""
        result = _import(pipeline, account, bank_fixtures / "boursorama_2024_01.csv")

        assert result.status == ImportStatus.COMPLETED
        assert result.bank == "boursorama"
        assert (result.rows_total, result.rows_imported) == (4, 4)

        stored = TransactionStore(db_connection).list_for_import(result.record.id)
        by_label = {t.label: t for t in stored}
        assert by_label["CARREFOUR MARKET"].tags == ["Groceries"]
        assert by_label["SNCF INTERNET"].tags == ["Transport"]
        assert by_label["ACME SAS SALAIRE"].tags == ["Income"]
        assert by_label["ACME SAS SALAIRE"].amount == Decimal("2850.00")
        assert by_label["PRLV SEPA FREE MOBILE"].tags == []

    def test_revolut_statement(self, pipeline, account, rules, bank_fixtures, db_connection):
        """Test completed rows and fees are imported, pending rows dropped."""
        result = _import(pipeline, account, bank_fixtures / "revolut_2024_01.csv")

        assert result.bank == "revolut"
        assert (result.rows_total, result.rows_imported, result.rows_skipped) == (4, 4, 0)

        stored = TransactionStore(db_connection).list_for_import(result.record.id)
        labels = [t.label for t in stored]
        assert "Uber" not in labels
        assert "Fee: Exchanged to USD" in labels

        fee = next(t for t in stored if t.label.startswith("Fee: "))
        assert fee.amount == Decimal("-0.50")
        assert fee.bank_reference == "fee"
        assert fee.date == date(2024, 1, 9)

        carrefour = next(t for t in stored if t.label == "Carrefour City")
        assert carrefour.date == date(2024, 1, 7)
        assert carrefour.tags == ["Groceries"]

    def test_caisse_epargne_latin1_statement(self, pipeline, account, rules, bank_fixtures, db_connection):
        """Test a Latin-1 CRLF export with debit and credit columns."""
        result = _import(pipeline, account, bank_fixtures / "caisse_epargne_2024_01.csv")

        assert result.bank == "caisse_epargne"
        assert result.rows_imported == 3

        stored = {t.bank_reference: t for t in TransactionStore(db_connection).list_for_import(result.record.id)}
        assert stored["202401150001"].label == "BOULANGERIE PAUL"
        assert stored["202401150001"].tags == ["Groceries"]
        assert stored["202401200002"].original_label == "PRLV SEPA EDF ÉLECTRICITÉ"
        assert stored["202401310003"].amount == Decimal("215.00")
        assert stored["202401310003"].label == "CAF"

    def test_month_reimported(self, pipeline, account, bank_fixtures, db_connection):
        """Test importing every file twice only adds rows once."""
        paths = sorted(bank_fixtures.glob("*.csv"))
        first = [_import(pipeline, account, path) for path in paths]
        second = [_import(pipeline, account, path) for path in paths]

        assert sum(r.rows_imported for r in first) == 11
        assert sum(r.rows_imported for r in second) == 0
        assert sum(r.rows_skipped for r in second) == 11
        assert all(r.record.counters_balanced for r in first + second)

        assert len(list_imports_for_account(db_connection, account.id)) == 6
        assert len(TransactionStore(db_connection).list_for_account(account.id)) == 11

    def test_rules_added_after_import(self, pipeline, account, tag_store, bank_fixtures, db_connection):
        """Test later rules reach earlier imports through apply_rules_to_untagged."""
        _import(pipeline, account, bank_fixtures / "boursorama_2024_01.csv")
        tag = tag_store.create_tag("Phone")
        tag_store.create_rule("free mobile", tag.id)

        assert apply_rules_to_untagged(db_connection) == 1

        phone = [t for t in TransactionStore(db_connection).list_for_account(account.id) if t.tags]
        assert [t.label for t in phone] == ["PRLV SEPA FREE MOBILE"]
