"""
Unit tests for shared bank parser helpers and models.
"""

import pytest
from datetime import date
from decimal import Decimal

from ledgerly.parsers.bank.base import (
    BankStatementParser,
    RowError,
    clean_label,
    decode_content,
    normalize_decimal,
)
from ledgerly.parsers.bank.models import ParseError, ParseResult, Row


class TestDecodeContent:
    """Tests for statement byte decoding."""

    def test_utf8(self):
        """Test plain UTF-8 content is decoded as is."""
        assert decode_content("Libellé".encode("utf-8")) == "Libellé"

    def test_bom_is_stripped(self):
        """Test a leading UTF-8 BOM is removed."""
        assert decode_content(b"\xef\xbb\xbfdateOp;label") == "dateOp;label"

    def test_latin1_fallback(self):
        """Test bytes that are not valid UTF-8 are read as Latin-1."""
        assert decode_content("Débit;Crédit".encode("latin-1")) == "Débit;Crédit"


class TestCleanLabel:
    """Tests for bank label cleaning."""

    def test_card_prefix(self):
        """Test CARTE DD/MM prefix is removed."""
        assert clean_label("CARTE 14/01 CARREFOUR MARKET") == "CARREFOUR MARKET"

    def test_sepa_prefixes(self):
        """Test VIR SEPA and VIREMENT SEPA prefixes are removed, any case."""
        assert clean_label("VIR SEPA ACME SALAIRE") == "ACME SALAIRE"
        assert clean_label("VIREMENT SEPA LOYER") == "LOYER"
        assert clean_label("vir sepa remboursement") == "remboursement"

    def test_untouched_label(self):
        """Test labels without a known prefix are only trimmed."""
        assert clean_label("  PRLV FREE MOBILE  ") == "PRLV FREE MOBILE"

    def test_prefix_in_middle_kept(self):
        """Test prefixes are only stripped at the start."""
        assert clean_label("REMB CARTE 14/01") == "REMB CARTE 14/01"


class TestAmountHelpers:
    """Tests for decimal parsing helpers."""

    def test_normalize_decimal(self):
        """Test whitespace and decimal comma normalisation."""
        assert normalize_decimal("-1 234,56") == "-1234.56"
        assert normalize_decimal("1 234,56") == "1234.56"
        assert normalize_decimal(" 12.5 ") == "12.5"

    def test_comma_decimal_is_exact(self):
        """Test "12,34" parses to exactly 12.34."""
        value = BankStatementParser._parse_amount("12,34")
        assert value == Decimal("12.34")
        assert str(value) == "12.34"

    def test_missing_amount(self):
        """Test empty amounts raise a missing error."""
        with pytest.raises(RowError, match="missing amount"):
            BankStatementParser._parse_amount("  ")

    def test_invalid_amount(self):
        """Test garbage and non-finite amounts are rejected."""
        for raw in ("abc", "12,34,56", "NaN", "Infinity"):
            with pytest.raises(RowError) as exc_info:
                BankStatementParser._parse_amount(raw)
            assert str(exc_info.value) == f"invalid amount: {raw}"

    def test_invalid_fee_message(self):
        """Test the field name is used in messages."""
        with pytest.raises(RowError, match="invalid fee: x"):
            BankStatementParser._parse_amount("x", "fee")

    def test_parse_date(self):
        """Test date parsing with explicit formats."""
        assert BankStatementParser._parse_date("2024-01-15") == date(2024, 1, 15)
        assert BankStatementParser._parse_date("15/01/2024", "%d/%m/%Y") == date(2024, 1, 15)

    def test_parse_date_errors(self):
        """Test missing and invalid dates."""
        with pytest.raises(RowError, match="missing date"):
            BankStatementParser._parse_date("")
        with pytest.raises(RowError, match="invalid date: 2024-02-30"):
            BankStatementParser._parse_date("2024-02-30")


class TestParseResult:
    """Tests for ParseResult dataclass."""

    def test_add_error_drops_rows(self):
        """Test adding an error turns the result into a failure without rows."""
        result = ParseResult(
            success=True,
            rows=[Row(date(2024, 1, 1), "A", "A", Decimal("1"))],
        )
        result.add_error(3, "invalid date: x")

        assert result.success is False
        assert result.rows == []
        assert result.errors == [ParseError(3, "invalid date: x")]

    def test_totals(self):
        """Test row count and amount total."""
        result = ParseResult(
            success=True,
            rows=[
                Row(date(2024, 1, 1), "A", "A", Decimal("-10.10")),
                Row(date(2024, 1, 2), "B", "B", Decimal("0.20")),
            ],
        )
        assert result.row_count == 2
        assert result.total_amount == Decimal("-9.90")

    def test_row_amount_coerced_to_decimal(self):
        """Test numeric amounts are converted to Decimal."""
        row = Row(date(2024, 1, 1), "A", "A", "12.30")
        assert row.amount == Decimal("12.30")
        assert row.currency == "EUR"
        assert not row.is_expense

    def test_parse_error_dict(self):
        """Test ParseError serialisation."""
        assert ParseError(0, "empty file").to_dict() == {"row": 0, "message": "empty file"}
