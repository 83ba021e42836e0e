"""
Base class for bank statement parsers.

A parser recognises one bank's export format (detect) and turns it into
normalised Rows (parse). Parsing is all-or-nothing: a single malformed data
row makes the whole result a failure carrying every structural error found.
"""

import csv
import re
from abc import ABC, abstractmethod
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Sequence, Tuple

from ledgerly.parsers.bank.models import ParseError, ParseResult, Row

UTF8_BOM = b"\xef\xbb\xbf"

# (physical line number, fields)
TableRow = Tuple[int, List[str]]

_CARD_PREFIX = re.compile(r"^CARTE \d{2}/\d{2}\s*")
_SEPA_PREFIX = re.compile(r"^VIR(EMENT)? SEPA\s*", re.IGNORECASE)
_LINE_BREAK = re.compile(r"\r?\n")
_WHITESPACE = re.compile(r"\s+")


class RowError(ValueError):
    """Raised by row helpers; becomes a ParseError at the current line."""


def decode_content(content: bytes) -> str:
    """
    Decode statement bytes.

    UTF-8 with the byte-order mark removed; anything that is not valid
    UTF-8 is read as Latin-1 (older French bank exports).
    """
    if content.startswith(UTF8_BOM):
        content = content[len(UTF8_BOM):]
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError:
        return content.decode("latin-1")


def clean_label(label: str) -> str:
    """
    Strip bank noise from a label.

    Removes a leading "CARTE DD/MM" card prefix and "VIR SEPA" /
    "VIREMENT SEPA" transfer prefixes.
    """
    label = _CARD_PREFIX.sub("", label)
    label = _SEPA_PREFIX.sub("", label)
    return label.strip()


def normalize_decimal(raw: str) -> str:
    """Remove whitespace (including non-breaking spaces) and use '.' as separator."""
    return _WHITESPACE.sub("", raw).replace(",", ".")


class BankStatementParser(ABC):
    """Abstract base class for bank statement parsers."""

    BANK_NAME: str = ""  # Override in subclass
    BANK_ID: str = ""  # Stable identifier, e.g. "boursorama"
    DELIMITER: str = ";"
    REQUIRED_COLUMNS: Sequence[str] = ()

    def detect(self, content: bytes) -> bool:
        """
        Check whether content looks like this bank's export.

        Only the header line is inspected; the body is never parsed.
        """
        try:
            header = self._read_header(content)
        except RowError:
            return False
        if header is None:
            return False
        columns = self._column_map(header)
        return all(name in columns for name in self.REQUIRED_COLUMNS)

    def parse(self, content: bytes) -> ParseResult:
        """
        Parse statement content.

        Args:
            content: Raw file bytes

        Returns:
            ParseResult with rows on success, or every structural error
        """
        result = ParseResult(success=True, bank=self.BANK_ID)

        read_errors: List[ParseError] = []
        table = self._read_table(content, read_errors)
        if not table:
            result.add_error(0, "empty file")
            return result

        (header_line, header), records = table[0], table[1:]
        if any(error.row == header_line for error in read_errors):
            result.add_error(0, f"unreadable header: {read_errors[0].message}")
            return result
        columns = self._column_map(header)

        missing = [name for name in self.REQUIRED_COLUMNS if name not in columns]
        if missing:
            result.add_error(0, f"missing required columns: {', '.join(missing)}")
            return result

        rows: List[Row] = []
        errors: List[ParseError] = list(read_errors)
        for line_number, fields in records:
            if all(not value.strip() for value in fields):
                continue
            try:
                parsed = self._parse_record(fields, columns, line_number)
            except RowError as e:
                errors.append(ParseError(line_number, str(e)))
                continue
            for row in parsed:
                row.source_row = line_number
            rows.extend(parsed)

        if errors:
            result.success = False
            result.errors = sorted(errors, key=lambda error: error.row)
        else:
            result.rows = rows
        return result

    @abstractmethod
    def _parse_record(self, fields: List[str], columns: Dict[str, int], line_number: int) -> List[Row]:
        """
        Convert one data record into Rows. Override in subclass.

        Returns an empty list for records the bank marks as not importable.

        Raises:
            RowError: If the record is malformed
        """
        pass

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def _read_header(self, content: bytes) -> Optional[List[str]]:
        """First non-blank line split into fields."""
        for _, line in self._lines(content):
            if line.strip():
                return self._split(line)
        return None

    def _read_table(self, content: bytes, errors: Optional[List[ParseError]] = None) -> List[TableRow]:
        """
        Header and data records numbered by physical line. Leading blank lines are dropped.

        A line the csv module rejects is kept with no fields and reported in ``errors``.
        """
        table: List[TableRow] = []
        for line_number, line in self._lines(content):
            if not table and not line.strip():
                continue
            try:
                fields = self._split(line)
            except RowError as e:
                if errors is not None:
                    errors.append(ParseError(line_number, str(e)))
                fields = []
            table.append((line_number, fields))
        return table

    def _lines(self, content: bytes):
        # Records never span lines: a quoted field holding a line break is cut in two.
        text = decode_content(content)
        for index, line in enumerate(_LINE_BREAK.split(text), start=1):
            yield index, line

    def _split(self, line: str) -> List[str]:
        """
        Split one line on the bank delimiter, honouring quoted fields.

        Raises:
            RowError: If the csv module rejects the line (e.g. an oversized field)
        """
        try:
            return next(csv.reader([line], delimiter=self.DELIMITER), [])
        except csv.Error as e:
            raise RowError(f"malformed record: {e}")

    def _normalize_header(self, name: str) -> str:
        return name.strip()

    def _column_map(self, header: List[str]) -> Dict[str, int]:
        """Map normalised header names to field positions. The first occurrence wins."""
        columns: Dict[str, int] = {}
        for index, name in enumerate(header):
            columns.setdefault(self._normalize_header(name), index)
        return columns

    # ------------------------------------------------------------------
    # Field helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _field(fields: List[str], columns: Dict[str, int], name: str) -> str:
        """Trimmed value of a named column; empty string when the record is short."""
        index = columns.get(name)
        if index is None or index >= len(fields):
            return ""
        return fields[index].strip()

    @staticmethod
    def _parse_amount(raw: str, what: str = "amount") -> Decimal:
        """
        Parse a decimal amount exactly.

        Raises:
            RowError: "missing <what>" or "invalid <what>: <raw>"
        """
        if not raw or not raw.strip():
            raise RowError(f"missing {what}")
        try:
            value = Decimal(normalize_decimal(raw))
        except InvalidOperation:
            raise RowError(f"invalid {what}: {raw}")
        if not value.is_finite():
            raise RowError(f"invalid {what}: {raw}")
        return value

    @staticmethod
    def _parse_date(raw: str, fmt: str = "%Y-%m-%d") -> date:
        """
        Parse a date in the given strptime format.

        Raises:
            RowError: "missing date" or "invalid date: <raw>"
        """
        if not raw or not raw.strip():
            raise RowError("missing date")
        try:
            return datetime.strptime(raw.strip(), fmt).date()
        except ValueError:
            raise RowError(f"invalid date: {raw}")

    @staticmethod
    def _parse_label(raw: str, message: str = "missing label") -> str:
        label = raw.strip() if raw else ""
        if not label:
            raise RowError(message)
        return label
