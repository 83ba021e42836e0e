"""
Revolut statement parser (CSV and XLSX exports).

Expected headers (English exports):
    Type,Product,Started Date,Completed Date,Description,Amount,Fee,Currency,State,Balance

French exports use Produit, Date de début, Date de fin, Montant, Frais,
Devise, État and Solde. Headers mangled by a wrong encoding ("Ã‰tat") or by
Excel escapes ("_x000D_") are repaired before matching.

Only completed rows (COMPLETED / TERMINÉ) are imported; pending, reverted
and declined rows are skipped silently. A non-zero fee becomes its own row
("Fee: <description>") so it never collides with its parent on dedup.
"""

import logging
import math
import re
import unicodedata
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from ledgerly.parsers.bank.base import BankStatementParser, RowError, TableRow
from ledgerly.parsers.bank.models import ParseError, Row
from ledgerly.parsers.bank.xlsx import is_xlsx, read_rows

logger = logging.getLogger(__name__)

CANONICAL_HEADERS = (
    "Type",
    "Product",
    "Started Date",
    "Completed Date",
    "Description",
    "Amount",
    "Fee",
    "Currency",
    "State",
    "Balance",
)

# Accent-free lowercase header token -> canonical header
HEADER_TOKENS = {
    "type": "Type",
    "product": "Product",
    "produit": "Product",
    "starteddate": "Started Date",
    "datededebut": "Started Date",
    "completeddate": "Completed Date",
    "datedefin": "Completed Date",
    "description": "Description",
    "amount": "Amount",
    "montant": "Amount",
    "fee": "Fee",
    "frais": "Fee",
    "currency": "Currency",
    "devise": "Currency",
    "state": "State",
    "etat": "State",
    "tat": "State",  # "État" with the É lost to a bad re-encoding
    "balance": "Balance",
    "solde": "Balance",
}

COMPLETED_STATES = ("COMPLETED", "TERMINÉ")
COMPLETED_TOKENS = ("completed", "termine", "termin")

# UTF-8 read as Latin-1
MOJIBAKE = (
    ("Ã©", "é"),
    ("Ã¨", "è"),
    ("Ãª", "ê"),
    ("Ã«", "ë"),
    ("Ã ", "à"),
    ("Ã¢", "â"),
    ("Ã¹", "ù"),
    ("Ã»", "û"),
    ("Ã§", "ç"),
    ("Ã‰", "É"),
    ("Ã\x89", "É"),
    ("Â", ""),
)

EXCEL_EPOCH = date(1899, 12, 30)

_EXCEL_ESCAPE = re.compile(r"_x([0-9A-Fa-f]{4})_")
_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_text(value: str) -> str:
    """Undo Excel _xHHHH_ escapes and common UTF-8/Latin-1 mojibake."""

    def unescape(match):
        codepoint = int(match.group(1), 16)
        return "" if codepoint < 32 else chr(codepoint)

    value = _EXCEL_ESCAPE.sub(unescape, value)
    for broken, fixed in MOJIBAKE:
        value = value.replace(broken, fixed)
    return value


def header_token(value: str) -> str:
    """Lowercase, accent-free, alphanumeric-only form of a header or state."""
    decomposed = unicodedata.normalize("NFKD", value.lower())
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return _NON_ALNUM.sub("", stripped)


class RevolutParser(BankStatementParser):
    """Parser for Revolut CSV and XLSX exports."""

    BANK_NAME = "Revolut"
    BANK_ID = "revolut"
    DELIMITER = ","
    REQUIRED_COLUMNS = CANONICAL_HEADERS

    def _normalize_header(self, name: str) -> str:
        trimmed = normalize_text(name).strip()
        return HEADER_TOKENS.get(header_token(trimmed), trimmed)

    def _read_header(self, content: bytes) -> Optional[List[str]]:
        if not is_xlsx(content):
            return super()._read_header(content)
        table = self._read_xlsx_table(content)
        return table[0][1] if table else None

    def _read_table(self, content: bytes, errors: Optional[List[ParseError]] = None) -> List[TableRow]:
        if not is_xlsx(content):
            return super()._read_table(content, errors)
        return self._read_xlsx_table(content)

    def _read_xlsx_table(self, content: bytes) -> List[TableRow]:
        rows = read_rows(content)
        if not rows:
            return []
        table: List[TableRow] = []
        for index, fields in enumerate(rows, start=1):
            if not table and all(not value.strip() for value in fields):
                continue
            table.append((index, fields))
        return table

    def _parse_record(self, fields: List[str], columns: Dict[str, int], line_number: int) -> List[Row]:
        state = normalize_text(self._field(fields, columns, "State")).strip()
        if not self._is_completed(state):
            if state:
                logger.debug(f"Skipping Revolut row {line_number} in state {state}")
            return []

        txn_date = self._parse_completed_date(self._field(fields, columns, "Completed Date"))
        amount = self._parse_amount(self._field(fields, columns, "Amount"))
        label = self._parse_label(self._field(fields, columns, "Description"), "missing description")

        currency = self._field(fields, columns, "Currency")
        if not currency:
            raise RowError("missing currency")

        fee_raw = self._field(fields, columns, "Fee")
        fee = self._parse_amount(fee_raw, "fee") if fee_raw else Decimal("0")

        rows = [
            Row(
                date=txn_date,
                label=label,
                original_label=label,
                amount=amount,
                currency=currency,
            )
        ]

        if fee != 0:
            fee_label = f"Fee: {label}"
            rows.append(
                Row(
                    date=txn_date,
                    label=fee_label,
                    original_label=fee_label,
                    amount=-abs(fee),
                    currency=currency,
                    bank_reference="fee",
                )
            )

        return rows

    @staticmethod
    def _is_completed(state: str) -> bool:
        if not state:
            return False
        return state.upper() in COMPLETED_STATES or header_token(state) in COMPLETED_TOKENS

    def _parse_completed_date(self, raw: str) -> date:
        """
        Parse "YYYY-MM-DD HH:MM:SS" (time ignored) or an Excel serial day number.
        """
        value = normalize_text(raw).strip()
        if not value:
            raise RowError("missing date")

        date_part = re.split(r"[ T]", value, maxsplit=1)[0]
        try:
            return datetime.strptime(date_part, "%Y-%m-%d").date()
        except ValueError:
            pass

        try:
            serial = float(value)
            if not math.isfinite(serial):
                raise ValueError(value)
            return EXCEL_EPOCH + timedelta(days=int(serial))
        except (ValueError, OverflowError):
            raise RowError(f"invalid date: {raw}")
