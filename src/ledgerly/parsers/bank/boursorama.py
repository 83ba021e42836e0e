"""
Boursorama Banque CSV statement parser.

Exports are semicolon-separated with quoted fields:

    dateOp;dateVal;label;category;categoryParent;supplierFound;amount;accountNum;accountLabel;accountBalance
    2024-01-15;2024-01-15;"CARTE 14/01 CARREFOUR";"Alimentation";...;"-42,30";...

Amounts use a decimal comma. The operation date (dateOp) is used.
"""

from typing import Dict, List

from ledgerly.parsers.bank.base import BankStatementParser, clean_label
from ledgerly.parsers.bank.models import Row


class BoursoramaParser(BankStatementParser):
    """Parser for Boursorama Banque CSV exports."""

    BANK_NAME = "Boursorama Banque"
    BANK_ID = "boursorama"
    DELIMITER = ";"
    REQUIRED_COLUMNS = ("dateOp", "dateVal", "label", "amount")

    def _parse_record(self, fields: List[str], columns: Dict[str, int], line_number: int) -> List[Row]:
        txn_date = self._parse_date(self._field(fields, columns, "dateOp"))
        amount = self._parse_amount(self._field(fields, columns, "amount"))
        original_label = self._parse_label(self._field(fields, columns, "label"))

        return [
            Row(
                date=txn_date,
                label=clean_label(original_label) or original_label,
                original_label=original_label,
                amount=amount,
                currency="EUR",
            )
        ]
