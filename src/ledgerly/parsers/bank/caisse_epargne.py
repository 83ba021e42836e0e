"""
Caisse d'Epargne CSV statement parser.

Semicolon-separated, DD/MM/YYYY dates, separate Débit and Crédit columns:

    Date;Numéro d'opération;Libellé;Débit;Crédit;Détail
    15/01/2024;OP123;CARTE 14/01 CARREFOUR;-42,30;;

Older exports are Latin-1 encoded; decoding falls back automatically.
"""

from decimal import Decimal
from typing import Dict, List

from ledgerly.parsers.bank.base import BankStatementParser, RowError, clean_label
from ledgerly.parsers.bank.models import Row


class CaisseEpargneParser(BankStatementParser):
    """Parser for Caisse d'Epargne CSV exports."""

    BANK_NAME = "Caisse d'Epargne"
    BANK_ID = "caisse_epargne"
    DELIMITER = ";"
    REQUIRED_COLUMNS = ("Date", "Numéro d'opération", "Libellé", "Débit", "Crédit")

    def _parse_record(self, fields: List[str], columns: Dict[str, int], line_number: int) -> List[Row]:
        txn_date = self._parse_date(self._field(fields, columns, "Date"), "%d/%m/%Y")
        amount = self._parse_signed_amount(
            self._field(fields, columns, "Débit"),
            self._field(fields, columns, "Crédit"),
        )
        original_label = self._parse_label(self._field(fields, columns, "Libellé"))
        reference = self._field(fields, columns, "Numéro d'opération")

        return [
            Row(
                date=txn_date,
                label=clean_label(original_label) or original_label,
                original_label=original_label,
                amount=amount,
                currency="EUR",
                bank_reference=reference or None,
            )
        ]

    def _parse_signed_amount(self, debit: str, credit: str) -> Decimal:
        """
        Débit wins when both are filled. Debits are always negative,
        credits always positive, whatever sign the bank printed.
        """
        if debit:
            value = self._parse_amount(debit.replace("+", ""))
            return -value if value > 0 else value
        if credit:
            return abs(self._parse_amount(credit.replace("+", "")))
        raise RowError("missing amount")
