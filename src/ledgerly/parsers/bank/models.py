"""
Bank statement row and parse result models.

Dataclasses for representing parsed bank statements.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional


@dataclass
class Row:
    """A single normalised statement line."""

    date: date
    label: str
    original_label: str
    amount: Decimal
    currency: str = "EUR"
    bank_reference: Optional[str] = None
    source_row: Optional[int] = None  # Physical line in the source file

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            self.amount = Decimal(str(self.amount))

    @property
    def is_expense(self) -> bool:
        """Check if the row is money going out."""
        return self.amount < Decimal("0")


@dataclass(frozen=True)
class ParseError:
    """
    A structural problem found while parsing.

    ``row`` counts physical lines with the header as row 1. Header-level
    problems (empty file, missing columns) are reported at row 0.
    """

    row: int
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"row": self.row, "message": self.message}


@dataclass
class ParseResult:
    """Result of parsing a bank statement. Either rows or errors, never both."""

    success: bool
    rows: List[Row] = field(default_factory=list)
    errors: List[ParseError] = field(default_factory=list)
    bank: str = ""

    def add_error(self, row: int, message: str) -> None:
        """Add a structural error and drop any rows collected so far."""
        self.errors.append(ParseError(row, message))
        self.success = False
        self.rows = []

    @property
    def row_count(self) -> int:
        """Get number of rows parsed."""
        return len(self.rows)

    @property
    def total_amount(self) -> Decimal:
        """Sum of all row amounts."""
        return sum((r.amount for r in self.rows), Decimal("0"))
