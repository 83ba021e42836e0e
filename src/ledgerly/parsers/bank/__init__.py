"""
Bank statement parsers for ledgerly.

Supports multiple bank formats:
- Boursorama Banque (CSV)
- Revolut (CSV, XLSX; English and French exports)
- Caisse d'Epargne (CSV)
"""

from ledgerly.parsers.bank.models import Row, ParseError, ParseResult
from ledgerly.parsers.bank.base import BankStatementParser, clean_label, decode_content
from ledgerly.parsers.bank.boursorama import BoursoramaParser
from ledgerly.parsers.bank.revolut import RevolutParser
from ledgerly.parsers.bank.caisse_epargne import CaisseEpargneParser
from ledgerly.parsers.bank.registry import (
    ParserRegistry,
    default_parsers,
    detect_parser,
    get_registry,
    strip_bom,
)

__all__ = [
    "Row",
    "ParseError",
    "ParseResult",
    "BankStatementParser",
    "clean_label",
    "decode_content",
    "BoursoramaParser",
    "RevolutParser",
    "CaisseEpargneParser",
    "ParserRegistry",
    "default_parsers",
    "detect_parser",
    "get_registry",
    "strip_bom",
]
