"""
Ledgerly Parsers - Bank statement parsers.

Architecture:
- BankStatementParser: Abstract {detect, parse} interface, one subclass per bank
- ParserRegistry: Fixed, ordered set of parsers; first detect() match wins
- Row / ParseResult: Normalised output, or structural errors keyed by line
"""

from .bank import (
    Row,
    ParseError,
    ParseResult,
    BankStatementParser,
    ParserRegistry,
    detect_parser,
    strip_bom,
)

__all__ = [
    "Row",
    "ParseError",
    "ParseResult",
    "BankStatementParser",
    "ParserRegistry",
    "detect_parser",
    "strip_bom",
]
