"""
Bank format detection.

The registry holds a fixed, ordered tuple of parsers and picks the first one
whose detect() accepts the content. No match is a normal outcome (None),
not an exception.
"""

import logging
from typing import Optional, Sequence, Tuple

from ledgerly.parsers.bank.base import UTF8_BOM, BankStatementParser
from ledgerly.parsers.bank.boursorama import BoursoramaParser
from ledgerly.parsers.bank.caisse_epargne import CaisseEpargneParser
from ledgerly.parsers.bank.revolut import RevolutParser

logger = logging.getLogger(__name__)


def strip_bom(content: bytes) -> bytes:
    """Remove a leading UTF-8 byte-order mark."""
    if content.startswith(UTF8_BOM):
        return content[len(UTF8_BOM):]
    return content


def default_parsers() -> Tuple[BankStatementParser, ...]:
    """Supported banks in detection order."""
    return (
        BoursoramaParser(),
        RevolutParser(),
        CaisseEpargneParser(),
    )


class ParserRegistry:
    """
    Ordered set of bank parsers.

    Usage:
        registry = ParserRegistry()
        parser = registry.detect(content)
        if parser is None:
            ...  # unknown format
        result = parser.parse(content)
    """

    def __init__(self, parsers: Optional[Sequence[BankStatementParser]] = None):
        self.parsers: Tuple[BankStatementParser, ...] = (
            tuple(parsers) if parsers is not None else default_parsers()
        )

    def detect(self, content: bytes) -> Optional[BankStatementParser]:
        """Return the first parser that recognises the content, or None."""
        content = strip_bom(content)
        for parser in self.parsers:
            if parser.detect(content):
                logger.debug(f"Detected {parser.BANK_NAME} format")
                return parser
        return None

    def bank_name(self, content: bytes) -> Optional[str]:
        """Identifier of the detected bank (e.g. "revolut"), or None."""
        parser = self.detect(content)
        return parser.BANK_ID if parser else None

    def get(self, bank_id: str) -> Optional[BankStatementParser]:
        """Look up a parser by its identifier."""
        for parser in self.parsers:
            if parser.BANK_ID == bank_id:
                return parser
        return None

    @property
    def banks(self) -> Tuple[str, ...]:
        """Identifiers of all registered parsers, in detection order."""
        return tuple(parser.BANK_ID for parser in self.parsers)


_default_registry: Optional[ParserRegistry] = None


def get_registry() -> ParserRegistry:
    """Shared registry with the default parsers."""
    global _default_registry
    if _default_registry is None:
        _default_registry = ParserRegistry()
    return _default_registry


def detect_parser(content: bytes) -> Optional[BankStatementParser]:
    """Detect the parser for content using the default registry."""
    return get_registry().detect(content)
