"""
Keyword-to-tag matching.

TagRuleMatcher works on an explicit snapshot of rules, so it can be built
from the database once per import run or from plain TaggingRule objects in
tests. Every matching rule contributes its tag; priority only fixes the
evaluation order.
"""

import logging
import sqlite3
from typing import Iterable, List, Optional, Set

from ledgerly.core.transaction_service import TransactionStore
from ledgerly.services.tagging.models import TaggingRule
from ledgerly.services.tagging.store import TagStore

logger = logging.getLogger(__name__)


class TagRuleMatcher:
    """
    Match transaction labels against tagging rules.

    Usage:
        matcher = TagRuleMatcher(TagStore(conn).load_rules())
        tag_ids = matcher.match("CARTE 14/01 CARREFOUR MARKET")
    """

    def __init__(self, rules: Iterable[TaggingRule]):
        """
        Initialize matcher.

        Args:
            rules: Rule snapshot; re-sorted by priority descending (ties by id)
        """
        self.rules: List[TaggingRule] = sorted(
            rules, key=lambda r: (-r.priority, r.id if r.id is not None else 0)
        )
        self._keywords = [
            (rule.keyword.casefold(), rule.tag_id)
            for rule in self.rules
            if rule.keyword
        ]

    @classmethod
    def from_connection(cls, conn: sqlite3.Connection) -> "TagRuleMatcher":
        """Build a matcher from the rules currently stored."""
        return cls(TagStore(conn).load_rules())

    def match(self, label: Optional[str]) -> Set[int]:
        """Tag ids of every rule whose keyword occurs in the label (any case)."""
        return set(self.match_ordered(label))

    def match_ordered(self, label: Optional[str]) -> List[int]:
        """Same tags as match(), without duplicates, in rule evaluation order."""
        if not label:
            return []

        folded = label.casefold()
        tag_ids: List[int] = []
        for keyword, tag_id in self._keywords:
            if keyword in folded and tag_id not in tag_ids:
                tag_ids.append(tag_id)
        return tag_ids

    def __len__(self) -> int:
        return len(self.rules)


def apply_rules_to_untagged(conn: sqlite3.Connection, matcher: Optional[TagRuleMatcher] = None) -> int:
    """
    Tag every transaction that has no tags yet.

    Args:
        conn: Database connection
        matcher: Matcher to use; defaults to the stored rules

    Returns:
        Number of transactions that received at least one tag
    """
    if matcher is None:
        matcher = TagRuleMatcher.from_connection(conn)
    store = TransactionStore(conn)

    tagged = 0
    for transaction_id, label in store.untagged():
        tag_ids = matcher.match(label)
        if tag_ids and store.attach_tags(transaction_id, tag_ids):
            tagged += 1

    logger.info(f"Applied {len(matcher)} rules: tagged {tagged} transactions")
    return tagged
