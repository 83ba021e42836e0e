"""Services module for ledgerly business logic.

Provides services for:
- Imports: Statement import runs (detect, parse, dedup, tag, report)
- Tagging: Tags, keyword rules and rule matching
"""

from .imports import ImportPipeline, ImportResult, ImportStatus
from .tagging import TagStore, TagRuleMatcher, apply_rules_to_untagged

__all__ = [
    "ImportPipeline",
    "ImportResult",
    "ImportStatus",
    "TagStore",
    "TagRuleMatcher",
    "apply_rules_to_untagged",
]
