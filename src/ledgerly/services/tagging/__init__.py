"""
Tagging service: tags, keyword rules and the rule matcher.
"""

from .models import Tag, TaggingRule
from .store import TagStore
from .rules import TagRuleMatcher, apply_rules_to_untagged

__all__ = [
    "Tag",
    "TaggingRule",
    "TagStore",
    "TagRuleMatcher",
    "apply_rules_to_untagged",
]
