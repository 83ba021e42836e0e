"""Tag and tagging rule models."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Tag:
    """A classification label attached to transactions."""
    id: int
    name: str
    color: str = "#6B7280"


@dataclass
class TaggingRule:
    """Keyword rule: labels containing ``keyword`` (any case) get ``tag_id``."""
    id: Optional[int]
    keyword: str
    tag_id: int
    priority: int = 0  # Higher evaluated first
    tag_name: Optional[str] = None
