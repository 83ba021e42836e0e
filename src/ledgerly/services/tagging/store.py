"""
Tag and tagging rule persistence.

CRUD over the tags and tagging_rules tables. Deleting a tag removes its
rules and transaction associations through ON DELETE CASCADE; the
transactions themselves are kept.
"""

import logging
import re
import sqlite3
from typing import Dict, List, Optional

from ledgerly.core.exceptions import RuleNotFoundError, TagNotFoundError, ValidationError
from ledgerly.services.tagging.models import Tag, TaggingRule

logger = logging.getLogger(__name__)

DEFAULT_COLOR = "#6B7280"
COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")


class TagStore:
    """
    Tags and tagging rules.

    Usage:
        store = TagStore(conn)
        groceries = store.create_tag("Groceries", "#22C55E")
        store.create_rule("carrefour", groceries.id, priority=10)
        rules = store.load_rules()
    """

    def __init__(self, db_connection: sqlite3.Connection):
        self.conn = db_connection

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def create_tag(self, name: str, color: str = DEFAULT_COLOR) -> Tag:
        """
        Create a tag.

        Raises:
            ValidationError: Blank or duplicate name, or color not #RRGGBB
        """
        name = self._validate_tag_name(name)
        self._validate_color(color)

        try:
            cursor = self.conn.execute(
                "INSERT INTO tags (name, color) VALUES (?, ?)", (name, color)
            )
            self.conn.commit()
        except sqlite3.IntegrityError:
            self.conn.rollback()
            raise ValidationError(f"Tag name has already been taken: {name}", field="name")

        logger.info(f"Created tag {cursor.lastrowid} ({name})")
        return Tag(id=cursor.lastrowid, name=name, color=color)

    def get_tag(self, tag_id: int) -> Tag:
        """Get a tag by id."""
        row = self.conn.execute("SELECT * FROM tags WHERE id = ?", (tag_id,)).fetchone()
        if row is None:
            raise TagNotFoundError(tag_id)
        return Tag(id=row["id"], name=row["name"], color=row["color"])

    def find_tag(self, name: str) -> Optional[Tag]:
        """Get a tag by exact name, or None."""
        row = self.conn.execute("SELECT * FROM tags WHERE name = ?", (name,)).fetchone()
        return Tag(id=row["id"], name=row["name"], color=row["color"]) if row else None

    def list_tags(self) -> List[Tag]:
        """All tags ordered by name."""
        cursor = self.conn.execute("SELECT * FROM tags ORDER BY name")
        return [Tag(id=row["id"], name=row["name"], color=row["color"]) for row in cursor.fetchall()]

    def update_tag(self, tag_id: int, name: Optional[str] = None, color: Optional[str] = None) -> Tag:
        """Rename and/or recolor a tag."""
        tag = self.get_tag(tag_id)
        if name is not None:
            tag.name = self._validate_tag_name(name)
        if color is not None:
            self._validate_color(color)
            tag.color = color

        try:
            self.conn.execute(
                "UPDATE tags SET name = ?, color = ? WHERE id = ?",
                (tag.name, tag.color, tag_id),
            )
            self.conn.commit()
        except sqlite3.IntegrityError:
            self.conn.rollback()
            raise ValidationError(f"Tag name has already been taken: {tag.name}", field="name")
        return tag

    def delete_tag(self, tag_id: int) -> None:
        """Delete a tag with its rules and associations."""
        self.get_tag(tag_id)
        self.conn.execute("DELETE FROM tags WHERE id = ?", (tag_id,))
        self.conn.commit()
        logger.info(f"Deleted tag {tag_id}")

    def tag_names(self) -> Dict[int, str]:
        """Map of tag id to name."""
        cursor = self.conn.execute("SELECT id, name FROM tags")
        return {row["id"]: row["name"] for row in cursor.fetchall()}

    @staticmethod
    def _validate_tag_name(name: str) -> str:
        if not name or not name.strip():
            raise ValidationError("Tag name can't be blank", field="name")
        return name.strip()

    @staticmethod
    def _validate_color(color: str) -> None:
        if not color or not COLOR_PATTERN.match(color):
            raise ValidationError(f"Invalid color (expected #RRGGBB): {color}", field="color")

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def create_rule(self, keyword: str, tag_id: int, priority: int = 0) -> TaggingRule:
        """
        Create a tagging rule.

        Raises:
            ValidationError: Blank keyword
            TagNotFoundError: Unknown tag
        """
        if not keyword or not keyword.strip():
            raise ValidationError("Rule keyword can't be blank", field="keyword")
        tag = self.get_tag(tag_id)

        cursor = self.conn.execute(
            "INSERT INTO tagging_rules (keyword, tag_id, priority) VALUES (?, ?, ?)",
            (keyword, tag_id, int(priority)),
        )
        self.conn.commit()
        logger.info(f"Created rule {cursor.lastrowid}: '{keyword}' -> {tag.name} (priority {priority})")
        return TaggingRule(
            id=cursor.lastrowid,
            keyword=keyword,
            tag_id=tag_id,
            priority=int(priority),
            tag_name=tag.name,
        )

    def get_rule(self, rule_id: int) -> TaggingRule:
        """Get a rule by id."""
        row = self.conn.execute(
            """
            SELECT r.*, t.name AS tag_name FROM tagging_rules r
            JOIN tags t ON t.id = r.tag_id
            WHERE r.id = ?
            """,
            (rule_id,),
        ).fetchone()
        if row is None:
            raise RuleNotFoundError(rule_id)
        return self._row_to_rule(row)

    def list_rules(self) -> List[TaggingRule]:
        """All rules, highest priority first."""
        return self.load_rules()

    def update_rule(
        self,
        rule_id: int,
        keyword: Optional[str] = None,
        tag_id: Optional[int] = None,
        priority: Optional[int] = None,
    ) -> TaggingRule:
        """Change any of a rule's keyword, tag or priority."""
        rule = self.get_rule(rule_id)
        if keyword is not None:
            if not keyword.strip():
                raise ValidationError("Rule keyword can't be blank", field="keyword")
            rule.keyword = keyword
        if tag_id is not None:
            rule.tag_name = self.get_tag(tag_id).name
            rule.tag_id = tag_id
        if priority is not None:
            rule.priority = int(priority)

        self.conn.execute(
            "UPDATE tagging_rules SET keyword = ?, tag_id = ?, priority = ? WHERE id = ?",
            (rule.keyword, rule.tag_id, rule.priority, rule_id),
        )
        self.conn.commit()
        return rule

    def delete_rule(self, rule_id: int) -> None:
        """Delete a rule."""
        self.get_rule(rule_id)
        self.conn.execute("DELETE FROM tagging_rules WHERE id = ?", (rule_id,))
        self.conn.commit()

    def load_rules(self) -> List[TaggingRule]:
        """
        Snapshot of every rule, highest priority first (ties by id).

        The import pipeline loads this once per run.
        """
        cursor = self.conn.execute(
            """
            SELECT r.*, t.name AS tag_name FROM tagging_rules r
            JOIN tags t ON t.id = r.tag_id
            ORDER BY r.priority DESC, r.id
            """
        )
        return [self._row_to_rule(row) for row in cursor.fetchall()]

    @staticmethod
    def _row_to_rule(row: sqlite3.Row) -> TaggingRule:
        return TaggingRule(
            id=row["id"],
            keyword=row["keyword"],
            tag_id=row["tag_id"],
            priority=row["priority"],
            tag_name=row["tag_name"],
        )
