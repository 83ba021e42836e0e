"""
Custom exceptions for the ledgerly core module.

All ledgerly-specific exceptions inherit from LedgerlyError for easy catching.
Bad statement content is never raised: parsers and the import pipeline
report it as data (ParseResult / ImportResult).
"""


class LedgerlyError(Exception):
    """Base exception for all ledgerly errors."""

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        self.code = code


class DatabaseError(LedgerlyError):
    """Database operation errors."""

    def __init__(self, message: str, code: str = "DB_ERROR"):
        super().__init__(message, code)


class ValidationError(LedgerlyError):
    """Data validation errors."""

    def __init__(self, message: str, field: str = None, code: str = "VALIDATION_ERROR"):
        super().__init__(message, code)
        self.field = field


class AccountNotFoundError(LedgerlyError):
    """Raised when an account is not found."""

    def __init__(self, account_id: int, code: str = "ACCOUNT_NOT_FOUND"):
        super().__init__(f"Account not found: {account_id}", code)
        self.account_id = account_id


class TagNotFoundError(LedgerlyError):
    """Raised when a tag is not found."""

    def __init__(self, tag_id: int, code: str = "TAG_NOT_FOUND"):
        super().__init__(f"Tag not found: {tag_id}", code)
        self.tag_id = tag_id


class RuleNotFoundError(LedgerlyError):
    """Raised when a tagging rule is not found."""

    def __init__(self, rule_id: int, code: str = "RULE_NOT_FOUND"):
        super().__init__(f"Tagging rule not found: {rule_id}", code)
        self.rule_id = rule_id


class ImportNotFoundError(LedgerlyError):
    """Raised when an import record is not found."""

    def __init__(self, import_id: int, code: str = "IMPORT_NOT_FOUND"):
        super().__init__(f"Import not found: {import_id}", code)
        self.import_id = import_id


class InvalidStatusTransitionError(LedgerlyError):
    """Raised when an import is moved to a status it cannot reach."""

    def __init__(self, current: str, target: str, code: str = "INVALID_TRANSITION"):
        super().__init__(f"Cannot move import from '{current}' to '{target}'", code)
        self.current = current
        self.target = target
