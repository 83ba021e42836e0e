"""
Import service: statement import runs and their outcomes.
"""

from .models import (
    ImportStatus,
    ImportRecord,
    ImportResult,
    RowDetail,
    RowStatus,
    RowOutcome,
    Added,
    Skipped,
    Errored,
)
from .store import ImportStore
from .pipeline import (
    ImportPipeline,
    create_import,
    process_import,
    detect_bank,
    get_import,
    list_imports_for_account,
    UNKNOWN_FORMAT_MESSAGE,
    PARSE_FAILED_MESSAGE,
)

__all__ = [
    "ImportStatus",
    "ImportRecord",
    "ImportResult",
    "RowDetail",
    "RowStatus",
    "RowOutcome",
    "Added",
    "Skipped",
    "Errored",
    "ImportStore",
    "ImportPipeline",
    "create_import",
    "process_import",
    "detect_bank",
    "get_import",
    "list_imports_for_account",
    "UNKNOWN_FORMAT_MESSAGE",
    "PARSE_FAILED_MESSAGE",
]
