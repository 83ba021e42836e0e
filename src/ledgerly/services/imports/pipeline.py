"""
Statement import pipeline.

Flow for one import:
1. Import created as ``pending`` (create_import)
2. ``processing`` set before detection starts
3. BOM stripped, bank format detected, content parsed
4. Each Row in order: match tags -> insert (dedup on natural key) -> outcome
5. Import finalised once as ``completed`` with counters and row details

Unknown formats, structural parse errors and unexpected failures before the
first insert end the import as ``failed`` with zeroed counters; nothing is
written for such files. Row-level insert failures are counted and never stop
the run. Each insert commits on its own, so a run with failing rows still
keeps the rows that went in.
"""

import logging
import sqlite3
from typing import Dict, List, Optional, Sequence

from ledgerly.core.accounts import fetch_account
from ledgerly.core.config import ImportSettings
from ledgerly.core.exceptions import AccountNotFoundError
from ledgerly.core.transaction_service import (
    InsertResult,
    NewTransaction,
    TransactionSource,
    TransactionStore,
)
from ledgerly.parsers.bank.models import ParseError, Row
from ledgerly.parsers.bank.registry import ParserRegistry, get_registry, strip_bom
from ledgerly.services.imports.models import (
    Added,
    Errored,
    ImportRecord,
    ImportResult,
    ImportStatus,
    RowDetail,
    RowOutcome,
    RowStatus,
    Skipped,
)
from ledgerly.services.imports.store import ImportStore
from ledgerly.services.tagging.rules import TagRuleMatcher
from ledgerly.services.tagging.store import TagStore

logger = logging.getLogger(__name__)

UNKNOWN_FORMAT_MESSAGE = "Unknown CSV format: no parser matched"
PARSE_FAILED_MESSAGE = "CSV parsing failed"
UNEXPECTED_FAILURE_MESSAGE = "Import failed unexpectedly"

FIRST_DATA_ROW = 2  # Row 1 is the header


class ImportPipeline:
    """
    Runs statement imports against one database connection.

    Usage:
        pipeline = ImportPipeline(conn, settings.imports)
        record = pipeline.create_import(account_id=1, filename="releve.csv")
        result = pipeline.process(record, Path("releve.csv").read_bytes())
        print(result.rows_imported, result.rows_skipped, result.rows_errored)
    """

    def __init__(
        self,
        db_connection: sqlite3.Connection,
        settings: Optional[ImportSettings] = None,
        registry: Optional[ParserRegistry] = None,
        matcher: Optional[TagRuleMatcher] = None,
    ):
        """
        Initialize pipeline.

        Args:
            db_connection: Database connection
            settings: Import settings (defaults apply when None)
            registry: Parser registry (default parsers when None)
            matcher: Fixed rule snapshot; when None the stored rules are
                loaded at the start of every run
        """
        self.conn = db_connection
        self.settings = settings or ImportSettings()
        self.registry = registry or get_registry()
        self.matcher = matcher
        self.imports = ImportStore(db_connection)
        self.transactions = TransactionStore(
            db_connection, supported_currencies=self.settings.supported_currencies
        )
        self.tags = TagStore(db_connection)

    def create_import(self, account_id: int, filename: str) -> ImportRecord:
        """
        Create a pending import for an existing account.

        Raises:
            AccountNotFoundError: If the account does not exist
            ValidationError: If the filename is blank
        """
        if fetch_account(self.conn, account_id) is None:
            raise AccountNotFoundError(account_id)
        record = self.imports.create(account_id, filename)
        logger.info(f"Created import {record.id} for account {account_id} ({record.filename})")
        return record

    def detect_bank(self, raw_bytes: bytes) -> Optional[str]:
        """Bank identifier for the content, or None. Writes nothing."""
        return self.registry.bank_name(raw_bytes)

    def process(self, record: ImportRecord, raw_bytes: bytes) -> ImportResult:
        """
        Process an import's file content.

        Args:
            record: A pending import
            raw_bytes: File content

        Returns:
            ImportResult; ``success`` is False when the import failed

        Raises:
            InvalidStatusTransitionError: If the import is not pending
        """
        record = self.imports.transition(record, ImportStatus.PROCESSING)

        content = strip_bom(raw_bytes)
        bank = None
        try:
            parser = self.registry.detect(content)
            if parser is not None:
                bank = parser.BANK_ID
                logger.info(f"Import {record.id}: parsing {record.filename} as {parser.BANK_NAME}")
                parsed = parser.parse(content)
                if parsed.success:
                    matcher = self.matcher if self.matcher is not None else TagRuleMatcher(self.tags.load_rules())
                    tag_names = self.tags.tag_names()
        except Exception as e:
            logger.exception(f"Import {record.id}: {UNEXPECTED_FAILURE_MESSAGE}")
            return self._fail(
                record,
                UNEXPECTED_FAILURE_MESSAGE,
                [ParseError(0, str(e) or e.__class__.__name__)],
                bank=bank,
            )

        if parser is None:
            logger.warning(f"Import {record.id}: {UNKNOWN_FORMAT_MESSAGE}")
            return self._fail(record, UNKNOWN_FORMAT_MESSAGE)

        if not parsed.success:
            logger.warning(
                f"Import {record.id}: {PARSE_FAILED_MESSAGE} with {len(parsed.errors)} error(s)"
            )
            return self._fail(record, PARSE_FAILED_MESSAGE, parsed.errors, bank=bank)

        return self._import_rows(record, parsed.rows, bank, matcher, tag_names)

    def _import_rows(
        self,
        record: ImportRecord,
        rows: List[Row],
        bank: str,
        matcher: TagRuleMatcher,
        tag_names: Dict[int, str],
    ) -> ImportResult:
        imported = skipped = errored = 0
        error_details = []
        details: List[RowDetail] = []

        for row_index, row in enumerate(rows, start=FIRST_DATA_ROW):
            tag_ids: List[int] = []
            try:
                tag_ids = matcher.match_ordered(row.label)
                outcome = self._insert_row(record, row, tag_ids)
            except Exception as e:
                logger.exception(f"Import {record.id}: unexpected failure on row {row_index}")
                outcome = Errored(str(e) or e.__class__.__name__)

            detail = RowDetail(
                row=row_index,
                date=row.date,
                label=row.label,
                amount=row.amount,
                tags=[tag_names[tag_id] for tag_id in tag_ids if tag_id in tag_names],
            )

            if isinstance(outcome, Added):
                imported += 1
                detail.status = RowStatus.ADDED
            elif isinstance(outcome, Skipped):
                skipped += 1
                detail.status = RowStatus.SKIPPED
            elif isinstance(outcome, Errored):
                errored += 1
                detail.status = RowStatus.ERROR
                detail.error = outcome.message
                error_details.append({"row": row_index, "message": outcome.message})
                logger.warning(f"Import {record.id}: row {row_index} rejected: {outcome.message}")
            else:
                raise TypeError(f"Unhandled row outcome: {outcome!r}")

            details.append(detail)

        final = self.imports.finalize(
            record,
            ImportStatus.COMPLETED,
            rows_imported=imported,
            rows_skipped=skipped,
            rows_errored=errored,
            error_details=error_details,
            row_details=[d.to_dict() for d in details] if self.settings.store_row_details else [],
        )

        logger.info(
            f"Import {record.id} completed: {final.rows_total} rows, "
            f"{imported} imported, {skipped} skipped, {errored} errored"
        )
        return ImportResult(success=True, record=final, row_details=details, bank=bank)

    def _insert_row(self, record: ImportRecord, row: Row, tag_ids: List[int]) -> RowOutcome:
        """Insert one row and translate the storage result into a RowOutcome."""
        insert = self.transactions.insert(
            NewTransaction(
                account_id=record.account_id,
                import_id=record.id,
                date=row.date,
                label=row.label,
                original_label=row.original_label,
                amount=row.amount,
                currency=row.currency or self.settings.default_currency,
                bank_reference=row.bank_reference,
                source=TransactionSource.CSV_IMPORT,
            ),
            tag_ids=tag_ids,
        )

        if insert.result == InsertResult.SUCCESS:
            return Added(insert.transaction_id)
        if insert.result == InsertResult.DUPLICATE:
            return Skipped()
        if insert.result == InsertResult.CONSTRAINT_VIOLATION:
            return Errored(insert.error_message or "rejected by storage")
        raise TypeError(f"Unhandled insert result: {insert.result!r}")

    def _fail(
        self,
        record: ImportRecord,
        summary: str,
        errors: Sequence[ParseError] = (),
        bank: Optional[str] = None,
    ) -> ImportResult:
        """Finalize as failed with zeroed counters and the summary first."""
        error_details = [{"row": 0, "message": summary}]
        error_details.extend(error.to_dict() for error in errors)

        final = self.imports.finalize(record, ImportStatus.FAILED, error_details=error_details)
        return ImportResult(success=False, record=final, bank=bank)


def create_import(conn: sqlite3.Connection, account_id: int, filename: str) -> ImportRecord:
    """Create a pending import (see ImportPipeline.create_import)."""
    return ImportPipeline(conn).create_import(account_id, filename)


def process_import(
    conn: sqlite3.Connection,
    record: ImportRecord,
    raw_bytes: bytes,
    settings: Optional[ImportSettings] = None,
) -> ImportResult:
    """Process a pending import (see ImportPipeline.process)."""
    return ImportPipeline(conn, settings).process(record, raw_bytes)


def detect_bank(raw_bytes: bytes) -> Optional[str]:
    """Bank identifier for the content, or None."""
    return get_registry().bank_name(raw_bytes)


def get_import(conn: sqlite3.Connection, import_id: int) -> ImportRecord:
    """Get an import by id (raises ImportNotFoundError)."""
    return ImportStore(conn).get(import_id)


def list_imports_for_account(conn: sqlite3.Connection, account_id: int) -> List[ImportRecord]:
    """Imports of an account, most recent first."""
    return ImportStore(conn).list_for_account(account_id)
