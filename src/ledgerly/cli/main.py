#!/usr/bin/env python3
"""
Ledgerly CLI - bank statement import command line interface.

Usage:
    ledgerly init-db
    ledgerly account-add "Compte courant" --bank boursorama
    ledgerly detect export.csv
    ledgerly import --account 1 export.csv --details
    ledgerly imports --account 1
    ledgerly tag-add Groceries --color "#22C55E"
    ledgerly rule-add carrefour --tag Groceries --priority 10
    ledgerly apply-rules
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ledgerly.core.accounts import ACCOUNT_TYPES, create_account, list_accounts
from ledgerly.core.config import Settings
from ledgerly.core.database import DatabaseManager
from ledgerly.core.exceptions import LedgerlyError
from ledgerly.services.imports.pipeline import ImportPipeline, detect_bank, list_imports_for_account
from ledgerly.services.tagging.rules import apply_rules_to_untagged
from ledgerly.services.tagging.store import DEFAULT_COLOR, TagStore

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, debug: bool = False, default_level: str = "WARNING"):
    """Configure logging."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = getattr(logging, default_level, logging.WARNING)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


# ============================================================================
# Command Handlers
# ============================================================================

def cmd_init_db(args, settings: Settings, conn) -> int:
    """Handle init-db command - create the schema."""
    print(f"Database ready: {settings.database.path}")
    return 0


def cmd_account_add(args, settings: Settings, conn) -> int:
    """Handle account-add command."""
    account = create_account(conn, args.name, args.bank, type=args.type, currency=args.currency)
    print(f"Created account {account.id}: {account.name} ({account.bank}, {account.type})")
    return 0


def cmd_accounts(args, settings: Settings, conn) -> int:
    """Handle accounts command - list accounts."""
    accounts = list_accounts(conn, include_archived=args.all)
    if not accounts:
        print("No accounts")
        return 0
    for account in accounts:
        archived = " [archived]" if account.archived else ""
        print(f"  {account.id:>4}  {account.name:<30} {account.bank:<16} {account.currency}{archived}")
    return 0


def cmd_detect(args, settings: Settings, conn) -> int:
    """Handle detect command - report the bank format of a file."""
    bank = detect_bank(Path(args.file).read_bytes())
    if bank is None:
        print(f"{args.file}: unknown format")
        return 1
    print(f"{args.file}: {bank}")
    return 0


def cmd_import(args, settings: Settings, conn) -> int:
    """Handle import command - import a statement file into an account."""
    file_path = Path(args.file)
    content = file_path.read_bytes()

    pipeline = ImportPipeline(conn, settings.imports)
    record = pipeline.create_import(args.account, file_path.name)
    result = pipeline.process(record, content)

    print(f"\nImport {result.record.id} ({file_path.name}): {result.status.value}")
    if result.bank:
        print(f"  Bank:      {result.bank}")
    print(f"  Rows:      {result.rows_total}")
    print(f"  Imported:  {result.rows_imported}")
    print(f"  Skipped:   {result.rows_skipped}")
    print(f"  Errored:   {result.rows_errored}")

    if result.error_details:
        print("\nErrors:")
        for error in result.error_details:
            print(f"  row {error['row']}: {error['message']}")

    if args.details:
        print("\nRows:")
        for detail in result.row_details:
            tags = ", ".join(detail.tags) if detail.tags else "-"
            line = f"  {detail.row:>5}  {detail.status.value:<8} {detail.date}  {detail.amount:>12}  {detail.label}  [{tags}]"
            if detail.error:
                line += f"  ({detail.error})"
            print(line)

    return 0 if result.success else 1


def cmd_imports(args, settings: Settings, conn) -> int:
    """Handle imports command - list imports of an account."""
    records = list_imports_for_account(conn, args.account)
    if not records:
        print("No imports")
        return 0
    for record in records:
        print(
            f"  {record.id:>4}  {record.created_at}  {record.status.value:<10} "
            f"{record.rows_imported}/{record.rows_total} imported  {record.filename}"
        )
    return 0


def cmd_tag_add(args, settings: Settings, conn) -> int:
    """Handle tag-add command."""
    tag = TagStore(conn).create_tag(args.name, args.color)
    print(f"Created tag {tag.id}: {tag.name} {tag.color}")
    return 0


def cmd_tags(args, settings: Settings, conn) -> int:
    """Handle tags command - list tags."""
    for tag in TagStore(conn).list_tags():
        print(f"  {tag.id:>4}  {tag.name:<24} {tag.color}")
    return 0


def cmd_rule_add(args, settings: Settings, conn) -> int:
    """Handle rule-add command. --tag accepts a tag name or id."""
    store = TagStore(conn)
    tag = store.find_tag(args.tag)
    if tag is None and args.tag.isdigit():
        tag = store.get_tag(int(args.tag))
    if tag is None:
        print(f"Unknown tag: {args.tag}")
        return 1
    rule = store.create_rule(args.keyword, tag.id, priority=args.priority)
    print(f"Created rule {rule.id}: '{rule.keyword}' -> {rule.tag_name} (priority {rule.priority})")
    return 0


def cmd_rules(args, settings: Settings, conn) -> int:
    """Handle rules command - list rules, highest priority first."""
    for rule in TagStore(conn).list_rules():
        print(f"  {rule.id:>4}  {rule.priority:>5}  {rule.keyword:<24} -> {rule.tag_name}")
    return 0


def cmd_apply_rules(args, settings: Settings, conn) -> int:
    """Handle apply-rules command - tag untagged transactions."""
    count = apply_rules_to_untagged(conn)
    print(f"Tagged {count} transaction(s)")
    return 0


COMMANDS = {
    "init-db": cmd_init_db,
    "account-add": cmd_account_add,
    "accounts": cmd_accounts,
    "detect": cmd_detect,
    "import": cmd_import,
    "imports": cmd_imports,
    "tag-add": cmd_tag_add,
    "tags": cmd_tags,
    "rule-add": cmd_rule_add,
    "rules": cmd_rules,
    "apply-rules": cmd_apply_rules,
}


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="ledgerly",
        description="Ledgerly - bank statement imports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ledgerly account-add "Compte courant" --bank boursorama
  ledgerly import --account 1 export.csv --details
  ledgerly rule-add carrefour --tag Groceries --priority 10
        """
    )

    # Global arguments
    parser.add_argument("--db", help="Database path (default: from settings)")
    parser.add_argument("--config", help="Settings JSON file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--debug", action="store_true", help="Debug output")

    subparsers = parser.add_subparsers(dest="command", help="Command")

    subparsers.add_parser("init-db", help="Create the database schema")

    account_parser = subparsers.add_parser("account-add", help="Create an account")
    account_parser.add_argument("name", help="Account name")
    account_parser.add_argument("--bank", "-b", required=True, help="Bank identifier")
    account_parser.add_argument("--type", "-t", default="checking", choices=ACCOUNT_TYPES,
                                help="Account type")
    account_parser.add_argument("--currency", default="EUR", help="Account currency")

    accounts_parser = subparsers.add_parser("accounts", help="List accounts")
    accounts_parser.add_argument("--all", action="store_true", help="Include archived accounts")

    detect_parser = subparsers.add_parser("detect", help="Detect the bank format of a file")
    detect_parser.add_argument("file", help="Statement file")

    import_parser = subparsers.add_parser("import", help="Import a statement file")
    import_parser.add_argument("file", help="Statement file (CSV or Revolut XLSX)")
    import_parser.add_argument("--account", "-a", type=int, required=True, help="Account id")
    import_parser.add_argument("--details", action="store_true", help="Print per-row outcomes")

    imports_parser = subparsers.add_parser("imports", help="List imports of an account")
    imports_parser.add_argument("--account", "-a", type=int, required=True, help="Account id")

    tag_parser = subparsers.add_parser("tag-add", help="Create a tag")
    tag_parser.add_argument("name", help="Tag name")
    tag_parser.add_argument("--color", default=DEFAULT_COLOR, help="Hex color (#RRGGBB)")

    subparsers.add_parser("tags", help="List tags")

    rule_parser = subparsers.add_parser("rule-add", help="Create a tagging rule")
    rule_parser.add_argument("keyword", help="Case-insensitive keyword")
    rule_parser.add_argument("--tag", required=True, help="Tag name or id")
    rule_parser.add_argument("--priority", "-p", type=int, default=0,
                             help="Evaluation priority (higher first)")

    subparsers.add_parser("rules", help="List tagging rules")
    subparsers.add_parser("apply-rules", help="Tag transactions that have no tags")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    settings = Settings.load(Path(args.config) if args.config else None)
    setup_logging(args.verbose, args.debug, settings.log_level)

    db_path = args.db or str(settings.database.path)

    try:
        db = DatabaseManager()
        conn = db.init(db_path)
    except LedgerlyError as e:
        print(f"Database error: {e}")
        return 1

    try:
        return COMMANDS[args.command](args, settings, conn)
    except LedgerlyError as e:
        print(f"Error: {e.message}")
        return 1
    except OSError as e:
        print(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        print("\nOperation cancelled")
        return 130
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
