"""
Unit tests for the ledgerly command line.

Each command runs through main() against a temporary database file.
"""

import pytest

from ledgerly.cli.main import build_parser, main
from ledgerly.core.database import DatabaseManager


@pytest.fixture
def cli(tmp_path, monkeypatch):
    """Run main() with a temporary data root and database."""
    monkeypatch.setenv("LEDGERLY_DATA_ROOT", str(tmp_path))
    monkeypatch.delenv("LEDGERLY_CONFIG", raising=False)
    monkeypatch.delenv("LEDGERLY_DB_PATH", raising=False)
    DatabaseManager.reset_instance()

    db_path = str(tmp_path / "ledgerly.db")

    def run(*argv):
        return main(["--db", db_path, *argv])

    yield run
    DatabaseManager.reset_instance()


@pytest.fixture
def statement(tmp_path, boursorama_csv):
    """A Boursorama export on disk."""
    path = tmp_path / "releve.csv"
    path.write_bytes(boursorama_csv(
        '2024-01-15;2024-01-15;"CARTE 14/01 CARREFOUR";;;;"-42,30";;;',
        '2024-01-16;2024-01-16;"SNCF";;;;"-30,00";;;',
    ))
    return path


class TestCli:
    """Tests for CLI commands."""

    def test_no_command(self, cli, capsys):
        """Test help is shown without a command."""
        assert cli() == 1
        assert "usage" in capsys.readouterr().out.lower()

    def test_parser_commands(self):
        """Test subcommands parse their arguments."""
        args = build_parser().parse_args(["import", "--account", "3", "x.csv", "--details"])
        assert args.command == "import"
        assert args.account == 3
        assert args.details

    def test_init_db(self, cli, capsys, tmp_path):
        """Test the database file is created."""
        assert cli("init-db") == 0
        assert (tmp_path / "ledgerly.db").exists()
        assert "Database ready" in capsys.readouterr().out

    def test_accounts(self, cli, capsys):
        """Test creating and listing accounts."""
        assert cli("account-add", "Compte courant", "--bank", "boursorama") == 0
        assert cli("accounts") == 0

        out = capsys.readouterr().out
        assert "Created account 1: Compte courant (boursorama, checking)" in out
        assert "Compte courant" in out.splitlines()[-1]

    def test_detect(self, cli, capsys, statement, tmp_path):
        """Test format detection exit codes."""
        unknown = tmp_path / "unknown.csv"
        unknown.write_bytes(b"foo,bar,baz\n1,2,3\n")

        assert cli("detect", str(statement)) == 0
        assert cli("detect", str(unknown)) == 1

        out = capsys.readouterr().out
        assert "releve.csv: boursorama" in out
        assert "unknown.csv: unknown format" in out

    def test_import_and_reimport(self, cli, capsys, statement):
        """Test import summary and idempotent reimport."""
        cli("account-add", "Compte", "--bank", "boursorama")

        assert cli("import", "--account", "1", str(statement)) == 0
        first = capsys.readouterr().out
        assert "completed" in first
        assert "Imported:  2" in first

        assert cli("import", "--account", "1", str(statement), "--details") == 0
        second = capsys.readouterr().out
        assert "Imported:  0" in second
        assert "Skipped:   2" in second
        assert "skipped" in second
        assert "CARREFOUR" in second

        assert cli("imports", "--account", "1") == 0
        assert "0/2 imported" in capsys.readouterr().out

    def test_import_unknown_format(self, cli, capsys, tmp_path):
        """Test a failed import returns 1 and prints the error."""
        cli("account-add", "Compte", "--bank", "boursorama")
        path = tmp_path / "unknown.csv"
        path.write_bytes(b"foo,bar,baz\n1,2,3\n")

        assert cli("import", "--account", "1", str(path)) == 1
        out = capsys.readouterr().out
        assert "failed" in out
        assert "row 0: Unknown CSV format" in out

    def test_import_missing_account(self, cli, capsys, statement):
        """Test library errors become exit code 1."""
        assert cli("import", "--account", "99", str(statement)) == 1
        assert "Error: Account not found: 99" in capsys.readouterr().out

    def test_import_missing_file(self, cli, capsys, tmp_path):
        """Test an unreadable file is reported."""
        cli("account-add", "Compte", "--bank", "boursorama")
        assert cli("import", "--account", "1", str(tmp_path / "nope.csv")) == 1
        assert "Error:" in capsys.readouterr().out

    def test_tags_and_rules(self, cli, capsys, statement):
        """Test tags and rules drive tagging on import and apply-rules."""
        cli("account-add", "Compte", "--bank", "boursorama")
        cli("import", "--account", "1", str(statement))

        assert cli("tag-add", "Groceries", "--color", "#22C55E") == 0
        assert cli("rule-add", "carrefour", "--tag", "Groceries", "--priority", "10") == 0
        assert cli("rule-add", "sncf", "--tag", "1") == 0
        assert cli("rule-add", "lidl", "--tag", "Unknown") == 1
        assert cli("apply-rules") == 0
        assert cli("tags") == 0
        assert cli("rules") == 0

        out = capsys.readouterr().out
        assert "Created tag 1: Groceries #22C55E" in out
        assert "'carrefour' -> Groceries (priority 10)" in out
        assert "Unknown tag: Unknown" in out
        assert "Tagged 2 transaction(s)" in out

    def test_bad_color(self, cli, capsys):
        """Test validation errors are printed."""
        assert cli("tag-add", "Groceries", "--color", "green") == 1
        assert "Invalid color" in capsys.readouterr().out
