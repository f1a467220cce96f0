"""Integration tests for the bankrec CLI."""

import pytest

from bankrec.cli.main import cli


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "learning.db")


@pytest.fixture
def bank_file(fixtures_dir):
    return str(fixtures_dir / "bank_statement.csv")


@pytest.fixture
def gl_file(fixtures_dir):
    return str(fixtures_dir / "gl_export.csv")


class TestReconcileCommand:
    """Tests for the reconcile command."""

    def test_summary(self, cli_runner, db_path, bank_file, gl_file):
        """Test the reconciliation summary and listings."""
        result = cli_runner.invoke(cli, ["--db-path", db_path, "reconcile", bank_file, gl_file])

        assert result.exit_code == 0
        assert "Reconciliation complete:" in result.output
        assert "Matched: 2 ($2,500.00)" in result.output
        assert "Unmatched bank: 2 ($500.25)" in result.output
        assert "Unmatched GL: 1 ($500.25)" in result.output
        assert "Exact Amount + Check #" in result.output
        assert "[0]" in result.output

    def test_exports(self, cli_runner, db_path, bank_file, gl_file, tmp_path):
        """Test writing CSV and Excel reports."""
        out_dir = tmp_path / "out"
        xlsx_path = tmp_path / "report.xlsx"

        result = cli_runner.invoke(
            cli,
            [
                "--db-path",
                db_path,
                "reconcile",
                bank_file,
                gl_file,
                "--output-dir",
                str(out_dir),
                "--xlsx",
                str(xlsx_path),
            ],
        )

        assert result.exit_code == 0
        assert (out_dir / "matched.csv").exists()
        assert (out_dir / "unmatched_bank.csv").exists()
        assert (out_dir / "unmatched_gl.csv").exists()
        assert xlsx_path.exists()
        assert "Wrote matched.csv, unmatched_bank.csv, unmatched_gl.csv" in result.output

    def test_interactive_without_suggestions(self, cli_runner, db_path, bank_file, gl_file):
        """Test that interactive review finishes when nothing can be suggested."""
        result = cli_runner.invoke(
            cli,
            ["--db-path", db_path, "reconcile", bank_file, gl_file, "--interactive"],
            input="q\n",
        )

        assert result.exit_code == 0
        assert "Reconciliation complete:" in result.output

    def test_invalid_tolerance(self, cli_runner, db_path, bank_file, gl_file):
        """Test that a non-numeric tolerance is rejected."""
        result = cli_runner.invoke(
            cli,
            ["--db-path", db_path, "reconcile", bank_file, gl_file, "--tolerance", "abc"],
        )

        assert result.exit_code == 1
        assert "Invalid tolerance 'abc'" in result.output

    def test_windows_1252_bank_file(self, cli_runner, db_path, gl_file, tmp_path):
        """Test reconciling a bank statement saved as Windows-1252."""
        bank_path = tmp_path / "latin1_bank.csv"
        bank_path.write_bytes(
            "Date,Description,Debit,Check Number\n01/15/2024,Chèque 4412,500.00,4412\n".encode(
                "cp1252"
            )
        )

        result = cli_runner.invoke(cli, ["--db-path", db_path, "reconcile", str(bank_path), gl_file])

        assert result.exit_code == 0
        assert "Matched: 1 ($500.00)" in result.output

    def test_undecodable_bank_file(self, cli_runner, db_path, gl_file, tmp_path):
        """Test that an unreadable encoding is reported as an error."""
        bank_path = tmp_path / "broken.csv"
        bank_path.write_bytes(b"Date,Description,Debit\n01/15/2024,Caf\x81,5.00\n")

        result = cli_runner.invoke(cli, ["--db-path", db_path, "reconcile", str(bank_path), gl_file])

        assert result.exit_code == 1
        assert "Could not decode broken.csv" in result.output

    def test_date_range_out_of_bounds(self, cli_runner, db_path, bank_file, gl_file):
        """Test that the date range option is bounded."""
        result = cli_runner.invoke(
            cli,
            ["--db-path", db_path, "reconcile", bank_file, gl_file, "--date-range", "45"],
        )

        assert result.exit_code != 0


def test_inspect_bank(cli_runner, db_path, bank_file):
    """Test inspecting a bank statement."""
    result = cli_runner.invoke(cli, ["--db-path", db_path, "inspect", bank_file])

    assert result.exit_code == 0
    assert "Layout: header" in result.output
    assert "Metadata rows skipped: 1" in result.output
    assert "Header row: 2" in result.output
    assert "-> Check Number (column 7)" in result.output
    assert "Records: 4" in result.output


def test_inspect_gl(cli_runner, db_path, gl_file):
    """Test inspecting a GL export."""
    result = cli_runner.invoke(cli, ["--db-path", db_path, "inspect", gl_file, "--kind", "gl"])

    assert result.exit_code == 0
    assert "Layout: header" in result.output
    assert "-> Account Number (column 1)" in result.output
    assert "Records: 3" in result.output


class TestSuggestCommand:
    """Tests for the suggest command and its learning side effects."""

    def test_split_suggestion(self, cli_runner, db_path, bank_file, gl_file):
        """Test listing the split suggestion for the unmatched GL entry."""
        result = cli_runner.invoke(
            cli, ["--db-path", db_path, "suggest", bank_file, gl_file, "--side", "gl", "--index", "0"]
        )

        assert result.exit_code == 0
        assert "Source (gl 0):" in result.output
        assert "[0] 48% (split)" in result.output
        assert "2 items sum to $500.25 (target: $500.25)" in result.output

    def test_accept_is_learned(self, cli_runner, db_path, bank_file, gl_file):
        """Test that an accepted suggestion shows up in learning stats."""
        result = cli_runner.invoke(
            cli,
            [
                "--db-path",
                db_path,
                "suggest",
                bank_file,
                gl_file,
                "--side",
                "gl",
                "--index",
                "0",
                "--accept",
                "0",
            ],
        )

        assert result.exit_code == 0
        assert "Accepted: Smart Match (2-way split) (48%)" in result.output

        stats = cli_runner.invoke(cli, ["--db-path", db_path, "learning", "stats"])

        assert stats.exit_code == 0
        assert "Profile: default" in stats.output
        assert "Accepted: 1" in stats.output
        assert "Recent feedback:" in stats.output
        assert "Office Depot Supplies" in stats.output

    def test_deny(self, cli_runner, db_path, bank_file, gl_file):
        """Test denying a suggestion under a named profile."""
        result = cli_runner.invoke(
            cli,
            [
                "--db-path",
                db_path,
                "--profile",
                "alice",
                "suggest",
                bank_file,
                gl_file,
                "--side",
                "gl",
                "--index",
                "0",
                "--deny",
                "0",
            ],
        )

        assert result.exit_code == 0
        assert "Denied suggestion 0" in result.output

        stats = cli_runner.invoke(
            cli, ["--db-path", db_path, "--profile", "alice", "learning", "stats"]
        )
        assert "Denied: 1" in stats.output

    def test_bad_index(self, cli_runner, db_path, bank_file, gl_file):
        """Test that an unknown record index fails cleanly."""
        result = cli_runner.invoke(
            cli, ["--db-path", db_path, "suggest", bank_file, gl_file, "--index", "9"]
        )

        assert result.exit_code == 1
        assert "Error: Unmatched bank transaction 9 not found" in result.output

    def test_bad_suggestion_number(self, cli_runner, db_path, bank_file, gl_file):
        """Test that accepting a missing suggestion fails cleanly."""
        result = cli_runner.invoke(
            cli,
            [
                "--db-path",
                db_path,
                "suggest",
                bank_file,
                gl_file,
                "--side",
                "gl",
                "--index",
                "0",
                "--accept",
                "3",
            ],
        )

        assert result.exit_code == 1
        assert "Suggestion 3 not found" in result.output

    def test_accept_and_deny_conflict(self, cli_runner, db_path, bank_file, gl_file):
        """Test that --accept and --deny cannot be combined."""
        result = cli_runner.invoke(
            cli,
            [
                "--db-path",
                db_path,
                "suggest",
                bank_file,
                gl_file,
                "--index",
                "0",
                "--accept",
                "0",
                "--deny",
                "0",
            ],
        )

        assert result.exit_code == 1


def test_learning_stats_empty(cli_runner, db_path):
    """Test learning stats before any feedback."""
    result = cli_runner.invoke(cli, ["--db-path", db_path, "learning", "stats"])

    assert result.exit_code == 0
    assert "Accepted: 0" in result.output
    assert "No feedback recorded yet." in result.output
