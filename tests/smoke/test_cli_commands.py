"""
Smoke Tests for CLI Commands.

These tests verify that CLI commands run without errors and produce output.
They don't validate scheduling correctness deeply - just that commands work
end to end against a throwaway SQLite database.

Usage:
    pytest tests/smoke/test_cli_commands.py -v
    pytest tests/smoke/test_cli_commands.py -v -m smoke
"""

import json
import subprocess
import sys
from pathlib import Path

import pytest
from typer.testing import CliRunner

from simorgh.cli.main import app

# Mark all tests in this module as smoke tests
pytestmark = pytest.mark.smoke

# Project root
PROJECT_ROOT = Path(__file__).parent.parent.parent

runner = CliRunner()


def run_cli_command(command: str, timeout: int = 30) -> tuple[int, str, str]:
    """
    Run a CLI command in a subprocess and return exit code, stdout, stderr.

    Args:
        command: The command to run (after 'python -m simorgh.cli.main')
        timeout: Maximum time to wait
    """
    full_command = f"{sys.executable} -m simorgh.cli.main {command}"

    result = subprocess.run(
        full_command,
        shell=True,
        cwd=PROJECT_ROOT,
        capture_output=True,
        text=True,
        timeout=timeout,
    )

    return result.returncode, result.stdout, result.stderr


@pytest.fixture
def db_args(tmp_path):
    """Global options pointing the CLI at a fresh database."""
    args = ["--database-url", f"sqlite:///{tmp_path / 'cli.db'}"]
    result = runner.invoke(app, [*args, "db", "init"])
    assert result.exit_code == 0, result.output
    return args


class TestCLIHelp:
    """Test that help commands work."""

    def test_main_help(self):
        """Main help should display without errors."""
        code, stdout, stderr = run_cli_command("--help")

        assert code == 0, f"Help failed: {stderr}"
        assert "review" in stdout
        assert "Commands" in stdout

    @pytest.mark.parametrize("command", ["review", "due", "reset", "summary", "stats", "clear-history", "db"])
    def test_command_help(self, command):
        result = runner.invoke(app, [command, "--help"])
        assert result.exit_code == 0, result.output


class TestCLIReview:
    """Review, due and reset commands."""

    def test_db_init_is_idempotent(self, db_args):
        result = runner.invoke(app, [*db_args, "db", "init"])

        assert result.exit_code == 0
        assert "initialized" in result.output

    def test_review_graded(self, db_args):
        result = runner.invoke(
            app, [*db_args, "review", "alice", "haus", "--type", "vocabulary", "--quality", "5"]
        )

        assert result.exit_code == 0, result.output
        assert "next review in" in result.output
        assert "points" in result.output

    def test_review_requires_outcome(self, db_args):
        result = runner.invoke(app, [*db_args, "review", "alice", "haus"])
        assert result.exit_code == 2

    def test_review_invalid_quality(self, db_args):
        result = runner.invoke(app, [*db_args, "review", "alice", "haus", "--quality", "9"])

        assert result.exit_code == 2
        assert "Invalid input" in result.output

    def test_review_boolean_policy(self, db_args):
        result = runner.invoke(
            app, [*db_args, "--policy", "boolean", "review", "alice", "hallo", "-t", "phrase", "--incorrect"]
        )
        assert result.exit_code == 0, result.output

    def test_due(self, db_args, tmp_path):
        runner.invoke(app, [*db_args, "review", "alice", "seen", "--quality", "5"])
        candidates = tmp_path / "candidates.json"
        candidates.write_text(
            json.dumps([{"id": "seen", "type": "flashcard"}, {"id": "new", "type": "flashcard"}]),
            encoding="utf-8",
        )

        result = runner.invoke(app, [*db_args, "due", "alice", "--candidates", str(candidates)])

        assert result.exit_code == 0, result.output
        assert "new" in result.output
        assert "seen" not in result.output

    def test_due_bad_json(self, db_args, tmp_path):
        candidates = tmp_path / "candidates.json"
        candidates.write_text("not json", encoding="utf-8")

        result = runner.invoke(app, [*db_args, "due", "alice", "-c", str(candidates)])

        assert result.exit_code == 2

    def test_reset(self, db_args):
        runner.invoke(app, [*db_args, "review", "alice", "haus", "--quality", "5"])

        result = runner.invoke(app, [*db_args, "reset", "alice", "haus"])

        assert result.exit_code == 0, result.output
        assert "Reset flashcard:haus" in result.output


class TestCLIProgress:
    """Summary, stats and clear-history commands."""

    def test_summary(self, db_args):
        runner.invoke(app, [*db_args, "review", "alice", "haus", "--quality", "4"])

        result = runner.invoke(app, [*db_args, "summary", "alice"])

        assert result.exit_code == 0, result.output
        assert "Level" in result.output
        assert "Points" in result.output

    def test_stats(self, db_args):
        result = runner.invoke(app, [*db_args, "stats", "alice"])

        assert result.exit_code == 0, result.output
        assert "Items" in result.output

    def test_clear_history(self, db_args):
        runner.invoke(app, [*db_args, "review", "alice", "haus", "--quality", "4"])

        result = runner.invoke(app, [*db_args, "clear-history", "alice", "--yes"])

        assert result.exit_code == 0, result.output
        assert "Progress cleared" in result.output

    def test_clear_history_aborted(self, db_args):
        result = runner.invoke(app, [*db_args, "clear-history", "alice"], input="n\n")
        assert result.exit_code != 0

    def test_stats_lists_weak_items(self, db_args):
        for quality in ["5", "1", "0"]:
            runner.invoke(app, [*db_args, "review", "alice", "schwer", "--quality", quality])

        result = runner.invoke(app, [*db_args, "stats", "alice"])

        assert result.exit_code == 0, result.output
        assert "Weak items" in result.output
        assert "schwer" in result.output
        assert "Reviewed today" in result.output
