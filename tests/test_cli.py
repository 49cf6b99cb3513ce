"""
Tests for CLI commands.
"""

import re
from contextlib import contextmanager
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from conftest import days_ago
from devlog.cli import app
from devlog.db.repositories import CodebaseRepository, CommitRepository

# Disable Rich formatting in tests using NO_COLOR environment variable
runner = CliRunner(env={"NO_COLOR": "1", "TERM": "dumb"})


def flat(output: str) -> str:
    """Collapse console wrapping so assertions can match whole phrases."""
    return " ".join(output.split())


@pytest.fixture
def cli_session(db_session, monkeypatch, tmp_path):
    """Route CLI database access to the test session."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))

    @contextmanager
    def mock_db_session():
        yield db_session

    with patch("devlog.db.connection.db_session", mock_db_session):
        yield db_session


@pytest.fixture
def history(git_repo):
    git_repo.commit("Add parser", when=days_ago(2))
    git_repo.commit("Fix tokenizer", when=days_ago(1))
    return git_repo


class TestIngestCommand:
    """Tests for the ingest command."""

    def test_ingest_nonexistent_path_fails(self, cli_session, tmp_path):
        """Test that ingest fails on a path that is not a repository."""
        result = runner.invoke(
            app, ["ingest", str(tmp_path / "missing"), "--no-summaries"]
        )

        assert result.exit_code == 1
        assert "Not a git repository" in flat(result.stdout)

    def test_ingest_branch(self, cli_session, history):
        """Test ingesting the main branch without summaries."""
        result = runner.invoke(
            app,
            [
                "ingest",
                str(history.path),
                "--branch",
                "main",
                "--no-summaries",
                "--non-interactive",
                "--workers",
                "1",
            ],
        )

        assert result.exit_code == 0, result.stdout
        output = flat(result.stdout)
        assert "main: 2 commits" in output
        assert "Total commits: 2" in output

        codebase = CodebaseRepository(cli_session).get_by_path(
            str(history.path.resolve())
        )
        assert codebase is not None
        assert CommitRepository(cli_session).count() == 2

    def test_ingest_is_incremental(self, cli_session, history):
        """Test that a second run stores nothing new."""
        args = ["ingest", str(history.path), "-b", "main", "--no-summaries"]
        runner.invoke(app, args)

        result = runner.invoke(app, args)

        assert result.exit_code == 0, result.stdout
        assert "Total commits: 0" in flat(result.stdout)

    def test_unknown_branch_fails_that_branch(self, cli_session, history):
        """Test that a missing branch is reported and the run exits non-zero."""
        result = runner.invoke(
            app,
            [
                "ingest",
                str(history.path),
                "-b",
                "main",
                "-b",
                "nope",
                "--no-summaries",
            ],
        )

        assert result.exit_code == 1
        output = flat(result.stdout)
        assert "main: 2 commits" in output
        assert "nope" in output
        assert CommitRepository(cli_session).count() == 2

    def test_non_interactive_requires_selection(self, cli_session, history):
        """Test that a first run without branches cannot prompt."""
        result = runner.invoke(
            app,
            ["ingest", str(history.path), "--no-summaries", "--non-interactive"],
        )

        assert result.exit_code == 1
        assert "no saved branch selection" in flat(result.stdout)

    def test_saved_selection_reused(self, cli_session, history):
        """Test that the explicit selection is remembered for the next run."""
        runner.invoke(
            app, ["ingest", str(history.path), "-b", "main", "--no-summaries"]
        )

        result = runner.invoke(
            app,
            ["ingest", str(history.path), "--no-summaries", "--non-interactive"],
        )

        assert result.exit_code == 0, result.stdout

    def test_full_history_ignores_age_limit(self, cli_session, history):
        """Test that --full-history reaches commits past the default window."""
        history.commit("Ancient fix", when=days_ago(900))
        history.commit("Recent fix", when=days_ago(0, hours=1))

        result = runner.invoke(
            app,
            [
                "ingest",
                str(history.path),
                "-b",
                "main",
                "--no-summaries",
                "--full-history",
            ],
        )

        assert result.exit_code == 0, result.stdout
        output = flat(result.stdout)
        assert "Since: full history" in output
        assert "Total commits: 4" in output

    def test_full_history_conflicts_with_since(self, cli_session, history):
        result = runner.invoke(
            app,
            ["ingest", str(history.path), "--full-history", "--since", "2026-01-01"],
        )

        assert result.exit_code == 1
        assert "--full-history cannot be combined" in flat(result.stdout)

    def test_invalid_since(self, cli_session, history):
        result = runner.invoke(
            app, ["ingest", str(history.path), "--since", "yesterday"]
        )

        assert result.exit_code == 1
        assert "--since must be YYYY-MM-DD" in flat(result.stdout)


class TestWorklogCommand:
    """Tests for the worklog command."""

    def test_worklog_requires_ingest(self, cli_session, history):
        """Test that an unknown repository is rejected."""
        result = runner.invoke(app, ["worklog", str(history.path), "--no-llm"])

        assert result.exit_code == 1
        assert "has not been ingested" in flat(result.stdout)

    def test_worklog_to_file(self, cli_session, history, tmp_path):
        """Test rendering a plain worklog after ingesting."""
        runner.invoke(
            app, ["ingest", str(history.path), "-b", "main", "--no-summaries"]
        )
        target = tmp_path / "worklog.md"

        result = runner.invoke(
            app,
            ["worklog", str(history.path), "--no-llm", "--output", str(target)],
        )

        assert result.exit_code == 0, result.stdout
        document = target.read_text()
        assert "## Daily Activity" in document
        assert "Add parser" in document
        assert "Fix tokenizer" in document
        assert "2 commits" in flat(result.stdout)

    def test_worklog_rebuild_hits_cache(self, cli_session, history, tmp_path):
        """Test that an unchanged history is served from the cache."""
        runner.invoke(
            app, ["ingest", str(history.path), "-b", "main", "--no-summaries"]
        )
        target = str(tmp_path / "worklog.md")
        args = ["worklog", str(history.path), "--no-llm", "-o", target]
        runner.invoke(app, args)

        result = runner.invoke(app, args)

        assert result.exit_code == 0, result.stdout
        hits = re.search(r"cache: (\d+) hits", flat(result.stdout))
        assert hits is not None
        assert int(hits.group(1)) >= 2

    def test_worklog_by_branch(self, cli_session, history, tmp_path):
        runner.invoke(
            app, ["ingest", str(history.path), "-b", "main", "--no-summaries"]
        )
        target = tmp_path / "worklog.md"

        result = runner.invoke(
            app,
            [
                "worklog",
                str(history.path),
                "--no-llm",
                "--group-by",
                "branch",
                "-o",
                str(target),
            ],
        )

        assert result.exit_code == 0, result.stdout
        document = target.read_text()
        assert "## Work by Branch" in document
        assert "### main" in document

    def test_invalid_group_by(self, cli_session, history):
        result = runner.invoke(
            app, ["worklog", str(history.path), "--no-llm", "--group-by", "week"]
        )

        assert result.exit_code == 1
        assert "--group-by must be 'date' or 'branch'" in flat(result.stdout)

    def test_start_after_end(self, cli_session, history):
        """Test that an inverted period is rejected."""
        result = runner.invoke(
            app,
            [
                "worklog",
                str(history.path),
                "--no-llm",
                "--start",
                "2026-03-10",
                "--end",
                "2026-03-01",
            ],
        )

        assert result.exit_code == 1
        assert "--start is after --end" in flat(result.stdout)

    def test_unknown_branch_filter(self, cli_session, history):
        runner.invoke(
            app, ["ingest", str(history.path), "-b", "main", "--no-summaries"]
        )

        result = runner.invoke(
            app, ["worklog", str(history.path), "--no-llm", "--branch", "nope"]
        )

        assert result.exit_code == 1
        assert "Unknown branch: nope" in flat(result.stdout)


class TestCacheCommands:
    """Tests for listing and clearing cached worklog sections."""

    @pytest.fixture
    def rendered(self, cli_session, history, tmp_path):
        runner.invoke(
            app, ["ingest", str(history.path), "-b", "main", "--no-summaries"]
        )
        runner.invoke(
            app,
            ["worklog", str(history.path), "--no-llm", "-o", str(tmp_path / "w.md")],
        )
        return history

    def test_list_shows_cached_sections(self, rendered):
        result = runner.invoke(app, ["list", str(rendered.path)])

        assert result.exit_code == 0, result.stdout
        sections = re.search(r"(\d+) sections", flat(result.stdout))
        assert sections is not None
        # Two days plus at least one week and one month
        assert int(sections.group(1)) >= 4

    def test_list_filters_by_type(self, rendered):
        result = runner.invoke(
            app, ["list", str(rendered.path), "--type", "day_updates"]
        )

        assert result.exit_code == 0, result.stdout
        assert "2 sections" in flat(result.stdout)

    def test_list_rejects_unknown_type(self, rendered):
        result = runner.invoke(app, ["list", str(rendered.path), "--type", "year"])

        assert result.exit_code == 1
        assert "Unknown --type 'year'" in flat(result.stdout)

    def test_list_requires_ingest(self, cli_session, history):
        result = runner.invoke(app, ["list", str(history.path)])

        assert result.exit_code == 1
        assert "has not been ingested" in flat(result.stdout)

    def test_clear_deletes_sections_and_selection(self, rendered):
        """Test that clearing empties the cache and forgets the branch choice."""
        result = runner.invoke(
            app, ["clear", str(rendered.path), "--yes", "--selection"]
        )

        assert result.exit_code == 0, result.stdout
        output = flat(result.stdout)
        assert re.search(r"Deleted [1-9]\d* cached sections", output)
        assert "Forgot saved branch selection" in output

        listed = runner.invoke(app, ["list", str(rendered.path)])
        assert "No cached worklog sections." in flat(listed.stdout)

        again = runner.invoke(
            app,
            ["ingest", str(rendered.path), "--no-summaries", "--non-interactive"],
        )
        assert again.exit_code == 1
        assert "no saved branch selection" in flat(again.stdout)

    def test_clear_keeps_ingested_commits(self, rendered, cli_session):
        runner.invoke(app, ["clear", str(rendered.path), "--yes"])

        assert CommitRepository(cli_session).count() == 2

    def test_clear_can_be_cancelled(self, rendered):
        result = runner.invoke(app, ["clear", str(rendered.path)], input="n\n")

        assert result.exit_code == 0, result.stdout
        assert "Cancelled" in flat(result.stdout)

        listed = runner.invoke(app, ["list", str(rendered.path)])
        assert "No cached worklog sections." not in flat(listed.stdout)
