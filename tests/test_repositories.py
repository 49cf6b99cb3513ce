"""
Tests for repository classes.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from devlog.db.repositories import (
    BranchRepository,
    CodebaseRepository,
    CommitRepository,
    CursorRepository,
    DeveloperRepository,
    WorklogKey,
    WorklogRepository,
)
from devlog.models.db import Commit
from devlog.models.git import CommitStats

BASE_TIME = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def codebase(db_session):
    return CodebaseRepository(db_session).get_or_create(
        path="/src/app", name="app", default_branch="main"
    )


def make_commit(session, codebase, branch, hash_, when, user=True, summary=None):
    commit = Commit(
        codebase_id=codebase.id,
        branch_id=branch.id if branch else None,
        hash=hash_,
        author_email="dev@example.com" if user else "other@example.com",
        author_name="Dev",
        message=f"Commit {hash_}",
        summary=summary,
        committed_at=when,
        stats=CommitStats(additions=2, deletions=1, files_changed=1),
        is_user_commit=user,
    )
    session.add(commit)
    session.flush()
    return commit


class TestCodebaseRepository:
    """Tests for CodebaseRepository."""

    def test_get_or_create_is_stable(self, db_session, codebase):
        """Test that the same path returns the same codebase."""
        again = CodebaseRepository(db_session).get_or_create(path="/src/app", name="x")

        assert again.id == codebase.id
        assert again.name == "app"

    def test_mark_indexed(self, db_session, codebase):
        """Test that indexing time is recorded."""
        CodebaseRepository(db_session).mark_indexed(codebase)

        assert codebase.indexed_at is not None


class TestBranchRepository:
    """Tests for BranchRepository."""

    def test_set_default_is_exclusive(self, db_session, codebase):
        """Test that only one branch of a codebase is flagged default."""
        branches = BranchRepository(db_session)
        branches.set_default(codebase, "main")
        branches.get_or_create(codebase.id, "develop", base_branch="main")

        branches.set_default(codebase, "develop")

        flagged = [
            b.name for b in branches.list_by_codebase(codebase.id) if b.is_default
        ]
        assert flagged == ["develop"]
        assert branches.get_default(codebase.id).name == "develop"
        assert branches.get_by_name(codebase.id, "develop").base_branch == ""
        assert codebase.default_branch == "develop"

    def test_default_flag_scoped_to_codebase(self, db_session, codebase):
        """Test that other codebases keep their default branch."""
        other = CodebaseRepository(db_session).get_or_create(
            path="/src/other", name="other"
        )
        branches = BranchRepository(db_session)
        branches.set_default(other, "main")

        branches.set_default(codebase, "main")

        assert branches.get_default(other.id) is not None
        assert branches.get_default(codebase.id) is not None

    def test_get_or_create_applies_kwargs_once(self, db_session, codebase):
        """Test that creation kwargs do not overwrite an existing branch."""
        branches = BranchRepository(db_session)
        created = branches.get_or_create(codebase.id, "feature/x", base_branch="main")

        again = branches.get_or_create(codebase.id, "feature/x", base_branch="other")

        assert again.id == created.id
        assert again.base_branch == "main"


class TestCommitRepository:
    """Tests for CommitRepository."""

    def test_existing_hashes_in_chunks(self, db_session, codebase):
        """Test that stored hashes are found across chunk boundaries."""
        for i in range(5):
            make_commit(db_session, codebase, None, f"h{i}", BASE_TIME)

        found = CommitRepository(db_session).existing_hashes(
            codebase.id, ["h0", "h3", "h4", "missing"], chunk_size=2
        )

        assert found == {"h0", "h3", "h4"}

    def test_list_in_range_filters(self, db_session, codebase):
        """Test the time window, user and branch filters."""
        branch = BranchRepository(db_session).get_or_create(codebase.id, "main")
        make_commit(db_session, codebase, branch, "inside", BASE_TIME)
        make_commit(
            db_session, codebase, None, "no-branch", BASE_TIME + timedelta(hours=1)
        )
        make_commit(db_session, codebase, branch, "theirs", BASE_TIME, user=False)
        make_commit(
            db_session, codebase, branch, "before", BASE_TIME - timedelta(days=2)
        )
        make_commit(
            db_session, codebase, branch, "at-end", BASE_TIME + timedelta(days=1)
        )

        commits = CommitRepository(db_session)
        start, end = BASE_TIME - timedelta(hours=12), BASE_TIME + timedelta(days=1)

        assert [c.hash for c in commits.list_in_range(codebase.id, start, end)] == [
            "no-branch",
            "inside",
        ]
        everyone = commits.list_in_range(codebase.id, start, end, only_user=False)
        assert {c.hash for c in everyone} == {"no-branch", "inside", "theirs"}
        assert [
            c.hash
            for c in commits.list_in_range(codebase.id, start, end, branch_id=branch.id)
        ] == ["inside"]

    def test_committed_at_round_trips_as_utc(self, db_session, codebase):
        """Test that stored timestamps come back timezone-aware."""
        make_commit(db_session, codebase, None, "tz", BASE_TIME)
        db_session.commit()
        db_session.expire_all()

        stored = CommitRepository(db_session).get_by_hash(codebase.id, "tz")

        assert stored.committed_at == BASE_TIME
        assert stored.committed_at.tzinfo is not None
        assert stored.stats == CommitStats(additions=2, deletions=1, files_changed=1)

    def test_branch_bounds_and_count(self, db_session, codebase):
        """Test oldest/newest lookup and counting per branch."""
        branch = BranchRepository(db_session).get_or_create(codebase.id, "main")
        make_commit(db_session, codebase, branch, "mid", BASE_TIME)
        make_commit(db_session, codebase, branch, "old", BASE_TIME - timedelta(days=1))
        make_commit(db_session, codebase, branch, "new", BASE_TIME + timedelta(days=1))

        commits = CommitRepository(db_session)
        oldest, newest = commits.get_branch_bounds(branch.id)

        assert (oldest.hash, newest.hash) == ("old", "new")
        assert commits.count_by_branch(branch.id) == 3


class TestCursorRepository:
    """Tests for CursorRepository."""

    def test_set_and_replace(self, db_session, codebase):
        """Test that one cursor row per branch is kept."""
        cursors = CursorRepository(db_session)
        assert cursors.get_hash(codebase.id, "main") is None

        cursors.set_hash(codebase.id, "main", "aaa")
        cursors.set_hash(codebase.id, "main", "bbb")

        assert cursors.get_hash(codebase.id, "main") == "bbb"
        assert cursors.count() == 1


class TestDeveloperRepository:
    """Tests for DeveloperRepository."""

    def test_upsert_fills_missing_name(self, db_session):
        """Test that upsert is idempotent and fills an empty name."""
        developers = DeveloperRepository(db_session)
        first = developers.upsert("dev@example.com")

        again = developers.upsert("dev@example.com", "Dev User")

        assert again.id == first.id
        assert again.name == "Dev User"
        assert developers.count() == 1

    def test_current_user_is_exclusive(self, db_session):
        """Test that only one developer is the local user."""
        developers = DeveloperRepository(db_session)
        developers.set_current_user("old@example.com")

        developers.set_current_user("dev@example.com", "Dev")

        assert developers.get_current_user().email == "dev@example.com"
        assert not developers.get_by_email("old@example.com").is_current_user


class TestWorklogRepository:
    """Tests for WorklogRepository."""

    def key(
        self, codebase, day=date(2026, 3, 10), branch_id="", entry_type="day_updates"
    ):
        return WorklogKey(
            codebase_id=codebase.id,
            profile_name="default",
            entry_date=day,
            branch_id=branch_id,
            entry_type=entry_type,
            group_by="date",
        )

    def test_upsert_replaces_content(self, db_session, codebase):
        """Test that a second upsert updates the same identity."""
        worklogs = WorklogRepository(db_session)
        first = worklogs.upsert_entry(self.key(codebase), "v1", "sig1", commit_count=1)

        second = worklogs.upsert_entry(
            self.key(codebase), "v2", "sig2", commit_count=2, additions=5
        )

        assert second.id == first.id
        assert second.content == "v2"
        assert second.signature == "sig2"
        assert second.commit_count == 2
        assert second.additions == 5
        assert worklogs.count() == 1

    def test_identity_includes_branch_and_type(self, db_session, codebase):
        """Test that branch and entry type produce distinct entries."""
        worklogs = WorklogRepository(db_session)
        worklogs.upsert_entry(self.key(codebase), "a", "s")
        worklogs.upsert_entry(self.key(codebase, branch_id="b1"), "b", "s")
        worklogs.upsert_entry(self.key(codebase, entry_type="week_summary"), "c", "s")

        assert worklogs.count() == 3
        assert worklogs.get_entry(self.key(codebase, branch_id="b1")).content == "b"

    def test_list_and_delete(self, db_session, codebase):
        """Test read-only listing and clearing of entries."""
        worklogs = WorklogRepository(db_session)
        worklogs.upsert_entry(self.key(codebase, day=date(2026, 3, 9)), "old", "s")
        worklogs.upsert_entry(self.key(codebase, day=date(2026, 3, 10)), "new", "s")
        week_key = self.key(codebase, entry_type="week_summary", day=date(2026, 3, 9))
        worklogs.upsert_entry(week_key, "wk", "s")

        listed = worklogs.list_entries(
            codebase.id, "default", start=date(2026, 3, 10), entry_type="day_updates"
        )
        assert [e.content for e in listed] == ["new"]
        assert len(worklogs.list_entries(codebase.id, "default")) == 3

        assert worklogs.delete_entries(codebase.id, "default") == 3
        assert worklogs.list_entries(codebase.id, "default") == []
