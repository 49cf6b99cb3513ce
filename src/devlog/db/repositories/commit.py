"""
Commit repository.
"""

import uuid
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from devlog.db.repositories.base import BaseRepository
from devlog.models.db import Commit


class CommitRepository(BaseRepository[Commit]):
    """Repository for Commit model."""

    def __init__(self, session: Session):
        super().__init__(Commit, session)

    def get_by_hash(self, codebase_id: uuid.UUID, commit_hash: str) -> Optional[Commit]:
        stmt = select(Commit).where(
            Commit.codebase_id == codebase_id, Commit.hash == commit_hash
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def existing_hashes(
        self, codebase_id: uuid.UUID, hashes: Iterable[str], chunk_size: int = 500
    ) -> set[str]:
        """
        Return the subset of ``hashes`` already stored for the codebase.

        Args:
            codebase_id: Codebase UUID
            hashes: Candidate commit hashes
            chunk_size: Maximum hashes per IN clause

        Returns:
            Set of stored hashes
        """
        candidates = list(hashes)
        found: set[str] = set()
        for i in range(0, len(candidates), chunk_size):
            chunk = candidates[i : i + chunk_size]
            stmt = select(Commit.hash).where(
                Commit.codebase_id == codebase_id, Commit.hash.in_(chunk)
            )
            found.update(self.session.execute(stmt).scalars().all())
        return found

    def count_by_branch(self, branch_id: uuid.UUID) -> int:
        stmt = select(func.count()).select_from(Commit).where(
            Commit.branch_id == branch_id
        )
        return self.session.execute(stmt).scalar_one()

    def get_branch_bounds(
        self, branch_id: uuid.UUID
    ) -> tuple[Optional[Commit], Optional[Commit]]:
        """Return the oldest and newest stored commits of a branch."""
        base = select(Commit).where(Commit.branch_id == branch_id)
        oldest = self.session.execute(
            base.order_by(Commit.committed_at.asc()).limit(1)
        ).scalar_one_or_none()
        newest = self.session.execute(
            base.order_by(Commit.committed_at.desc()).limit(1)
        ).scalar_one_or_none()
        return oldest, newest

    def find_missing_summaries(
        self, codebase_id: uuid.UUID, limit: Optional[int] = None
    ) -> List[Commit]:
        """User commits with file changes but no summary, newest first."""
        stmt = (
            select(Commit)
            .where(
                Commit.codebase_id == codebase_id,
                Commit.is_user_commit.is_(True),
                (Commit.summary.is_(None)) | (Commit.summary == ""),
                Commit.file_changes.any(),
            )
            .options(selectinload(Commit.file_changes))
            .order_by(Commit.committed_at.desc())
        )
        if limit:
            stmt = stmt.limit(limit)
        return list(self.session.execute(stmt).scalars().all())

    def list_in_range(
        self,
        codebase_id: uuid.UUID,
        start: datetime,
        end: datetime,
        only_user: bool = True,
        branch_id: Optional[uuid.UUID] = None,
    ) -> List[Commit]:
        """
        Commits in ``[start, end)`` with branch and file changes loaded.

        Args:
            codebase_id: Codebase UUID
            start: Inclusive lower bound (aware datetime)
            end: Exclusive upper bound (aware datetime)
            only_user: Restrict to commits authored by the current user
            branch_id: Restrict to a single branch

        Returns:
            Commits ordered newest first
        """
        stmt = (
            select(Commit)
            .where(
                Commit.codebase_id == codebase_id,
                Commit.committed_at >= start,
                Commit.committed_at < end,
            )
            .options(selectinload(Commit.file_changes), selectinload(Commit.branch))
            .order_by(Commit.committed_at.desc(), Commit.hash)
        )
        if only_user:
            stmt = stmt.where(Commit.is_user_commit.is_(True))
        if branch_id is not None:
            stmt = stmt.where(Commit.branch_id == branch_id)
        return list(self.session.execute(stmt).scalars().all())

    def update_summary(self, commit: Commit, summary: str) -> Commit:
        return self.update(commit, summary=summary)
