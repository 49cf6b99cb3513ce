"""
Codebase repository.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from devlog.db.repositories.base import BaseRepository
from devlog.models.db import Codebase


class CodebaseRepository(BaseRepository[Codebase]):
    """Repository for Codebase model."""

    def __init__(self, session: Session):
        super().__init__(Codebase, session)

    def get_by_path(self, path: str) -> Optional[Codebase]:
        stmt = select(Codebase).where(Codebase.path == path)
        return self.session.execute(stmt).scalar_one_or_none()

    def get_or_create(
        self, path: str, name: str, default_branch: str = "main"
    ) -> Codebase:
        """
        Get the codebase registered for ``path`` or register it.

        Args:
            path: Absolute repository path
            name: Display name (usually the directory name)
            default_branch: Default branch to record on creation

        Returns:
            Codebase instance
        """
        codebase = self.get_by_path(path)
        if codebase:
            return codebase
        return self.create(path=path, name=name, default_branch=default_branch)

    def mark_indexed(self, codebase: Codebase) -> Codebase:
        return self.update(codebase, indexed_at=datetime.now(timezone.utc))
