"""
Branch repository.
"""

import uuid
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from devlog.db.repositories.base import BaseRepository
from devlog.models.db import Branch, Codebase


class BranchRepository(BaseRepository[Branch]):
    """Repository for Branch model."""

    def __init__(self, session: Session):
        super().__init__(Branch, session)

    def get_by_name(self, codebase_id: uuid.UUID, name: str) -> Optional[Branch]:
        stmt = select(Branch).where(
            Branch.codebase_id == codebase_id, Branch.name == name
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def get_or_create(self, codebase_id: uuid.UUID, name: str, **kwargs) -> Branch:
        """
        Get a branch record, creating it on first sight.

        Args:
            codebase_id: Owning codebase
            name: Branch name
            **kwargs: Fields applied only when the branch is created

        Returns:
            Branch instance
        """
        branch = self.get_by_name(codebase_id, name)
        if branch:
            return branch
        return self.create(codebase_id=codebase_id, name=name, **kwargs)

    def list_by_codebase(self, codebase_id: uuid.UUID) -> List[Branch]:
        stmt = (
            select(Branch)
            .where(Branch.codebase_id == codebase_id)
            .order_by(Branch.is_default.desc(), Branch.name)
        )
        return list(self.session.execute(stmt).scalars().all())

    def get_default(self, codebase_id: uuid.UUID) -> Optional[Branch]:
        stmt = select(Branch).where(
            Branch.codebase_id == codebase_id, Branch.is_default.is_(True)
        )
        return self.session.execute(stmt).scalars().first()

    def set_default(self, codebase: Codebase, name: str) -> Branch:
        """
        Make ``name`` the only default branch of ``codebase``.

        Clears the flag on every sibling first, then sets it on the target and
        records the name on the codebase.

        Args:
            codebase: Owning codebase
            name: Branch to mark as default (created if unseen)

        Returns:
            The default Branch
        """
        self.session.execute(
            update(Branch)
            .where(Branch.codebase_id == codebase.id, Branch.is_default.is_(True))
            .values(is_default=False)
            .execution_options(synchronize_session="fetch")
        )
        branch = self.get_or_create(codebase.id, name)
        branch.is_default = True
        branch.base_branch = ""
        codebase.default_branch = name
        self.session.flush()
        return branch
