"""
Developer repository.
"""

import uuid
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from devlog.db.repositories.base import BaseRepository
from devlog.models.db import Developer


class DeveloperRepository(BaseRepository[Developer]):
    """Repository for Developer model."""

    def __init__(self, session: Session):
        super().__init__(Developer, session)

    def get_by_email(self, email: str) -> Optional[Developer]:
        """
        Get developer by email.

        Args:
            email: Author email as recorded in git

        Returns:
            Developer instance or None
        """
        stmt = select(Developer).where(Developer.email == email)
        return self.session.execute(stmt).scalar_one_or_none()

    def upsert(self, email: str, name: str = "") -> Developer:
        """
        Get existing developer or create a new one (race-safe).

        Uses INSERT ... ON CONFLICT DO NOTHING on the unique email so concurrent
        ingestions of the same repository cannot collide. An empty stored name
        is filled from ``name``.

        Args:
            email: Author email
            name: Author display name

        Returns:
            Developer instance

        Raises:
            RuntimeError: If developer creation/fetch fails unexpectedly
        """
        developer = self.get_by_email(email)
        if developer:
            if name and not developer.name:
                developer.name = name
                self.session.flush()
            return developer

        insert = self._insert()
        stmt = (
            insert(Developer)
            .values(id=uuid.uuid4(), email=email, name=name, is_current_user=False)
            .on_conflict_do_nothing(index_elements=["email"])
        )
        self.session.execute(stmt)
        self.session.flush()

        developer = self.get_by_email(email)
        if not developer:
            raise RuntimeError(f"Developer creation/fetch failed for email={email}")
        return developer

    def set_current_user(self, email: str, name: str = "") -> Developer:
        """Flag ``email`` as the local user, clearing the flag elsewhere."""
        self.session.execute(
            update(Developer)
            .where(Developer.email != email, Developer.is_current_user.is_(True))
            .values(is_current_user=False)
            .execution_options(synchronize_session="fetch")
        )
        developer = self.upsert(email, name)
        developer.is_current_user = True
        self.session.flush()
        return developer

    def get_current_user(self) -> Optional[Developer]:
        stmt = select(Developer).where(Developer.is_current_user.is_(True))
        return self.session.execute(stmt).scalars().first()
