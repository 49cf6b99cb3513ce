"""Repository for per-branch ingestion cursors."""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from devlog.db.repositories.base import BaseRepository
from devlog.models.db import IngestCursor


class CursorRepository(BaseRepository[IngestCursor]):
    """Repository for IngestCursor model."""

    def __init__(self, session: Session):
        super().__init__(IngestCursor, session)

    def get_cursor(
        self, codebase_id: uuid.UUID, branch_name: str
    ) -> Optional[IngestCursor]:
        stmt = select(IngestCursor).where(
            IngestCursor.codebase_id == codebase_id,
            IngestCursor.branch_name == branch_name,
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def get_hash(self, codebase_id: uuid.UUID, branch_name: str) -> Optional[str]:
        cursor = self.get_cursor(codebase_id, branch_name)
        return cursor.last_commit_hash if cursor else None

    def set_hash(
        self, codebase_id: uuid.UUID, branch_name: str, commit_hash: str
    ) -> IngestCursor:
        """Store ``commit_hash`` as the branch cursor. Callers check ancestry."""
        cursor = self.get_cursor(codebase_id, branch_name)
        if cursor is None:
            return self.create(
                codebase_id=codebase_id,
                branch_name=branch_name,
                last_commit_hash=commit_hash,
            )
        return self.update(
            cursor,
            last_commit_hash=commit_hash,
            updated_at=datetime.now(timezone.utc),
        )
