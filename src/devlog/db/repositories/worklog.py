"""Repository for cached worklog entries."""

import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from devlog.db.repositories.base import BaseRepository
from devlog.models.db import WorklogEntry

IDENTITY_COLUMNS = [
    "codebase_id",
    "profile_name",
    "entry_date",
    "branch_id",
    "entry_type",
    "group_by",
]


@dataclass(frozen=True)
class WorklogKey:
    """Identity of a cached worklog entry."""

    codebase_id: uuid.UUID
    profile_name: str
    entry_date: date
    branch_id: str
    entry_type: str
    group_by: str

    def as_values(self) -> dict:
        return {
            "codebase_id": self.codebase_id,
            "profile_name": self.profile_name,
            "entry_date": self.entry_date,
            "branch_id": self.branch_id,
            "entry_type": self.entry_type,
            "group_by": self.group_by,
        }


class WorklogRepository(BaseRepository[WorklogEntry]):
    """Repository for WorklogEntry model."""

    def __init__(self, session: Session):
        super().__init__(WorklogEntry, session)

    def get_entry(self, key: WorklogKey) -> Optional[WorklogEntry]:
        stmt = (
            select(WorklogEntry)
            .where(
                WorklogEntry.codebase_id == key.codebase_id,
                WorklogEntry.profile_name == key.profile_name,
                WorklogEntry.entry_date == key.entry_date,
                WorklogEntry.branch_id == key.branch_id,
                WorklogEntry.entry_type == key.entry_type,
                WorklogEntry.group_by == key.group_by,
            )
            .execution_options(populate_existing=True)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def upsert_entry(
        self,
        key: WorklogKey,
        content: str,
        signature: str,
        branch_name: str = "",
        commit_count: int = 0,
        additions: int = 0,
        deletions: int = 0,
    ) -> WorklogEntry:
        """
        Insert or replace the entry for ``key``.

        Identity and ``created_at`` are preserved on conflict; content,
        signature and aggregates are replaced.

        Returns:
            The stored WorklogEntry
        """
        now = datetime.now(timezone.utc)
        payload = {
            "branch_name": branch_name,
            "content": content,
            "signature": signature,
            "commit_count": commit_count,
            "additions": additions,
            "deletions": deletions,
            "updated_at": now,
        }
        insert = self._insert()
        stmt = (
            insert(WorklogEntry)
            .values(id=uuid.uuid4(), created_at=now, **key.as_values(), **payload)
            .on_conflict_do_update(index_elements=IDENTITY_COLUMNS, set_=payload)
        )
        self.session.execute(stmt)
        self.session.flush()

        entry = self.get_entry(key)
        if entry is None:
            raise RuntimeError(f"Worklog entry upsert failed for {key}")
        return entry

    def list_entries(
        self,
        codebase_id: uuid.UUID,
        profile_name: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
        entry_type: Optional[str] = None,
        group_by: Optional[str] = None,
    ) -> List[WorklogEntry]:
        """Entries for read-only consumers, newest date first."""
        stmt = select(WorklogEntry).where(
            WorklogEntry.codebase_id == codebase_id,
            WorklogEntry.profile_name == profile_name,
        )
        if start is not None:
            stmt = stmt.where(WorklogEntry.entry_date >= start)
        if end is not None:
            stmt = stmt.where(WorklogEntry.entry_date <= end)
        if entry_type is not None:
            stmt = stmt.where(WorklogEntry.entry_type == entry_type)
        if group_by is not None:
            stmt = stmt.where(WorklogEntry.group_by == group_by)
        stmt = stmt.order_by(
            WorklogEntry.entry_date.desc(),
            WorklogEntry.entry_type,
            WorklogEntry.branch_name,
        )
        return list(self.session.execute(stmt).scalars().all())

    def delete_entries(self, codebase_id: uuid.UUID, profile_name: str) -> int:
        stmt = delete(WorklogEntry).where(
            WorklogEntry.codebase_id == codebase_id,
            WorklogEntry.profile_name == profile_name,
        )
        result = self.session.execute(stmt)
        return result.rowcount or 0
