"""
Signature-keyed cache for generated worklog sections.

Each entry is identified by (codebase, profile, date, branch, entry type,
group-by) and carries the signature of the commits it was generated from.
An entry is reused only when the signature of the current commit set
matches, so any change to a day's commits regenerates that day and the
week and month rollups that include it, and nothing else.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone, tzinfo
from typing import Callable, Iterable, Optional, Sequence, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from devlog.db.repositories import WorklogKey, WorklogRepository
from devlog.models.db import EntryType, GroupBy
from devlog.worklog.grouping import WorklogCommit
from devlog.worklog.signature import compute_signature

logger = logging.getLogger(__name__)

Generator = Callable[[], str]


@dataclass
class CacheResult:
    content: str
    was_cached: bool


@dataclass
class CacheStats:
    """Counters for one worklog build."""

    hits: int = 0
    misses: int = 0
    writes: int = 0
    write_failures: int = 0


class WorklogCache:
    """Reads and writes worklog entries for one codebase and profile."""

    def __init__(
        self,
        session: Session,
        codebase_id: uuid.UUID,
        profile_name: str,
        today: Union[date, Callable[[], date], None] = None,
        tz: tzinfo = timezone.utc,
    ):
        """
        Args:
            session: Database session
            codebase_id: Codebase the entries belong to
            profile_name: Active profile
            today: Fixed "current day" or a callable returning it; defaults
                to the current date in ``tz``
            tz: Profile timezone
        """
        self.session = session
        self.codebase_id = codebase_id
        self.profile_name = profile_name
        self.tz = tz
        self._today = today
        self.repository = WorklogRepository(session)
        self.stats = CacheStats()

    def today(self) -> date:
        if self._today is None:
            return datetime.now(self.tz).date()
        if callable(self._today):
            return self._today()
        return self._today

    def key(
        self,
        entry_date: date,
        branch_id: str,
        entry_type: Union[EntryType, str],
        group_by: Union[GroupBy, str],
    ) -> WorklogKey:
        return WorklogKey(
            codebase_id=self.codebase_id,
            profile_name=self.profile_name,
            entry_date=entry_date,
            branch_id=branch_id or "",
            entry_type=EntryType(entry_type).value,
            group_by=GroupBy(group_by).value,
        )

    def get_cached_or_generate(
        self,
        entry_date: date,
        branch_id: str,
        branch_name: str,
        entry_type: Union[EntryType, str],
        group_by: Union[GroupBy, str],
        commits: Sequence[WorklogCommit],
        generator: Generator,
        determinants: Iterable[object] = (),
    ) -> CacheResult:
        """
        Return cached content for the entry, or generate and store it.

        The current day is always regenerated, but the result is still
        written so that it can be reused once the day is over.

        Args:
            entry_date: Day, week start or month start of the entry
            branch_id: Branch UUID as text, empty for non-branch entries
            branch_name: Branch name stored alongside the entry
            entry_type: Kind of entry
            group_by: Rendering mode
            commits: Every commit contributing to the entry
            generator: Produces the content on a miss
            determinants: Other inputs that affect the content

        Returns:
            CacheResult with the content and whether it came from the cache

        Raises:
            Whatever ``generator`` raises; nothing is stored in that case
        """
        key = self.key(entry_date, branch_id, entry_type, group_by)
        signature = compute_signature((c.hash for c in commits), *determinants)

        if entry_date != self.today():
            cached = self._read(key)
            if cached is not None and cached.signature == signature:
                self.stats.hits += 1
                logger.debug(f"Worklog cache hit: {key.entry_type} {entry_date}")
                return CacheResult(content=cached.content, was_cached=True)

        self.stats.misses += 1
        content = generator()
        self._write(key, content, signature, branch_name, commits)
        return CacheResult(content=content, was_cached=False)

    def _read(self, key: WorklogKey):
        try:
            with self.session.begin_nested():
                return self.repository.get_entry(key)
        except SQLAlchemyError as e:
            logger.warning(
                f"Worklog cache read failed for {key.entry_type} "
                f"{key.entry_date}, regenerating: {e}"
            )
            return None

    def _write(
        self,
        key: WorklogKey,
        content: str,
        signature: str,
        branch_name: str,
        commits: Sequence[WorklogCommit],
    ) -> Optional[str]:
        unique = {c.hash: c for c in commits}.values()
        try:
            with self.session.begin_nested():
                self.repository.upsert_entry(
                    key,
                    content=content,
                    signature=signature,
                    branch_name=branch_name,
                    commit_count=len(unique),
                    additions=sum(c.additions for c in unique),
                    deletions=sum(c.deletions for c in unique),
                )
        except SQLAlchemyError as e:
            self.stats.write_failures += 1
            logger.warning(
                f"Worklog cache write failed for {key.entry_type} "
                f"{key.entry_date}: {e}"
            )
            return None
        self.stats.writes += 1
        return signature
