"""
Grouping of ingested commits by calendar day and branch.

Days are computed in the profile's timezone; weeks start on Monday.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Iterable, Optional, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.orm import Session

from devlog.db.repositories import CommitRepository
from devlog.models.db import Commit

logger = logging.getLogger(__name__)


def resolve_timezone(name: str) -> tzinfo:
    """IANA zone for ``name``; unknown names fall back to UTC."""
    if not name or name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {name!r}, using UTC")
        return timezone.utc


@dataclass
class WorklogCommit:
    """A stored commit as seen by the worklog."""

    hash: str
    message: str
    committed_at: datetime
    additions: int = 0
    deletions: int = 0
    summary: str = ""
    branch_id: str = ""
    branch_name: str = ""
    file_paths: list[str] = field(default_factory=list)

    @classmethod
    def from_model(cls, commit: Commit) -> "WorklogCommit":
        return cls(
            hash=commit.hash,
            message=commit.message,
            committed_at=commit.committed_at,
            additions=commit.stats.additions,
            deletions=commit.stats.deletions,
            summary=commit.summary or "",
            branch_id=str(commit.branch_id) if commit.branch_id else "",
            branch_name=commit.branch.name if commit.branch else "",
            file_paths=[fc.file_path for fc in commit.file_changes],
        )

    @property
    def short_hash(self) -> str:
        return self.hash[:7]

    @property
    def subject(self) -> str:
        lines = self.message.strip().splitlines()
        return lines[0] if lines else ""

    def local_time(self, tz: tzinfo) -> datetime:
        return self.committed_at.astimezone(tz)

    def local_date(self, tz: tzinfo) -> date:
        return self.local_time(tz).date()


@dataclass
class CommitGroup:
    """Commits sharing a day or a branch."""

    commits: list[WorklogCommit] = field(default_factory=list)

    @property
    def additions(self) -> int:
        return sum(c.additions for c in self.commits)

    @property
    def deletions(self) -> int:
        return sum(c.deletions for c in self.commits)


@dataclass
class DayGroup(CommitGroup):
    day: date = date.min


@dataclass
class BranchGroup(CommitGroup):
    branch_id: str = ""
    branch_name: str = ""


def day_bounds(start: date, end: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """UTC instants covering local days ``start`` through ``end`` inclusive."""
    lower = datetime.combine(start, time.min, tzinfo=tz)
    upper = datetime.combine(end + timedelta(days=1), time.min, tzinfo=tz)
    return lower.astimezone(timezone.utc), upper.astimezone(timezone.utc)


def load_worklog_commits(
    session: Session,
    codebase_id: uuid.UUID,
    start: date,
    end: date,
    tz: tzinfo = timezone.utc,
    only_user: bool = True,
    branch_id: Optional[uuid.UUID] = None,
) -> list[WorklogCommit]:
    """
    Load stored commits for local days ``start`` through ``end``.

    Args:
        session: Database session
        codebase_id: Codebase UUID
        start: First local day (inclusive)
        end: Last local day (inclusive)
        tz: Profile timezone
        only_user: Only commits authored by the local user
        branch_id: Restrict to one branch

    Returns:
        Commits newest first
    """
    lower, upper = day_bounds(start, end, tz)
    rows = CommitRepository(session).list_in_range(
        codebase_id, lower, upper, only_user=only_user, branch_id=branch_id
    )
    return [WorklogCommit.from_model(row) for row in rows]


def _newest_first(commits: Iterable[WorklogCommit]) -> list[WorklogCommit]:
    return sorted(commits, key=lambda c: (c.committed_at, c.hash), reverse=True)


def group_by_date(commits: Sequence[WorklogCommit], tz: tzinfo) -> list[DayGroup]:
    """Group by local day, newest day first, commits newest first."""
    days: dict[date, DayGroup] = {}
    for commit in _newest_first(commits):
        day = commit.local_date(tz)
        days.setdefault(day, DayGroup(day=day)).commits.append(commit)
    return [days[d] for d in sorted(days, reverse=True)]


def group_by_branch(commits: Sequence[WorklogCommit]) -> list[BranchGroup]:
    """Group by branch, most recently active branch first."""
    groups: dict[str, BranchGroup] = {}
    for commit in _newest_first(commits):
        group = groups.get(commit.branch_id)
        if group is None:
            group = BranchGroup(
                branch_id=commit.branch_id, branch_name=commit.branch_name
            )
            groups[commit.branch_id] = group
        group.commits.append(commit)
    return list(groups.values())


def week_start(day: date) -> date:
    """Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def month_start(day: date) -> date:
    return day.replace(day=1)


def month_end(day: date) -> date:
    following = (day.replace(day=28) + timedelta(days=4)).replace(day=1)
    return following - timedelta(days=1)


def rollup_span(start: date, end: date) -> tuple[date, date]:
    """
    Local days whose commits feed the rollups of a ``start``..``end`` worklog.

    Covers every calendar month the window touches, widened to whole weeks
    so that a week straddling a month boundary is complete.
    """
    first = week_start(month_start(start))
    last = week_start(month_end(end)) + timedelta(days=6)
    return first, last


def format_long_date(day: date) -> str:
    """e.g. ``Monday, January 2, 2006``."""
    return f"{day:%A}, {day:%B} {day.day}, {day.year}"


def format_short_date(day: date) -> str:
    """e.g. ``Jan 2``."""
    return f"{day:%b} {day.day}"


def split_by_branch(commits: Sequence[WorklogCommit]) -> list[BranchGroup]:
    """
    Split one day's commits into per-branch sections.

    Sections are ordered by branch name; commits without a branch come last.
    """
    groups = group_by_branch(commits)
    return sorted(groups, key=lambda g: (not g.branch_id, g.branch_name))


SUBJECT_MAX_CHARS = 80


def format_commit_line(
    commit: WorklogCommit, tz: tzinfo, show_branch: bool = False
) -> str:
    """
    Render one commit as a markdown list item.

    The stored summary, when present, follows as a quoted line.
    """
    subject = commit.subject
    if len(subject) > SUBJECT_MAX_CHARS:
        subject = subject[: SUBJECT_MAX_CHARS - 3] + "..."
    line = (
        f"- **{commit.local_time(tz):%H:%M}** `{commit.short_hash}` {subject}"
        f" (+{commit.additions}/-{commit.deletions})"
    )
    if show_branch and commit.branch_name:
        line += f" [{commit.branch_name}]"
    if commit.summary:
        line += f"\n  > {commit.summary.strip()}"
    return line


def render_commit_list(
    commits: Sequence[WorklogCommit], tz: tzinfo, show_branch: bool = False
) -> str:
    return "\n".join(format_commit_line(c, tz, show_branch) for c in commits)


def count_label(count: int, noun: str = "commit") -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def format_stats_line(group: CommitGroup) -> str:
    """e.g. ``**3 commits** | +120 / -40 lines``."""
    return (
        f"**{count_label(len(group.commits))}** | "
        f"+{group.additions} / -{group.deletions} lines"
    )
