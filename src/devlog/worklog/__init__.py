"""Worklog generation backed by a signature-keyed cache."""

from devlog.worklog.assembler import WorklogAssembler
from devlog.worklog.cache import CacheResult, CacheStats, WorklogCache
from devlog.worklog.grouping import (
    BranchGroup,
    DayGroup,
    WorklogCommit,
    group_by_branch,
    group_by_date,
    load_worklog_commits,
    month_start,
    resolve_timezone,
    rollup_span,
    split_by_branch,
    week_start,
)
from devlog.worklog.signature import compute_signature

__all__ = [
    "BranchGroup",
    "CacheResult",
    "CacheStats",
    "DayGroup",
    "WorklogAssembler",
    "WorklogCache",
    "WorklogCommit",
    "compute_signature",
    "group_by_branch",
    "group_by_date",
    "load_worklog_commits",
    "month_start",
    "resolve_timezone",
    "rollup_span",
    "split_by_branch",
    "week_start",
]
