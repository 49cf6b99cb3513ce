"""Data models for devlog."""

from devlog.models.db import (
    Base,
    Branch,
    BranchStatus,
    Codebase,
    Commit,
    Developer,
    EntryType,
    FileChange,
    GroupBy,
    IngestCursor,
    WorklogEntry,
)
from devlog.models.git import (
    BranchInfo,
    ChangeType,
    CommitInfo,
    CommitStats,
    FileChangeInfo,
)

__all__ = [
    "Base",
    "Branch",
    "BranchInfo",
    "BranchStatus",
    "ChangeType",
    "Codebase",
    "Commit",
    "CommitInfo",
    "CommitStats",
    "Developer",
    "EntryType",
    "FileChange",
    "FileChangeInfo",
    "GroupBy",
    "IngestCursor",
    "WorklogEntry",
]
