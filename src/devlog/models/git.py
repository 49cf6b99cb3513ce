"""
Plain data structures produced by the git layer.

These are independent of the database and carry exactly what the history
walker computed for a commit.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


class ChangeType(str, enum.Enum):
    """How a file changed relative to the first parent."""

    ADD = "add"
    MODIFY = "modify"
    DELETE = "delete"
    RENAME = "rename"


@dataclass(frozen=True)
class CommitStats:
    """Aggregate line statistics for a commit."""

    additions: int = 0
    deletions: int = 0
    files_changed: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "additions": self.additions,
            "deletions": self.deletions,
            "files_changed": self.files_changed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "CommitStats":
        if not data:
            return cls()
        return cls(
            additions=int(data.get("additions", 0) or 0),
            deletions=int(data.get("deletions", 0) or 0),
            files_changed=int(data.get("files_changed", 0) or 0),
        )


@dataclass
class FileChangeInfo:
    """A single file touched by a commit."""

    path: str
    change_type: ChangeType
    additions: int = 0
    deletions: int = 0
    patch: str = ""
    old_path: str | None = None


@dataclass
class CommitInfo:
    """A fully materialized commit with its per-file diff against the first parent."""

    hash: str
    author_name: str
    author_email: str
    message: str
    committed_at: datetime
    parent_hashes: list[str] = field(default_factory=list)
    file_changes: list[FileChangeInfo] = field(default_factory=list)

    @property
    def short_hash(self) -> str:
        return self.hash[:7]

    @property
    def parent_count(self) -> int:
        return len(self.parent_hashes)

    @property
    def stats(self) -> CommitStats:
        return CommitStats(
            additions=sum(fc.additions for fc in self.file_changes),
            deletions=sum(fc.deletions for fc in self.file_changes),
            files_changed=len(self.file_changes),
        )


@dataclass
class BranchInfo:
    """A local branch ref."""

    name: str
    head_hash: str
    is_default: bool = False
