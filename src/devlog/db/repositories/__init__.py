"""
Repository layer for database operations.

Provides a clean API for CRUD operations on database models.
"""

from devlog.db.repositories.base import BaseRepository
from devlog.db.repositories.branch import BranchRepository
from devlog.db.repositories.codebase import CodebaseRepository
from devlog.db.repositories.commit import CommitRepository
from devlog.db.repositories.cursor import CursorRepository
from devlog.db.repositories.developer import DeveloperRepository
from devlog.db.repositories.worklog import WorklogKey, WorklogRepository

__all__ = [
    "BaseRepository",
    "BranchRepository",
    "CodebaseRepository",
    "CommitRepository",
    "CursorRepository",
    "DeveloperRepository",
    "WorklogKey",
    "WorklogRepository",
]
