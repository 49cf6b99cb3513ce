"""Git access: repository handle and history walker."""

from devlog.git.repository import GitRepository
from devlog.git.walker import (
    CommitWalker,
    count_patch_lines,
    list_commits,
    process_commit,
    truncate_patch,
    walk_commits,
)

__all__ = [
    "CommitWalker",
    "GitRepository",
    "count_patch_lines",
    "list_commits",
    "process_commit",
    "truncate_patch",
    "walk_commits",
]
