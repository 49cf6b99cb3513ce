"""Incremental git ingestion: branch selection, identity matching, engine."""

from devlog.ingestion.branch_selector import (
    BranchPrompter,
    ConsolePrompter,
    SavedSelectionAction,
    resolve_branch_selection,
)
from devlog.ingestion.engine import (
    BranchIngestResult,
    IngestionEngine,
    IngestionSummary,
)
from devlog.ingestion.identity import extract_github_username, is_user_commit
from devlog.ingestion.selection_store import BranchSelection, SelectionStore

__all__ = [
    "BranchIngestResult",
    "BranchPrompter",
    "BranchSelection",
    "ConsolePrompter",
    "IngestionEngine",
    "IngestionSummary",
    "SavedSelectionAction",
    "SelectionStore",
    "extract_github_username",
    "is_user_commit",
    "resolve_branch_selection",
]
