"""
Branch selection.

Resolves which branch is authoritative and which branches to ingest, in order
of precedence: an explicit list, "all branches", a saved selection offered
back to the user, and finally interactive selection.
"""

import enum
import logging
from pathlib import Path
from typing import Optional, Protocol, Sequence

from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from devlog.exceptions import BranchSelectionError
from devlog.ingestion.selection_store import BranchSelection, SelectionStore
from devlog.models.git import BranchInfo

logger = logging.getLogger(__name__)


class SavedSelectionAction(str, enum.Enum):
    """What to do with a saved selection."""

    KEEP = "keep"
    MODIFY = "modify"
    RESELECT = "reselect"


class BranchPrompter(Protocol):
    """Interactive collaborator used when no explicit choice was given."""

    def choose_saved_action(self, saved: BranchSelection) -> SavedSelectionAction: ...

    def select_branches(
        self,
        branches: Sequence[BranchInfo],
        default_main: str,
        preselected: Optional[Sequence[str]] = None,
    ) -> BranchSelection: ...


def filter_saved_selection(
    saved: Optional[BranchSelection], existing: set[str]
) -> Optional[BranchSelection]:
    """
    Drop branches that no longer exist from a saved selection.

    Returns:
        The filtered selection, or None if nothing was saved or the saved
        main branch is gone (the selection is stale)
    """
    if saved is None:
        return None
    if saved.main_branch not in existing:
        logger.info(
            f"Saved main branch {saved.main_branch!r} no longer exists, "
            f"a fresh selection is required"
        )
        return None

    kept = [name for name in saved.selected_branches if name in existing]
    dropped = [name for name in saved.selected_branches if name not in existing]
    if dropped:
        logger.info(f"Dropping deleted branches from saved selection: {dropped}")
    return BranchSelection(
        main_branch=saved.main_branch, selected_branches=kept
    ).normalized()


def resolve_branch_selection(
    branches: Sequence[BranchInfo],
    detected_default: str,
    explicit: Optional[Sequence[str]] = None,
    all_branches: bool = False,
    store: Optional[SelectionStore] = None,
    repo_path: Optional[str | Path] = None,
    prompter: Optional[BranchPrompter] = None,
) -> BranchSelection:
    """
    Resolve the authoritative branch and the set of branches to ingest.

    Args:
        branches: Local branches of the repository
        detected_default: Default branch detected or recorded for the codebase
        explicit: Exact branch list; the first entry is the main branch
        all_branches: Ingest every branch, default auto-detected
        store: Saved selections (read and written)
        repo_path: Repository path the selection is saved under
        prompter: Interactive collaborator; without one a saved selection is
            kept as-is

    Returns:
        The accepted BranchSelection (main branch always selected)

    Raises:
        BranchSelectionError: If a fresh selection is needed but no prompter
            is available
    """
    existing = {b.name for b in branches}

    if explicit:
        selection = BranchSelection(
            main_branch=explicit[0], selected_branches=list(explicit)
        )
    elif all_branches:
        main = next((b.name for b in branches if b.is_default), detected_default)
        selection = BranchSelection(
            main_branch=main, selected_branches=[b.name for b in branches]
        )
    else:
        saved = None
        if store is not None and repo_path is not None:
            saved = filter_saved_selection(store.get(repo_path), existing)

        if saved is not None:
            action = (
                prompter.choose_saved_action(saved)
                if prompter is not None
                else SavedSelectionAction.KEEP
            )
            if action == SavedSelectionAction.KEEP:
                selection = saved
            elif action == SavedSelectionAction.MODIFY:
                selection = prompter.select_branches(
                    branches, saved.main_branch, saved.selected_branches
                )
            else:
                selection = prompter.select_branches(branches, detected_default)
        else:
            if prompter is None:
                raise BranchSelectionError(
                    "no saved branch selection; pass branches explicitly "
                    "or select all branches",
                    operation="select branches",
                )
            selection = prompter.select_branches(branches, detected_default)

    selection = selection.normalized()
    if store is not None and repo_path is not None:
        store.save(repo_path, selection)
    return selection


class ConsolePrompter:
    """Terminal prompts built on rich."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def choose_saved_action(self, saved: BranchSelection) -> SavedSelectionAction:
        self.console.print(
            f"[bold]Saved selection:[/bold] main=[cyan]{saved.main_branch}[/cyan], "
            f"branches={', '.join(saved.selected_branches)}"
        )
        answer = Prompt.ask(
            "Keep, modify or reselect?",
            choices=[a.value for a in SavedSelectionAction],
            default=SavedSelectionAction.KEEP.value,
            console=self.console,
        )
        return SavedSelectionAction(answer)

    def select_branches(
        self,
        branches: Sequence[BranchInfo],
        default_main: str,
        preselected: Optional[Sequence[str]] = None,
    ) -> BranchSelection:
        table = Table(title="Branches")
        table.add_column("#", justify="right")
        table.add_column("Branch")
        table.add_column("Head")
        for index, branch in enumerate(branches, start=1):
            label = f"{branch.name} (default)" if branch.is_default else branch.name
            table.add_row(str(index), label, branch.head_hash[:7])
        self.console.print(table)

        names = [b.name for b in branches]
        main = Prompt.ask(
            "Main branch",
            choices=names,
            default=default_main if default_main in names else names[0],
            console=self.console,
        )

        default_numbers = ",".join(
            str(names.index(n) + 1) for n in (preselected or []) if n in names
        )
        raw = Prompt.ask(
            "Other branches to ingest (comma-separated numbers, 'all' or empty)",
            default=default_numbers,
            console=self.console,
        )
        selected = [main]
        if raw.strip().lower() == "all":
            selected.extend(names)
        else:
            for token in raw.split(","):
                token = token.strip()
                if token.isdigit() and 1 <= int(token) <= len(names):
                    selected.append(names[int(token) - 1])
        return BranchSelection(
            main_branch=main, selected_branches=selected
        ).normalized()
