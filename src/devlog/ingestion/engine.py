"""
Incremental git ingestion.

Walks each selected branch newest first, persists commits that are not yet
stored, and advances a per-branch cursor once the branch is done so the next
run only looks at new history.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Sequence

from git.exc import GitCommandError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from devlog.db.repositories import (
    BranchRepository,
    CodebaseRepository,
    CommitRepository,
    CursorRepository,
    DeveloperRepository,
)
from devlog.exceptions import (
    DiffComputationError,
    FatalBranchError,
    LLMError,
    SummaryGenerationError,
    short_hash,
)
from devlog.git.repository import GitRepository
from devlog.git.walker import (
    DEFAULT_PATCH_MAX_CHARS,
    CommitWalker,
    ProgressCallback,
    list_commits,
)
from devlog.ingestion.identity import is_user_commit
from devlog.ingestion.selection_store import BranchSelection
from devlog.ingestion.summaries import CommitSummarizer, file_change_info
from devlog.llm.base import LanguageModelClient
from devlog.models.db import Branch, Codebase, Commit, Developer, FileChange
from devlog.models.git import CommitInfo

logger = logging.getLogger(__name__)


@dataclass
class BranchIngestResult:
    """Outcome of ingesting one branch."""

    branch: str
    commits_ingested: int = 0
    file_changes_ingested: int = 0
    commits_failed: int = 0
    cursor: Optional[str] = None


@dataclass
class IngestionSummary:
    """Outcome of ingesting a whole selection."""

    branches: list[BranchIngestResult] = field(default_factory=list)
    failed_branches: dict[str, str] = field(default_factory=dict)

    @property
    def commits_ingested(self) -> int:
        return sum(b.commits_ingested for b in self.branches)

    @property
    def file_changes_ingested(self) -> int:
        return sum(b.file_changes_ingested for b in self.branches)


def next_cursor(
    walked: Sequence[str], failed: set[str], current: Optional[str]
) -> Optional[str]:
    """
    Pick the cursor candidate after a branch walk.

    ``walked`` is newest first. With no failures this is the newest hash;
    otherwise the newest hash older than every failed commit, so a failed
    commit is revisited on the next run. Returns ``current`` when there is
    no candidate.
    """
    if not walked:
        return current
    if not failed:
        return walked[0]
    oldest_failure = max(i for i, h in enumerate(walked) if h in failed)
    if oldest_failure + 1 < len(walked):
        return walked[oldest_failure + 1]
    return current


class IngestionEngine:
    """Ingests git history for one repository into the store."""

    def __init__(
        self,
        session: Session,
        repo: GitRepository,
        llm_client: Optional[LanguageModelClient] = None,
        summaries_enabled: bool = True,
        workers: int = 0,
        patch_max_chars: int = DEFAULT_PATCH_MAX_CHARS,
        commit_summary_timeout: float = 30,
        project_context: str = "",
        on_progress: Optional[ProgressCallback] = None,
        commit_per_branch: bool = False,
    ):
        self.session = session
        self.commit_per_branch = commit_per_branch
        self.repo = repo
        self.workers = workers
        self.patch_max_chars = patch_max_chars
        self.on_progress = on_progress

        self.summarizer: Optional[CommitSummarizer] = None
        if summaries_enabled and llm_client is not None:
            self.summarizer = CommitSummarizer(
                llm_client,
                timeout=commit_summary_timeout,
                project_context=project_context,
            )

        self.codebases = CodebaseRepository(session)
        self.branches = BranchRepository(session)
        self.commits = CommitRepository(session)
        self.cursors = CursorRepository(session)
        self.developers = DeveloperRepository(session)

    def ensure_codebase(self) -> Codebase:
        """Get or register the codebase for this repository."""
        return self.codebases.get_or_create(
            path=self.repo.path,
            name=self.repo.name,
            default_branch=self.repo.detect_default_branch(),
        )

    def register_current_user(self, email: str, name: str = "") -> Developer:
        return self.developers.set_current_user(email, name)

    def set_default_branch(self, codebase: Codebase, name: str) -> Branch:
        """Make ``name`` the codebase's only default branch."""
        return self.branches.set_default(codebase, name)

    def ingest(
        self,
        codebase: Codebase,
        selection: BranchSelection,
        since: Optional[datetime] = None,
        user_email: Optional[str] = None,
        github_username: Optional[str] = None,
    ) -> IngestionSummary:
        """
        Ingest the main branch, then every other selected branch.

        A branch-level failure is recorded and the remaining branches still
        run. Run-level failures propagate.

        Returns:
            IngestionSummary with per-branch results and failures
        """
        selection = selection.normalized()
        main = selection.main_branch
        if codebase.default_branch != main or self.branches.get_default(
            codebase.id
        ) is None:
            self.set_default_branch(codebase, main)

        summary = IngestionSummary()
        for name in selection.selected_branches:
            base = "" if name == main else main
            try:
                result = self.ingest_branch(
                    codebase,
                    name,
                    base_branch=base,
                    since=since,
                    user_email=user_email,
                    github_username=github_username,
                )
            except FatalBranchError as e:
                logger.warning(f"Skipping branch {name}: {e}")
                summary.failed_branches[name] = str(e)
            else:
                summary.branches.append(result)
            if self.commit_per_branch:
                self.session.commit()

        self.codebases.mark_indexed(codebase)
        return summary

    def ingest_branch(
        self,
        codebase: Codebase,
        branch_name: str,
        base_branch: str = "",
        since: Optional[datetime] = None,
        user_email: Optional[str] = None,
        github_username: Optional[str] = None,
    ) -> BranchIngestResult:
        """
        Ingest new commits of a single branch.

        The default branch (empty ``base_branch``) is walked in full down to
        the cursor or ``since``. Any other branch only contributes commits
        not reachable from ``base_branch``.

        Args:
            codebase: Owning codebase
            branch_name: Branch to ingest
            base_branch: Authoritative branch, empty for the default branch
            since: Stop once author dates precede this instant
            user_email: Local user's email for ``is_user_commit``
            github_username: Local user's GitHub handle

        Returns:
            BranchIngestResult with counts and the stored cursor

        Raises:
            BranchNotFoundError: If the branch head cannot be resolved
            DiffComputationError: If a commit diff cannot be computed
            SummaryGenerationError: If a requested commit summary fails
        """
        if since is not None and since.tzinfo is None:
            since = since.replace(tzinfo=timezone.utc)

        is_default = not base_branch or base_branch == branch_name
        head = self.repo.branch_head(branch_name)
        branch = self.branches.get_or_create(
            codebase.id,
            branch_name,
            is_default=False,
            base_branch="" if is_default else base_branch,
        )
        cursor = self.cursors.get_hash(codebase.id, branch_name)

        exclude: list[str] = []
        if not is_default:
            exclude = self.repo.unique_commit_exclusions(branch_name, base_branch) or []

        walked = list_commits(
            self.repo, head, stop_hash=cursor, since=since, exclude=exclude
        )
        existing = self.commits.existing_hashes(codebase.id, walked)
        pending = [h for h in walked if h not in existing]
        logger.info(
            f"Branch {branch_name}: {len(walked)} commits since cursor, "
            f"{len(pending)} new"
        )

        result = BranchIngestResult(branch=branch_name, cursor=cursor)
        failed: set[str] = set()
        walker = CommitWalker(
            self.repo.path,
            workers=self.workers,
            patch_max_chars=self.patch_max_chars,
            on_progress=self.on_progress,
        )
        infos = walker.walk(pending)
        try:
            for info in infos:
                stored = self._persist_commit(
                    codebase, branch, info, is_default, user_email, github_username
                )
                if stored is None:
                    failed.add(info.hash)
                    result.commits_failed += 1
                    continue
                result.commits_ingested += 1
                result.file_changes_ingested += stored
        except DiffComputationError as e:
            raise DiffComputationError(e.commit_hash, e.cause, branch_name) from e
        finally:
            infos.close()

        self._refresh_branch(codebase, branch, is_default, base_branch)
        result.cursor = self._advance_cursor(
            codebase, branch_name, next_cursor(walked, failed, cursor), cursor
        )
        return result

    def _persist_commit(
        self,
        codebase: Codebase,
        branch: Branch,
        info: CommitInfo,
        is_default: bool,
        user_email: Optional[str],
        github_username: Optional[str],
    ) -> Optional[int]:
        """Store one commit; returns the stored file-change count or None."""
        user_commit = is_user_commit(info.author_email, user_email, github_username)

        summary = None
        if self.summarizer is not None and user_commit and info.file_changes:
            try:
                summary = self.summarizer.summarize(info.message, info.file_changes)
            except LLMError as e:
                raise SummaryGenerationError(info.hash, e) from e

        try:
            with self.session.begin_nested():
                self.developers.upsert(info.author_email, info.author_name)
                commit = Commit(
                    codebase_id=codebase.id,
                    branch_id=branch.id,
                    hash=info.hash,
                    author_email=info.author_email,
                    author_name=info.author_name,
                    message=info.message.strip(),
                    summary=summary,
                    committed_at=info.committed_at,
                    stats=info.stats,
                    is_user_commit=user_commit,
                    is_on_default_branch=is_default,
                    parent_count=info.parent_count,
                )
                self.session.add(commit)
                self.session.flush()
        except SQLAlchemyError as e:
            logger.warning(f"Skipping commit {short_hash(info.hash)}: {e}")
            return None

        stored = 0
        for fc in info.file_changes:
            try:
                with self.session.begin_nested():
                    self.session.add(
                        FileChange(
                            commit_id=commit.id,
                            file_path=fc.path,
                            old_path=fc.old_path,
                            change_type=fc.change_type.value,
                            additions=fc.additions,
                            deletions=fc.deletions,
                            patch=fc.patch or None,
                        )
                    )
                    self.session.flush()
                stored += 1
            except SQLAlchemyError as e:
                logger.warning(
                    f"Skipping file change {fc.path} of commit "
                    f"{short_hash(info.hash)}: {e}"
                )
        return stored

    def _refresh_branch(
        self, codebase: Codebase, branch: Branch, is_default: bool, base_branch: str
    ) -> None:
        if is_default:
            self.branches.set_default(codebase, branch.name)
        else:
            branch.is_default = False
            branch.base_branch = base_branch

        oldest, newest = self.commits.get_branch_bounds(branch.id)
        branch.commit_count = self.commits.count_by_branch(branch.id)
        branch.first_commit_hash = oldest.hash if oldest else None
        branch.last_commit_hash = newest.hash if newest else None
        branch.status = self.repo.detect_branch_status(
            branch.name, codebase.default_branch
        ).value
        branch.updated_at = datetime.now(timezone.utc)
        self.session.flush()

    def _advance_cursor(
        self,
        codebase: Codebase,
        branch_name: str,
        candidate: Optional[str],
        current: Optional[str],
    ) -> Optional[str]:
        """Store ``candidate`` only if it descends from ``current``."""
        if candidate is None or candidate == current:
            return current

        if current is not None:
            try:
                descends = self.repo.is_ancestor(current, candidate)
            except GitCommandError as e:
                logger.warning(
                    f"Cursor {short_hash(current)} on {branch_name} is no longer "
                    f"readable, replacing it: {e}"
                )
                descends = True
            if not descends:
                logger.warning(
                    f"Not moving cursor on {branch_name}: {short_hash(candidate)} "
                    f"does not descend from {short_hash(current)}"
                )
                return current

        self.cursors.set_hash(codebase.id, branch_name, candidate)
        return candidate

    def fill_missing_summaries(
        self, codebase: Codebase, limit: Optional[int] = None
    ) -> int:
        """
        Backfill summaries for user commits stored without one.

        Failures are logged per commit and skipped.

        Returns:
            Number of summaries written
        """
        if self.summarizer is None:
            return 0

        filled = 0
        for commit in self.commits.find_missing_summaries(codebase.id, limit=limit):
            changes = [file_change_info(fc) for fc in commit.file_changes]
            try:
                summary = self.summarizer.summarize(commit.message, changes)
            except LLMError as e:
                logger.warning(
                    f"Failed to summarize commit {short_hash(commit.hash)}: {e}"
                )
                continue
            if summary:
                self.commits.update_summary(commit, summary)
                filled += 1
        return filled
