"""
History walker.

Enumerates commits newest first within cursor and date bounds, and computes
per-file diffs against each commit's first parent on a bounded thread pool.
"""

import logging
import os
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import Callable, Iterator, Optional, Sequence

from git import Repo
from git.diff import Diff

from devlog.exceptions import DiffComputationError
from devlog.git.repository import GitRepository
from devlog.models.git import ChangeType, CommitInfo, FileChangeInfo

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n... (truncated)"
DEFAULT_PATCH_MAX_CHARS = 10_000

ProgressCallback = Callable[[int, int], None]


def list_commits(
    repo: GitRepository,
    start: str,
    stop_hash: Optional[str] = None,
    since: Optional[datetime] = None,
    exclude: Sequence[str] = (),
) -> list[str]:
    """
    List ancestor hashes of ``start`` in reverse-chronological order.

    The walk ends at ``stop_hash`` (which is not included) or at the first
    commit whose author date precedes ``since``, whichever comes first.

    Args:
        repo: Repository handle
        start: Revision to walk from
        stop_hash: Already-ingested cursor hash
        since: Minimum author date (aware datetime)
        exclude: Revisions whose ancestry is left out

    Returns:
        Commit hashes, newest first
    """
    hashes: list[str] = []
    for commit in repo.iter_log(start, exclude=exclude):
        if stop_hash and commit.hexsha == stop_hash:
            break
        if since is not None and commit.authored_datetime < since:
            break
        hashes.append(commit.hexsha)
    return hashes


def count_patch_lines(patch: str) -> tuple[int, int]:
    """
    Count added and deleted lines in unified-diff text.

    Only lines inside ``@@`` hunks are counted, so ``---``/``+++`` file
    headers never contribute.

    Returns:
        (additions, deletions)
    """
    additions = 0
    deletions = 0
    in_hunk = False
    for line in patch.splitlines():
        if line.startswith("@@"):
            in_hunk = True
            continue
        if line.startswith("diff --git"):
            in_hunk = False
            continue
        if not in_hunk:
            continue
        if line.startswith("+"):
            additions += 1
        elif line.startswith("-"):
            deletions += 1
    return additions, deletions


def truncate_patch(patch: str, limit: int = DEFAULT_PATCH_MAX_CHARS) -> str:
    """Cap ``patch`` at ``limit`` characters, marker included."""
    if len(patch) <= limit:
        return patch
    keep = max(limit - len(TRUNCATION_MARKER), 0)
    return patch[:keep] + TRUNCATION_MARKER


def _change_type(diff: Diff) -> ChangeType:
    if diff.new_file or diff.a_path is None:
        return ChangeType.ADD
    if diff.deleted_file or diff.b_path is None:
        return ChangeType.DELETE
    if diff.renamed_file or diff.a_path != diff.b_path:
        return ChangeType.RENAME
    return ChangeType.MODIFY


def _file_change(diff: Diff, patch_max_chars: int) -> FileChangeInfo:
    raw = diff.diff
    if isinstance(raw, bytes):
        body = raw.decode("utf-8", errors="replace")
    else:
        body = raw or ""

    change_type = _change_type(diff)
    path = diff.b_path or diff.a_path or ""
    old_path = diff.a_path if change_type == ChangeType.RENAME else None
    header = f"--- {diff.a_path or '/dev/null'}\n+++ {diff.b_path or '/dev/null'}\n"
    patch = header + body if body else ""
    additions, deletions = count_patch_lines(patch)

    return FileChangeInfo(
        path=path,
        change_type=change_type,
        additions=additions,
        deletions=deletions,
        patch=truncate_patch(patch, patch_max_chars),
        old_path=old_path,
    )


def process_commit(
    repo: Repo, commit_hash: str, patch_max_chars: int = DEFAULT_PATCH_MAX_CHARS
) -> CommitInfo:
    """
    Materialize one commit and diff it against its first parent.

    A root commit has no parent and yields no file changes.

    Args:
        repo: GitPython repository (not shared across threads)
        commit_hash: Commit to process
        patch_max_chars: Per-file patch excerpt budget

    Returns:
        CommitInfo with per-file changes
    """
    commit = repo.commit(commit_hash)
    info = CommitInfo(
        hash=commit.hexsha,
        author_name=commit.author.name or "",
        author_email=commit.author.email or "",
        message=commit.message if isinstance(commit.message, str) else "",
        committed_at=commit.authored_datetime.astimezone(timezone.utc),
        parent_hashes=[p.hexsha for p in commit.parents],
    )

    if not commit.parents:
        return info

    diffs = commit.parents[0].diff(commit, create_patch=True)
    info.file_changes = [_file_change(d, patch_max_chars) for d in diffs]
    return info


class CommitWalker:
    """
    Computes commit diffs on a bounded pool of worker threads.

    Every worker thread lazily opens its own ``Repo`` handle. Completed
    records are handed to the single consumer in the order they finish, and
    no more than twice the worker count are outstanding at any time.
    """

    def __init__(
        self,
        repo_path: str,
        workers: int = 0,
        patch_max_chars: int = DEFAULT_PATCH_MAX_CHARS,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.repo_path = repo_path
        self.workers = workers if workers > 0 else (os.cpu_count() or 1)
        self.max_in_flight = 2 * self.workers
        self.peak_in_flight = 0
        self.patch_max_chars = patch_max_chars
        self.on_progress = on_progress

        self._local = threading.local()
        self._repos: list[Repo] = []
        self._lock = threading.Lock()
        self._processed = 0
        self._total = 0

    def _thread_repo(self) -> Repo:
        repo = getattr(self._local, "repo", None)
        if repo is None:
            repo = Repo(self.repo_path)
            self._local.repo = repo
            with self._lock:
                self._repos.append(repo)
        return repo

    def _process(self, commit_hash: str) -> CommitInfo:
        info = process_commit(self._thread_repo(), commit_hash, self.patch_max_chars)
        with self._lock:
            self._processed += 1
            if self.on_progress is not None:
                self.on_progress(self._processed, self._total)
        return info

    def walk(self, hashes: Sequence[str]) -> Iterator[CommitInfo]:
        """
        Yield a CommitInfo for every hash, in completion order.

        At most ``max_in_flight`` commits are queued or held at once; the
        next hash is submitted only as a finished one is handed over.

        Raises:
            DiffComputationError: If a worker fails to diff a commit
        """
        self._processed = 0
        self._total = len(hashes)
        self.peak_in_flight = 0
        if not hashes:
            return

        queue = iter(hashes)
        executor = ThreadPoolExecutor(
            max_workers=min(self.workers, len(hashes)),
            thread_name_prefix="devlog-diff",
        )
        pending: dict[Future, str] = {}

        def submit_next() -> None:
            commit_hash = next(queue, None)
            if commit_hash is not None:
                pending[executor.submit(self._process, commit_hash)] = commit_hash
                self.peak_in_flight = max(self.peak_in_flight, len(pending))

        try:
            for _ in range(self.max_in_flight):
                submit_next()
            while pending:
                done, _ = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    commit_hash = pending.pop(future)
                    try:
                        info = future.result()
                    except Exception as e:
                        raise DiffComputationError(commit_hash, e) from e
                    yield info
                    submit_next()
        finally:
            executor.shutdown(wait=True, cancel_futures=True)
            self._close_repos()

    def _close_repos(self) -> None:
        with self._lock:
            repos, self._repos = self._repos, []
        for repo in repos:
            repo.close()
        self._local = threading.local()


def walk_commits(
    repo_path: str,
    hashes: Sequence[str],
    workers: int = 0,
    patch_max_chars: int = DEFAULT_PATCH_MAX_CHARS,
    on_progress: Optional[ProgressCallback] = None,
) -> Iterator[CommitInfo]:
    """Convenience wrapper around :class:`CommitWalker`."""
    walker = CommitWalker(
        repo_path,
        workers=workers,
        patch_max_chars=patch_max_chars,
        on_progress=on_progress,
    )
    return walker.walk(hashes)
