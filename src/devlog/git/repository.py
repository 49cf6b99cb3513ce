"""
Read-only git repository access built on GitPython.
"""

import logging
from pathlib import Path
from typing import Iterator, Optional, Sequence

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError
from git.objects import Commit as GitCommit

from devlog.exceptions import BranchNotFoundError, RepositoryNotFoundError
from devlog.models.db import BranchStatus
from devlog.models.git import BranchInfo

logger = logging.getLogger(__name__)

DEFAULT_BRANCH_CANDIDATES = ("main", "master")


class GitRepository:
    """A local git repository opened for reading."""

    def __init__(self, repo: Repo, path: Path):
        self.repo = repo
        self.path = str(path)

    @classmethod
    def open(cls, path: str | Path) -> "GitRepository":
        """
        Open the repository at ``path``.

        Args:
            path: Repository working tree (resolved to an absolute path)

        Returns:
            GitRepository handle

        Raises:
            RepositoryNotFoundError: If the path is missing or not a repository
        """
        abs_path = Path(path).expanduser().resolve()
        try:
            repo = Repo(abs_path)
        except (NoSuchPathError, InvalidGitRepositoryError) as e:
            raise RepositoryNotFoundError(str(abs_path), type(e).__name__) from e
        return cls(repo, abs_path)

    @property
    def name(self) -> str:
        return Path(self.path).name

    def close(self) -> None:
        self.repo.close()

    def _config_value(self, option: str) -> str:
        try:
            reader = self.repo.config_reader()
            return str(reader.get_value("user", option, ""))
        except Exception as e:
            logger.debug(f"Could not read user.{option} from git config: {e}")
            return ""

    def user_email(self) -> str:
        return self._config_value("email")

    def user_name(self) -> str:
        return self._config_value("name")

    def head_hash(self) -> str:
        return self.repo.head.commit.hexsha

    def branch_exists(self, name: str) -> bool:
        return any(head.name == name for head in self.repo.heads)

    def detect_default_branch(self) -> str:
        """
        Guess the authoritative branch.

        Tries ``main`` then ``master``, then the target of ``origin/HEAD``,
        and finally falls back to ``main``.
        """
        for candidate in DEFAULT_BRANCH_CANDIDATES:
            if self.branch_exists(candidate):
                return candidate

        try:
            ref = self.repo.git.symbolic_ref("refs/remotes/origin/HEAD")
            prefix = "refs/remotes/origin/"
            if ref.startswith(prefix):
                return ref[len(prefix) :]
        except GitCommandError:
            logger.debug("origin/HEAD is not set")

        return "main"

    def list_branches(self) -> list[BranchInfo]:
        """Local branches, default branch first then alphabetical."""
        default = self.detect_default_branch()
        branches = [
            BranchInfo(
                name=head.name,
                head_hash=head.commit.hexsha,
                is_default=head.name == default,
            )
            for head in self.repo.heads
        ]
        branches.sort(key=lambda b: (not b.is_default, b.name))
        return branches

    def branch_head(self, name: str) -> str:
        """
        Resolve a local branch to its head commit hash.

        Raises:
            BranchNotFoundError: If the branch does not exist
        """
        for head in self.repo.heads:
            if head.name == name:
                return head.commit.hexsha
        raise BranchNotFoundError(name)

    def merge_base(self, rev_a: str, rev_b: str) -> Optional[str]:
        """
        Most recent common ancestor of two revisions.

        Returns:
            The merge-base hash, or None when the histories are unrelated
        """
        bases = self.repo.merge_base(rev_a, rev_b)
        if not bases:
            return None
        return bases[0].hexsha

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        """True if ``ancestor`` is reachable from ``descendant`` (or equal)."""
        return self.repo.is_ancestor(ancestor, descendant)

    def iter_log(
        self, start: str, exclude: Sequence[str] = ()
    ) -> Iterator[GitCommit]:
        """
        Stream commits reachable from ``start``, newest commit time first.

        Args:
            start: Revision to walk from
            exclude: Revisions whose ancestry is left out

        Yields:
            GitPython commit objects
        """
        revs = [start] + [f"^{rev}" for rev in exclude]
        yield from self.repo.iter_commits(revs)

    def unique_commit_exclusions(self, branch: str, base: str) -> Optional[list[str]]:
        """
        Revisions to exclude when walking commits unique to ``branch``.

        Returns:
            ``None`` when ``branch`` is ``base`` (nothing is unique),
            ``[]`` when the branches share no history or the merge-base lookup
            fails (the whole branch is walked), otherwise ``[base_head]``
        """
        if branch == base:
            return None

        branch_hash = self.branch_head(branch)
        try:
            base_hash = self.branch_head(base)
            merge_base = self.merge_base(branch_hash, base_hash)
        except (BranchNotFoundError, GitCommandError) as e:
            logger.warning(
                f"Merge-base lookup between {branch} and {base} failed, "
                f"ingesting full branch history: {e}"
            )
            return []

        if merge_base is None:
            logger.info(
                f"No common ancestor between {branch} and {base}, "
                f"ingesting full branch history"
            )
            return []
        return [base_hash]

    def is_branch_merged(self, branch: str, base: str) -> bool:
        return self.is_ancestor(self.branch_head(branch), self.branch_head(base))

    def detect_branch_status(self, branch: str, default_branch: str) -> BranchStatus:
        """Classify ``branch`` as active, merged into the default, or unknown."""
        if branch == default_branch:
            return BranchStatus.ACTIVE
        try:
            if self.is_branch_merged(branch, default_branch):
                return BranchStatus.MERGED
        except (BranchNotFoundError, GitCommandError) as e:
            logger.debug(f"Could not determine status of {branch}: {e}")
            return BranchStatus.UNKNOWN
        return BranchStatus.ACTIVE
