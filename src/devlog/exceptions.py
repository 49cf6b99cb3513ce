"""Custom exceptions for devlog.

Errors are classified by how far they reach:

- ``FatalRunError``: the whole ingestion or worklog run stops.
- ``FatalBranchError``: one branch is abandoned, other branches continue.

Recoverable failures (a single row that fails to persist, a cache write) are
logged where they happen and never raised.
"""


def short_hash(commit_hash: str | None) -> str:
    """Return the 8-character prefix used in error messages."""
    return (commit_hash or "")[:8]


class DevlogError(Exception):
    """Base class for all devlog errors."""

    def __init__(self, message: str, operation: str | None = None):
        self.operation = operation
        if operation:
            message = f"{operation}: {message}"
        super().__init__(message)


class FatalRunError(DevlogError):
    """Aborts the entire operation."""


class FatalBranchError(DevlogError):
    """Aborts ingestion of a single branch."""

    def __init__(self, message: str, branch: str, operation: str | None = None):
        self.branch = branch
        super().__init__(f"{message} (branch {branch})", operation=operation)


class RepositoryNotFoundError(FatalRunError):
    """Raised when a path cannot be opened as a git repository."""

    def __init__(self, path: str, reason: str | None = None):
        self.path = path
        message = f"Not a git repository: {path}"
        if reason:
            message += f" ({reason})"
        super().__init__(message, operation="open repository")


class StoreConnectionError(FatalRunError):
    """Raised when the relational store cannot be reached."""


class LLMUnavailableError(FatalRunError):
    """Raised when a language-model client cannot be constructed."""


class SummaryGenerationError(FatalRunError):
    """Raised when a requested commit summary fails to generate."""

    def __init__(self, commit_hash: str, cause: Exception):
        self.commit_hash = commit_hash
        self.cause = cause
        super().__init__(
            f"commit {short_hash(commit_hash)}: {cause}",
            operation="generate commit summary",
        )


class BranchNotFoundError(FatalBranchError):
    """Raised when a branch head cannot be resolved."""

    def __init__(self, branch: str):
        super().__init__("cannot resolve head", branch, operation="resolve branch")


class DiffComputationError(FatalBranchError):
    """Raised when the diff for a commit cannot be computed."""

    def __init__(self, commit_hash: str, cause: Exception, branch: str = ""):
        self.commit_hash = commit_hash
        self.cause = cause
        super().__init__(
            f"commit {short_hash(commit_hash)}: {cause}",
            branch,
            operation="compute diff",
        )


class LLMError(DevlogError):
    """Wraps a failure returned by a language-model provider."""

    def __init__(self, provider: str, cause: Exception, timed_out: bool = False):
        self.provider = provider
        self.cause = cause
        self.timed_out = timed_out
        kind = "timed out" if timed_out else "failed"
        super().__init__(f"{provider} request {kind}: {cause}", operation="llm")


class BranchSelectionError(FatalRunError):
    """Raised when no branch selection can be resolved without prompting."""
