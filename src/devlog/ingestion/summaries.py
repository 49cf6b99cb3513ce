"""One-paragraph commit summaries generated by a language model."""

import logging
from typing import Sequence

from devlog.llm.base import LanguageModelClient
from devlog.models.db import FileChange
from devlog.models.git import ChangeType, FileChangeInfo
from devlog.prompts import build_commit_summary_prompt

logger = logging.getLogger(__name__)

MAX_FILES = 20
PATCH_PREVIEW_CHARS = 500
MAX_CODE_LINES = 10


def file_change_info(row: FileChange) -> FileChangeInfo:
    """Convert a stored file change back into the walker's form."""
    return FileChangeInfo(
        path=row.file_path,
        change_type=ChangeType(row.change_type),
        additions=row.additions,
        deletions=row.deletions,
        patch=row.patch or "",
        old_path=row.old_path,
    )


def _code_lines(patch: str) -> list[str]:
    preview = patch
    if len(preview) > PATCH_PREVIEW_CHARS:
        preview = preview[:PATCH_PREVIEW_CHARS] + "..."
    lines = []
    for line in preview.split("\n"):
        if line.startswith(("+++", "---")):
            continue
        if line.startswith(("+", "-")):
            lines.append(line)
    return lines[:MAX_CODE_LINES]


def format_commit_content(message: str, file_changes: Sequence[FileChangeInfo]) -> str:
    """
    Render a commit for the summary prompt.

    Lists up to 20 files with their stats and the first few changed lines
    of each patch, followed by the totals across all files.
    """
    parts = [f"Commit message: {message.strip()}", "", "Files changed:"]
    total_additions = sum(fc.additions for fc in file_changes)
    total_deletions = sum(fc.deletions for fc in file_changes)

    for index, fc in enumerate(file_changes):
        if index >= MAX_FILES:
            parts.append(f"... and {len(file_changes) - MAX_FILES} more files")
            break
        parts.append(
            f"- {fc.path} ({fc.change_type.value}): +{fc.additions}/-{fc.deletions}"
        )
        code = _code_lines(fc.patch) if fc.patch else []
        if code:
            parts.append("  Changes:")
            parts.extend(f"    {line}" for line in code)

    parts.append("")
    parts.append(
        f"Total: +{total_additions}/-{total_deletions} lines "
        f"across {len(file_changes)} files"
    )
    return "\n".join(parts) + "\n"


class CommitSummarizer:
    """Generates commit summaries with a per-call timeout."""

    def __init__(
        self,
        client: LanguageModelClient,
        timeout: float = 30,
        project_context: str = "",
    ):
        self.client = client
        self.timeout = timeout
        self.project_context = project_context

    def summarize(self, message: str, file_changes: Sequence[FileChangeInfo]) -> str:
        """
        Summarize one commit.

        Raises:
            LLMError: If the client fails or times out
        """
        prompt = build_commit_summary_prompt(
            format_commit_content(message, file_changes),
            project_context=self.project_context,
        )
        response = self.client.complete(prompt, timeout=self.timeout)
        return response.content.strip()
