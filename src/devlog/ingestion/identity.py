"""Matching commit authors against the local user's identity."""

import re
from typing import Optional

# username@users.noreply.github.com or 12345+username@users.noreply.github.com
GITHUB_NOREPLY_PATTERN = re.compile(r"^(?:\d+\+)?([^@]+)@users\.noreply\.github\.com$")


def extract_github_username(email: str) -> Optional[str]:
    """Return the GitHub username behind a no-reply email, lowercased."""
    match = GITHUB_NOREPLY_PATTERN.match((email or "").strip().lower())
    return match.group(1) if match else None


def is_user_commit(
    author_email: str,
    user_email: Optional[str] = None,
    github_username: Optional[str] = None,
) -> bool:
    """
    Decide whether a commit was authored by the local user.

    Args:
        author_email: Email recorded on the commit
        user_email: The configured local email
        github_username: The configured GitHub handle

    Returns:
        True if the email matches (case-insensitive) or the commit came from
        the user's GitHub no-reply alias
    """
    author = (author_email or "").strip().lower()
    if user_email and author == user_email.strip().lower():
        return True
    if github_username:
        extracted = extract_github_username(author)
        return extracted is not None and extracted == github_username.strip().lower()
    return False
