"""
Tests for author identity matching.
"""

import pytest

from devlog.ingestion.identity import extract_github_username, is_user_commit


class TestExtractGithubUsername:
    """Tests for extract_github_username."""

    @pytest.mark.parametrize(
        "email,expected",
        [
            ("octocat@users.noreply.github.com", "octocat"),
            ("12345+OctoCat@users.noreply.github.com", "octocat"),
            ("octocat@example.com", None),
            ("", None),
        ],
    )
    def test_extract(self, email, expected):
        """Test no-reply address parsing with and without a numeric id."""
        assert extract_github_username(email) == expected


class TestIsUserCommit:
    """Tests for is_user_commit."""

    def test_exact_email_match(self):
        """Test that the configured email identifies the user."""
        assert is_user_commit("dev@example.com", "dev@example.com")

    def test_email_match_ignores_case(self):
        """Test that email comparison is case-insensitive."""
        assert is_user_commit("Dev@Example.com", "dev@example.com")

    def test_other_author(self):
        """Test that other authors are not the user."""
        assert not is_user_commit("other@example.com", "dev@example.com")

    def test_github_noreply_match(self):
        """Test that the GitHub no-reply alias matches the configured handle."""
        assert is_user_commit(
            "999+Dev-User@users.noreply.github.com",
            "dev@example.com",
            github_username="dev-user",
        )

    def test_github_noreply_other_user(self):
        """Test that another user's no-reply alias does not match."""
        assert not is_user_commit(
            "someone@users.noreply.github.com",
            "dev@example.com",
            github_username="dev-user",
        )

    def test_no_identity_configured(self):
        """Test that nothing matches without a configured identity."""
        assert not is_user_commit("dev@example.com", None, None)
