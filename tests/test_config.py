"""
Tests for configuration management.
"""

from pathlib import Path

import pytest

from devlog.config import (
    Settings,
    get_xdg_config_dir,
    get_xdg_data_dir,
    get_xdg_state_dir,
)


@pytest.fixture(autouse=True)
def clear_devlog_env(monkeypatch):
    """Keep test-suite overrides out of config unit tests."""
    for name in (
        "DEVLOG_DB_URL",
        "DEVLOG_LOG_FILE_ENABLED",
        "DEVLOG_LOG_CONSOLE_ENABLED",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


class TestSettings:
    """Tests for Settings configuration."""

    def test_default_profile_settings(self):
        """Test default profile settings."""
        settings = Settings()

        assert settings.profile == "default"
        assert settings.timezone == "UTC"
        assert settings.llm_provider == "ollama"

    def test_unknown_variables_ignored(self, monkeypatch):
        """Test that stale DEVLOG_ variables neither fail nor add settings."""
        monkeypatch.setenv("DEVLOG_ENVIRONMENT", "production")

        settings = Settings()

        assert not hasattr(settings, "environment")

    def test_default_timeouts(self):
        """Test default language-model timeouts."""
        settings = Settings()

        assert settings.commit_summary_timeout_seconds == 30
        assert settings.day_summary_timeout_seconds == 15
        assert settings.llm_timeout_seconds == 120

    def test_database_url_defaults_to_profile_file(self, monkeypatch, tmp_path):
        """Test that each profile gets its own SQLite file."""
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))

        settings = Settings(profile="work")

        expected = tmp_path / "devlog" / "profiles" / "work" / "devlog.db"
        assert settings.database_url == f"sqlite:///{expected}"

    def test_database_url_override(self):
        """Test that an explicit URL wins."""
        settings = Settings(db_url="sqlite://")

        assert settings.database_url == "sqlite://"

    def test_settings_from_env_vars(self, monkeypatch):
        """Test that settings can be overridden by environment variables."""
        monkeypatch.setenv("DEVLOG_PROFILE", "work")
        monkeypatch.setenv("DEVLOG_TIMEZONE", "Europe/Berlin")
        monkeypatch.setenv("DEVLOG_INGEST_WORKERS", "4")
        monkeypatch.setenv("DEVLOG_LLM_TIMEOUT_SECONDS", "60")

        settings = Settings()

        assert settings.profile == "work"
        assert settings.timezone == "Europe/Berlin"
        assert settings.ingest_workers == 4
        assert settings.llm_timeout_seconds == 60

    def test_case_insensitive_env_vars(self, monkeypatch):
        """Test that environment variables are case-insensitive."""
        monkeypatch.setenv("devlog_user_email", "dev@example.com")

        settings = Settings()

        assert settings.user_email == "dev@example.com"

    def test_log_directory(self, monkeypatch, tmp_path):
        """Test explicit and XDG log directories."""
        monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path))

        assert Settings().log_directory == tmp_path / "devlog" / "logs"
        assert Settings(log_dir=str(tmp_path / "x")).log_directory == tmp_path / "x"

    def test_branch_selection_file(self, monkeypatch, tmp_path):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

        assert Settings().branch_selection_file == (
            tmp_path / "devlog" / "branch_selections.json"
        )


class TestXdgDirectories:
    """Tests for XDG directory resolution."""

    def test_home_fallbacks(self, monkeypatch, tmp_path):
        """Test the HOME-based defaults."""
        for name in ("XDG_DATA_HOME", "XDG_CONFIG_HOME", "XDG_STATE_HOME"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))

        assert Path(get_xdg_data_dir()) == tmp_path / ".local" / "share" / "devlog"
        assert Path(get_xdg_config_dir()) == tmp_path / ".config" / "devlog"
        assert Path(get_xdg_state_dir()) == (
            tmp_path / ".local" / "state" / "devlog" / "logs"
        )

    def test_without_home(self, monkeypatch):
        """Test relative fallbacks when HOME is unset."""
        for name in ("XDG_DATA_HOME", "XDG_CONFIG_HOME", "XDG_STATE_HOME", "HOME"):
            monkeypatch.delenv(name, raising=False)

        assert get_xdg_data_dir() == ".devlog_data"
        assert get_xdg_config_dir() == ".devlog_config"
        assert get_xdg_state_dir() == "./logs"
