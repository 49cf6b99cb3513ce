"""
devlog Configuration.

Centralized configuration management using Pydantic Settings.
Loads configuration from environment variables prefixed with ``DEVLOG_``.
"""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


def get_xdg_data_dir() -> str:
    """
    Get XDG-compliant data directory for devlog.

    Follows XDG Base Directory Specification:
    - Uses $XDG_DATA_HOME/devlog if XDG_DATA_HOME is set
    - Falls back to $HOME/.local/share/devlog if not set
    - Returns relative path .devlog_data if HOME not available (dev/testing)

    Returns:
        str: Path to data directory
    """
    xdg_data_home = os.getenv("XDG_DATA_HOME")
    if xdg_data_home:
        return str(Path(xdg_data_home) / "devlog")

    home = os.getenv("HOME")
    if home:
        return str(Path(home) / ".local" / "share" / "devlog")

    # Fallback for development/testing environments without HOME
    return ".devlog_data"


def get_xdg_config_dir() -> str:
    """
    Get XDG-compliant config directory for devlog.

    Returns:
        str: Path to config directory
    """
    xdg_config_home = os.getenv("XDG_CONFIG_HOME")
    if xdg_config_home:
        return str(Path(xdg_config_home) / "devlog")

    home = os.getenv("HOME")
    if home:
        return str(Path(home) / ".config" / "devlog")

    return ".devlog_config"


def get_xdg_state_dir() -> str:
    """
    Get XDG-compliant state directory for devlog logs.

    Follows XDG Base Directory Specification:
    - Uses $XDG_STATE_HOME/devlog if XDG_STATE_HOME is set
    - Falls back to $HOME/.local/state/devlog if not set
    - Returns relative path ./logs if HOME not available (dev/testing)

    Returns:
        str: Path to state/logs directory
    """
    xdg_state_home = os.getenv("XDG_STATE_HOME")
    if xdg_state_home:
        return str(Path(xdg_state_home) / "devlog" / "logs")

    home = os.getenv("HOME")
    if home:
        return str(Path(home) / ".local" / "state" / "devlog" / "logs")

    return "./logs"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DEVLOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Profile
    profile: str = "default"
    timezone: str = "UTC"  # IANA zone used to bucket commits into days
    user_name: str = ""
    user_email: str = ""  # Overrides the repository's git config identity
    github_username: str = ""  # Matched against users.noreply.github.com emails

    # Database
    db_url: str = ""  # Full SQLAlchemy URL (defaults to a per-profile SQLite file)

    @property
    def database_url(self) -> str:
        """Resolve the database URL, defaulting to the profile's SQLite file."""
        if self.db_url:
            return self.db_url
        db_path = Path(get_xdg_data_dir()) / "profiles" / self.profile / "devlog.db"
        return f"sqlite:///{db_path}"

    # Language model
    llm_provider: str = "ollama"  # ollama, openai or anthropic
    llm_model: str = ""  # Empty = provider default
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    ollama_base_url: str = "http://localhost:11434/v1"
    llm_max_tokens: int = 1024
    llm_temperature: float = 0.3

    # Timeouts (seconds)
    llm_timeout_seconds: float = 120  # Branch, week and month summaries
    commit_summary_timeout_seconds: float = 30
    day_summary_timeout_seconds: float = 15  # Per-day branch sections

    # Ingestion
    ingest_workers: int = 0  # Diff workers (0 = number of CPUs)
    ingest_days: int = 30  # Default look-back window
    patch_max_chars: int = 10_000  # Stored patch excerpt budget per file

    # Logging
    log_level: str = "INFO"
    log_dir: str = ""  # Defaults to XDG state dir if empty
    log_console_enabled: bool = True  # Enable console (stdout/stderr) logging
    log_file_enabled: bool = True  # Enable file-based logging
    log_max_bytes: int = 10_485_760  # 10MB per log file
    log_backup_count: int = 5  # Keep 5 backup files

    # LLM Logging
    llm_logging_enabled: bool = False  # Enable detailed LLM interaction logging
    llm_log_requests: bool = True
    llm_log_responses: bool = True
    llm_log_tokens: bool = True

    @property
    def log_directory(self) -> Path:
        """Get the log directory path, using XDG default if not specified."""
        if self.log_dir:
            return Path(self.log_dir).expanduser()
        return Path(get_xdg_state_dir())

    @property
    def branch_selection_file(self) -> Path:
        """File holding saved per-repository branch selections."""
        return Path(get_xdg_config_dir()) / "branch_selections.json"


# Global settings instance
settings = Settings()
