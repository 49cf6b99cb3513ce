"""
Pytest configuration and fixtures for devlog tests.

Provides an in-memory database per test, throwaway git repositories built
with GitPython and a scripted language-model client.
"""

import os

# Settings are read at import time; keep tests away from the user's store
# and log directory.
os.environ.setdefault("DEVLOG_DB_URL", "sqlite://")
os.environ.setdefault("DEVLOG_LOG_FILE_ENABLED", "false")
os.environ.setdefault("DEVLOG_LOG_CONSOLE_ENABLED", "false")

from datetime import datetime, timedelta, timezone  # noqa: E402
from pathlib import Path  # noqa: E402
from typing import Generator, Optional  # noqa: E402

import pytest  # noqa: E402
from git import Actor, Repo  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from devlog.db.connection import create_db_engine, init_db  # noqa: E402
from devlog.exceptions import LLMError  # noqa: E402
from devlog.llm.base import ChatMessage, LanguageModelClient, LLMResponse  # noqa: E402

USER = Actor("Dev User", "dev@example.com")
OTHER = Actor("Other Person", "other@example.com")


@pytest.fixture
def test_engine():
    """Fresh in-memory SQLite engine with all tables."""
    engine = create_db_engine("sqlite://")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(test_engine) -> Generator[Session, None, None]:
    session = Session(bind=test_engine)
    yield session
    session.close()


class GitRepoBuilder:
    """Builds commit histories in a temporary repository."""

    def __init__(self, path: Path):
        self.path = path
        self.repo = Repo.init(path)
        with self.repo.config_writer() as config:
            config.set_value("user", "name", USER.name)
            config.set_value("user", "email", USER.email)
        self._renamed_main = False

    def commit(
        self,
        message: str,
        files: Optional[dict[str, str]] = None,
        when: Optional[datetime] = None,
        author: Actor = USER,
        remove: Optional[list[str]] = None,
    ) -> str:
        """Write ``files``, stage them and commit; returns the hash."""
        if files is None:
            files = {f"{message.split()[0].lower()}.txt": f"{message}\n"}
        for name, content in files.items():
            target = self.path / name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
        index = self.repo.index
        if files:
            index.add(list(files))
        if remove:
            index.remove(remove, working_tree=True)

        when = when or datetime.now(timezone.utc)
        stamp = f"{int(when.timestamp())} +0000"
        commit = index.commit(
            message,
            author=author,
            committer=author,
            author_date=stamp,
            commit_date=stamp,
        )
        if not self._renamed_main:
            self.repo.git.branch("-M", "main")
            self._renamed_main = True
        return commit.hexsha

    def checkout(self, name: str, create: bool = False) -> None:
        if create:
            self.repo.git.checkout("-b", name)
        else:
            self.repo.git.checkout(name)

    def merge(self, name: str, message: str, when: Optional[datetime] = None) -> str:
        when = when or datetime.now(timezone.utc)
        stamp = f"{int(when.timestamp())} +0000"
        env = {"GIT_AUTHOR_DATE": stamp, "GIT_COMMITTER_DATE": stamp}
        self.repo.git.merge("--no-ff", "-m", message, name, env=env)
        return self.repo.head.commit.hexsha


@pytest.fixture
def git_repo(tmp_path) -> Generator[GitRepoBuilder, None, None]:
    builder = GitRepoBuilder(tmp_path / "repo")
    yield builder
    builder.repo.close()


@pytest.fixture
def now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def days_ago(days: int, hours: int = 0) -> datetime:
    return (
        datetime.now(timezone.utc).replace(microsecond=0)
        - timedelta(days=days, hours=hours)
    )


class FakeLLMClient(LanguageModelClient):
    """Scripted client that records prompts."""

    def __init__(
        self,
        reply: str = "- Did things",
        model: str = "fake-model",
        fail: bool = False,
        timed_out: bool = False,
    ):
        self.reply = reply
        self.model = model
        self.fail = fail
        self.timed_out = timed_out
        self.prompts: list[str] = []
        self.timeouts: list[Optional[float]] = []

    @property
    def provider_name(self) -> str:
        return "fake"

    @property
    def model_name(self) -> str:
        return self.model

    def chat_complete(
        self,
        messages: list[ChatMessage],
        timeout: Optional[float] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> LLMResponse:
        prompt = messages[-1]["content"]
        self.prompts.append(prompt)
        self.timeouts.append(timeout)
        if self.fail:
            raise LLMError(
                "fake", RuntimeError("model offline"), timed_out=self.timed_out
            )
        return LLMResponse(
            content=self.reply,
            prompt_tokens=len(prompt.split()),
            completion_tokens=len(self.reply.split()),
            total_tokens=len(prompt.split()) + len(self.reply.split()),
            finish_reason="stop",
            model=self.model,
            duration_ms=1.0,
        )

    @property
    def calls(self) -> int:
        return len(self.prompts)


@pytest.fixture
def fake_llm() -> FakeLLMClient:
    return FakeLLMClient()
