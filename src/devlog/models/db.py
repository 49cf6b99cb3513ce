"""
SQLAlchemy database models for devlog.

These models represent the local store of ingested git history and the
cached worklog entries generated from it.
"""

import enum
import uuid
from datetime import date, datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from devlog.models.git import CommitStats


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime stored as UTC.

    SQLite drops tzinfo on the way out; values read back are re-tagged as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Any:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: Optional[datetime], dialect) -> Any:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class CommitStatsType(TypeDecorator):
    """Stores ``CommitStats`` as a JSON object."""

    impl = JSON
    cache_ok = True

    def process_bind_param(self, value: Optional[CommitStats], dialect) -> Any:
        if value is None:
            return CommitStats().to_dict()
        if isinstance(value, dict):
            return CommitStats.from_dict(value).to_dict()
        return value.to_dict()

    def process_result_value(self, value: Any, dialect) -> CommitStats:
        return CommitStats.from_dict(value)


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class BranchStatus(str, enum.Enum):
    """Lifecycle status of a branch relative to the default branch."""

    ACTIVE = "active"
    MERGED = "merged"
    UNKNOWN = "unknown"


class EntryType(str, enum.Enum):
    """Granularity of a cached worklog unit."""

    DAY_UPDATES = "day_updates"
    BRANCH_SUMMARY = "branch_summary"
    WEEK_SUMMARY = "week_summary"
    MONTH_SUMMARY = "month_summary"


class GroupBy(str, enum.Enum):
    """How commits are organized when rendering a worklog."""

    DATE = "date"
    BRANCH = "branch"


class Developer(Base):
    """A commit author seen during ingestion."""

    __tablename__ = "developers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    is_current_user: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_now, onupdate=utc_now
    )

    def __repr__(self) -> str:
        return f"<Developer(id={self.id}, email={self.email!r})>"


class Codebase(Base):
    """A registered repository."""

    __tablename__ = "codebases"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    path: Mapped[str] = mapped_column(
        String(1024), nullable=False, unique=True, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    default_branch: Mapped[str] = mapped_column(
        String(255), nullable=False, default="main"
    )
    summary: Mapped[Optional[str]] = mapped_column(Text)
    indexed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_now, onupdate=utc_now
    )

    # Relationships
    branches: Mapped[list["Branch"]] = relationship(
        back_populates="codebase", cascade="all, delete-orphan"
    )
    commits: Mapped[list["Commit"]] = relationship(
        back_populates="codebase", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Codebase(id={self.id}, path={self.path!r})>"


class Branch(Base):
    """Per-codebase branch record."""

    __tablename__ = "branches"
    __table_args__ = (
        UniqueConstraint("codebase_id", "name", name="uq_branch_codebase_name"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    codebase_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("codebases.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    base_branch: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BranchStatus.ACTIVE.value
    )
    summary: Mapped[Optional[str]] = mapped_column(Text)
    commit_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    first_commit_hash: Mapped[Optional[str]] = mapped_column(String(64))
    last_commit_hash: Mapped[Optional[str]] = mapped_column(String(64))

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_now, onupdate=utc_now
    )

    # Relationships
    codebase: Mapped["Codebase"] = relationship(back_populates="branches")
    commits: Mapped[list["Commit"]] = relationship(back_populates="branch")

    def __repr__(self) -> str:
        return (
            f"<Branch(id={self.id}, name={self.name!r}, "
            f"is_default={self.is_default})>"
        )


class Commit(Base):
    """An ingested commit. Immutable except for ``summary``."""

    __tablename__ = "commits"
    __table_args__ = (
        UniqueConstraint("codebase_id", "hash", name="uq_commit_codebase_hash"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    codebase_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("codebases.id", ondelete="CASCADE"), nullable=False, index=True
    )
    branch_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("branches.id", ondelete="SET NULL"), index=True
    )
    hash: Mapped[str] = mapped_column(String(64), nullable=False)
    author_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    author_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    summary: Mapped[Optional[str]] = mapped_column(Text)
    committed_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, index=True
    )
    stats: Mapped[CommitStats] = mapped_column(
        CommitStatsType, nullable=False, default=lambda: CommitStats()
    )
    is_user_commit: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, index=True
    )
    is_on_default_branch: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    parent_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_now
    )

    # Relationships
    codebase: Mapped["Codebase"] = relationship(back_populates="commits")
    branch: Mapped[Optional["Branch"]] = relationship(back_populates="commits")
    file_changes: Mapped[list["FileChange"]] = relationship(
        back_populates="commit", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Commit(id={self.id}, hash={self.hash[:8]!r})>"


class FileChange(Base):
    """A file touched by a commit."""

    __tablename__ = "file_changes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    commit_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("commits.id", ondelete="CASCADE"), nullable=False, index=True
    )
    file_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    old_path: Mapped[Optional[str]] = mapped_column(String(1024))
    change_type: Mapped[str] = mapped_column(String(20), nullable=False)
    additions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    deletions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    patch: Mapped[Optional[str]] = mapped_column(Text)  # Capped excerpt

    # Relationships
    commit: Mapped["Commit"] = relationship(back_populates="file_changes")

    def __repr__(self) -> str:
        return f"<FileChange(path={self.file_path!r}, type={self.change_type})>"


class IngestCursor(Base):
    """Last fully-ingested commit hash per (codebase, branch)."""

    __tablename__ = "ingest_cursors"
    __table_args__ = (
        UniqueConstraint(
            "codebase_id", "branch_name", name="uq_cursor_codebase_branch"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    codebase_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("codebases.id", ondelete="CASCADE"), nullable=False, index=True
    )
    branch_name: Mapped[str] = mapped_column(String(255), nullable=False)
    last_commit_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_now, onupdate=utc_now
    )

    def __repr__(self) -> str:
        return (
            f"<IngestCursor(branch={self.branch_name!r}, "
            f"hash={self.last_commit_hash[:8]!r})>"
        )


class WorklogEntry(Base):
    """A cached, rendered worklog section."""

    __tablename__ = "worklog_entries"
    __table_args__ = (
        UniqueConstraint(
            "codebase_id",
            "profile_name",
            "entry_date",
            "branch_id",
            "entry_type",
            "group_by",
            name="uq_worklog_entry_identity",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    codebase_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("codebases.id", ondelete="CASCADE"), nullable=False, index=True
    )
    profile_name: Mapped[str] = mapped_column(String(255), nullable=False)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    branch_id: Mapped[str] = mapped_column(
        String(36), nullable=False, default=""
    )  # Empty string for entries not tied to a branch
    branch_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    entry_type: Mapped[str] = mapped_column(String(30), nullable=False)
    group_by: Mapped[str] = mapped_column(String(20), nullable=False)

    content: Mapped[str] = mapped_column(Text, nullable=False)
    signature: Mapped[str] = mapped_column(String(64), nullable=False)
    commit_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    additions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    deletions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_now, onupdate=utc_now
    )

    def __repr__(self) -> str:
        return (
            f"<WorklogEntry(date={self.entry_date}, type={self.entry_type}, "
            f"branch={self.branch_name!r})>"
        )
