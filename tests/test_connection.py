"""
Tests for database connection management.
"""

from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import inspect, text
from sqlalchemy.orm import Session

from devlog.db.connection import (
    check_connection,
    create_db_engine,
    db_session,
    get_session,
    init_db,
    sqlite_database_path,
)
from devlog.exceptions import StoreConnectionError


class TestGetSession:
    """Tests for get_session function."""

    def test_get_session_returns_session(self):
        """Test that get_session returns a Session instance."""
        session = get_session()
        assert isinstance(session, Session)
        session.close()


class TestDbSessionContextManager:
    """Tests for the db_session context manager."""

    def test_commits_on_success(self):
        """Test that db_session commits and closes on a clean exit."""
        mock_session = MagicMock(spec=Session)

        with patch("devlog.db.connection.SessionLocal", return_value=mock_session):
            with db_session() as session:
                assert session is mock_session

        mock_session.commit.assert_called_once()
        mock_session.rollback.assert_not_called()
        mock_session.close.assert_called_once()

    def test_rolls_back_on_error(self):
        """Test that db_session rolls back and re-raises on error."""
        mock_session = MagicMock(spec=Session)

        with patch("devlog.db.connection.SessionLocal", return_value=mock_session):
            with pytest.raises(ValueError):
                with db_session():
                    raise ValueError("boom")

        mock_session.commit.assert_not_called()
        mock_session.rollback.assert_called_once()
        mock_session.close.assert_called_once()


class TestEngine:
    """Tests for engine construction and schema creation."""

    def test_sqlite_database_path(self, tmp_path):
        assert sqlite_database_path("sqlite://") is None
        assert sqlite_database_path("sqlite:///:memory:") is None
        assert sqlite_database_path(f"sqlite:///{tmp_path}/x.db") == tmp_path / "x.db"
        assert sqlite_database_path("postgresql://u@localhost/devlog") is None

    def test_init_db_creates_parent_directory(self, tmp_path):
        """Test that the profile directory is created with the schema."""
        db_file = tmp_path / "profiles" / "default" / "devlog.db"
        engine = create_db_engine(f"sqlite:///{db_file}")

        init_db(bind=engine)

        assert db_file.exists()
        tables = set(inspect(engine).get_table_names())
        assert {"commits", "worklog_entries", "ingest_cursors"} <= tables
        engine.dispose()

    def test_savepoints_work(self, test_engine):
        """Test that nested transactions roll back independently."""
        with Session(bind=test_engine) as session:
            session.execute(text("CREATE TABLE t (v INTEGER)"))
            session.execute(text("INSERT INTO t VALUES (1)"))
            try:
                with session.begin_nested():
                    session.execute(text("INSERT INTO t VALUES (2)"))
                    raise RuntimeError("undo")
            except RuntimeError:
                pass

            values = session.execute(text("SELECT v FROM t")).scalars().all()

        assert values == [1]

    def test_init_db_failure_is_fatal(self):
        """Test that an unreachable store raises StoreConnectionError."""
        engine = MagicMock()
        engine.url = "postgresql://u@localhost/devlog"

        with patch(
            "devlog.models.db.Base.metadata.create_all",
            side_effect=RuntimeError("connection refused"),
        ):
            with pytest.raises(StoreConnectionError, match="initialize store"):
                init_db(bind=engine)


class TestCheckConnection:
    """Tests for check_connection."""

    def test_check_connection_success(self):
        """Test that the configured in-memory store is reachable."""
        assert check_connection() is True

    def test_check_connection_failure(self):
        """Test that connection failures are reported as False."""
        with patch("devlog.db.connection.SessionLocal") as mock_factory:
            mock_factory.return_value.execute.side_effect = RuntimeError("down")

            assert check_connection() is False
