"""DuckDB-backed session store.

The relay never creates or ends sessions on its own; ``save`` exists for the
session-management side (and for seeding in tests). Lookups always hit the
database, so liveness is always judged against a fresh row.

Database Schema:
    sanctuary_sessions table:
        - id: Session identifier (primary key)
        - channel_name: Agora channel, NULL when audio is unsupported
        - is_active: False once the host ends the session
        - expires_at: Hard expiry (UTC)
        - created_at: Creation time (UTC)

Usage:
    store = SessionStore.get_instance()
    session = store.get("abc-123")
"""
import logging
from datetime import datetime, timezone
from typing import Optional

import duckdb

from .schemas import Session

logger = logging.getLogger(__name__)


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _from_naive_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc)


class SessionStore:
    """Singleton access to the sessions table."""

    _instance: Optional["SessionStore"] = None
    _db_path: str = "sanctuary_sessions.duckdb"

    def __init__(self, db_path: Optional[str] = None) -> None:
        if db_path:
            self._db_path = db_path
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._initialize_db()

    @classmethod
    def get_instance(cls, db_path: Optional[str] = None) -> "SessionStore":
        """Get or create the singleton instance.

        Args:
            db_path: Optional database path (only used on first call).
        """
        if cls._instance is None:
            cls._instance = cls(db_path)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Close and drop the singleton (for testing)."""
        if cls._instance is not None:
            cls._instance.close()
        cls._instance = None

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        if self._connection is None:
            self._connection = duckdb.connect(self._db_path)
        return self._connection

    def _initialize_db(self) -> None:
        conn = self._get_connection()
        conn.execute("""
            CREATE TABLE IF NOT EXISTS sanctuary_sessions (
                id VARCHAR PRIMARY KEY,
                channel_name VARCHAR,
                is_active BOOLEAN NOT NULL,
                expires_at TIMESTAMP NOT NULL,
                created_at TIMESTAMP NOT NULL
            )
        """)

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def save(self, session: Session) -> Session:
        """Insert or replace a session row."""
        conn = self._get_connection()
        conn.execute("DELETE FROM sanctuary_sessions WHERE id = ?", [session.id])
        conn.execute(
            """
            INSERT INTO sanctuary_sessions (id, channel_name, is_active, expires_at, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            [
                session.id,
                session.channel_name,
                session.is_active,
                _to_naive_utc(session.expires_at),
                _to_naive_utc(session.created_at),
            ],
        )
        return session

    def get(self, session_id: str) -> Optional[Session]:
        """Fetch a session row; liveness is judged by the caller."""
        row = self._get_connection().execute(
            """
            SELECT id, channel_name, is_active, expires_at, created_at
            FROM sanctuary_sessions
            WHERE id = ?
            """,
            [session_id],
        ).fetchone()
        return self._row_to_session(row) if row else None

    @staticmethod
    def _row_to_session(row) -> Session:
        return Session(
            id=row[0],
            channel_name=row[1],
            is_active=bool(row[2]),
            expires_at=_from_naive_utc(row[3]),
            created_at=_from_naive_utc(row[4]),
        )
