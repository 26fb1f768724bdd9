"""
SQLite-based Checkpoint Storage

Durable key/value storage of checkpoint payloads keyed by session ID.
Thread-safe through thread-local connections.

Database Schema:
- checkpoints: session_id (primary key), JSON payload, creation timestamp
"""

import logging
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


@dataclass
class StoredCheckpoint:
    """
    Raw checkpoint row.

    Attributes:
        session_id: Session identifier
        payload: JSON encoded CheckpointRecord
        created_at: ISO timestamp the row was written with
    """

    session_id: str
    payload: str
    created_at: str


class CheckpointStore:
    """
    SQLite checkpoint table.

    Features:
    - Thread-local connections
    - WAL mode for concurrent readers
    - Upsert per session (latest checkpoint wins)

    Usage:
        store = CheckpointStore(db_path="data/checkpoints/recovery.db")

        store.save("sess-1", record.model_dump_json(), record.timestamp)
        row = store.load("sess-1")
    """

    def __init__(self, db_path: str = "data/checkpoints/recovery.db"):
        """
        Initialize checkpoint store.

        Args:
            db_path: Path to SQLite database file (":memory:" is not supported
                because every thread opens its own connection)
        """
        self.db_path = db_path
        self._local = threading.local()
        self._connections: List[sqlite3.Connection] = []
        self._lock = threading.Lock()

        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

        logger.info(f"CheckpointStore initialized: {db_path}")

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if not hasattr(self._local, "conn"):
            conn = sqlite3.connect(self.db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            # Enable WAL mode for concurrent access
            conn.execute("PRAGMA journal_mode=WAL")
            self._local.conn = conn
            with self._lock:
                self._connections.append(conn)
        return self._local.conn

    def _init_schema(self):
        """Initialize database schema."""
        conn = self._get_connection()
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS checkpoints (
                session_id TEXT PRIMARY KEY,
                payload TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
        """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_checkpoints_created ON checkpoints(created_at)")
        conn.commit()

    def save(self, session_id: str, payload: str, created_at: datetime) -> None:
        """
        Insert or replace the checkpoint of a session.

        Raises:
            sqlite3.Error: On database failure
        """
        conn = self._get_connection()
        conn.execute(
            """
            INSERT INTO checkpoints (session_id, payload, created_at)
            VALUES (?, ?, ?)
            ON CONFLICT(session_id) DO UPDATE SET
                payload = excluded.payload,
                created_at = excluded.created_at
        """,
            (session_id, payload, created_at.isoformat()),
        )
        conn.commit()
        logger.debug(f"Checkpoint row written: {session_id}")

    def load(self, session_id: str) -> Optional[StoredCheckpoint]:
        """
        Get the checkpoint row of a session.

        Returns:
            StoredCheckpoint or None if not found
        """
        conn = self._get_connection()
        cursor = conn.execute("SELECT * FROM checkpoints WHERE session_id = ?", (session_id,))
        row = cursor.fetchone()

        if row is None:
            return None

        return StoredCheckpoint(
            session_id=row["session_id"], payload=row["payload"], created_at=row["created_at"]
        )

    def delete(self, session_id: str) -> bool:
        """
        Delete the checkpoint of a session.

        Returns:
            True if deleted, False if not found
        """
        conn = self._get_connection()
        cursor = conn.execute("DELETE FROM checkpoints WHERE session_id = ?", (session_id,))
        conn.commit()
        return cursor.rowcount > 0

    def list_all(self) -> List[StoredCheckpoint]:
        """All checkpoint rows."""
        conn = self._get_connection()
        cursor = conn.execute("SELECT * FROM checkpoints ORDER BY session_id")
        return [
            StoredCheckpoint(
                session_id=row["session_id"], payload=row["payload"], created_at=row["created_at"]
            )
            for row in cursor.fetchall()
        ]

    def count(self) -> int:
        conn = self._get_connection()
        return conn.execute("SELECT COUNT(*) FROM checkpoints").fetchone()[0]

    def close(self):
        """Close all database connections."""
        with self._lock:
            connections, self._connections = self._connections, []
        for conn in connections:
            conn.close()
        if hasattr(self._local, "conn"):
            delattr(self._local, "conn")
        logger.info("Checkpoint database connections closed")
