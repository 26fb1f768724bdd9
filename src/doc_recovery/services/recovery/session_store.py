"""
In-Memory Session Store with Per-Session Locking

Owns the authoritative state of all active processing sessions.

Locking model:
- One re-entrant lock per session serializes every mutation of that session
- The table lock only guards insertion, lookup and removal of single entries
- Readers receive deep-copied snapshots, never the live objects
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from ...models.processing import (
    FileStatus,
    ProcessingSession,
    ProcessingStage,
    SessionFile,
    utc_now,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass
class _SessionEntry:
    """Live session plus the lock that guards it."""

    session: ProcessingSession
    lock: threading.RLock = field(default_factory=threading.RLock)
    removed: bool = False


class SessionStore:
    """
    Thread-safe registry of processing sessions.

    Features:
    - Per-session re-entrant locks (sessions never block each other)
    - Snapshot reads for statistics and checkpointing
    - Expiry sweep that removes one entry at a time
    - Injectable clock for time-based rules

    Usage:
        store = SessionStore()
        store.create("sess-1", ["notes.pdf", "slides.pptx"])

        with store.locked("sess-1") as session:
            if session is not None:
                session.current_stage = ProcessingStage.EXTRACTION
                store.touch(session)

        snapshot = store.get("sess-1")
    """

    def __init__(self, clock: Optional[Clock] = None):
        """
        Initialize session store.

        Args:
            clock: Callable returning the current aware datetime (default: UTC now)
        """
        self._clock = clock or utc_now
        self._entries: Dict[str, _SessionEntry] = {}
        self._table_lock = threading.Lock()

        logger.info("SessionStore initialized")

    def now(self) -> datetime:
        """Current time according to the store clock."""
        return self._clock()

    def touch(self, session: ProcessingSession) -> None:
        """Refresh last_activity. Caller must hold the session lock."""
        session.last_activity = self.now()

    def create(
        self, session_id: str, file_names: Sequence[str]
    ) -> Optional[ProcessingSession]:
        """
        Create a new session with all files pending at the upload stage.

        Args:
            session_id: Unique session identifier
            file_names: Names of the uploaded documents

        Returns:
            Snapshot of the created session, or None if the ID already exists
        """
        now = self.now()
        session = ProcessingSession(
            session_id=session_id,
            current_stage=ProcessingStage.UPLOAD,
            files=[
                SessionFile(
                    id=f"file-{index}",
                    name=name,
                    status=FileStatus.PENDING,
                    stage=ProcessingStage.UPLOAD,
                    last_processed=now,
                )
                for index, name in enumerate(file_names)
            ],
            created_at=now,
            last_activity=now,
        )

        with self._table_lock:
            if session_id in self._entries:
                logger.warning(f"Session already exists: {session_id}")
                return None
            self._entries[session_id] = _SessionEntry(session=session)

        logger.info(f"Created session: {session_id} ({len(session.files)} files)")
        return session.snapshot()

    def put(self, session: ProcessingSession) -> None:
        """
        Insert or replace a session.

        Used by checkpoint restore. A replaced entry is marked removed so
        holders of its lock see it as gone.
        """
        entry = _SessionEntry(session=session)
        with self._table_lock:
            previous = self._entries.get(session.session_id)
            self._entries[session.session_id] = entry

        if previous is not None:
            with previous.lock:
                previous.removed = True
            logger.info(f"Replaced session: {session.session_id}")
        else:
            logger.info(f"Inserted session: {session.session_id}")

    def _entry(self, session_id: str) -> Optional[_SessionEntry]:
        with self._table_lock:
            return self._entries.get(session_id)

    @contextmanager
    def locked(self, session_id: str) -> Iterator[Optional[ProcessingSession]]:
        """
        Hold the session lock and yield the live session.

        Yields None for unknown or concurrently removed sessions.
        """
        entry = self._entry(session_id)
        if entry is None:
            yield None
            return

        with entry.lock:
            if entry.removed:
                yield None
            else:
                yield entry.session

    def get(self, session_id: str) -> Optional[ProcessingSession]:
        """
        Get a snapshot of a session.

        Returns:
            Deep copy of the session or None if not found
        """
        with self.locked(session_id) as session:
            if session is None:
                return None
            return session.snapshot()

    def exists(self, session_id: str) -> bool:
        """Check whether a session is registered."""
        return self._entry(session_id) is not None

    def session_ids(self) -> List[str]:
        """IDs of all registered sessions."""
        with self._table_lock:
            return list(self._entries.keys())

    def snapshots(self) -> List[ProcessingSession]:
        """Snapshots of all sessions, each taken under its own lock."""
        result = []
        for session_id in self.session_ids():
            snapshot = self.get(session_id)
            if snapshot is not None:
                result.append(snapshot)
        return result

    def remove(self, session_id: str) -> bool:
        """
        Remove a session.

        Returns:
            True if removed, False if not found
        """
        entry = self._entry(session_id)
        if entry is None:
            return False

        with entry.lock:
            return self._remove_locked(session_id, entry)

    def _remove_locked(self, session_id: str, entry: _SessionEntry) -> bool:
        if entry.removed:
            return False
        with self._table_lock:
            if self._entries.get(session_id) is entry:
                del self._entries[session_id]
        entry.removed = True
        return True

    def sweep_expired(self, max_age: timedelta) -> int:
        """
        Remove sessions inactive for longer than max_age.

        Entries are examined one at a time so concurrent operations on other
        sessions are never blocked.

        Args:
            max_age: Maximum allowed inactivity

        Returns:
            Number of removed sessions
        """
        removed = 0
        for session_id in self.session_ids():
            entry = self._entry(session_id)
            if entry is None:
                continue
            with entry.lock:
                if entry.removed:
                    continue
                if self.now() - entry.session.last_activity > max_age:
                    if self._remove_locked(session_id, entry):
                        removed += 1
                        logger.info(f"Expired session removed: {session_id}")

        if removed:
            logger.info(f"Session sweep removed {removed} sessions")
        return removed

    def mark_file_processing(self, session_id: str, file_id: str) -> bool:
        """
        Move a pending file to processing.

        Returns:
            True if the transition was applied
        """
        return self._transition_file(session_id, file_id, FileStatus.PROCESSING)

    def mark_file_completed(self, session_id: str, file_id: str) -> bool:
        """
        Move a processing file to completed.

        Returns:
            True if the transition was applied
        """
        return self._transition_file(session_id, file_id, FileStatus.COMPLETED)

    def _transition_file(self, session_id: str, file_id: str, target: FileStatus) -> bool:
        with self.locked(session_id) as session:
            if session is None:
                return False

            session_file = session.find_file(file_id)
            if session_file is None:
                logger.warning(f"Unknown file {file_id} in session {session_id}")
                return False

            if not session_file.can_transition(target):
                logger.warning(
                    f"Illegal transition for {file_id}: "
                    f"{session_file.status.value} -> {target.value}"
                )
                return False

            session_file.status = target
            session_file.last_processed = self.now()
            self.touch(session)
            return True

    def __len__(self) -> int:
        with self._table_lock:
            return len(self._entries)

    def __contains__(self, session_id: str) -> bool:
        return self.exists(session_id)
