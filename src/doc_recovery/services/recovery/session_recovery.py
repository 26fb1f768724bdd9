"""
Session Checkpoint and Recovery Service

Persists session checkpoints and brings interrupted sessions back:
- Checkpoints are snapshots taken under the session lock and written after
  the lock is released
- Restores reject checkpoints older than the checkpoint age limit and drop
  corrupted records
- Recovery resets or skips failed files and reports what happened through
  a "Session Recovered" notification
- Recommendations score the risk of resuming a session

Usage:
    recovery = SessionRecoveryService(store, checkpoints, dispatcher, config)

    recovery.create_checkpoint("sess-1", ProcessingStage.OCR)

    # After a restart
    session = recovery.restore_from_checkpoint("sess-1")
    result = recovery.recover_session("sess-1", RecoveryOptions(skip_failed_files=True))
    if not result.success:
        print(result.message)
"""

import logging
import sqlite3
from datetime import datetime, timedelta
from typing import List, Optional

from pydantic import ValidationError

from ...config import RecoveryConfig
from ...models.checkpoint import CheckpointRecord
from ...models.notification import NotificationType, UserNotification, new_notification_id
from ...models.processing import FileStatus, ProcessingSession, ProcessingStage
from ...models.recovery import (
    RecoverableSession,
    RecoveryOptions,
    RecoveryRecommendations,
    RecoveryResult,
    RiskLevel,
)
from .checkpoint_store import CheckpointStore, StoredCheckpoint
from .notification_dispatcher import NotificationDispatcher
from .session_store import SessionStore

logger = logging.getLogger(__name__)

# Errors that mark a stored checkpoint as unusable
CORRUPTED_CHECKPOINT_ERRORS = (ValidationError, ValueError, KeyError, TypeError)


class SessionRecoveryService:
    """
    Checkpoint creation/restore and recovery of interrupted sessions.

    Age limits (defaults from RecoveryConfig):
        - Sessions idle > 24h cannot be recovered
        - Checkpoints older than 24h cannot be restored
        - Checkpoints older than 7 days are deleted by cleanup
    """

    def __init__(
        self,
        store: SessionStore,
        checkpoints: CheckpointStore,
        dispatcher: NotificationDispatcher,
        config: Optional[RecoveryConfig] = None,
    ):
        """
        Initialize recovery service.

        Args:
            store: Live session store
            checkpoints: Durable checkpoint storage
            dispatcher: Dispatcher for the recovery notification
            config: Age limits and notice duration
        """
        self.store = store
        self.checkpoints = checkpoints
        self.dispatcher = dispatcher
        self.config = config or RecoveryConfig()

        self.session_max_age = timedelta(hours=self.config.session_max_age_hours)
        self.checkpoint_max_age = timedelta(hours=self.config.checkpoint_max_age_hours)
        self.checkpoint_retention = timedelta(days=self.config.checkpoint_retention_days)

    # Checkpoints

    def create_checkpoint(self, session_id: str, stage: ProcessingStage) -> bool:
        """
        Persist a checkpoint of a session.

        Args:
            session_id: Session identifier
            stage: Stage to resume from

        Returns:
            True if the checkpoint was written
        """
        session = self.store.get(session_id)
        if session is None:
            logger.warning(f"Cannot checkpoint unknown session: {session_id}")
            return False

        try:
            record = CheckpointRecord.from_session(session, stage, self.store.now())
            self.checkpoints.save(session_id, record.model_dump_json(), record.timestamp)
        except (sqlite3.Error, ValidationError, ValueError) as e:
            logger.error(f"Failed to create checkpoint for {session_id}: {e}")
            return False

        logger.info(f"Checkpoint created: {session_id} at {stage.value}")
        return True

    def _parse(self, row: StoredCheckpoint) -> CheckpointRecord:
        return CheckpointRecord.model_validate_json(row.payload)

    def _delete_checkpoint(self, session_id: str) -> None:
        try:
            self.checkpoints.delete(session_id)
        except sqlite3.Error as e:
            logger.error(f"Failed to delete checkpoint {session_id}: {e}")

    def restore_from_checkpoint(self, session_id: str) -> Optional[ProcessingSession]:
        """
        Rebuild a session from its checkpoint and make it live.

        Expired and corrupted checkpoints are deleted. A live session that was
        cancelled, or that changed after the checkpoint was taken, is kept.

        Args:
            session_id: Session identifier

        Returns:
            Snapshot of the restored session, or None
        """
        try:
            row = self.checkpoints.load(session_id)
        except sqlite3.Error as e:
            logger.error(f"Failed to load checkpoint {session_id}: {e}")
            return None

        if row is None:
            logger.info(f"No checkpoint for session: {session_id}")
            return None

        try:
            record = self._parse(row)
            session = record.to_session()
            age = self.store.now() - record.timestamp
        except CORRUPTED_CHECKPOINT_ERRORS as e:
            logger.error(f"Corrupted checkpoint for {session_id} deleted: {e}")
            self._delete_checkpoint(session_id)
            return None

        if age > self.checkpoint_max_age:
            logger.warning(f"Expired checkpoint for {session_id} deleted")
            self._delete_checkpoint(session_id)
            return None

        with self.store.locked(session_id) as live:
            if live is not None:
                if not live.can_recover:
                    logger.warning(f"Restore refused for cancelled session: {session_id}")
                    return None
                if live.last_activity > record.timestamp:
                    logger.warning(
                        f"Restore refused for {session_id}: live session is newer "
                        f"than its checkpoint"
                    )
                    return None

            snapshot = session.snapshot()
            self.store.put(session)

        logger.info(
            f"Session restored from checkpoint: {session_id} "
            f"(stage={record.stage.value}, files={len(session.files)})"
        )
        return snapshot

    def cleanup_checkpoints(self) -> int:
        """
        Delete checkpoints past the retention period and corrupted ones.

        Returns:
            Number of deleted checkpoints
        """
        try:
            rows = self.checkpoints.list_all()
        except sqlite3.Error as e:
            logger.error(f"Failed to list checkpoints: {e}")
            return 0

        deleted = 0
        now = self.store.now()
        for row in rows:
            try:
                record = self._parse(row)
                expired = now - record.timestamp > self.checkpoint_retention
            except CORRUPTED_CHECKPOINT_ERRORS as e:
                logger.warning(f"Removing corrupted checkpoint {row.session_id}: {e}")
                expired = True

            if expired:
                try:
                    if self.checkpoints.delete(row.session_id):
                        deleted += 1
                except sqlite3.Error as e:
                    logger.error(f"Failed to delete checkpoint {row.session_id}: {e}")

        if deleted:
            logger.info(f"Checkpoint cleanup removed {deleted} checkpoints")
        return deleted

    def get_recoverable_sessions(self) -> List[RecoverableSession]:
        """
        Summaries of all stored checkpoints, most recent first.

        can_recover reflects the live session, so checkpoints without a live
        session are listed as not recoverable until restored.
        """
        try:
            rows = self.checkpoints.list_all()
        except sqlite3.Error as e:
            logger.error(f"Failed to list checkpoints: {e}")
            return []

        sessions = []
        for row in rows:
            try:
                record = self._parse(row)
            except CORRUPTED_CHECKPOINT_ERRORS:
                logger.debug(f"Skipping corrupted checkpoint {row.session_id}")
                continue

            sessions.append(
                RecoverableSession(
                    session_id=record.session_id,
                    last_activity=record.timestamp,
                    stage=record.stage,
                    file_count=len(record.files),
                    can_recover=self.can_recover_session(record.session_id),
                )
            )

        sessions.sort(key=lambda s: s.last_activity, reverse=True)
        return sessions

    # Recovery

    def _too_old(self, session: ProcessingSession, now: datetime) -> bool:
        return now - session.last_activity > self.session_max_age

    def can_recover_session(self, session_id: str) -> bool:
        """Check that a session exists, is recoverable and is not too old."""
        with self.store.locked(session_id) as session:
            if session is None or not session.can_recover:
                return False
            return not self._too_old(session, self.store.now())

    def recover_session(
        self, session_id: str, options: Optional[RecoveryOptions] = None
    ) -> RecoveryResult:
        """
        Resume an interrupted session.

        Failed files are skipped (skip_failed_files), reset to pending while
        their retry budget lasts (retry_failed_stages), or reported as failed
        recoveries.

        Args:
            session_id: Session identifier
            options: Recovery options (defaults use the configured retry budget)

        Returns:
            RecoveryResult with a snapshot of the recovered session
        """
        if options is None:
            options = RecoveryOptions(max_recovery_attempts=self.config.max_recovery_attempts)

        with self.store.locked(session_id) as session:
            if session is None:
                return RecoveryResult(success=False, message="Session not found or expired")

            if not session.can_recover:
                return RecoveryResult(success=False, message="Session marked as non-recoverable")

            now = self.store.now()
            if self._too_old(session, now):
                return RecoveryResult(
                    success=False, message="Session too old to recover (older than 24 hours)"
                )

            skipped_files: List[str] = []
            failed_recoveries: List[str] = []

            for session_file in session.files_with_status(FileStatus.FAILED):
                if options.skip_failed_files:
                    session_file.status = FileStatus.SKIPPED
                    skipped_files.append(session_file.name)
                elif (
                    options.retry_failed_stages
                    and session_file.retry_count < options.max_recovery_attempts
                ):
                    session_file.status = FileStatus.PENDING
                    session_file.retry_count += 1
                else:
                    failed_recoveries.append(session_file.name)
                session_file.last_processed = now

            if options.retry_failed_stages:
                session.failed_stages.clear()

            self.store.touch(session)
            self.dispatcher.append_locked(
                session,
                UserNotification(
                    id=new_notification_id("recovery"),
                    type=NotificationType.INFO,
                    title="Session Recovered",
                    message=self._recovery_message(
                        skipped_files, failed_recoveries, options.retry_failed_stages
                    ),
                    stage=session.current_stage,
                    timestamp=now,
                    dismissible=True,
                    auto_hide=True,
                    duration=self.config.recovery_notice_ms,
                ),
            )
            snapshot = session.snapshot()

        logger.info(
            f"Session recovered: {session_id} "
            f"(skipped={len(skipped_files)}, unrecovered={len(failed_recoveries)})"
        )
        return RecoveryResult(
            success=True,
            message="Session successfully recovered",
            session=snapshot,
            skipped_files=skipped_files,
            failed_recoveries=failed_recoveries,
        )

    @staticmethod
    def _recovery_message(
        skipped_files: List[str], failed_recoveries: List[str], retry_failed_stages: bool
    ) -> str:
        parts = ["Your session has been restored."]
        if skipped_files:
            parts.append(f"{len(skipped_files)} failed files were skipped.")
        if failed_recoveries:
            parts.append(f"{len(failed_recoveries)} files could not be recovered.")
        if retry_failed_stages:
            parts.append("Failed processing stages will be retried.")
        parts.append("Processing will continue from where it left off.")
        return " ".join(parts)

    def get_recovery_recommendations(self, session_id: str) -> RecoveryRecommendations:
        """
        Assess the risk of resuming a session.

        Risk Rules:
            - idle > 12h: medium, idle > 20h: high
            - more than half of the files failed: high
            - any file retried more than twice: at least medium

        Returns:
            RecoveryRecommendations (high risk for unknown sessions)
        """
        session = self.store.get(session_id)
        if session is None:
            return RecoveryRecommendations(
                can_recover=False,
                recommendations=["Session not found"],
                risk_level=RiskLevel.HIGH,
            )

        recommendations: List[str] = []
        risk = RiskLevel.LOW

        def raise_risk(level: RiskLevel) -> None:
            nonlocal risk
            if level.rank > risk.rank:
                risk = level

        hours_old = session.age_seconds(self.store.now()) / 3600
        if hours_old > 12:
            recommendations.append("Session is quite old - some data may be lost")
            raise_risk(RiskLevel.MEDIUM)
        if hours_old > 20:
            recommendations.append("Session is very old - recovery may fail")
            raise_risk(RiskLevel.HIGH)

        failed_files = session.files_with_status(FileStatus.FAILED)
        if failed_files:
            recommendations.append(f"{len(failed_files)} files failed - consider skipping them")
            if len(failed_files) > len(session.files) / 2:
                raise_risk(RiskLevel.HIGH)

        if session.failed_stages:
            recommendations.append(f"{len(session.failed_stages)} processing stages failed")
            if ProcessingStage.AI_PROCESSING in session.failed_stages:
                recommendations.append("AI processing failed - may need to use fallback methods")

        high_retry_files = [f for f in session.files if f.retry_count > 2]
        if high_retry_files:
            recommendations.append(
                f"{len(high_retry_files)} files have been retried multiple times"
            )
            raise_risk(RiskLevel.MEDIUM)

        if not recommendations:
            recommendations.append("Session appears healthy and can be safely recovered")

        return RecoveryRecommendations(
            can_recover=self.can_recover_session(session_id),
            recommendations=recommendations,
            risk_level=risk,
        )
