"""
Error Handler

Records a pipeline error against its session, classifies it and raises a
user notification for the chosen recovery strategy.
"""

import logging
from typing import Optional

from ...models.processing import FileStatus, ProcessingError, ProcessingStage
from ...models.recovery import RecoveryStrategy
from .error_classifier import SESSION_NOT_FOUND, RecoveryStrategyEngine
from .notification_dispatcher import NotificationDispatcher
from .session_store import SessionStore

logger = logging.getLogger(__name__)


class ErrorHandler:
    """
    Applies the side effects of a reported error.

    Usage:
        handler = ErrorHandler(store, RecoveryStrategyEngine(), dispatcher)

        strategy = handler.handle_error(
            "sess-1",
            ProcessingError(code="OCR_ERROR", message="garbage output"),
            file_id="file-0",
        )
    """

    def __init__(
        self,
        store: SessionStore,
        engine: RecoveryStrategyEngine,
        dispatcher: NotificationDispatcher,
    ):
        self.store = store
        self.engine = engine
        self.dispatcher = dispatcher

    def handle_error(
        self,
        session_id: str,
        error: ProcessingError,
        file_id: Optional[str] = None,
        stage: Optional[ProcessingStage] = None,
    ) -> RecoveryStrategy:
        """
        Record an error and choose how to recover from it.

        File errors use the file's retry_count as the attempt; session-level
        errors use the stage retry count read before this error is counted.
        Completed and skipped files keep their status.

        Args:
            session_id: Session identifier
            error: Reported error
            file_id: Failing file, None for session-level errors
            stage: Stage the error occurred in (default: current stage)

        Returns:
            RecoveryStrategy; an abort strategy when the session is unknown
        """
        with self.store.locked(session_id) as session:
            if session is None:
                logger.warning(f"Error reported for unknown session {session_id}: {error.code}")
                return SESSION_NOT_FOUND

            stage = stage or session.current_stage

            target = None
            if file_id is not None:
                target = session.find_file(file_id)
                if target is None:
                    logger.warning(
                        f"Unknown file {file_id} in session {session_id}, "
                        f"treating {error.code} as session-level"
                    )

            if target is not None:
                attempt = target.retry_count
                target.errors.append(error)
                if target.status in (FileStatus.COMPLETED, FileStatus.SKIPPED):
                    logger.warning(
                        f"{error.code} reported for {target.status.value} file "
                        f"{target.id} in {session_id}, status kept"
                    )
                else:
                    # a pending file fails on its way through processing
                    target.status = FileStatus.FAILED
                    target.stage = stage
                    target.last_processed = self.store.now()
            else:
                attempt = session.stage_retry_count.get(stage, 0)
                session.stage_retry_count[stage] = attempt + 1

            session.failed_stages.add(stage)
            self.store.touch(session)

            strategy = self.engine.classify(error, attempt)
            notification = self.dispatcher.create_notification(
                error, strategy, stage, file_id=target.id if target else None
            )
            self.dispatcher.append_locked(session, notification)

        logger.info(
            f"Handled {error.code} in {session_id} at {stage.value} "
            f"(file={file_id or '-'}, attempt={attempt}) -> {strategy.type.value}"
        )
        return strategy
