"""
Recovery Engine

Composition root wiring the session store, strategy engine, notification
dispatcher, checkpoint persistence, statistics and maintenance into one
explicitly constructed object.

Usage:
    engine = build_engine(load_recovery_config(Path("config.yaml")))

    engine.initialize_session("sess-1", ["notes.pdf", "slides.pptx"])
    engine.update_progress("sess-1", ProcessingStage.EXTRACTION, 40, "Extracting...")

    strategy = engine.handle_error(
        "sess-1", ProcessingError(code="PARSE_ERROR", message="bad xref"), file_id="file-0"
    )

    engine.create_checkpoint("sess-1", ProcessingStage.EXTRACTION)
    engine.close()
"""

import logging
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Union

from ...config import RecoveryConfig
from ...models.notification import (
    NotificationAction,
    ProgressUpdate,
    RecoveryAction,
    UserNotification,
)
from ...models.processing import ProcessingError, ProcessingSession, ProcessingStage
from ...models.recovery import (
    ErrorStats,
    RecoverableSession,
    RecoveryOptions,
    RecoveryRecommendations,
    RecoveryResult,
    RecoveryStrategy,
)
from .checkpoint_store import CheckpointStore
from .error_classifier import RecoveryStrategyEngine
from .error_handler import ErrorHandler
from .maintenance import MaintenanceSweeper
from .notification_dispatcher import NotificationDispatcher, Subscription
from .progress_tracker import SessionProgressTracker
from .session_recovery import SessionRecoveryService
from .session_store import Clock, SessionStore
from .statistics import StatisticsAggregator

logger = logging.getLogger(__name__)


class RecoveryEngine:
    """
    Facade over the session lifecycle and recovery components.

    Every method returns explicit success/failure values and never raises
    for unknown sessions.
    """

    def __init__(
        self,
        config: RecoveryConfig,
        store: SessionStore,
        checkpoints: CheckpointStore,
        strategies: Optional[RecoveryStrategyEngine] = None,
    ):
        """
        Initialize recovery engine.

        Args:
            config: Engine configuration
            store: Live session store
            checkpoints: Durable checkpoint storage
            strategies: Strategy engine (default decision table if omitted)
        """
        self.config = config
        self.store = store
        self.checkpoints = checkpoints
        self.strategies = strategies or RecoveryStrategyEngine()

        self.dispatcher = NotificationDispatcher(store, queue_size=config.subscriber_queue_size)
        self.progress = SessionProgressTracker(store, self.dispatcher)
        self.errors = ErrorHandler(store, self.strategies, self.dispatcher)
        self.recovery = SessionRecoveryService(store, checkpoints, self.dispatcher, config)
        self.statistics = StatisticsAggregator(store, config)
        self.sweeper = MaintenanceSweeper(
            self.statistics, self.recovery, interval_seconds=config.sweep_interval_seconds
        )

        logger.info("RecoveryEngine initialized")

    # Session lifecycle

    def initialize_session(
        self, session_id: str, file_names: Sequence[str]
    ) -> Optional[ProcessingSession]:
        return self.progress.initialize_session(session_id, file_names)

    def update_progress(
        self,
        session_id: str,
        stage: ProcessingStage,
        percent: float,
        message: str,
        details: Optional[str] = None,
    ) -> Optional[ProgressUpdate]:
        return self.progress.update_progress(session_id, stage, percent, message, details)

    def get_session(self, session_id: str) -> Optional[ProcessingSession]:
        return self.store.get(session_id)

    def mark_file_processing(self, session_id: str, file_id: str) -> bool:
        return self.store.mark_file_processing(session_id, file_id)

    def mark_file_completed(self, session_id: str, file_id: str) -> bool:
        return self.store.mark_file_completed(session_id, file_id)

    # Errors and notifications

    def handle_error(
        self,
        session_id: str,
        error: ProcessingError,
        file_id: Optional[str] = None,
        stage: Optional[ProcessingStage] = None,
    ) -> RecoveryStrategy:
        return self.errors.handle_error(session_id, error, file_id=file_id, stage=stage)

    def classify(self, error: ProcessingError, attempt: int) -> RecoveryStrategy:
        return self.strategies.classify(error, attempt)

    def create_notification(
        self,
        error: ProcessingError,
        strategy: RecoveryStrategy,
        stage: Optional[ProcessingStage] = None,
        file_id: Optional[str] = None,
    ) -> UserNotification:
        return self.dispatcher.create_notification(error, strategy, stage, file_id)

    def add_notification(self, session_id: str, notification: UserNotification) -> bool:
        return self.dispatcher.add_notification(session_id, notification)

    def execute_recovery(
        self,
        session_id: str,
        notification_id: str,
        action: Union[NotificationAction, RecoveryAction, str],
        file_id: Optional[str] = None,
    ) -> bool:
        return self.dispatcher.execute_recovery(session_id, notification_id, action, file_id)

    def dismiss_notification(self, session_id: str, notification_id: str) -> bool:
        return self.dispatcher.dismiss_notification(session_id, notification_id)

    def on_notification(
        self, callback: Callable[[UserNotification], Any]
    ) -> Subscription[UserNotification]:
        return self.dispatcher.on_notification(callback)

    def on_progress(self, callback: Callable[[ProgressUpdate], Any]) -> Subscription[ProgressUpdate]:
        return self.dispatcher.on_progress(callback)

    # Checkpoints and recovery

    def create_checkpoint(self, session_id: str, stage: ProcessingStage) -> bool:
        return self.recovery.create_checkpoint(session_id, stage)

    def checkpoint_all(self) -> int:
        """Checkpoint every live session at its current stage."""
        saved = 0
        for session in self.store.snapshots():
            if self.recovery.create_checkpoint(session.session_id, session.current_stage):
                saved += 1
        return saved

    def restore_from_checkpoint(self, session_id: str) -> Optional[ProcessingSession]:
        return self.recovery.restore_from_checkpoint(session_id)

    def recover_session(
        self, session_id: str, options: Optional[RecoveryOptions] = None
    ) -> RecoveryResult:
        return self.recovery.recover_session(session_id, options)

    def can_recover_session(self, session_id: str) -> bool:
        return self.recovery.can_recover_session(session_id)

    def get_recovery_recommendations(self, session_id: str) -> RecoveryRecommendations:
        return self.recovery.get_recovery_recommendations(session_id)

    def cleanup_checkpoints(self) -> int:
        return self.recovery.cleanup_checkpoints()

    def get_recoverable_sessions(self) -> List[RecoverableSession]:
        return self.recovery.get_recoverable_sessions()

    # Statistics and maintenance

    def get_error_stats(self) -> ErrorStats:
        return self.statistics.get_error_stats()

    def cleanup(self) -> int:
        return self.statistics.cleanup()

    def start_maintenance(self) -> None:
        self.sweeper.start()

    def close(self) -> None:
        """Stop background threads and close the checkpoint database."""
        self.sweeper.stop()
        self.dispatcher.close()
        self.checkpoints.close()
        logger.info("RecoveryEngine closed")


def build_engine(
    config: Optional[RecoveryConfig] = None, clock: Optional[Clock] = None
) -> RecoveryEngine:
    """
    Construct a RecoveryEngine from configuration.

    Args:
        config: Engine configuration (defaults if omitted)
        clock: Clock for all time-based rules (default: UTC now)

    Returns:
        RecoveryEngine instance (maintenance not started)
    """
    config = config or RecoveryConfig()
    Path(config.checkpoint_db_path).parent.mkdir(parents=True, exist_ok=True)

    return RecoveryEngine(
        config=config,
        store=SessionStore(clock=clock),
        checkpoints=CheckpointStore(db_path=config.checkpoint_db_path),
    )
