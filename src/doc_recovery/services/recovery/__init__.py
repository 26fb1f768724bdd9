"""
Processing-Session Lifecycle and Error Recovery Service

Provides fault-tolerant document processing sessions with:
- In-memory session store with per-session locking
- Stage progress tracking with ETA calculation
- Error classification into retry, fallback, skip, manual and abort strategies
- User notifications with recovery actions and bounded subscriber delivery
- SQLite-based checkpoints with age-gated restore
- Risk-scored recovery recommendations and error statistics
- Background expiry sweep and graceful shutdown checkpointing

Usage:
    from doc_recovery.services.recovery import build_engine

    engine = build_engine()
    engine.initialize_session("sess-1", ["lecture.pdf"])

    strategy = engine.handle_error(
        "sess-1",
        ProcessingError(code="NETWORK_ERROR", message="connection reset"),
        file_id="file-0",
    )

    if strategy.automated:
        retry_file(...)
"""

from .checkpoint_store import CheckpointStore, StoredCheckpoint
from .engine import RecoveryEngine, build_engine
from .error_classifier import RecoveryStrategyEngine
from .error_handler import ErrorHandler
from .graceful_shutdown import CheckpointShutdownHandler, GracefulShutdown
from .maintenance import MaintenanceSweeper, SweepResult
from .notification_dispatcher import NotificationDispatcher, SubscriberChannel, Subscription
from .progress_tracker import SessionProgressTracker, estimate_remaining_seconds
from .session_recovery import SessionRecoveryService
from .session_store import SessionStore
from .statistics import StatisticsAggregator

__all__ = [
    # Engine
    "RecoveryEngine",
    "build_engine",
    # Session state
    "SessionStore",
    "SessionProgressTracker",
    "estimate_remaining_seconds",
    # Errors
    "RecoveryStrategyEngine",
    "ErrorHandler",
    # Notifications
    "NotificationDispatcher",
    "SubscriberChannel",
    "Subscription",
    # Checkpoints
    "CheckpointStore",
    "StoredCheckpoint",
    "SessionRecoveryService",
    # Maintenance
    "StatisticsAggregator",
    "MaintenanceSweeper",
    "SweepResult",
    "GracefulShutdown",
    "CheckpointShutdownHandler",
]
