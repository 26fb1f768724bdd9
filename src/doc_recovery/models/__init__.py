"""
Domain models for the processing-session recovery engine.
"""

from .checkpoint import CheckpointRecord
from .notification import (
    ActionData,
    CancelData,
    FallbackData,
    NotificationAction,
    NotificationType,
    ProgressUpdate,
    RecoveryAction,
    RetryData,
    SkipData,
    UserNotification,
)
from .processing import (
    TOTAL_STAGE_COUNT,
    ErrorCode,
    ErrorSeverity,
    FileStatus,
    ProcessingError,
    ProcessingSession,
    ProcessingStage,
    SessionFile,
)
from .recovery import (
    ErrorStats,
    RecoverableSession,
    RecoveryOptions,
    RecoveryRecommendations,
    RecoveryResult,
    RecoveryStrategy,
    RiskLevel,
    StrategyType,
)

__all__ = [
    # Processing state
    "ProcessingStage",
    "TOTAL_STAGE_COUNT",
    "FileStatus",
    "ErrorSeverity",
    "ErrorCode",
    "ProcessingError",
    "SessionFile",
    "ProcessingSession",
    # Notifications
    "NotificationType",
    "RecoveryAction",
    "ActionData",
    "RetryData",
    "SkipData",
    "FallbackData",
    "CancelData",
    "NotificationAction",
    "UserNotification",
    "ProgressUpdate",
    # Recovery
    "StrategyType",
    "RecoveryStrategy",
    "RiskLevel",
    "RecoveryOptions",
    "RecoveryResult",
    "RecoveryRecommendations",
    "RecoverableSession",
    "ErrorStats",
    # Checkpoint
    "CheckpointRecord",
]
