"""
Recovery Models

Recovery directives returned to the pipeline and the result shapes of
session recovery, recommendations and statistics.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .processing import ProcessingSession, ProcessingStage


class StrategyType(str, Enum):
    """Recovery directive for the pipeline."""

    RETRY = "retry"  # Run the same processor again
    FALLBACK = "fallback"  # Switch to the named fallback processor
    SKIP = "skip"  # Drop the item and continue
    MANUAL = "manual"  # User intervention required
    ABORT = "abort"  # Terminal, start over


@dataclass(frozen=True)
class RecoveryStrategy:
    """
    Recovery strategy for a single error.

    Attributes:
        type: Recovery directive
        description: What the engine is going to do
        automated: Whether the pipeline may apply it without the user
        max_retries: Retry budget for retry strategies
        fallback_processor: Processor name for fallback strategies
        user_action: Hint shown when user action is required
    """

    type: StrategyType
    description: str
    automated: bool
    max_retries: Optional[int] = None
    fallback_processor: Optional[str] = None
    user_action: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "type": self.type.value,
            "description": self.description,
            "automated": self.automated,
            "max_retries": self.max_retries,
            "fallback_processor": self.fallback_processor,
            "user_action": self.user_action,
        }


class RiskLevel(str, Enum):
    """Risk of resuming a session."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]


_RISK_RANK = {RiskLevel.LOW: 0, RiskLevel.MEDIUM: 1, RiskLevel.HIGH: 2}


@dataclass
class RecoveryOptions:
    """
    Options for recovering an interrupted session.

    Attributes:
        skip_failed_files: Mark failed files as skipped
        retry_failed_stages: Reset failed files to pending and clear failed stages
        max_recovery_attempts: Retry budget per file
    """

    skip_failed_files: bool = False
    retry_failed_stages: bool = True
    max_recovery_attempts: int = 3


@dataclass
class RecoveryResult:
    """Outcome of a session recovery attempt."""

    success: bool
    message: str
    session: Optional[ProcessingSession] = None
    skipped_files: List[str] = field(default_factory=list)
    failed_recoveries: List[str] = field(default_factory=list)


@dataclass
class RecoveryRecommendations:
    """Heuristic advice about resuming a session."""

    can_recover: bool
    recommendations: List[str]
    risk_level: RiskLevel

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "can_recover": self.can_recover,
            "recommendations": list(self.recommendations),
            "risk_level": self.risk_level.value,
        }


@dataclass
class RecoverableSession:
    """Summary of a stored checkpoint."""

    session_id: str
    last_activity: datetime
    stage: ProcessingStage
    file_count: int
    can_recover: bool

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "session_id": self.session_id,
            "last_activity": self.last_activity.isoformat(),
            "stage": self.stage.value,
            "file_count": self.file_count,
            "can_recover": self.can_recover,
        }


@dataclass
class ErrorStats:
    """Cross-session error statistics."""

    total_sessions: int
    active_sessions: int
    errors_by_type: Dict[str, int]
    recovery_success_rate: float

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "total_sessions": self.total_sessions,
            "active_sessions": self.active_sessions,
            "errors_by_type": dict(self.errors_by_type),
            "recovery_success_rate": self.recovery_success_rate,
        }
