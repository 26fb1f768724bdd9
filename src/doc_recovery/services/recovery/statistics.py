"""
Error Statistics Aggregation

Cross-session health figures computed from session snapshots.
"""

import logging
from datetime import timedelta
from typing import Dict, Optional

from ...config import RecoveryConfig
from ...models.processing import FileStatus
from ...models.recovery import ErrorStats
from .session_store import SessionStore

logger = logging.getLogger(__name__)


class StatisticsAggregator:
    """
    Error counts and recovery rate across all sessions.

    An error counts as recovered when the file it belongs to eventually
    completed. Only file errors are counted.
    """

    def __init__(self, store: SessionStore, config: Optional[RecoveryConfig] = None):
        config = config or RecoveryConfig()
        self.store = store
        self.active_window = timedelta(minutes=config.active_window_minutes)
        self.session_max_age = timedelta(hours=config.session_max_age_hours)

    def get_error_stats(self) -> ErrorStats:
        """
        Compute error statistics.

        Returns:
            ErrorStats; recovery_success_rate is 1.0 when no errors exist
        """
        sessions = self.store.snapshots()
        now = self.store.now()

        errors_by_type: Dict[str, int] = {}
        total_errors = 0
        recovered_errors = 0

        for session in sessions:
            for session_file in session.files:
                for error in session_file.errors:
                    errors_by_type[error.code] = errors_by_type.get(error.code, 0) + 1
                    total_errors += 1
                    if session_file.status == FileStatus.COMPLETED:
                        recovered_errors += 1

        active = sum(1 for s in sessions if now - s.last_activity <= self.active_window)

        return ErrorStats(
            total_sessions=len(sessions),
            active_sessions=active,
            errors_by_type=errors_by_type,
            recovery_success_rate=recovered_errors / total_errors if total_errors else 1.0,
        )

    def cleanup(self) -> int:
        """Remove sessions idle longer than the session age limit."""
        removed = self.store.sweep_expired(self.session_max_age)
        logger.info(f"Session cleanup removed {removed} sessions")
        return removed
