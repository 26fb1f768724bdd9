"""
Background Maintenance Sweeper

Periodically removes expired sessions and old checkpoints.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from .session_recovery import SessionRecoveryService
from .statistics import StatisticsAggregator

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    """Counts removed by one sweep."""

    sessions_removed: int = 0
    checkpoints_removed: int = 0


class MaintenanceSweeper:
    """
    Runs session and checkpoint cleanup on a daemon thread.

    Usage:
        sweeper = MaintenanceSweeper(statistics, recovery, interval_seconds=300)
        sweeper.start()
        ...
        sweeper.stop()
    """

    def __init__(
        self,
        statistics: StatisticsAggregator,
        recovery: SessionRecoveryService,
        interval_seconds: float = 300.0,
    ):
        self.statistics = statistics
        self.recovery = recovery
        self.interval_seconds = interval_seconds

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._running = False
        self.sweeps = 0

    @property
    def is_running(self) -> bool:
        return self._running

    def run_once(self) -> SweepResult:
        """Run one sweep synchronously."""
        result = SweepResult(
            sessions_removed=self.statistics.cleanup(),
            checkpoints_removed=self.recovery.cleanup_checkpoints(),
        )
        self.sweeps += 1
        logger.debug(
            f"Sweep {self.sweeps}: {result.sessions_removed} sessions, "
            f"{result.checkpoints_removed} checkpoints removed"
        )
        return result

    def start(self) -> None:
        """Start the background sweep."""
        if self._running:
            logger.warning("Maintenance sweeper already running")
            return

        self._stop_event.clear()
        self._running = True

        self._thread = threading.Thread(
            target=self._sweep_loop, daemon=True, name="RecoveryMaintenance"
        )
        self._thread.start()
        logger.info(f"Maintenance sweeper started (interval: {self.interval_seconds}s)")

    def stop(self) -> None:
        """Stop the background sweep."""
        if not self._running:
            return

        self._stop_event.set()
        self._running = False

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2.0)

        self._thread = None
        logger.info("Maintenance sweeper stopped")

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            try:
                self.run_once()
            except Exception as e:
                logger.error(f"Error in maintenance sweep: {e}")
