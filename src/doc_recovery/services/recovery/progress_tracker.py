"""
Session Progress Tracker with ETA Calculation

Advances sessions through the processing stages and publishes progress
updates with a time-remaining estimate:
- Stage completion at 100% (idempotent)
- Overall progress derived from completed stages plus the current stage
- ETA extrapolated from elapsed time since session creation

Usage:
    tracker = SessionProgressTracker(store, dispatcher)

    tracker.initialize_session("sess-1", ["lecture.pdf"])
    update = tracker.update_progress(
        "sess-1", ProcessingStage.EXTRACTION, 50, "Extracting text..."
    )
    print(update.estimated_time_remaining)
"""

import logging
import math
from typing import Optional, Sequence

from ...models.notification import ProgressUpdate
from ...models.processing import TOTAL_STAGE_COUNT, ProcessingSession, ProcessingStage
from .notification_dispatcher import NotificationDispatcher
from .session_store import SessionStore

logger = logging.getLogger(__name__)

INITIAL_MESSAGE = "Initializing file processing session..."


def estimate_remaining_seconds(
    completed_stage_count: int,
    stage_percent: float,
    elapsed_seconds: float,
    total_stages: int = TOTAL_STAGE_COUNT,
) -> int:
    """
    Extrapolate the remaining processing time.

    Args:
        completed_stage_count: Number of completed stages
        stage_percent: Progress of the current stage (0-100)
        elapsed_seconds: Seconds since the session was created
        total_stages: Number of pipeline stages

    Returns:
        Rounded, non-negative seconds; 0 when no progress was made yet
    """
    overall = (completed_stage_count + stage_percent / 100) / total_stages
    if overall <= 0:
        return 0

    remaining = elapsed_seconds / overall - elapsed_seconds
    return max(0, round(remaining))


class SessionProgressTracker:
    """Session creation and stage progress reporting."""

    def __init__(self, store: SessionStore, dispatcher: NotificationDispatcher):
        """
        Initialize progress tracker.

        Args:
            store: Session store
            dispatcher: Dispatcher used to publish progress updates
        """
        self.store = store
        self.dispatcher = dispatcher

    def initialize_session(
        self, session_id: str, file_names: Sequence[str]
    ) -> Optional[ProcessingSession]:
        """
        Create a session and publish the initial progress update.

        Args:
            session_id: Unique session identifier
            file_names: Names of the uploaded documents

        Returns:
            Snapshot of the new session, or None if the ID is taken
        """
        session = self.store.create(session_id, file_names)
        if session is None:
            return None

        self.dispatcher.publish_progress(
            ProgressUpdate(
                session_id=session_id,
                stage=ProcessingStage.UPLOAD,
                progress=0,
                message=INITIAL_MESSAGE,
            )
        )
        return session

    def update_progress(
        self,
        session_id: str,
        stage: ProcessingStage,
        percent: float,
        message: str,
        details: Optional[str] = None,
    ) -> Optional[ProgressUpdate]:
        """
        Report progress of a stage.

        Args:
            session_id: Session identifier
            stage: Stage being reported
            percent: Stage progress (clamped to 0-100, NaN and infinities read as 0)
            message: Progress message
            details: Optional detail text

        Returns:
            Published ProgressUpdate, or None for unknown sessions
        """
        if not math.isfinite(percent):
            logger.warning(f"Non-finite progress {percent} for {session_id}, using 0")
            percent = 0.0
        elif percent < 0 or percent > 100:
            logger.warning(f"Progress {percent} for {session_id} out of range, clamping")
            percent = min(100.0, max(0.0, percent))

        with self.store.locked(session_id) as session:
            if session is None:
                logger.debug(f"Progress for unknown session ignored: {session_id}")
                return None

            session.current_stage = stage
            if percent == 100 and stage not in session.completed_stages:
                session.completed_stages.add(stage)
                logger.info(f"Stage completed for {session_id}: {stage.value}")
            self.store.touch(session)

            elapsed = (self.store.now() - session.created_at).total_seconds()
            eta = estimate_remaining_seconds(len(session.completed_stages), percent, elapsed)

        update = ProgressUpdate(
            session_id=session_id,
            stage=stage,
            progress=percent,
            message=message,
            details=details,
            estimated_time_remaining=eta,
        )
        self.dispatcher.publish_progress(update)
        return update

    def get_session(self, session_id: str) -> Optional[ProcessingSession]:
        """Snapshot of a session, or None."""
        return self.store.get(session_id)
