"""
Checkpoint Record Model

Pydantic schema of the durable session snapshot. Stored records are parsed
through this model so truncated or hand-edited payloads are rejected before
any session is rebuilt from them.
"""

from datetime import datetime
from typing import Any, Dict, List

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field

from .notification import NotificationType, UserNotification
from .processing import ProcessingSession, ProcessingStage, SessionFile


class CheckpointRecord(BaseModel):
    """Durable snapshot of a processing session."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "session_id": "sess-42",
                "stage": "extraction",
                "timestamp": "2026-01-05T10:00:00+00:00",
                "completed_stages": ["upload", "validation"],
                "files": [],
                "notifications": [],
            }
        }
    )

    session_id: str = Field(..., min_length=1, description="Session identifier")
    stage: ProcessingStage = Field(..., description="Stage the checkpoint was taken at")
    timestamp: AwareDatetime = Field(..., description="Checkpoint creation time")
    completed_stages: List[ProcessingStage] = Field(default_factory=list)
    can_recover: bool = Field(True, description="False once the user cancelled")
    files: List[Dict[str, Any]] = Field(default_factory=list, description="SessionFile dicts")
    notifications: List[Dict[str, Any]] = Field(
        default_factory=list, description="Error notifications only"
    )

    @classmethod
    def from_session(
        cls, session: ProcessingSession, stage: ProcessingStage, timestamp: datetime
    ) -> "CheckpointRecord":
        """Build a record from a session snapshot."""
        return cls(
            session_id=session.session_id,
            stage=stage,
            timestamp=timestamp,
            completed_stages=[s for s in ProcessingStage if s in session.completed_stages],
            can_recover=session.can_recover,
            files=[f.to_dict() for f in session.files],
            notifications=[
                n.to_dict() for n in session.notifications if n.type == NotificationType.ERROR
            ],
        )

    def to_session(self) -> ProcessingSession:
        """
        Rebuild a live session from this record.

        Raises:
            KeyError, ValueError: If nested file or notification data is malformed
        """
        return ProcessingSession(
            session_id=self.session_id,
            current_stage=self.stage,
            completed_stages=set(self.completed_stages),
            failed_stages=set(),
            files=[SessionFile.from_dict(f) for f in self.files],
            notifications=[UserNotification.from_dict(n) for n in self.notifications],
            created_at=self.timestamp,
            last_activity=self.timestamp,
            can_recover=self.can_recover,
            stage_retry_count={},
        )
