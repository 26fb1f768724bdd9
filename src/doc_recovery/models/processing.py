"""
Processing Session Models

Session and file state for documents moving through the processing pipeline.

State shapes:
- ProcessingStage: fixed, ordered pipeline phases
- SessionFile: per-document status, error history and retry counter
- ProcessingSession: one user upload batch tracked end-to-end
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Set

if TYPE_CHECKING:
    from .notification import UserNotification


class ProcessingStage(str, Enum):
    """Pipeline stage. Declaration order is the processing order."""

    UPLOAD = "upload"
    VALIDATION = "validation"
    EXTRACTION = "extraction"
    OCR = "ocr"
    AI_PROCESSING = "ai-processing"
    TOPIC_EXTRACTION = "topic-extraction"
    CONTENT_ORGANIZATION = "content-organization"
    LAYOUT_GENERATION = "layout-generation"
    PDF_GENERATION = "pdf-generation"
    COMPLETION = "completion"

    @property
    def label(self) -> str:
        """Human readable stage name ("ai-processing" -> "ai processing")."""
        return self.value.replace("-", " ")


TOTAL_STAGE_COUNT = len(ProcessingStage)


class FileStatus(str, Enum):
    """Status of a file within a session."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


# Legal file status transitions
FILE_TRANSITIONS: Dict[FileStatus, Set[FileStatus]] = {
    FileStatus.PENDING: {FileStatus.PROCESSING},
    FileStatus.PROCESSING: {FileStatus.COMPLETED, FileStatus.FAILED},
    FileStatus.FAILED: {FileStatus.PENDING, FileStatus.SKIPPED},
    FileStatus.COMPLETED: set(),
    FileStatus.SKIPPED: set(),
}


class ErrorSeverity(str, Enum):
    """Severity reported by the component that produced the error."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ErrorCode(str, Enum):
    """Error codes the recovery engine knows how to classify."""

    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    MEMORY_ERROR = "MEMORY_ERROR"
    OCR_ERROR = "OCR_ERROR"
    PARSE_ERROR = "PARSE_ERROR"
    AI_SERVICE_ERROR = "AI_SERVICE_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    # Presentation only, classified through the default row
    PERMISSION_DENIED = "PERMISSION_DENIED"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ProcessingError:
    """
    Error reported by an external pipeline component.

    Attributes:
        code: Error code string (see ErrorCode); unknown codes are allowed
        message: Raw error message
        severity: Error severity
        context: Opaque diagnostic text attached by the pipeline
    """

    code: str
    message: str
    severity: ErrorSeverity = ErrorSeverity.MEDIUM
    context: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "context": self.context,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProcessingError":
        """Create from dictionary."""
        return cls(
            code=data["code"],
            message=data["message"],
            severity=ErrorSeverity(data.get("severity", ErrorSeverity.MEDIUM)),
            context=data.get("context"),
        )


@dataclass
class SessionFile:
    """
    State of a single uploaded document.

    Attributes:
        id: File identifier within the session ("file-<index>")
        name: Original file name
        status: Current file status
        stage: Stage the file currently resides in
        errors: Errors encountered by this file (append-only)
        retry_count: Executed retry/fallback actions
        last_processed: Timestamp of the last change
        fallback_processor: Fallback processor requested for the next attempt
    """

    id: str
    name: str
    status: FileStatus = FileStatus.PENDING
    stage: ProcessingStage = ProcessingStage.UPLOAD
    errors: List[ProcessingError] = field(default_factory=list)
    retry_count: int = 0
    last_processed: datetime = field(default_factory=utc_now)
    fallback_processor: Optional[str] = None

    def can_transition(self, target: FileStatus) -> bool:
        """Check whether moving to target is a legal transition."""
        return target in FILE_TRANSITIONS[self.status]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status.value,
            "stage": self.stage.value,
            "errors": [error.to_dict() for error in self.errors],
            "retry_count": self.retry_count,
            "last_processed": self.last_processed.isoformat(),
            "fallback_processor": self.fallback_processor,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionFile":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            name=data["name"],
            status=FileStatus(data.get("status", FileStatus.PENDING)),
            stage=ProcessingStage(data.get("stage", ProcessingStage.UPLOAD)),
            errors=[ProcessingError.from_dict(e) for e in data.get("errors", [])],
            retry_count=int(data.get("retry_count", 0)),
            last_processed=datetime.fromisoformat(data["last_processed"]),
            fallback_processor=data.get("fallback_processor"),
        )


@dataclass
class ProcessingSession:
    """
    State of one upload batch.

    Attributes:
        session_id: Unique session identifier
        current_stage: Last stage reported via progress update
        completed_stages: Stages that reached 100% at least once
        failed_stages: Stages that produced at least one error
        files: Uploaded documents, fixed at creation
        notifications: Pending user notifications
        created_at: Session creation timestamp
        last_activity: Timestamp of the last mutation
        can_recover: False once the user cancelled the session
        stage_retry_count: Session-level (file-less) error count per stage
    """

    session_id: str
    current_stage: ProcessingStage = ProcessingStage.UPLOAD
    completed_stages: Set[ProcessingStage] = field(default_factory=set)
    failed_stages: Set[ProcessingStage] = field(default_factory=set)
    files: List[SessionFile] = field(default_factory=list)
    notifications: List["UserNotification"] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    last_activity: datetime = field(default_factory=utc_now)
    can_recover: bool = True
    stage_retry_count: Dict[ProcessingStage, int] = field(default_factory=dict)

    def find_file(self, file_id: str) -> Optional[SessionFile]:
        """Get file by ID."""
        for session_file in self.files:
            if session_file.id == file_id:
                return session_file
        return None

    def first_failed_file(self) -> Optional[SessionFile]:
        """Get the first file in failed status."""
        for session_file in self.files:
            if session_file.status == FileStatus.FAILED:
                return session_file
        return None

    def files_with_status(self, status: FileStatus) -> List[SessionFile]:
        """Get all files with a specific status."""
        return [f for f in self.files if f.status == status]

    def age_seconds(self, now: datetime) -> float:
        """Seconds since the last mutation."""
        return (now - self.last_activity).total_seconds()

    def snapshot(self) -> "ProcessingSession":
        """Deep copy sharing no mutable state with this session."""
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization (stages in pipeline order)."""
        return {
            "session_id": self.session_id,
            "current_stage": self.current_stage.value,
            "completed_stages": [s.value for s in ProcessingStage if s in self.completed_stages],
            "failed_stages": [s.value for s in ProcessingStage if s in self.failed_stages],
            "files": [f.to_dict() for f in self.files],
            "notifications": [n.to_dict() for n in self.notifications],
            "created_at": self.created_at.isoformat(),
            "last_activity": self.last_activity.isoformat(),
            "can_recover": self.can_recover,
            "stage_retry_count": {
                stage.value: count for stage, count in self.stage_retry_count.items()
            },
        }
