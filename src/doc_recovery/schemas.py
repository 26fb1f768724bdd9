"""
Pydantic schemas

Request and response models of the HTTP API.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from doc_recovery.models import (
    CancelData,
    ErrorSeverity,
    FallbackData,
    NotificationAction,
    ProcessingError,
    ProcessingStage,
    RecoveryAction,
    RecoveryOptions,
    RetryData,
    SkipData,
)


class HealthResponse(BaseModel):
    """Health check response"""

    status: str


class SessionCreateRequest(BaseModel):
    """Session creation request"""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"session_id": "sess-42", "file_names": ["notes.pdf", "slides.pptx"]}
        }
    )

    session_id: str = Field(..., min_length=1, max_length=200, description="Session ID")
    file_names: List[str] = Field(default_factory=list, description="Uploaded file names")


class ProgressRequest(BaseModel):
    """Progress report"""

    stage: ProcessingStage
    percent: float = Field(
        ..., allow_inf_nan=False, description="Stage progress, clamped to 0-100"
    )
    message: str = ""
    details: Optional[str] = None


class ProgressResponse(BaseModel):
    """Published progress update"""

    session_id: str
    stage: ProcessingStage
    progress: float
    message: str
    details: Optional[str] = None
    estimated_time_remaining: Optional[int] = None


class ErrorReportRequest(BaseModel):
    """Error reported by a pipeline component"""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "code": "PARSE_ERROR",
                "message": "Invalid xref table",
                "severity": "medium",
                "file_id": "file-0",
                "stage": "extraction",
            }
        }
    )

    code: str = Field(..., min_length=1, description="Error code")
    message: str = Field(..., description="Raw error message")
    severity: ErrorSeverity = ErrorSeverity.MEDIUM
    context: Optional[str] = Field(None, description="Opaque diagnostic text")
    file_id: Optional[str] = Field(None, description="Failing file, omitted for session errors")
    stage: Optional[ProcessingStage] = Field(None, description="Defaults to the current stage")

    def to_error(self) -> ProcessingError:
        return ProcessingError(
            code=self.code, message=self.message, severity=self.severity, context=self.context
        )


class StrategyResponse(BaseModel):
    """Recovery strategy chosen for an error"""

    type: str
    description: str
    automated: bool
    max_retries: Optional[int] = None
    fallback_processor: Optional[str] = None
    user_action: Optional[str] = None


class ActionRequest(BaseModel):
    """Recovery action picked for a notification"""

    action: RecoveryAction
    label: Optional[str] = None
    processor_name: Optional[str] = Field(None, description="Fallback processor")
    diagnostic: Optional[str] = None
    file_id: Optional[str] = Field(None, description="Explicit target file")

    def to_action(self) -> NotificationAction:
        data = None
        if self.action == RecoveryAction.RETRY:
            data = RetryData(diagnostic=self.diagnostic)
        elif self.action == RecoveryAction.SKIP:
            data = SkipData(diagnostic=self.diagnostic)
        elif self.action == RecoveryAction.FALLBACK and self.processor_name:
            data = FallbackData(processor_name=self.processor_name, diagnostic=self.diagnostic)
        elif self.action == RecoveryAction.CANCEL:
            data = CancelData(diagnostic=self.diagnostic)

        return NotificationAction(
            label=self.label or self.action.value.title(), action=self.action, data=data
        )


class SuccessResponse(BaseModel):
    """Boolean operation result"""

    success: bool


class CheckpointRequest(BaseModel):
    """Checkpoint request"""

    stage: Optional[ProcessingStage] = Field(None, description="Defaults to the current stage")


class RecoverRequest(BaseModel):
    """Session recovery options"""

    skip_failed_files: bool = False
    retry_failed_stages: bool = True
    max_recovery_attempts: int = Field(3, ge=0)

    def to_options(self) -> RecoveryOptions:
        return RecoveryOptions(
            skip_failed_files=self.skip_failed_files,
            retry_failed_stages=self.retry_failed_stages,
            max_recovery_attempts=self.max_recovery_attempts,
        )


class RecoveryResponse(BaseModel):
    """Session recovery result"""

    success: bool
    message: str
    session: Optional[Dict[str, Any]] = None
    skipped_files: List[str] = Field(default_factory=list)
    failed_recoveries: List[str] = Field(default_factory=list)


class RecommendationsResponse(BaseModel):
    """Recovery recommendations"""

    can_recover: bool
    recommendations: List[str]
    risk_level: str


class RecoverableSessionResponse(BaseModel):
    """Stored checkpoint summary"""

    session_id: str
    last_activity: str
    stage: str
    file_count: int
    can_recover: bool


class ErrorStatsResponse(BaseModel):
    """Error statistics"""

    total_sessions: int
    active_sessions: int
    errors_by_type: Dict[str, int]
    recovery_success_rate: float
