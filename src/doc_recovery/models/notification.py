"""
User Notification Models

Notifications presented to the user when processing needs attention, the
action buttons they carry, and the progress feed payload.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .processing import ProcessingStage, utc_now


class NotificationType(str, Enum):
    """Visual category of a notification."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


class RecoveryAction(str, Enum):
    """Action a notification button triggers."""

    RETRY = "retry"
    SKIP = "skip"
    FALLBACK = "fallback"
    MANUAL = "manual"
    CANCEL = "cancel"
    CONTINUE = "continue"


@dataclass(frozen=True)
class RetryData:
    """Payload of a retry action."""

    diagnostic: Optional[str] = None
    kind: str = field(default="retry", init=False)


@dataclass(frozen=True)
class SkipData:
    """Payload of a skip action."""

    diagnostic: Optional[str] = None
    kind: str = field(default="skip", init=False)


@dataclass(frozen=True)
class FallbackData:
    """Payload of a fallback action naming the processor to switch to."""

    processor_name: str
    diagnostic: Optional[str] = None
    kind: str = field(default="fallback", init=False)


@dataclass(frozen=True)
class CancelData:
    """Payload of a cancel action."""

    diagnostic: Optional[str] = None
    kind: str = field(default="cancel", init=False)


ActionData = Union[RetryData, SkipData, FallbackData, CancelData]

_ACTION_DATA_TYPES = {
    "retry": RetryData,
    "skip": SkipData,
    "fallback": FallbackData,
    "cancel": CancelData,
}


def action_data_to_dict(data: Optional[ActionData]) -> Optional[Dict[str, Any]]:
    """Serialize action data including its tag."""
    if data is None:
        return None
    result: Dict[str, Any] = {"kind": data.kind, "diagnostic": data.diagnostic}
    if isinstance(data, FallbackData):
        result["processor_name"] = data.processor_name
    return result


def action_data_from_dict(data: Optional[Dict[str, Any]]) -> Optional[ActionData]:
    """
    Deserialize tagged action data.

    Raises:
        ValueError: If the tag is unknown
    """
    if not data:
        return None
    kind = data.get("kind")
    data_type = _ACTION_DATA_TYPES.get(kind)
    if data_type is None:
        raise ValueError(f"Unknown action data kind: {kind}")
    if data_type is FallbackData:
        return FallbackData(
            processor_name=data["processor_name"], diagnostic=data.get("diagnostic")
        )
    return data_type(diagnostic=data.get("diagnostic"))


@dataclass(frozen=True)
class NotificationAction:
    """A button on a notification."""

    label: str
    action: RecoveryAction
    data: Optional[ActionData] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "label": self.label,
            "action": self.action.value,
            "data": action_data_to_dict(self.data),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NotificationAction":
        """Create from dictionary."""
        return cls(
            label=data["label"],
            action=RecoveryAction(data["action"]),
            data=action_data_from_dict(data.get("data")),
        )


def new_notification_id(prefix: str) -> str:
    """Generate a unique notification ID such as "error-3f2a9c...". """
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


@dataclass
class UserNotification:
    """
    Notification shown to the user.

    Attributes:
        id: Unique notification identifier
        type: Visual category
        title: Short title
        message: User facing message including recovery information
        stage: Stage the notification relates to
        timestamp: Creation timestamp
        actions: Action buttons
        dismissible: Whether the user may close it without acting
        auto_hide: Whether the presentation layer may hide it automatically
        duration: Display duration in milliseconds (auto-hide only)
        file_id: File the notification refers to, if any
    """

    id: str
    type: NotificationType
    title: str
    message: str
    stage: ProcessingStage
    timestamp: datetime = field(default_factory=utc_now)
    actions: List[NotificationAction] = field(default_factory=list)
    dismissible: bool = True
    auto_hide: bool = False
    duration: Optional[int] = None
    file_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "stage": self.stage.value,
            "timestamp": self.timestamp.isoformat(),
            "actions": [action.to_dict() for action in self.actions],
            "dismissible": self.dismissible,
            "auto_hide": self.auto_hide,
            "duration": self.duration,
            "file_id": self.file_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserNotification":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            type=NotificationType(data["type"]),
            title=data["title"],
            message=data["message"],
            stage=ProcessingStage(data["stage"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            actions=[NotificationAction.from_dict(a) for a in data.get("actions", [])],
            dismissible=data.get("dismissible", True),
            auto_hide=data.get("auto_hide", False),
            duration=data.get("duration"),
            file_id=data.get("file_id"),
        )


@dataclass(frozen=True)
class ProgressUpdate:
    """
    Progress feed entry.

    Attributes:
        session_id: Session the update belongs to
        stage: Reported stage
        progress: Stage progress percentage (0-100)
        message: Progress message
        details: Optional detail text
        estimated_time_remaining: Estimated seconds until completion
    """

    session_id: str
    stage: ProcessingStage
    progress: float
    message: str
    details: Optional[str] = None
    estimated_time_remaining: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "session_id": self.session_id,
            "stage": self.stage.value,
            "progress": self.progress,
            "message": self.message,
            "details": self.details,
            "estimated_time_remaining": self.estimated_time_remaining,
        }
