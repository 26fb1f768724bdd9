"""
Notification Dispatcher

Turns errors and recovery strategies into user notifications, fans
notifications and progress updates out to subscribers, and applies the
recovery actions users pick.

Delivery model:
- Every subscriber owns a bounded queue drained by its own daemon thread
- Publishing never blocks the mutating caller; a full queue drops the event
- Delivery is ordered per subscriber; late subscribers miss earlier events
"""

import logging
import queue
import threading
import time
from typing import Any, Callable, Generic, List, Optional, TypeVar, Union

from ...models.notification import (
    CancelData,
    FallbackData,
    NotificationAction,
    NotificationType,
    ProgressUpdate,
    RecoveryAction,
    RetryData,
    SkipData,
    UserNotification,
    new_notification_id,
)
from ...models.processing import (
    ErrorSeverity,
    FileStatus,
    ProcessingError,
    ProcessingSession,
    ProcessingStage,
    SessionFile,
)
from ...models.recovery import RecoveryStrategy, StrategyType
from .session_store import SessionStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

ERROR_TITLES = {
    "NETWORK_ERROR": "Network Error",
    "MEMORY_ERROR": "Memory Limit Exceeded",
    "OCR_ERROR": "Text Recognition Failed",
    "PARSE_ERROR": "File Format Error",
    "AI_SERVICE_ERROR": "AI Service Unavailable",
    "VALIDATION_ERROR": "File Validation Failed",
    "TIMEOUT_ERROR": "Processing Timeout",
    "PERMISSION_DENIED": "Access Denied",
    "FILE_NOT_FOUND": "File Not Found",
}

ERROR_MESSAGES = {
    "NETWORK_ERROR": "A network connection issue occurred while processing your file.",
    "MEMORY_ERROR": "The file is too large to process with current memory settings.",
    "OCR_ERROR": "Unable to extract text from images in this file.",
    "PARSE_ERROR": "The file format appears to be corrupted or unsupported.",
    "AI_SERVICE_ERROR": "The AI processing service is temporarily unavailable.",
    "VALIDATION_ERROR": "The file does not meet the processing requirements.",
    "TIMEOUT_ERROR": "Processing took longer than expected and timed out.",
    "PERMISSION_DENIED": "Unable to access the file due to permission restrictions.",
    "FILE_NOT_FOUND": "The file could not be found or accessed.",
}


class Subscription(Generic[T]):
    """
    A subscriber's bounded delivery queue and worker thread.

    Call unsubscribe() to stop delivery; events still queued are dropped.
    """

    def __init__(self, channel: "SubscriberChannel[T]", callback: Callable[[T], Any], maxsize: int):
        self._channel = channel
        self._callback = callback
        self._queue: "queue.Queue[T]" = queue.Queue(maxsize=maxsize)
        self._stopped = threading.Event()
        self._pending = 0
        self._idle = threading.Condition()
        self.dropped = 0

        name = getattr(callback, "__name__", "subscriber")
        self._thread = threading.Thread(
            target=self._run, name=f"{channel.name}-{name}", daemon=True
        )
        self._thread.start()

    @property
    def active(self) -> bool:
        return not self._stopped.is_set()

    def offer(self, event: T) -> bool:
        """Queue an event without blocking. Returns False if it was dropped."""
        if self._stopped.is_set():
            return False

        with self._idle:
            try:
                self._queue.put_nowait(event)
            except queue.Full:
                self.dropped += 1
                logger.warning(
                    f"{self._channel.name} subscriber queue full, dropped event "
                    f"(total dropped: {self.dropped})"
                )
                return False
            self._pending += 1
        return True

    def _run(self) -> None:
        while not self._stopped.is_set():
            try:
                event = self._queue.get(timeout=0.1)
            except queue.Empty:
                continue

            try:
                self._callback(event)
            except Exception as e:
                logger.error(f"{self._channel.name} subscriber failed: {e}")
            finally:
                with self._idle:
                    self._pending -= 1
                    if self._pending == 0:
                        self._idle.notify_all()

    def wait_idle(self, timeout: float) -> bool:
        """Block until every queued event was delivered."""
        deadline = time.monotonic() + timeout
        with self._idle:
            while self._pending > 0 and not self._stopped.is_set():
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._idle.wait(remaining)
        return True

    def unsubscribe(self) -> None:
        """Stop delivery and detach from the channel."""
        if self._stopped.is_set():
            return
        self._stopped.set()
        self._channel._detach(self)
        with self._idle:
            self._idle.notify_all()

    def join(self, timeout: Optional[float] = None) -> None:
        self._thread.join(timeout)


class SubscriberChannel(Generic[T]):
    """Explicit observer list with per-subscriber bounded delivery."""

    def __init__(self, name: str, queue_size: int = 256):
        self.name = name
        self.queue_size = queue_size
        self._subscriptions: List[Subscription[T]] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable[[T], Any]) -> Subscription[T]:
        subscription = Subscription(self, callback, self.queue_size)
        with self._lock:
            self._subscriptions.append(subscription)
        logger.debug(f"Subscribed to {self.name} ({len(self._subscriptions)} subscribers)")
        return subscription

    def _detach(self, subscription: Subscription[T]) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def publish(self, event: T) -> int:
        """Hand the event to every current subscriber. Returns accepted count."""
        with self._lock:
            subscriptions = list(self._subscriptions)
        return sum(1 for s in subscriptions if s.offer(event))

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def flush(self, timeout: float = 5.0) -> bool:
        deadline = time.monotonic() + timeout
        with self._lock:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            if not subscription.wait_idle(max(0.0, deadline - time.monotonic())):
                return False
        return True

    def close(self) -> None:
        with self._lock:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            subscription.unsubscribe()
            subscription.join(timeout=1.0)


class NotificationDispatcher:
    """
    Builds, stores and publishes user notifications and executes the
    recovery actions attached to them.

    Action buttons by strategy:
        retry    -> Retry Now (retry), Skip File (skip)
        fallback -> Try Alternative (fallback), Skip File (skip)
        skip     -> Skip File (skip), Try Again (retry)
        manual   -> Try Again (retry), Cancel (cancel)

    Usage:
        dispatcher = NotificationDispatcher(store)
        token = dispatcher.on_notification(show_toast)

        notification = dispatcher.create_notification(error, strategy, stage)
        dispatcher.add_notification("sess-1", notification)

        dispatcher.execute_recovery(
            "sess-1", notification.id, NotificationAction("Retry Now", RecoveryAction.RETRY)
        )
        token.unsubscribe()
    """

    def __init__(self, store: SessionStore, queue_size: int = 256):
        """
        Initialize dispatcher.

        Args:
            store: Session store holding the notifications
            queue_size: Pending deliveries buffered per subscriber
        """
        self.store = store
        self.notifications: SubscriberChannel[UserNotification] = SubscriberChannel(
            "notifications", queue_size
        )
        self.progress: SubscriberChannel[ProgressUpdate] = SubscriberChannel(
            "progress", queue_size
        )

        logger.info(f"NotificationDispatcher initialized (queue_size={queue_size})")

    # Subscriptions

    def on_notification(
        self, callback: Callable[[UserNotification], Any]
    ) -> Subscription[UserNotification]:
        """Subscribe to notifications. Keep the token to unsubscribe."""
        return self.notifications.subscribe(callback)

    def on_progress(self, callback: Callable[[ProgressUpdate], Any]) -> Subscription[ProgressUpdate]:
        """Subscribe to progress updates. Keep the token to unsubscribe."""
        return self.progress.subscribe(callback)

    def publish_progress(self, update: ProgressUpdate) -> None:
        self.progress.publish(update)

    def flush(self, timeout: float = 5.0) -> bool:
        """Wait until all queued events reached their subscribers."""
        return self.notifications.flush(timeout) and self.progress.flush(timeout)

    def close(self) -> None:
        """Stop all delivery threads."""
        self.notifications.close()
        self.progress.close()
        logger.info("NotificationDispatcher closed")

    # Notification construction

    def create_notification(
        self,
        error: ProcessingError,
        strategy: RecoveryStrategy,
        stage: Optional[ProcessingStage] = None,
        file_id: Optional[str] = None,
    ) -> UserNotification:
        """
        Build a user notification for an error and its recovery strategy.

        Args:
            error: Reported error
            strategy: Chosen recovery strategy
            stage: Stage the error occurred in
            file_id: Affected file, if any

        Returns:
            UserNotification (not yet attached to a session)
        """
        return UserNotification(
            id=new_notification_id("error"),
            type=NotificationType.ERROR if error.severity == ErrorSeverity.HIGH else NotificationType.WARNING,
            title=self.error_title(error.code, stage),
            message=self.user_message(error, strategy),
            stage=stage or ProcessingStage.UPLOAD,
            timestamp=self.store.now(),
            actions=self._actions_for(strategy),
            dismissible=strategy.type != StrategyType.MANUAL,
            auto_hide=strategy.automated and strategy.type == StrategyType.RETRY,
            file_id=file_id,
        )

    @staticmethod
    def error_title(code: str, stage: Optional[ProcessingStage] = None) -> str:
        """Title such as "Network Error during ai processing"."""
        stage_context = f" during {stage.label}" if stage else ""
        return f"{ERROR_TITLES.get(code, 'Processing Error')}{stage_context}"

    @staticmethod
    def user_message(error: ProcessingError, strategy: RecoveryStrategy) -> str:
        """Friendly message followed by what happens next."""
        base = ERROR_MESSAGES.get(error.code, error.message)
        if strategy.automated:
            return f"{base} {strategy.description}"
        if strategy.user_action:
            return f"{base} {strategy.user_action}"
        return base

    @staticmethod
    def _actions_for(strategy: RecoveryStrategy) -> List[NotificationAction]:
        if strategy.type == StrategyType.RETRY:
            return [
                NotificationAction("Retry Now", RecoveryAction.RETRY, RetryData()),
                NotificationAction("Skip File", RecoveryAction.SKIP, SkipData()),
            ]
        if strategy.type == StrategyType.FALLBACK:
            return [
                NotificationAction(
                    "Try Alternative",
                    RecoveryAction.FALLBACK,
                    FallbackData(processor_name=strategy.fallback_processor or ""),
                ),
                NotificationAction("Skip File", RecoveryAction.SKIP, SkipData()),
            ]
        if strategy.type == StrategyType.SKIP:
            return [
                NotificationAction("Skip File", RecoveryAction.SKIP, SkipData()),
                NotificationAction("Try Again", RecoveryAction.RETRY, RetryData()),
            ]
        if strategy.type == StrategyType.MANUAL:
            return [
                NotificationAction("Try Again", RecoveryAction.RETRY, RetryData()),
                NotificationAction("Cancel", RecoveryAction.CANCEL, CancelData()),
            ]
        return []

    # Session notifications

    def append_locked(self, session: ProcessingSession, notification: UserNotification) -> None:
        """Attach and publish a notification. Caller must hold the session lock."""
        session.notifications.append(notification)
        self.store.touch(session)
        self.notifications.publish(notification)

    def add_notification(self, session_id: str, notification: UserNotification) -> bool:
        """
        Attach a notification to a session and publish it.

        Returns:
            False if the session does not exist
        """
        with self.store.locked(session_id) as session:
            if session is None:
                logger.warning(f"Notification for unknown session dropped: {session_id}")
                return False
            self.append_locked(session, notification)
        return True

    def dismiss_notification(self, session_id: str, notification_id: str) -> bool:
        """
        Remove a notification without acting on it.

        Returns:
            True if the notification was removed
        """
        with self.store.locked(session_id) as session:
            if session is None:
                return False
            notification = self._pop_notification(session, notification_id)
            if notification is None:
                return False
            if not notification.dismissible:
                # Manual-action notices stay until acted upon
                session.notifications.append(notification)
                logger.info(f"Notification {notification_id} is not dismissible")
                return False
            self.store.touch(session)
        return True

    @staticmethod
    def _find_notification(
        session: ProcessingSession, notification_id: str
    ) -> Optional[UserNotification]:
        for notification in session.notifications:
            if notification.id == notification_id:
                return notification
        return None

    @staticmethod
    def _pop_notification(
        session: ProcessingSession, notification_id: str
    ) -> Optional[UserNotification]:
        for index, notification in enumerate(session.notifications):
            if notification.id == notification_id:
                return session.notifications.pop(index)
        return None

    # Recovery actions

    def execute_recovery(
        self,
        session_id: str,
        notification_id: str,
        action: Union[NotificationAction, RecoveryAction, str],
        file_id: Optional[str] = None,
    ) -> bool:
        """
        Apply a user or automated recovery action.

        The target file is file_id when given, else the file the notification
        refers to, else the first failed file. Without any target the action
        applies to the session stage and is acknowledged.

        Args:
            session_id: Session identifier
            notification_id: Notification being acted on (removed on success)
            action: Action button, action enum or action name
            file_id: Explicit target file

        Returns:
            True if the action was applied, False for cancel, manual, unknown
            sessions, non-recoverable sessions and illegal file transitions
        """
        try:
            action = self._coerce_action(action)
        except ValueError as e:
            logger.warning(f"Rejected recovery action for {session_id}: {e}")
            return False

        with self.store.locked(session_id) as session:
            if session is None:
                logger.warning(f"Recovery action for unknown session: {session_id}")
                return False

            if not session.can_recover:
                logger.warning(f"Session {session_id} is not recoverable, ignoring {action.action.value}")
                return False

            notification = self._find_notification(session, notification_id)

            if action.action == RecoveryAction.CANCEL:
                self._pop_notification(session, notification_id)
                session.can_recover = False
                self.store.touch(session)
                logger.info(f"Session cancelled by user: {session_id}")
                return False

            if action.action == RecoveryAction.MANUAL:
                logger.info(f"Manual action requested for {session_id}, nothing to apply")
                return False

            if action.action == RecoveryAction.CONTINUE:
                self._pop_notification(session, notification_id)
                self.store.touch(session)
                return True

            target_id = file_id or (notification.file_id if notification else None)
            if target_id is not None:
                target = session.find_file(target_id)
                if target is None:
                    logger.warning(f"Unknown file {target_id} in session {session_id}")
                    return False
            else:
                target = session.first_failed_file()

            if target is not None and target.status != FileStatus.FAILED:
                logger.warning(
                    f"Cannot {action.action.value} file {target.id} in status {target.status.value}"
                )
                return False

            self._pop_notification(session, notification_id)

            if target is not None:
                self._apply_to_file(target, action, notification)
                target.last_processed = self.store.now()
                logger.info(
                    f"Applied {action.action.value} to {target.id} in {session_id} "
                    f"(status={target.status.value}, retry_count={target.retry_count})"
                )
            else:
                logger.info(f"Acknowledged session-level {action.action.value} for {session_id}")

            self.store.touch(session)
            return True

    @staticmethod
    def _coerce_action(action: Union[NotificationAction, RecoveryAction, str]) -> NotificationAction:
        if isinstance(action, NotificationAction):
            return action
        kind = RecoveryAction(action)
        return NotificationAction(label=kind.value.title(), action=kind)

    def _apply_to_file(
        self,
        target: SessionFile,
        action: NotificationAction,
        notification: Optional[UserNotification],
    ) -> None:
        if action.action == RecoveryAction.RETRY:
            target.status = FileStatus.PENDING
            target.retry_count += 1
        elif action.action == RecoveryAction.SKIP:
            target.status = FileStatus.SKIPPED
        elif action.action == RecoveryAction.FALLBACK:
            target.status = FileStatus.PENDING
            target.retry_count += 1
            target.fallback_processor = self._fallback_processor(action, notification)

    @staticmethod
    def _fallback_processor(
        action: NotificationAction, notification: Optional[UserNotification]
    ) -> Optional[str]:
        if isinstance(action.data, FallbackData) and action.data.processor_name:
            return action.data.processor_name
        if notification is not None:
            for candidate in notification.actions:
                if isinstance(candidate.data, FallbackData) and candidate.data.processor_name:
                    return candidate.data.processor_name
        return None
