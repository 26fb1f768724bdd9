"""
Graceful Shutdown Handler for the Recovery Service

Handles system signals (SIGTERM, SIGINT) so that an interrupted service
leaves restorable state behind:
- Checkpoint every live session before exit
- Run registered cleanup callbacks with a timeout
- Restore the original signal handlers on teardown

Usage:
    shutdown = GracefulShutdown()

    @shutdown.on_shutdown
    def stop_sweeper():
        sweeper.stop()

    shutdown.setup()
"""

import logging
import signal
import threading
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class GracefulShutdown:
    """
    Graceful shutdown handler.

    Features:
    - Signal handling (SIGTERM, SIGINT)
    - Multiple cleanup callbacks run in registration order
    - Per-callback timeout
    - Thread-safe shutdown flag
    """

    def __init__(self, timeout: float = 30.0):
        """
        Initialize graceful shutdown handler.

        Args:
            timeout: Maximum time to wait for each callback (seconds)
        """
        self.timeout = timeout
        self._shutdown_requested = False
        self._callbacks: List[Callable[[], None]] = []
        self._lock = threading.Lock()
        self._original_handlers: dict = {}

        logger.info(f"GracefulShutdown initialized (timeout={timeout}s)")

    def register_callback(self, callback: Callable[[], None]) -> None:
        """
        Register a cleanup callback to be called on shutdown.

        Args:
            callback: Function to call during shutdown
        """
        with self._lock:
            self._callbacks.append(callback)
        logger.debug(f"Registered shutdown callback: {getattr(callback, '__name__', callback)}")

    def on_shutdown(self, func: Callable[[], None]) -> Callable[[], None]:
        """Decorator for registering shutdown callbacks."""
        self.register_callback(func)
        return func

    def setup(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, self._handle_signal)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, self._handle_signal)

        logger.info("Signal handlers registered for SIGTERM and SIGINT")

    def teardown(self) -> None:
        """Restore original signal handlers."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

        logger.info("Signal handlers restored")

    def _handle_signal(self, signum, frame) -> None:
        signal_name = signal.Signals(signum).name
        logger.info(f"Received signal {signal_name} ({signum})")
        self.request_shutdown(signal_name)

    def request_shutdown(self, reason: str = "manual") -> None:
        """
        Request graceful shutdown and run the cleanup callbacks once.

        Args:
            reason: Reason for shutdown (for logging)
        """
        with self._lock:
            if self._shutdown_requested:
                logger.warning("Shutdown already requested, ignoring")
                return

            self._shutdown_requested = True
            callbacks = list(self._callbacks)
            logger.info(f"Shutdown requested: {reason}")

        self._execute_callbacks(callbacks)

    def _execute_callbacks(self, callbacks: List[Callable[[], None]]) -> None:
        logger.info(f"Executing {len(callbacks)} cleanup callbacks...")

        for i, callback in enumerate(callbacks, 1):
            callback_name = getattr(callback, "__name__", f"callback_{i}")
            error: List[Optional[Exception]] = [None]

            def run_callback(callback=callback):
                try:
                    callback()
                except Exception as e:
                    error[0] = e

            thread = threading.Thread(target=run_callback, name=f"shutdown-{callback_name}")
            thread.start()
            thread.join(timeout=self.timeout)

            if thread.is_alive():
                logger.error(f"Callback {callback_name} timed out after {self.timeout}s")
            elif error[0] is not None:
                logger.error(f"Callback {callback_name} failed: {error[0]}")
            else:
                logger.info(f"Callback {callback_name} completed")

        logger.info("All cleanup callbacks completed")

    def is_shutdown_requested(self) -> bool:
        with self._lock:
            return self._shutdown_requested

    def reset(self) -> None:
        """Reset shutdown state (for testing)."""
        with self._lock:
            self._shutdown_requested = False

    def __enter__(self):
        self.setup()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.teardown()
        return False


class CheckpointShutdownHandler(GracefulShutdown):
    """
    Shutdown handler that checkpoints all live sessions first.

    Usage:
        handler = CheckpointShutdownHandler(engine)
        handler.setup()
    """

    def __init__(self, engine, timeout: float = 30.0):
        """
        Initialize checkpoint shutdown handler.

        Args:
            engine: RecoveryEngine whose sessions are checkpointed
            timeout: Maximum time to wait for each callback
        """
        super().__init__(timeout=timeout)
        self.engine = engine

        self.register_callback(self._checkpoint_sessions_on_shutdown)

    def _checkpoint_sessions_on_shutdown(self) -> None:
        saved = self.engine.checkpoint_all()
        logger.info(f"Checkpointed {saved} sessions before shutdown")
