"""
Unit tests for the background maintenance sweeper and graceful shutdown.
"""

import signal
import time

from doc_recovery.models import ProcessingStage
from doc_recovery.services.recovery import (
    CheckpointShutdownHandler,
    GracefulShutdown,
    MaintenanceSweeper,
)


class TestMaintenanceSweeper:
    """Test periodic cleanup."""

    def test_run_once_removes_expired_entries(self, engine, clock):
        engine.initialize_session("stale", ["a.pdf"])
        engine.create_checkpoint("stale", ProcessingStage.UPLOAD)
        clock.advance(days=8)
        engine.initialize_session("fresh", ["b.pdf"])

        result = engine.sweeper.run_once()

        assert result.sessions_removed == 1
        assert result.checkpoints_removed == 1
        assert engine.get_session("fresh") is not None

    def test_background_loop(self, engine, clock):
        engine.initialize_session("stale", ["a.pdf"])
        clock.advance(hours=30)

        sweeper = MaintenanceSweeper(engine.statistics, engine.recovery, interval_seconds=0.05)
        sweeper.start()
        try:
            deadline = time.monotonic() + 5.0
            while engine.get_session("stale") is not None and time.monotonic() < deadline:
                time.sleep(0.02)
        finally:
            sweeper.stop()

        assert engine.get_session("stale") is None
        assert sweeper.sweeps >= 1
        assert sweeper.is_running is False

    def test_start_twice_is_harmless(self, engine):
        engine.start_maintenance()
        engine.start_maintenance()
        assert engine.sweeper.is_running is True
        engine.sweeper.stop()
        assert engine.sweeper.is_running is False


class TestGracefulShutdown:
    """Test shutdown callbacks."""

    def test_callbacks_run_once_in_order(self):
        shutdown = GracefulShutdown(timeout=1.0)
        calls = []

        @shutdown.on_shutdown
        def first():
            calls.append("first")

        shutdown.register_callback(lambda: calls.append("second"))

        shutdown.request_shutdown("test")
        shutdown.request_shutdown("again")

        assert calls == ["first", "second"]
        assert shutdown.is_shutdown_requested() is True

        shutdown.reset()
        assert shutdown.is_shutdown_requested() is False

    def test_failing_callback_does_not_stop_others(self):
        shutdown = GracefulShutdown(timeout=1.0)
        calls = []

        def broken():
            raise RuntimeError("boom")

        shutdown.register_callback(broken)
        shutdown.register_callback(lambda: calls.append("ran"))
        shutdown.request_shutdown()

        assert calls == ["ran"]

    def test_signal_handlers_restored(self):
        original = signal.getsignal(signal.SIGTERM)

        with GracefulShutdown() as shutdown:
            assert signal.getsignal(signal.SIGTERM) == shutdown._handle_signal

        assert signal.getsignal(signal.SIGTERM) == original

    def test_checkpoints_all_sessions(self, engine):
        engine.initialize_session("a", ["a.pdf"])
        engine.initialize_session("b", ["b.pdf"])
        engine.update_progress("b", ProcessingStage.OCR, 10, "OCR")

        handler = CheckpointShutdownHandler(engine, timeout=5.0)
        handler.request_shutdown("SIGTERM")

        rows = {row.session_id for row in engine.checkpoints.list_all()}
        assert rows == {"a", "b"}
        stages = {s.session_id: s.stage for s in engine.get_recoverable_sessions()}
        assert stages == {"a": ProcessingStage.UPLOAD, "b": ProcessingStage.OCR}
