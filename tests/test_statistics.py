"""
Unit tests for error statistics and session cleanup.
"""

from doc_recovery.models import RecoveryAction


class TestErrorStats:
    """Test statistics aggregation."""

    def test_empty_engine(self, engine):
        stats = engine.get_error_stats()

        assert stats.total_sessions == 0
        assert stats.active_sessions == 0
        assert stats.errors_by_type == {}
        assert stats.recovery_success_rate == 1.0

    def test_errors_counted_by_code(self, engine, session_id, make_error):
        engine.handle_error(session_id, make_error("OCR_ERROR"), file_id="file-0")
        engine.handle_error(session_id, make_error("OCR_ERROR"), file_id="file-1")
        engine.handle_error(session_id, make_error("NETWORK_ERROR"), file_id="file-2")
        # Session-level errors are not attributed to files
        engine.handle_error(session_id, make_error("AI_SERVICE_ERROR"))

        stats = engine.get_error_stats()

        assert stats.errors_by_type == {"OCR_ERROR": 2, "NETWORK_ERROR": 1}
        assert stats.recovery_success_rate == 0.0

    def test_recovered_when_file_completes(self, engine, session_id, make_error):
        engine.handle_error(session_id, make_error(), file_id="file-0")
        engine.handle_error(session_id, make_error(), file_id="file-1")

        notification = engine.get_session(session_id).notifications[0]
        assert engine.execute_recovery(session_id, notification.id, RecoveryAction.RETRY)
        assert engine.mark_file_processing(session_id, "file-0")
        assert engine.mark_file_completed(session_id, "file-0")

        assert engine.get_error_stats().recovery_success_rate == 0.5

    def test_active_sessions_window(self, engine, clock):
        engine.initialize_session("idle", ["a.pdf"])
        clock.advance(hours=2)
        engine.initialize_session("busy", ["b.pdf"])

        stats = engine.get_error_stats()

        assert stats.total_sessions == 2
        assert stats.active_sessions == 1


class TestCleanup:
    """Test removal of idle sessions."""

    def test_cleanup_removes_sessions_idle_over_a_day(self, engine, clock):
        engine.initialize_session("stale", ["a.pdf"])
        clock.advance(hours=24)
        engine.initialize_session("recent", ["b.pdf"])
        clock.advance(hours=1)

        assert engine.cleanup() == 1
        assert engine.get_session("stale") is None
        assert engine.get_session("recent") is not None
