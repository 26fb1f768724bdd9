"""
Unit tests for session progress tracking with ETA calculation.
"""

import math

import pytest

from doc_recovery.models import ProcessingStage
from doc_recovery.services.recovery import estimate_remaining_seconds


class TestEstimate:
    """Test time-remaining estimation."""

    def test_no_progress_yields_zero(self):
        assert estimate_remaining_seconds(0, 0, elapsed_seconds=120) == 0

    def test_half_of_first_stage(self):
        # overall = 0.5 / 10 = 0.05 -> 100 / 0.05 - 100
        assert estimate_remaining_seconds(0, 50, elapsed_seconds=100) == 1900

    def test_completed_stages_count(self):
        # overall = (4 + 1) / 10 = 0.5 -> 300 / 0.5 - 300
        assert estimate_remaining_seconds(4, 100, elapsed_seconds=300) == 300

    def test_never_negative(self):
        assert estimate_remaining_seconds(10, 100, elapsed_seconds=50) == 0


class TestInitializeSession:
    """Test session initialization."""

    def test_initial_progress_published(self, engine):
        received = []
        engine.on_progress(received.append)

        session = engine.initialize_session("sess-1", ["a.pdf"])
        assert engine.dispatcher.flush(timeout=2.0)

        assert session is not None
        assert len(received) == 1
        assert received[0].stage == ProcessingStage.UPLOAD
        assert received[0].progress == 0
        assert received[0].message == "Initializing file processing session..."

    def test_duplicate_returns_none(self, engine, session_id):
        assert engine.initialize_session(session_id, ["x.pdf"]) is None


class TestUpdateProgress:
    """Test stage progress updates."""

    def test_sets_current_stage_and_activity(self, engine, session_id, clock):
        clock.advance(seconds=30)
        engine.update_progress(session_id, ProcessingStage.EXTRACTION, 20, "Extracting...")

        session = engine.get_session(session_id)
        assert session.current_stage == ProcessingStage.EXTRACTION
        assert session.last_activity == clock()
        assert session.completed_stages == set()

    def test_completion_is_idempotent(self, engine, session_id):
        engine.update_progress(session_id, ProcessingStage.UPLOAD, 100, "Uploaded")
        engine.update_progress(session_id, ProcessingStage.UPLOAD, 100, "Uploaded")

        assert engine.get_session(session_id).completed_stages == {ProcessingStage.UPLOAD}

    def test_out_of_range_percent_clamped(self, engine, session_id):
        update = engine.update_progress(session_id, ProcessingStage.VALIDATION, 150, "Done")
        assert update.progress == 100
        assert ProcessingStage.VALIDATION in engine.get_session(session_id).completed_stages

        update = engine.update_progress(session_id, ProcessingStage.OCR, -5, "Starting")
        assert update.progress == 0

    @pytest.mark.parametrize("percent", [math.nan, math.inf, -math.inf])
    def test_non_finite_percent_reads_as_zero(self, engine, session_id, percent):
        update = engine.update_progress(session_id, ProcessingStage.OCR, percent, "OCR")

        assert update.progress == 0
        assert update.estimated_time_remaining == 0
        assert engine.get_session(session_id).completed_stages == set()

    def test_unknown_session_is_noop(self, engine):
        assert engine.update_progress("missing", ProcessingStage.OCR, 10, "x") is None

    def test_estimate_uses_time_since_creation(self, engine, session_id, clock):
        clock.advance(seconds=100)
        update = engine.update_progress(session_id, ProcessingStage.UPLOAD, 50, "Uploading")

        assert update.estimated_time_remaining == 1900

    def test_update_published_to_subscribers(self, engine, session_id):
        received = []
        engine.on_progress(received.append)

        engine.update_progress(session_id, ProcessingStage.OCR, 10, "OCR", details="page 1")
        engine.update_progress(session_id, ProcessingStage.OCR, 20, "OCR", details="page 2")
        assert engine.dispatcher.flush(timeout=2.0)

        assert [u.details for u in received] == ["page 1", "page 2"]
        assert all(u.session_id == session_id for u in received)
