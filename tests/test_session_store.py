"""
Unit tests for the in-memory session store.
"""

import threading
from datetime import timedelta

from doc_recovery.models import FileStatus, ProcessingStage
from doc_recovery.services.recovery import SessionStore


class TestSessionCreation:
    """Test session creation and snapshots."""

    def test_create_session(self, clock):
        store = SessionStore(clock=clock)
        session = store.create("sess-1", ["a.pdf", "b.docx"])

        assert session.session_id == "sess-1"
        assert session.current_stage == ProcessingStage.UPLOAD
        assert [f.id for f in session.files] == ["file-0", "file-1"]
        assert all(f.status == FileStatus.PENDING for f in session.files)
        assert all(f.stage == ProcessingStage.UPLOAD for f in session.files)
        assert session.created_at == clock()
        assert session.can_recover is True
        assert "sess-1" in store
        assert len(store) == 1

    def test_duplicate_session_rejected(self, clock):
        store = SessionStore(clock=clock)
        store.create("sess-1", ["a.pdf"])

        assert store.create("sess-1", ["other.pdf"]) is None
        assert store.get("sess-1").files[0].name == "a.pdf"

    def test_get_returns_independent_snapshot(self, clock):
        store = SessionStore(clock=clock)
        store.create("sess-1", ["a.pdf"])

        snapshot = store.get("sess-1")
        snapshot.files[0].status = FileStatus.FAILED
        snapshot.completed_stages.add(ProcessingStage.OCR)

        fresh = store.get("sess-1")
        assert fresh.files[0].status == FileStatus.PENDING
        assert fresh.completed_stages == set()

    def test_get_unknown_session(self):
        store = SessionStore()
        assert store.get("missing") is None
        assert store.remove("missing") is False

    def test_locked_yields_none_for_unknown(self):
        store = SessionStore()
        with store.locked("missing") as session:
            assert session is None


class TestExpiry:
    """Test expiry sweep."""

    def test_sweep_removes_only_idle_sessions(self, clock):
        store = SessionStore(clock=clock)
        store.create("old", ["a.pdf"])
        clock.advance(hours=24)
        store.create("fresh", ["b.pdf"])
        clock.advance(hours=1)

        removed = store.sweep_expired(timedelta(hours=24))

        assert removed == 1
        assert store.get("old") is None
        assert store.get("fresh") is not None

    def test_removed_entry_invisible_to_lock_holders(self, clock):
        store = SessionStore(clock=clock)
        store.create("sess-1", ["a.pdf"])
        store.remove("sess-1")

        with store.locked("sess-1") as session:
            assert session is None


class TestFileTransitions:
    """Test forward file transitions driven by the pipeline."""

    def test_pending_to_processing_to_completed(self, clock):
        store = SessionStore(clock=clock)
        store.create("sess-1", ["a.pdf"])

        assert store.mark_file_processing("sess-1", "file-0") is True
        assert store.mark_file_completed("sess-1", "file-0") is True
        assert store.get("sess-1").files[0].status == FileStatus.COMPLETED

    def test_illegal_transition_rejected(self, clock):
        store = SessionStore(clock=clock)
        store.create("sess-1", ["a.pdf"])

        assert store.mark_file_completed("sess-1", "file-0") is False
        assert store.get("sess-1").files[0].status == FileStatus.PENDING

    def test_unknown_file_or_session(self, clock):
        store = SessionStore(clock=clock)
        store.create("sess-1", ["a.pdf"])

        assert store.mark_file_processing("sess-1", "file-9") is False
        assert store.mark_file_processing("missing", "file-0") is False


class TestConcurrency:
    """Test per-session locking."""

    def test_concurrent_mutations_are_serialized(self, clock):
        store = SessionStore(clock=clock)
        store.create("sess-1", ["a.pdf"])

        def bump():
            for _ in range(200):
                with store.locked("sess-1") as session:
                    count = session.stage_retry_count.get(ProcessingStage.OCR, 0)
                    session.stage_retry_count[ProcessingStage.OCR] = count + 1

        threads = [threading.Thread(target=bump) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert store.get("sess-1").stage_retry_count[ProcessingStage.OCR] == 1600

    def test_put_replaces_live_entry(self, clock):
        store = SessionStore(clock=clock)
        store.create("sess-1", ["a.pdf"])

        replacement = store.get("sess-1")
        replacement.current_stage = ProcessingStage.OCR
        store.put(replacement)

        assert store.get("sess-1").current_stage == ProcessingStage.OCR
        assert len(store) == 1
