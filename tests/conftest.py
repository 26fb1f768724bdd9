"""
Shared fixtures for the recovery engine tests.

Provides a controllable clock, a temporary checkpoint database and a fully
wired engine.
"""

from datetime import datetime, timedelta, timezone

import pytest

from doc_recovery.config import RecoveryConfig
from doc_recovery.models import ErrorSeverity, ProcessingError
from doc_recovery.services.recovery import build_engine


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime = datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    """Clock starting at 2026-01-05 10:00 UTC."""
    return FakeClock()


@pytest.fixture
def config(tmp_path) -> RecoveryConfig:
    """Configuration with the checkpoint database in a temp directory."""
    return RecoveryConfig(checkpoint_db_path=str(tmp_path / "checkpoints" / "recovery.db"))


@pytest.fixture
def engine(config, clock):
    """Recovery engine driven by the fake clock."""
    engine = build_engine(config, clock=clock)
    yield engine
    engine.close()


@pytest.fixture
def session_id(engine) -> str:
    """Session with three pending files."""
    engine.initialize_session("sess-1", ["notes.pdf", "slides.pptx", "scan.png"])
    return "sess-1"


@pytest.fixture
def make_error():
    """Factory for processing errors."""

    def factory(code: str = "NETWORK_ERROR", severity: ErrorSeverity = ErrorSeverity.MEDIUM):
        return ProcessingError(code=code, message=f"{code.lower()} raised", severity=severity)

    return factory
