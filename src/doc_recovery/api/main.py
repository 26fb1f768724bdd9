"""
FastAPI Main Application

HTTP surface of the recovery engine: session lifecycle, error reports,
recovery actions, checkpoints and monitoring.
"""

import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status

from doc_recovery.config import get_recovery_config
from doc_recovery.schemas import (
    ActionRequest,
    CheckpointRequest,
    ErrorReportRequest,
    ErrorStatsResponse,
    HealthResponse,
    ProgressRequest,
    ProgressResponse,
    RecommendationsResponse,
    RecoverableSessionResponse,
    RecoverRequest,
    RecoveryResponse,
    SessionCreateRequest,
    StrategyResponse,
    SuccessResponse,
)
from doc_recovery.services.recovery import RecoveryEngine, build_engine

logger = logging.getLogger(__name__)


def get_engine(request: Request) -> RecoveryEngine:
    """Engine bound to the application, built from configuration on first use."""
    engine = request.app.state.engine
    if engine is None:
        engine = build_engine(get_recovery_config())
        request.app.state.engine = engine
    return engine


def _require_session(engine: RecoveryEngine, session_id: str) -> None:
    if not engine.store.exists(session_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session not found: {session_id}",
        )


def create_app(engine: Optional[RecoveryEngine] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        engine: Engine to serve (built from configuration on first request if omitted)

    Returns:
        FastAPI application
    """
    app = FastAPI(
        title="Document Recovery API",
        description="Processing-session lifecycle and error recovery",
        version="0.1.0",
    )
    app.state.engine = engine

    @app.get("/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="healthy")

    @app.post(
        "/api/v1/sessions",
        status_code=status.HTTP_201_CREATED,
    )
    def create_session(body: SessionCreateRequest, engine: RecoveryEngine = Depends(get_engine)):
        """
        Create a processing session.

        Raises:
            HTTPException: 409 if the session ID already exists
        """
        session = engine.initialize_session(body.session_id, body.file_names)
        if session is None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Session already exists: {body.session_id}",
            )
        return session.to_dict()

    @app.get("/api/v1/sessions/{session_id}")
    def get_session(session_id: str, engine: RecoveryEngine = Depends(get_engine)):
        """Get a session snapshot."""
        session = engine.get_session(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
        return session.to_dict()

    @app.post("/api/v1/sessions/{session_id}/progress", response_model=ProgressResponse)
    def update_progress(
        session_id: str, body: ProgressRequest, engine: RecoveryEngine = Depends(get_engine)
    ):
        """Report stage progress."""
        update = engine.update_progress(
            session_id, body.stage, body.percent, body.message, body.details
        )
        if update is None:
            raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
        return update.to_dict()

    @app.post("/api/v1/sessions/{session_id}/errors", response_model=StrategyResponse)
    def report_error(
        session_id: str, body: ErrorReportRequest, engine: RecoveryEngine = Depends(get_engine)
    ):
        """
        Report a pipeline error and get the recovery strategy.

        Unknown sessions get the abort strategy.
        """
        strategy = engine.handle_error(
            session_id, body.to_error(), file_id=body.file_id, stage=body.stage
        )
        return strategy.to_dict()

    @app.post(
        "/api/v1/sessions/{session_id}/notifications/{notification_id}/actions",
        response_model=SuccessResponse,
    )
    def execute_action(
        session_id: str,
        notification_id: str,
        body: ActionRequest,
        engine: RecoveryEngine = Depends(get_engine),
    ):
        """Execute a recovery action."""
        _require_session(engine, session_id)
        success = engine.execute_recovery(
            session_id, notification_id, body.to_action(), file_id=body.file_id
        )
        return SuccessResponse(success=success)

    @app.delete(
        "/api/v1/sessions/{session_id}/notifications/{notification_id}",
        response_model=SuccessResponse,
    )
    def dismiss_notification(
        session_id: str, notification_id: str, engine: RecoveryEngine = Depends(get_engine)
    ):
        """Dismiss a notification."""
        _require_session(engine, session_id)
        return SuccessResponse(success=engine.dismiss_notification(session_id, notification_id))

    @app.post("/api/v1/sessions/{session_id}/checkpoints", response_model=SuccessResponse)
    def create_checkpoint(
        session_id: str,
        body: Optional[CheckpointRequest] = None,
        engine: RecoveryEngine = Depends(get_engine),
    ):
        """Checkpoint a session (at its current stage unless given)."""
        session = engine.get_session(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
        stage = body.stage if body and body.stage else session.current_stage
        return SuccessResponse(success=engine.create_checkpoint(session_id, stage))

    @app.post("/api/v1/sessions/{session_id}/restore")
    def restore_session(session_id: str, engine: RecoveryEngine = Depends(get_engine)):
        """Restore a session from its checkpoint."""
        session = engine.restore_from_checkpoint(session_id)
        if session is None:
            raise HTTPException(
                status_code=404, detail=f"No restorable checkpoint: {session_id}"
            )
        return session.to_dict()

    @app.post("/api/v1/sessions/{session_id}/recover", response_model=RecoveryResponse)
    def recover_session(
        session_id: str,
        body: Optional[RecoverRequest] = None,
        engine: RecoveryEngine = Depends(get_engine),
    ):
        """Recover an interrupted session."""
        _require_session(engine, session_id)
        options = body.to_options() if body else None
        result = engine.recover_session(session_id, options)
        return RecoveryResponse(
            success=result.success,
            message=result.message,
            session=result.session.to_dict() if result.session else None,
            skipped_files=result.skipped_files,
            failed_recoveries=result.failed_recoveries,
        )

    @app.get(
        "/api/v1/sessions/{session_id}/recommendations",
        response_model=RecommendationsResponse,
    )
    def get_recommendations(session_id: str, engine: RecoveryEngine = Depends(get_engine)):
        """Assess the risk of resuming a session."""
        _require_session(engine, session_id)
        return engine.get_recovery_recommendations(session_id).to_dict()

    @app.get(
        "/api/v1/recovery/sessions",
        response_model=List[RecoverableSessionResponse],
    )
    def list_recoverable_sessions(engine: RecoveryEngine = Depends(get_engine)):
        """List stored checkpoints, most recent first."""
        return [s.to_dict() for s in engine.get_recoverable_sessions()]

    @app.get("/api/v1/monitoring/stats", response_model=ErrorStatsResponse)
    def get_error_stats(engine: RecoveryEngine = Depends(get_engine)):
        """Error statistics across sessions."""
        return engine.get_error_stats().to_dict()

    return app


app = create_app()
