"""Exam configuration and exam session endpoints."""

from fastapi import APIRouter, Depends, Query, status

from olympiad.auth import SessionData, require_admin
from olympiad.core import exam_configs, exam_sessions
from olympiad.web.schemas import (
    ExamConfigCreate,
    ExamConfigListResponse,
    ExamConfigResponse,
    ExamConfigUpdate,
    ExamSessionResponse,
    MessageResponse,
    SessionActionRequest,
    SessionActionResponse,
    SessionCreate,
    SessionCreateResponse,
    SessionListResponse,
    SessionQuestionResponse,
)

router = APIRouter(prefix="/api/olympiad/exams", tags=["exams"])


# =============================================================================
# CONFIGURATIONS
# =============================================================================


@router.get("/configurations", response_model=ExamConfigListResponse)
async def list_configurations(
    edition_id: str | None = None,
    education_level: str | None = None,
    subject: str | None = None,
    stage: str | None = None,
    status_filter: str | None = Query(default=None, alias="status"),
    _: SessionData = Depends(require_admin),
) -> ExamConfigListResponse:
    filters = {
        "edition_id": edition_id,
        "education_level": education_level,
        "subject": subject,
        "stage": stage,
        "status": status_filter,
    }
    rows = exam_configs.list_configs(filters)
    return ExamConfigListResponse(
        configurations=[ExamConfigResponse.model_validate(r) for r in rows],
        count=len(rows),
    )


@router.post(
    "/configurations", response_model=ExamConfigResponse, status_code=status.HTTP_201_CREATED
)
async def create_configuration(
    config_data: ExamConfigCreate, session: SessionData = Depends(require_admin)
) -> ExamConfigResponse:
    """Create an exam configuration once the bank holds enough questions."""
    config = exam_configs.create_config(config_data.model_dump(), admin_id=session.user_id)
    return ExamConfigResponse.model_validate(config)


@router.put("/configurations", response_model=ExamConfigResponse)
async def update_configuration(
    request: ExamConfigUpdate, _: SessionData = Depends(require_admin)
) -> ExamConfigResponse:
    """Change the status or time window of a configuration."""
    config = exam_configs.update_config(request.id, request.model_dump(exclude={"id"}))
    return ExamConfigResponse.model_validate(config)


@router.delete("/configurations", response_model=MessageResponse)
async def delete_configuration(
    config_id: str = Query(..., alias="id"), _: SessionData = Depends(require_admin)
) -> MessageResponse:
    exam_configs.delete_config(config_id)
    return MessageResponse(message="Exam configuration deleted successfully")


# =============================================================================
# SESSIONS
# =============================================================================


@router.get("/sessions", response_model=SessionListResponse)
async def list_sessions(
    exam_config_id: str | None = None,
    participant_id: str | None = None,
    status_filter: str | None = Query(default=None, alias="status"),
    _: SessionData = Depends(require_admin),
) -> SessionListResponse:
    filters = {
        "exam_config_id": exam_config_id,
        "participant_id": participant_id,
        "status": status_filter,
    }
    rows = exam_sessions.list_sessions(filters)
    return SessionListResponse(
        sessions=[ExamSessionResponse.model_validate(r) for r in rows], count=len(rows)
    )


@router.post("/sessions", response_model=SessionCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    request: SessionCreate, _: SessionData = Depends(require_admin)
) -> SessionCreateResponse:
    """Open a session for a participant and draw its questions."""
    created = exam_sessions.create_session(request.exam_config_id, request.participant_id)
    return SessionCreateResponse(
        session=ExamSessionResponse.model_validate(created["session"]),
        questions=[SessionQuestionResponse.model_validate(q) for q in created["questions"]],
        message="Exam session created successfully",
    )


@router.put("/sessions", response_model=SessionActionResponse)
async def update_session(
    request: SessionActionRequest, _: SessionData = Depends(require_admin)
) -> SessionActionResponse:
    """Apply a lifecycle action: start, submit_answer, flag, pause, resume, finish, abandon."""
    session = exam_sessions.apply_session_action(request.session_id, request.action, request.data)
    return SessionActionResponse(
        session=ExamSessionResponse.model_validate(session),
        message=f"Session {request.action} completed successfully",
    )
