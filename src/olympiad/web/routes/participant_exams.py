"""Guardian endpoints for sitting exams with an enrolled minor."""

from fastapi import APIRouter, Depends, status

from olympiad.auth import SessionData, require_guardian
from olympiad.core import participant_exams
from olympiad.web.schemas import (
    AvailableExamResponse,
    ExamSessionResponse,
    ParticipantExamsResponse,
    SessionActionRequest,
    SessionActionResponse,
    SessionCreate,
    SessionCreateResponse,
    SessionDetailResponse,
    SessionQuestionResponse,
)

router = APIRouter(prefix="/api/participant/exams", tags=["participant-exams"])


@router.get("", response_model=ParticipantExamsResponse)
async def list_exams(
    participant_id: str, session: SessionData = Depends(require_guardian)
) -> ParticipantExamsResponse:
    """List the exams a participant can sit and their sessions so far."""
    data = participant_exams.list_participant_exams(participant_id, session.user_id)
    return ParticipantExamsResponse(
        exams=[AvailableExamResponse.model_validate(c) for c in data["exams"]],
        sessions=[ExamSessionResponse.model_validate(s) for s in data["sessions"]],
    )


@router.post("/sessions", response_model=SessionCreateResponse, status_code=status.HTTP_201_CREATED)
async def open_session(
    request: SessionCreate, session: SessionData = Depends(require_guardian)
) -> SessionCreateResponse:
    created = participant_exams.open_session(
        request.exam_config_id, request.participant_id, session.user_id
    )
    return SessionCreateResponse(
        session=ExamSessionResponse.model_validate(created["session"]),
        questions=[SessionQuestionResponse.model_validate(q) for q in created["questions"]],
        message="Exam session created successfully",
    )


@router.get("/sessions/{session_id}", response_model=SessionDetailResponse)
async def get_session(
    session_id: str, session: SessionData = Depends(require_guardian)
) -> SessionDetailResponse:
    """Fetch a session with its questions to carry on answering."""
    data = participant_exams.get_session_questions(session_id, session.user_id)
    return SessionDetailResponse(
        session=ExamSessionResponse.model_validate(data["session"]),
        questions=[SessionQuestionResponse.model_validate(q) for q in data["questions"]],
    )


@router.put("/sessions", response_model=SessionActionResponse)
async def update_session(
    request: SessionActionRequest, session: SessionData = Depends(require_guardian)
) -> SessionActionResponse:
    """Apply start, submit_answer, flag or finish."""
    exam_session = participant_exams.apply_participant_action(
        request.session_id, request.action, session.user_id, request.data
    )
    return SessionActionResponse(
        session=ExamSessionResponse.model_validate(exam_session),
        message=f"Session {request.action} completed successfully",
    )
