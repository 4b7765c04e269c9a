"""Admin endpoints for participants and enrollment."""

from fastapi import APIRouter, Depends, Query, status

from olympiad.auth import SessionData, require_admin
from olympiad.core import enrollment
from olympiad.web.schemas import (
    EnrollmentCreate,
    MessageResponse,
    Pagination,
    ParticipantActionRequest,
    ParticipantListResponse,
    ParticipantResponse,
)

router = APIRouter(prefix="/api/olympiad/participants", tags=["participants"])


@router.get("", response_model=ParticipantListResponse)
async def list_participants(
    edition_id: str | None = None,
    education_level: str | None = None,
    subject: str | None = None,
    current_stage: str | None = None,
    is_active: bool | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=500),
    _: SessionData = Depends(require_admin),
) -> ParticipantListResponse:
    """List participants with their current-stage figures."""
    filters = {
        "edition_id": edition_id,
        "education_level": education_level,
        "current_stage": current_stage,
        "is_active": is_active,
    }
    rows, total = enrollment.list_participants(filters, subject, page, limit)
    return ParticipantListResponse(
        participants=[ParticipantResponse.model_validate(r) for r in rows],
        pagination=Pagination.build(page, limit, total),
    )


@router.post("", response_model=ParticipantResponse, status_code=status.HTTP_201_CREATED)
async def enroll_participant(
    request: EnrollmentCreate, _: SessionData = Depends(require_admin)
) -> ParticipantResponse:
    """Enroll a participant in an open edition."""
    participant = enrollment.enroll_participant(request.model_dump())
    return ParticipantResponse.model_validate(participant)


@router.put("", response_model=ParticipantResponse)
async def update_participant(
    request: ParticipantActionRequest, _: SessionData = Depends(require_admin)
) -> ParticipantResponse:
    """Apply update_status, update_stage or update_info."""
    participant = enrollment.update_participant_action(request.id, request.action, request.data)
    return ParticipantResponse.model_validate(participant)


@router.delete("", response_model=MessageResponse)
async def delete_participant(
    participant_id: str = Query(..., alias="id"), _: SessionData = Depends(require_admin)
) -> MessageResponse:
    enrollment.delete_participant(participant_id)
    return MessageResponse(message="Participant deleted successfully")
