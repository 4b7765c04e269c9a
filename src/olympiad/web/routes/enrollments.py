"""Guardian endpoints for enrolling minors."""

from fastapi import APIRouter, Depends, status

from olympiad.auth import SessionData, require_guardian
from olympiad.core.enrollment import enroll_minor, list_user_enrollments
from olympiad.web.schemas import (
    EnrollmentListResponse,
    GuardianEnrollmentCreate,
    ParticipantResponse,
)

router = APIRouter(prefix="/api/participant/enrollments", tags=["enrollments"])


@router.get("", response_model=EnrollmentListResponse)
async def list_enrollments(
    session: SessionData = Depends(require_guardian),
) -> EnrollmentListResponse:
    """List every enrollment made by the guardian."""
    rows = list_user_enrollments(session.user_id)
    return EnrollmentListResponse(
        enrollments=[ParticipantResponse.model_validate(r) for r in rows], count=len(rows)
    )


@router.post("", response_model=ParticipantResponse, status_code=status.HTTP_201_CREATED)
async def create_enrollment(
    request: GuardianEnrollmentCreate, session: SessionData = Depends(require_guardian)
) -> ParticipantResponse:
    """Enroll one of the guardian's minors in an open edition."""
    guardian = {"id": session.user_id, "email": session.email, "full_name": session.full_name}
    participant = enroll_minor(
        guardian,
        request.minor_profile_id,
        request.model_dump(exclude={"minor_profile_id"}),
    )
    return ParticipantResponse.model_validate(participant)
