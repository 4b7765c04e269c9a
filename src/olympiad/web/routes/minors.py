"""Guardian endpoints for minor profiles."""

from fastapi import APIRouter, Depends, status

from olympiad.auth import SessionData, require_guardian
from olympiad.core import minors
from olympiad.web.schemas import MinorCreate, MinorListResponse, MinorResponse, MinorUpdate

router = APIRouter(prefix="/api/participant/minors", tags=["minors"])


@router.get("", response_model=MinorListResponse)
async def list_minors(session: SessionData = Depends(require_guardian)) -> MinorListResponse:
    """List the guardian's minors, newest first."""
    rows = minors.list_minors(session.user_id)
    return MinorListResponse(
        minors=[MinorResponse.model_validate(r) for r in rows], count=len(rows)
    )


@router.post("", response_model=MinorResponse, status_code=status.HTTP_201_CREATED)
async def create_minor(
    minor_data: MinorCreate, session: SessionData = Depends(require_guardian)
) -> MinorResponse:
    minor = minors.create_minor(session.user_id, minor_data.model_dump())
    return MinorResponse.model_validate(minor)


@router.get("/{minor_id}", response_model=MinorResponse)
async def get_minor(
    minor_id: str, session: SessionData = Depends(require_guardian)
) -> MinorResponse:
    return MinorResponse.model_validate(minors.get_minor(session.user_id, minor_id))


@router.put("/{minor_id}", response_model=MinorResponse)
async def update_minor(
    minor_id: str, minor_data: MinorUpdate, session: SessionData = Depends(require_guardian)
) -> MinorResponse:
    """Update only the fields sent."""
    minor = minors.update_minor(
        session.user_id, minor_id, minor_data.model_dump(exclude_unset=True)
    )
    return MinorResponse.model_validate(minor)


@router.delete("/{minor_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_minor(minor_id: str, session: SessionData = Depends(require_guardian)) -> None:
    """Delete a minor who has no enrollments."""
    minors.delete_minor(session.user_id, minor_id)
