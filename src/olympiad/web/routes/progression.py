"""Stage progression endpoints."""

from fastapi import APIRouter, Depends, Query, status

from olympiad.auth import SessionData, require_admin
from olympiad.core import progression
from olympiad.web.schemas import (
    LeaderboardEntry,
    LeaderboardResponse,
    MessageResponse,
    Pagination,
    ProgressionActionRequest,
    ProgressionActionResponse,
    ProgressionListResponse,
    ProgressionRecordRequest,
    ProgressionResponse,
)

router = APIRouter(prefix="/api/olympiad/progression", tags=["progression"])


@router.get("", response_model=ProgressionListResponse)
async def list_progressions(
    edition_id: str | None = None,
    education_level: str | None = None,
    current_stage: str | None = None,
    can_progress: bool | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=500),
    _: SessionData = Depends(require_admin),
) -> ProgressionListResponse:
    """List progression rows, best scores first."""
    filters = {
        "edition_id": edition_id,
        "education_level": education_level,
        "current_stage": current_stage,
        "can_progress": can_progress,
    }
    rows, total = progression.list_progressions(filters, page, limit)
    return ProgressionListResponse(
        progressions=[ProgressionResponse.model_validate(r) for r in rows],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(
    edition_id: str,
    stage: str,
    education_level: str | None = None,
    limit: int = Query(default=10, ge=1, le=500),
    _: SessionData = Depends(require_admin),
) -> LeaderboardResponse:
    rows = progression.get_leaderboard(edition_id, stage, education_level, limit)
    return LeaderboardResponse(
        entries=[LeaderboardEntry.model_validate(r) for r in rows], count=len(rows)
    )


@router.post("", response_model=ProgressionResponse, status_code=status.HTTP_201_CREATED)
async def record_stage_score(
    request: ProgressionRecordRequest, _: SessionData = Depends(require_admin)
) -> ProgressionResponse:
    """Record a participant's stage score and re-rank their group."""
    record = progression.record_stage_score(request.model_dump())
    return ProgressionResponse.model_validate(record)


@router.put("", response_model=ProgressionActionResponse)
async def progression_action(
    request: ProgressionActionRequest, _: SessionData = Depends(require_admin)
) -> ProgressionActionResponse:
    """Run recalculate_rankings, auto_progress, run_progression or bulk_update."""
    result = progression.apply_progression_action(request.action, request.data)
    return ProgressionActionResponse(
        result=result, message=f"Progression {request.action} completed successfully"
    )


@router.delete("", response_model=MessageResponse)
async def delete_progression(
    progression_id: str = Query(..., alias="id"), _: SessionData = Depends(require_admin)
) -> MessageResponse:
    progression.delete_progression(progression_id)
    return MessageResponse(message="Progression record deleted successfully")
