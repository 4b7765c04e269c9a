"""Final stage endpoints: venues, results and awards."""

from fastapi import APIRouter, Depends, Query, status

from olympiad.auth import SessionData, require_admin
from olympiad.core import finals
from olympiad.web.schemas import (
    FinalsOverviewResponse,
    Pagination,
    ResultCreate,
    ResultResponse,
    ResultUpdate,
    VenueCreate,
    VenueRankingResponse,
    VenueResponse,
    VenueUpdate,
)

router = APIRouter(prefix="/api/olympiad/finals", tags=["finals"])


@router.get("", response_model=FinalsOverviewResponse)
async def finals_overview(
    edition_id: str | None = None,
    education_level: str | None = None,
    subject: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=500),
    _: SessionData = Depends(require_admin),
) -> FinalsOverviewResponse:
    """List venues and a page of results."""
    filters = {"edition_id": edition_id, "education_level": education_level, "subject": subject}
    overview = finals.get_finals_overview(filters, page, limit)
    return FinalsOverviewResponse(
        venues=[VenueResponse.model_validate(v) for v in overview["venues"]],
        results=[ResultResponse.model_validate(r) for r in overview["results"]],
        pagination=Pagination.build(page, limit, overview["total"]),
    )


# =============================================================================
# VENUES
# =============================================================================


@router.post("/venues", response_model=VenueResponse, status_code=status.HTTP_201_CREATED)
async def create_venue(
    venue_data: VenueCreate, _: SessionData = Depends(require_admin)
) -> VenueResponse:
    return VenueResponse.model_validate(finals.create_venue(venue_data.model_dump()))


@router.put("/venues/{venue_id}", response_model=VenueResponse)
async def update_venue(
    venue_id: str, venue_data: VenueUpdate, _: SessionData = Depends(require_admin)
) -> VenueResponse:
    venue = finals.update_venue(venue_id, venue_data.model_dump(exclude_unset=True))
    return VenueResponse.model_validate(venue)


@router.delete("/venues/{venue_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_venue(venue_id: str, _: SessionData = Depends(require_admin)) -> None:
    """Delete a venue that has no results."""
    finals.delete_venue(venue_id)


@router.post("/venues/{venue_id}/rank", response_model=VenueRankingResponse)
async def rank_venue(
    venue_id: str, session: SessionData = Depends(require_admin)
) -> VenueRankingResponse:
    """Rank present finalists by score and assign awards."""
    results = finals.rank_venue(venue_id, admin_id=session.user_id)
    return VenueRankingResponse(
        venue_id=venue_id,
        results=[ResultResponse.model_validate(r) for r in results],
        ranked=sum(1 for r in results if r["final_rank"] is not None),
    )


# =============================================================================
# RESULTS
# =============================================================================


@router.post("/results", response_model=ResultResponse, status_code=status.HTTP_201_CREATED)
async def create_result(
    result_data: ResultCreate, session: SessionData = Depends(require_admin)
) -> ResultResponse:
    """Register a finalist at a venue."""
    result = finals.create_result(result_data.model_dump(), admin_id=session.user_id)
    return ResultResponse.model_validate(result)


@router.put("/results/{result_id}", response_model=ResultResponse)
async def update_result(
    result_id: str, result_data: ResultUpdate, session: SessionData = Depends(require_admin)
) -> ResultResponse:
    result = finals.update_result(
        result_id, result_data.model_dump(exclude_unset=True), admin_id=session.user_id
    )
    return ResultResponse.model_validate(result)


@router.delete("/results/{result_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_result(result_id: str, _: SessionData = Depends(require_admin)) -> None:
    finals.delete_result(result_id)
