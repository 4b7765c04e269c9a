"""Edition and stage endpoints."""

from fastapi import APIRouter, Depends, Query, status

from olympiad.auth import SessionData, require_admin
from olympiad.core import editions
from olympiad.web.schemas import (
    EditionCreate,
    EditionListResponse,
    EditionResponse,
    EditionUpdate,
    StageResponse,
    StageUpdate,
)

router = APIRouter(prefix="/api/olympiad/editions", tags=["editions"])


def _edition_list(rows: list[dict]) -> EditionListResponse:
    return EditionListResponse(
        editions=[EditionResponse.model_validate(r) for r in rows], count=len(rows)
    )


@router.get("", response_model=EditionListResponse)
async def list_editions(
    status_filter: str | None = Query(default=None, alias="status"),
    year: int | None = None,
    _: SessionData = Depends(require_admin),
) -> EditionListResponse:
    """List editions, newest year first."""
    return _edition_list(editions.list_editions(status=status_filter, year=year))


@router.get("/open", response_model=EditionListResponse)
async def list_open_editions() -> EditionListResponse:
    """List editions accepting enrollments right now (public)."""
    return _edition_list(editions.list_open_editions())


@router.post("", response_model=EditionResponse, status_code=status.HTTP_201_CREATED)
async def create_edition(
    edition_data: EditionCreate, session: SessionData = Depends(require_admin)
) -> EditionResponse:
    """Create an edition with its four stages."""
    edition = editions.create_edition(
        edition_data.model_dump(exclude_none=True), admin_id=session.user_id
    )
    return EditionResponse.model_validate(edition)


@router.get("/{edition_id}", response_model=EditionResponse)
async def get_edition(
    edition_id: str, _: SessionData = Depends(require_admin)
) -> EditionResponse:
    """Get an edition with its stages and statistics."""
    return EditionResponse.model_validate(editions.get_edition_detail(edition_id))


@router.put("/{edition_id}", response_model=EditionResponse)
async def update_edition(
    edition_id: str, edition_data: EditionUpdate, _: SessionData = Depends(require_admin)
) -> EditionResponse:
    edition = editions.update_edition(edition_id, edition_data.model_dump(exclude_unset=True))
    return EditionResponse.model_validate(edition)


@router.delete("/{edition_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_edition(edition_id: str, _: SessionData = Depends(require_admin)) -> None:
    """Delete an edition nobody has enrolled in."""
    editions.delete_edition(edition_id)


@router.put("/{edition_id}/stages/{stage_name}", response_model=StageResponse)
async def update_stage(
    edition_id: str,
    stage_name: str,
    stage_data: StageUpdate,
    _: SessionData = Depends(require_admin),
) -> StageResponse:
    """Change a stage's dates or advancement rules."""
    stage = editions.update_stage_rules(
        edition_id, stage_name, stage_data.model_dump(exclude_unset=True)
    )
    return StageResponse.model_validate(stage)
