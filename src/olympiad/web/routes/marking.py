"""Marking queue endpoints."""

from fastapi import APIRouter, Depends, Query, status

from olympiad.auth import SessionData, require_admin
from olympiad.core import marking
from olympiad.web.schemas import (
    MarkingActionRequest,
    MarkingActionResponse,
    MarkingItemCreate,
    MarkingItemResponse,
    MarkingListResponse,
    MessageResponse,
    Pagination,
)

router = APIRouter(prefix="/api/olympiad/marking/queue", tags=["marking"])


@router.get("", response_model=MarkingListResponse)
async def list_queue(
    status_filter: str | None = Query(default=None, alias="status"),
    assigned_marker_id: str | None = None,
    subject: str | None = None,
    education_level: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=500),
    _: SessionData = Depends(require_admin),
) -> MarkingListResponse:
    """List queue items, oldest first."""
    filters = {
        "status": status_filter,
        "assigned_marker_id": assigned_marker_id,
        "subject": subject,
        "education_level": education_level,
    }
    rows, total = marking.list_queue(filters, page, limit)
    return MarkingListResponse(
        items=[MarkingItemResponse.model_validate(r) for r in rows],
        pagination=Pagination.build(page, limit, total),
    )


@router.post("", response_model=MarkingItemResponse, status_code=status.HTTP_201_CREATED)
async def add_to_queue(
    request: MarkingItemCreate, _: SessionData = Depends(require_admin)
) -> MarkingItemResponse:
    item = marking.add_to_queue(request.session_id, request.question_id, request.answer_id)
    return MarkingItemResponse.model_validate(item)


@router.put("", response_model=MarkingActionResponse)
async def update_queue_item(
    request: MarkingActionRequest, session: SessionData = Depends(require_admin)
) -> MarkingActionResponse:
    """Apply assign, start_marking, submit_mark, moderate or unassign."""
    item = marking.apply_marking_action(
        request.marking_id, request.action, session.user_id, request.data
    )
    return MarkingActionResponse(
        marking_item=MarkingItemResponse.model_validate(item),
        message=f"Marking {request.action} completed successfully",
    )


@router.delete("", response_model=MessageResponse)
async def delete_queue_item(
    item_id: str = Query(..., alias="id"), _: SessionData = Depends(require_admin)
) -> MessageResponse:
    marking.remove_from_queue(item_id)
    return MessageResponse(message="Marking item deleted successfully")
