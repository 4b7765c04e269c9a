"""Success story endpoints."""

from fastapi import APIRouter, Depends, status

from olympiad.auth import SessionData, require_admin
from olympiad.core.stories import create_story, get_stories
from olympiad.web.schemas import StoryCreate, StoryCreatedResponse, StoryResponse

router = APIRouter(prefix="/api/admin/stories", tags=["stories"])


@router.get("", response_model=list[StoryResponse])
async def list_stories() -> list[StoryResponse]:
    """List success stories (public)."""
    return [StoryResponse.model_validate(s) for s in get_stories()]


@router.post("", response_model=StoryCreatedResponse, status_code=status.HTTP_201_CREATED)
async def add_story(
    story_data: StoryCreate, _: SessionData = Depends(require_admin)
) -> StoryCreatedResponse:
    story_id = create_story(story_data.model_dump())
    return StoryCreatedResponse(id=story_id, message="Success story created")
