"""Success stories shown on the public impact pages."""

from __future__ import annotations

from typing import Any

import structlog

from olympiad.core.errors import RuleViolationError
from olympiad.db.database import get_db
from olympiad.db.stories_repository import insert_story, list_stories

logger = structlog.get_logger(__name__)


def create_story(values: dict[str, Any]) -> str:
    if not values.get("title") or not values.get("summary") or not values.get("body"):
        raise RuleViolationError("Missing required fields")
    with get_db() as conn:
        story_id = insert_story(conn, values)
    logger.info("stories.created", story_id=story_id)
    return story_id


def get_stories() -> list[dict[str, Any]]:
    with get_db() as conn:
        return list_stories(conn)
