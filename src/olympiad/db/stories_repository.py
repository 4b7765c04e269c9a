"""Repository functions for success_stories table."""

from __future__ import annotations

import sqlite3
from typing import Any

from olympiad.db.database import insert_row, new_id, now_iso, rows_to_dicts

STORY_COLUMNS = (
    "title",
    "summary",
    "body",
    "featured_image_url",
    "video_url",
    "quote",
    "category",
    "year",
    "is_featured",
    "status",
    "published_at",
)


def insert_story(conn: sqlite3.Connection, values: dict[str, Any]) -> str:
    story_id = new_id()
    row = {"id": story_id}
    row.update({name: values.get(name) for name in STORY_COLUMNS})
    row["is_featured"] = bool(values.get("is_featured"))
    row["status"] = values.get("status") or "draft"
    row["created_at"] = now_iso()
    insert_row(conn, "success_stories", row)
    return story_id


def list_stories(conn: sqlite3.Connection) -> list[dict[str, Any]]:
    """All stories, newest first."""
    rows = conn.execute(
        "SELECT * FROM success_stories ORDER BY created_at DESC"
    ).fetchall()
    stories = rows_to_dicts(rows)
    for story in stories:
        story["is_featured"] = bool(story["is_featured"])
    return stories
