"""Tests for success stories."""

import pytest

from olympiad.core.errors import RuleViolationError
from olympiad.core.stories import create_story, get_stories


def test_create_and_list(db):
    story_id = create_story(
        {
            "title": "From Gulu to the podium",
            "summary": "A 2025 gold medallist",
            "body": "Long story.",
            "is_featured": True,
            "year": 2025,
        }
    )
    stories = get_stories()
    assert [s["id"] for s in stories] == [story_id]
    assert stories[0]["is_featured"] is True
    assert stories[0]["status"] == "draft"


def test_required_fields(db):
    with pytest.raises(RuleViolationError, match="Missing"):
        create_story({"title": "No body", "summary": "x"})
