"""Competition stage ordering and default advancement rules."""

from __future__ import annotations

from typing import Any

from olympiad.config import StageRule, load_app_config

STAGES = ["Beginner", "Theory", "Practical", "Final"]
COMPLETED_STAGE = "Completed"


def is_known_stage(stage: str) -> bool:
    return stage in STAGES


def stage_number(stage: str) -> int:
    """1-based position of a stage."""
    return STAGES.index(stage) + 1


def next_stage(stage: str) -> str:
    """Stage following the given one; the Final stage leads to Completed."""
    position = STAGES.index(stage)
    if position + 1 < len(STAGES):
        return STAGES[position + 1]
    return COMPLETED_STAGE


def default_stage_rules() -> dict[str, dict[str, Any]]:
    """Rule columns for each stage from configuration."""
    configured = load_app_config().edition_defaults.stages
    rules = {}
    for stage in STAGES:
        rule = configured.get(stage, StageRule())
        rules[stage] = {
            "pass_percentage": rule.pass_percentage,
            "top_percent": rule.top_percent,
            "pass_count": rule.pass_count,
        }
    return rules
