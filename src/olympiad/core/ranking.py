"""Ranking, stage advancement rules and award bands."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable

from olympiad.config import AwardBand


@dataclass
class AdvancementDecision:
    """Whether a ranked participant advances, and why."""

    can_progress: bool
    reason: str


def competition_rank(
    entries: list[dict[str, Any]],
    key: Callable[[dict[str, Any]], tuple],
) -> list[tuple[int, dict[str, Any]]]:
    """Standard competition ranking ("1224"): ties share a rank.

    Args:
        entries: Items to rank
        key: Sort key, higher is better; equal keys tie

    Returns:
        (rank, entry) pairs, best first
    """
    ordered = sorted(entries, key=key, reverse=True)
    ranked = []
    previous_key = None
    rank = 0
    for position, entry in enumerate(ordered, start=1):
        entry_key = key(entry)
        if entry_key != previous_key:
            rank = position
            previous_key = entry_key
        ranked.append((rank, entry))
    return ranked


def decide_advancement(
    rank: int,
    total: int,
    percentage: float,
    pass_percentage: float | None = None,
    top_percent: float | None = None,
    pass_count: int | None = None,
) -> AdvancementDecision:
    """Apply a stage's advancement rules to one ranked participant.

    Every configured rule must be satisfied. A stage with no rules
    advances nobody automatically.

    Args:
        rank: Competition rank within the group
        total: Group size
        percentage: Participant's stage percentage
        pass_percentage: Minimum percentage
        top_percent: Only ranks within the top N percent (rounded up)
        pass_count: Only ranks up to N

    Returns:
        AdvancementDecision with a human-readable reason
    """
    if pass_percentage is None and top_percent is None and pass_count is None:
        return AdvancementDecision(False, "No advancement rule configured for stage")

    reasons = []
    if pass_percentage is not None:
        if percentage < pass_percentage:
            return AdvancementDecision(
                False, f"Score {percentage}% below pass mark {pass_percentage}%"
            )
        reasons.append(f"score {percentage}% >= {pass_percentage}%")

    if top_percent is not None:
        cutoff = math.ceil(total * top_percent / 100)
        if rank > cutoff:
            return AdvancementDecision(
                False, f"Rank {rank} of {total} outside top {top_percent}%"
            )
        reasons.append(f"rank {rank} of {total} within top {top_percent}%")

    if pass_count is not None:
        if rank > pass_count:
            return AdvancementDecision(
                False, f"Rank {rank} outside top {pass_count} places"
            )
        reasons.append(f"rank {rank} within top {pass_count}")

    return AdvancementDecision(True, "Qualified: " + ", ".join(reasons))


def award_for_rank(
    rank: int, total: int, bands: list[AwardBand], default_award: str
) -> str:
    """Award for a finalist by cumulative percentage bands.

    With bands GOLD 10, SILVER 20, BRONZE 30 and 20 finalists, ranks 1-2
    get GOLD, 3-6 SILVER, 7-12 BRONZE and the rest the default award.
    """
    cumulative = 0.0
    for band in bands:
        cumulative += band.percent
        if rank <= math.ceil(total * cumulative / 100):
            return band.award
    return default_award
