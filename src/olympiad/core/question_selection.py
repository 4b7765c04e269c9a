"""Random question selection for exams.

Questions are drawn per difficulty according to a distribution (30% easy,
50% medium, 20% hard by default, rounded down). Any shortfall is filled
from the remaining eligible questions, and the result never exceeds the
requested total.
"""

from __future__ import annotations

import random
from typing import Any

from olympiad.core.errors import RuleViolationError

DIFFICULTIES = ("easy", "medium", "hard")
DEFAULT_DISTRIBUTION = {"easy": 0.3, "medium": 0.5, "hard": 0.2}


def difficulty_counts(
    total: int, per_difficulty: dict[str, int] | None = None
) -> dict[str, int]:
    """Number of questions to draw per difficulty.

    Args:
        total: Total questions requested
        per_difficulty: Explicit counts; missing difficulties count as 0

    Returns:
        Dict difficulty -> count
    """
    if per_difficulty:
        counts = {d: int(per_difficulty.get(d, 0)) for d in DIFFICULTIES}
        if any(n < 0 for n in counts.values()):
            raise RuleViolationError("Question counts per difficulty cannot be negative")
        return counts
    return {d: int(total * share) for d, share in DEFAULT_DISTRIBUTION.items()}


def select_questions(
    candidates: list[dict[str, Any]],
    total: int,
    per_difficulty: dict[str, int] | None = None,
    exclude_ids: list[str] | None = None,
    rng: random.Random | None = None,
) -> list[dict[str, Any]]:
    """Pick up to ``total`` questions from the candidates.

    Args:
        candidates: Active questions matching subject, level and stage
        total: Number of questions wanted
        per_difficulty: Optional explicit counts per difficulty
        exclude_ids: Question ids never to select
        rng: Random source (injectable for tests)

    Returns:
        Selected question dicts, at most ``total`` long
    """
    rng = rng or random.Random()
    excluded = set(exclude_ids or [])
    pool = [q for q in candidates if q["id"] not in excluded]

    selected: list[dict[str, Any]] = []
    for difficulty, count in difficulty_counts(total, per_difficulty).items():
        if count <= 0:
            continue
        bucket = [q for q in pool if q["difficulty"] == difficulty]
        selected.extend(rng.sample(bucket, min(count, len(bucket))))

    if len(selected) < total:
        chosen = {q["id"] for q in selected}
        remaining = [q for q in pool if q["id"] not in chosen]
        needed = total - len(selected)
        selected.extend(rng.sample(remaining, min(needed, len(remaining))))

    return selected[:total]


def public_question(
    question: dict[str, Any], shuffle_options: bool, rng: random.Random | None = None
) -> dict[str, Any]:
    """Question as shown to a participant: no answer, no explanation."""
    options = list(question.get("options") or [])
    if shuffle_options and options:
        (rng or random.Random()).shuffle(options)
    return {
        "id": question["id"],
        "question_text": question["question_text"],
        "question_type": question["question_type"],
        "difficulty": question["difficulty"],
        "options": options,
        "points_value": question["points_value"],
        "time_limit_seconds": question.get("time_limit_seconds"),
    }
