"""Core business logic.

Rules (pure functions):
- eligibility: age, level, subject and consent checks for enrollment
- grading: automatic grading of objective answers
- question_selection: difficulty-weighted random selection
- ranking: competition ranks, stage advancement rules, award bands
- stages: stage order and default rules

Operations (one transaction each):
- accounts, minors, editions, enrollment, questions, exam_configs,
  exam_sessions, participant_exams, marking, progression, finals, stories
"""

__all__ = [
    "accounts",
    "clock",
    "editions",
    "eligibility",
    "enrollment",
    "errors",
    "exam_configs",
    "exam_sessions",
    "finals",
    "grading",
    "marking",
    "minors",
    "participant_exams",
    "progression",
    "question_selection",
    "ranking",
    "stages",
    "stories",
]
