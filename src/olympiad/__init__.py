"""STEM Olympiad back-office: editions, enrollment, exams, marking, progression and finals."""

__version__ = "0.1.0"
