"""Route handlers for the Web API."""

from olympiad.web.routes.health import router as health_router
from olympiad.web.routes.admin_auth import router as admin_auth_router
from olympiad.web.routes.participant_auth import router as participant_auth_router
from olympiad.web.routes.minors import router as minors_router
from olympiad.web.routes.enrollments import router as enrollments_router
from olympiad.web.routes.participant_exams import router as participant_exams_router
from olympiad.web.routes.database import router as database_router
from olympiad.web.routes.editions import router as editions_router
from olympiad.web.routes.participants import router as participants_router
from olympiad.web.routes.questions import router as questions_router
from olympiad.web.routes.exams import router as exams_router
from olympiad.web.routes.marking import router as marking_router
from olympiad.web.routes.progression import router as progression_router
from olympiad.web.routes.finals import router as finals_router
from olympiad.web.routes.stories import router as stories_router

__all__ = [
    "health_router",
    "admin_auth_router",
    "participant_auth_router",
    "minors_router",
    "enrollments_router",
    "participant_exams_router",
    "database_router",
    "editions_router",
    "participants_router",
    "questions_router",
    "exams_router",
    "marking_router",
    "progression_router",
    "finals_router",
    "stories_router",
]
