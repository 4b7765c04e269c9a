"""Authentication: password hashing, session tokens and route dependencies."""

from olympiad.auth.dependencies import require_admin, require_guardian
from olympiad.auth.passwords import hash_password, verify_password
from olympiad.auth.sessions import (
    ADMIN_COOKIE,
    PARTICIPANT_COOKIE,
    SessionData,
    clear_session_cookie,
    create_session_token,
    decode_session_token,
    set_session_cookie,
)

__all__ = [
    "ADMIN_COOKIE",
    "PARTICIPANT_COOKIE",
    "SessionData",
    "clear_session_cookie",
    "create_session_token",
    "decode_session_token",
    "hash_password",
    "require_admin",
    "require_guardian",
    "set_session_cookie",
    "verify_password",
]
