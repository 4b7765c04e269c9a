"""FastAPI dependencies resolving the current admin or guardian."""

from __future__ import annotations

from fastapi import Cookie, HTTPException, status

from olympiad.auth.sessions import SessionData, decode_session_token


def require_admin(admin_session: str | None = Cookie(default=None)) -> SessionData:
    """Return the admin session or reject the request with 401."""
    session = decode_session_token(admin_session, "admin")
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin authentication required",
        )
    return session


def require_guardian(
    participant_session: str | None = Cookie(default=None),
) -> SessionData:
    """Return the guardian session or reject the request with 401."""
    session = decode_session_token(participant_session, "guardian")
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Participant authentication required",
        )
    return session
