"""Signed session tokens and cookies.

Admins and guardians each get a JWT (HS256) stored in their own httpOnly
cookie. A token only opens a session of the kind it was issued for.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import structlog
from fastapi import Response
from jose import JWTError, jwt

from olympiad.config import load_app_config

logger = structlog.get_logger(__name__)

ADMIN_COOKIE = "admin_session"
PARTICIPANT_COOKIE = "participant_session"

COOKIE_NAMES = {"admin": ADMIN_COOKIE, "guardian": PARTICIPANT_COOKIE}


@dataclass
class SessionData:
    """Identity carried by a session token."""

    user_id: str
    email: str
    full_name: str
    kind: str


def _lifetime(kind: str) -> timedelta:
    auth = load_app_config().auth
    days = auth.admin_session_days if kind == "admin" else auth.participant_session_days
    return timedelta(days=days)


def create_session_token(session: SessionData, now: datetime | None = None) -> str:
    """Sign a token for the session, valid for the kind's lifetime."""
    auth = load_app_config().auth
    issued = now or datetime.now(timezone.utc)
    payload = {
        "sub": session.user_id,
        "email": session.email,
        "full_name": session.full_name,
        "kind": session.kind,
        "iat": int(issued.timestamp()),
        "exp": int((issued + _lifetime(session.kind)).timestamp()),
    }
    return jwt.encode(payload, auth.jwt_secret, algorithm=auth.algorithm)


def decode_session_token(token: str | None, kind: str) -> SessionData | None:
    """Verify a token and return its session if it is of the expected kind.

    Returns:
        SessionData, or None for a missing, tampered, expired or
        wrong-kind token
    """
    if not token:
        return None
    auth = load_app_config().auth
    try:
        payload = jwt.decode(token, auth.jwt_secret, algorithms=[auth.algorithm])
    except JWTError:
        logger.debug("auth.invalid_token", kind=kind)
        return None

    if payload.get("kind") != kind or not payload.get("sub"):
        return None

    return SessionData(
        user_id=payload["sub"],
        email=payload.get("email", ""),
        full_name=payload.get("full_name", ""),
        kind=kind,
    )


def set_session_cookie(response: Response, session: SessionData) -> None:
    """Issue a token for the session and store it in the kind's cookie."""
    token = create_session_token(session)
    response.set_cookie(
        key=COOKIE_NAMES[session.kind],
        value=token,
        max_age=int(_lifetime(session.kind).total_seconds()),
        httponly=True,
        secure=load_app_config().auth.cookie_secure,
        samesite="strict",
        path="/",
    )


def clear_session_cookie(response: Response, kind: str) -> None:
    response.delete_cookie(
        key=COOKIE_NAMES[kind],
        path="/",
        httponly=True,
        secure=load_app_config().auth.cookie_secure,
        samesite="strict",
    )
