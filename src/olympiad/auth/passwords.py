"""Password hashing with bcrypt."""

from __future__ import annotations

import bcrypt
import structlog

from olympiad.config import load_app_config
from olympiad.core.errors import RuleViolationError

logger = structlog.get_logger(__name__)

MIN_PASSWORD_LENGTH = 8
# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72


def hash_password(raw_password: str) -> str:
    """Hash a password using bcrypt returning the hash as text.

    Raises:
        RuleViolationError: If the password is empty or too long for bcrypt
    """
    if not raw_password or not raw_password.strip():
        raise RuleViolationError("Password cannot be empty")
    password_bytes = raw_password.encode("utf-8")
    if len(password_bytes) > MAX_PASSWORD_BYTES:
        raise RuleViolationError(f"Password cannot exceed {MAX_PASSWORD_BYTES} bytes")

    rounds = load_app_config().auth.bcrypt_rounds
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(raw_password: str, stored_hash: str | None) -> bool:
    """Return True if the password matches the stored hash.

    A malformed stored hash never verifies.
    """
    if not raw_password or not stored_hash:
        return False
    password_bytes = raw_password.encode("utf-8")
    if len(password_bytes) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(password_bytes, stored_hash.encode("utf-8"))
    except ValueError:
        logger.warning("auth.invalid_password_hash")
        return False
