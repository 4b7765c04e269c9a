"""Admin and guardian account operations."""

from __future__ import annotations

import sqlite3

import structlog

from olympiad.auth.passwords import MIN_PASSWORD_LENGTH, hash_password, verify_password
from olympiad.auth.sessions import SessionData
from olympiad.core.errors import AuthError, ConflictError, NotFoundError, RuleViolationError
from olympiad.db.accounts_repository import (
    AccountRecord,
    get_account_by_email,
    get_account_by_id,
    insert_admin,
    insert_guardian,
)
from olympiad.db.database import get_db

logger = structlog.get_logger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


def _validate_email(email: str) -> str:
    email = email.strip().lower()
    local, _, domain = email.partition("@")
    if not local or "." not in domain:
        raise RuleViolationError("Invalid email format")
    return email


def _validate_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise RuleViolationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def to_session(account: AccountRecord) -> SessionData:
    return SessionData(
        user_id=account.id,
        email=account.email,
        full_name=account.full_name,
        kind=account.kind,
    )


def create_admin(email: str, password: str, full_name: str) -> AccountRecord:
    """Create a back-office admin account.

    Raises:
        RuleViolationError: On invalid email or short password
        ConflictError: If the email is already registered
    """
    email = _validate_email(email)
    _validate_password(password)
    password_hash = hash_password(password)

    try:
        with get_db() as conn:
            account = insert_admin(conn, email, password_hash, full_name.strip())
    except sqlite3.IntegrityError:
        raise ConflictError(f"Admin with email '{email}' already exists") from None

    logger.info("accounts.admin_created", admin_id=account.id)
    return account


def signup_guardian(
    email: str,
    password: str,
    full_name: str,
    relationship: str | None = None,
    occupation: str | None = None,
    address: str | None = None,
    phone_number: str | None = None,
) -> AccountRecord:
    """Register a guardian account.

    Raises:
        RuleViolationError: On invalid email or short password
        ConflictError: If the email is already registered
    """
    email = _validate_email(email)
    _validate_password(password)
    if not full_name.strip():
        raise RuleViolationError("Full name is required")
    password_hash = hash_password(password)

    try:
        with get_db() as conn:
            account = insert_guardian(
                conn,
                email,
                password_hash,
                full_name.strip(),
                relationship=relationship,
                occupation=occupation,
                address=address,
                phone_number=phone_number,
            )
    except sqlite3.IntegrityError:
        raise ConflictError("An account with this email already exists") from None

    logger.info("accounts.guardian_signed_up", guardian_id=account.id)
    return account


def authenticate(kind: str, email: str, password: str) -> AccountRecord:
    """Check credentials for an admin or guardian.

    Raises:
        AuthError: If the email is unknown or the password does not match
    """
    with get_db() as conn:
        account = get_account_by_email(conn, kind, email.strip())

    if account is None or not verify_password(password, account.password_hash):
        logger.info("accounts.login_failed", kind=kind)
        raise AuthError(INVALID_CREDENTIALS)

    logger.info("accounts.login", kind=kind, account_id=account.id)
    return account


def get_account(kind: str, account_id: str) -> AccountRecord:
    """Load the account behind a session.

    Raises:
        NotFoundError: If the account was removed
    """
    with get_db() as conn:
        account = get_account_by_id(conn, kind, account_id)
    if account is None:
        raise NotFoundError("Account not found")
    return account
