"""Repository functions for admins and guardians tables.

Both account types share the same shape for authentication purposes; the
guardian table carries a few extra contact columns.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

import structlog

from olympiad.db.database import insert_row, new_id, now_iso

logger = structlog.get_logger(__name__)

ACCOUNT_TABLES = {"admin": "admins", "guardian": "guardians"}


@dataclass
class AccountRecord:
    """Admin or guardian account from database."""

    id: str
    email: str
    password_hash: str
    full_name: str
    created_at: str
    kind: str
    relationship: str | None = None
    occupation: str | None = None
    address: str | None = None
    phone_number: str | None = None


def insert_admin(
    conn: sqlite3.Connection, email: str, password_hash: str, full_name: str
) -> AccountRecord:
    """Insert a new admin account.

    Raises:
        sqlite3.IntegrityError: If the email is already registered
    """
    admin_id = new_id()
    insert_row(
        conn,
        "admins",
        {
            "id": admin_id,
            "email": email.lower(),
            "password_hash": password_hash,
            "full_name": full_name,
            "created_at": now_iso(),
        },
    )
    logger.debug("admins.inserted", admin_id=admin_id)
    return get_account_by_id(conn, "admin", admin_id)


def insert_guardian(
    conn: sqlite3.Connection,
    email: str,
    password_hash: str,
    full_name: str,
    relationship: str | None = None,
    occupation: str | None = None,
    address: str | None = None,
    phone_number: str | None = None,
) -> AccountRecord:
    """Insert a new guardian account.

    Raises:
        sqlite3.IntegrityError: If the email is already registered
    """
    guardian_id = new_id()
    insert_row(
        conn,
        "guardians",
        {
            "id": guardian_id,
            "email": email.lower(),
            "password_hash": password_hash,
            "full_name": full_name,
            "relationship": relationship,
            "occupation": occupation,
            "address": address,
            "phone_number": phone_number,
            "created_at": now_iso(),
        },
    )
    logger.debug("guardians.inserted", guardian_id=guardian_id)
    return get_account_by_id(conn, "guardian", guardian_id)


def get_account_by_email(
    conn: sqlite3.Connection, kind: str, email: str
) -> AccountRecord | None:
    """Get an account by email (case-insensitive).

    Args:
        conn: Open connection
        kind: 'admin' or 'guardian'
        email: Login email

    Returns:
        AccountRecord if found, None otherwise
    """
    row = conn.execute(
        f"SELECT * FROM {ACCOUNT_TABLES[kind]} WHERE email = ?", (email.lower(),)
    ).fetchone()
    return _row_to_record(row, kind) if row else None


def get_account_by_id(
    conn: sqlite3.Connection, kind: str, account_id: str
) -> AccountRecord | None:
    """Get an account by id."""
    row = conn.execute(
        f"SELECT * FROM {ACCOUNT_TABLES[kind]} WHERE id = ?", (account_id,)
    ).fetchone()
    return _row_to_record(row, kind) if row else None


def _row_to_record(row: sqlite3.Row, kind: str) -> AccountRecord:
    """Convert database row to AccountRecord."""
    keys = row.keys()
    return AccountRecord(
        id=row["id"],
        email=row["email"],
        password_hash=row["password_hash"],
        full_name=row["full_name"],
        created_at=row["created_at"],
        kind=kind,
        relationship=row["relationship"] if "relationship" in keys else None,
        occupation=row["occupation"] if "occupation" in keys else None,
        address=row["address"] if "address" in keys else None,
        phone_number=row["phone_number"] if "phone_number" in keys else None,
    )
