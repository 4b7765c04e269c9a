"""Database module for SQLite persistence.

Provides:
- Database connection management
- Schema initialization and status
- Repository functions, one module per aggregate (editions, participants,
  questions, exams, marking, progression, finals, accounts, stories)

Repository functions take an open connection as first argument so that a
core operation can run several of them inside one transaction.
"""

from olympiad.db.database import (
    check_database_status,
    get_db,
    init_db,
    initialize_schema,
)

__all__ = ["check_database_status", "get_db", "init_db", "initialize_schema"]
