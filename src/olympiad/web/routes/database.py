"""Database status and initialization endpoints."""

from fastapi import APIRouter, Depends

from olympiad.auth import SessionData, require_admin
from olympiad.db.database import EXPECTED_TABLES, check_database_status, get_db, initialize_schema
from olympiad.web.schemas import DatabaseStatusResponse

router = APIRouter(prefix="/api/olympiad/database", tags=["database"])


@router.get("", response_model=DatabaseStatusResponse)
async def database_status(_: SessionData = Depends(require_admin)) -> DatabaseStatusResponse:
    """Report which tables exist and the schema version."""
    db_status = check_database_status()
    message = (
        "Database is initialized"
        if db_status["initialized"]
        else f"Database is missing {len(EXPECTED_TABLES) - len(db_status['tables'])} tables"
    )
    return DatabaseStatusResponse(**db_status, message=message)


@router.post("", response_model=DatabaseStatusResponse)
async def initialize_database(_: SessionData = Depends(require_admin)) -> DatabaseStatusResponse:
    """Create any missing tables."""
    with get_db() as conn:
        initialize_schema(conn)
    db_status = check_database_status()
    return DatabaseStatusResponse(
        **db_status,
        message=f"Database initialized successfully with {len(db_status['tables'])} tables",
    )
