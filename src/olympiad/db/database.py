"""SQLite database connection and schema management.

Provides connection management, schema initialization and status checks for
the olympiad back-office, plus a few row helpers shared by the repositories.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator, Iterable

import structlog

logger = structlog.get_logger(__name__)

# Default database location
DEFAULT_DB_PATH = Path("db/olympiad.db")

# Bumped whenever the DDL below changes shape
SCHEMA_VERSION = 1

EXPECTED_TABLES = [
    "admins",
    "guardians",
    "minor_profiles",
    "olympiad_editions",
    "edition_stages",
    "olympiad_participants",
    "question_bank",
    "exam_configurations",
    "exam_sessions",
    "exam_answers",
    "marking_queue",
    "stage_progression",
    "final_venues",
    "final_results",
    "success_stories",
]

# Current connection path (module-level, set by init_db)
_db_path: Path | None = None


def init_db(db_path: Path | None = None) -> None:
    """Initialize database with schema.

    Creates the database file and all required tables if they don't exist.

    Args:
        db_path: Path to database file. Defaults to db/olympiad.db
    """
    global _db_path
    _db_path = Path(db_path) if db_path else DEFAULT_DB_PATH

    _db_path.parent.mkdir(parents=True, exist_ok=True)

    with get_db() as conn:
        initialize_schema(conn)

    logger.info("database.initialized", path=str(_db_path))


def get_db_path() -> Path:
    """Return the path get_db() connects to."""
    return _db_path or DEFAULT_DB_PATH


def set_db_path(db_path: Path) -> None:
    """Point get_db() at a database file without touching its schema."""
    global _db_path
    _db_path = Path(db_path)


@contextmanager
def get_db() -> Generator[sqlite3.Connection, None, None]:
    """Get database connection as context manager.

    Everything executed inside one ``with`` block is a single transaction:
    committed when the block exits normally, rolled back on exception.

    Yields:
        SQLite connection with row factory set to sqlite3.Row

    Example:
        with get_db() as conn:
            rows = conn.execute("SELECT * FROM olympiad_editions").fetchall()
    """
    db_path = get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")

    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def initialize_schema(conn: sqlite3.Connection) -> int:
    """Create all tables and indexes, then stamp the schema version.

    Uses IF NOT EXISTS everywhere, so running it again is harmless.

    Returns:
        Number of expected tables present after initialization.
    """
    conn.executescript(_SCHEMA_SQL)
    conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
    tables = _list_tables(conn)
    created = len([t for t in EXPECTED_TABLES if t in tables])
    logger.info("database.schema_applied", tables=created, schema_version=SCHEMA_VERSION)
    return created


def check_database_status() -> dict[str, Any]:
    """Report whether every expected table exists.

    Returns:
        Dict with ``initialized``, ``tables`` (sorted names found) and
        ``schema_version``.
    """
    with get_db() as conn:
        tables = _list_tables(conn)
        version = conn.execute("PRAGMA user_version").fetchone()[0]

    found = sorted(t for t in tables if t in EXPECTED_TABLES)
    return {
        "initialized": all(t in tables for t in EXPECTED_TABLES),
        "tables": found,
        "schema_version": version,
    }


def _list_tables(conn: sqlite3.Connection) -> set[str]:
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table'"
    ).fetchall()
    return {row["name"] for row in rows}


# =============================================================================
# ROW HELPERS
# =============================================================================


def new_id() -> str:
    """Generate a new primary key."""
    return str(uuid.uuid4())


def now_iso() -> str:
    """Current UTC time as ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def row_to_dict(
    row: sqlite3.Row | None, json_fields: Iterable[str] = ()
) -> dict[str, Any] | None:
    """Convert a row to a dict, decoding JSON text columns."""
    if row is None:
        return None
    data = dict(row)
    for name in json_fields:
        value = data.get(name)
        if isinstance(value, str):
            data[name] = json.loads(value)
    return data


def rows_to_dicts(
    rows: Iterable[sqlite3.Row], json_fields: Iterable[str] = ()
) -> list[dict[str, Any]]:
    """Convert several rows with row_to_dict."""
    fields = tuple(json_fields)
    return [row_to_dict(r, fields) for r in rows]


def build_where(
    filters: dict[str, Any], columns: dict[str, str]
) -> tuple[str, list[Any]]:
    """Build a parameterized WHERE clause from whitelisted filters.

    Args:
        filters: Filter name -> value; None values are skipped.
        columns: Filter name -> qualified column (the whitelist).

    Returns:
        (clause, params) where clause is "" or starts with " WHERE ".
    """
    conditions = []
    params: list[Any] = []
    for name, value in filters.items():
        if value is None:
            continue
        column = columns[name]
        if isinstance(value, bool):
            value = int(value)
        conditions.append(f"{column} = ?")
        params.append(value)

    if not conditions:
        return "", params
    return " WHERE " + " AND ".join(conditions), params


def to_db_value(value: Any) -> Any:
    """Encode a Python value for storage (JSON for containers, int for bools)."""
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    if isinstance(value, bool):
        return int(value)
    return value


def build_set_clause(fields: dict[str, Any]) -> tuple[str, list[Any]]:
    """Build "col = ?, ..." for an UPDATE from trusted column names.

    Callers pass only column names chosen in code, never raw request keys.
    """
    assignments = [f"{name} = ?" for name in fields]
    params = [to_db_value(value) for value in fields.values()]
    return ", ".join(assignments), params


def insert_row(conn: sqlite3.Connection, table: str, values: dict[str, Any]) -> None:
    """INSERT one row given a column -> value dict."""
    columns = ", ".join(values)
    placeholders = ", ".join("?" for _ in values)
    conn.execute(
        f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
        [to_db_value(v) for v in values.values()],
    )


_SCHEMA_SQL = """
-- Back-office accounts
CREATE TABLE IF NOT EXISTS admins (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    full_name TEXT NOT NULL,
    created_at TEXT NOT NULL
);

-- Guardians enrol minors on their behalf
CREATE TABLE IF NOT EXISTS guardians (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    full_name TEXT NOT NULL,
    relationship TEXT,
    occupation TEXT,
    address TEXT,
    phone_number TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS minor_profiles (
    id TEXT PRIMARY KEY,
    guardian_id TEXT NOT NULL REFERENCES guardians(id) ON DELETE CASCADE,
    full_name TEXT NOT NULL,
    date_of_birth TEXT NOT NULL,
    gender TEXT,
    school_name TEXT,
    class_grade TEXT,
    district TEXT,
    national_id TEXT,
    student_number TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS olympiad_editions (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    year INTEGER NOT NULL,
    theme TEXT,
    description TEXT,
    enrollment_start TEXT NOT NULL,
    enrollment_end TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'DRAFT'
        CHECK(status IN ('DRAFT', 'OPEN', 'ACTIVE', 'COMPLETED', 'CANCELLED')),
    active_levels TEXT NOT NULL,
    active_subjects TEXT NOT NULL,
    age_rules TEXT NOT NULL,
    max_subjects_per_participant INTEGER NOT NULL DEFAULT 3,
    reference_date TEXT,
    created_by_admin_id TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS edition_stages (
    id TEXT PRIMARY KEY,
    edition_id TEXT NOT NULL REFERENCES olympiad_editions(id) ON DELETE CASCADE,
    stage_number INTEGER NOT NULL,
    stage_name TEXT NOT NULL
        CHECK(stage_name IN ('Beginner', 'Theory', 'Practical', 'Final')),
    start_date TEXT,
    end_date TEXT,
    pass_percentage REAL,
    top_percent REAL,
    pass_count INTEGER,
    created_at TEXT NOT NULL,
    UNIQUE(edition_id, stage_name)
);

CREATE TABLE IF NOT EXISTS olympiad_participants (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    minor_profile_id TEXT REFERENCES minor_profiles(id) ON DELETE SET NULL,
    edition_id TEXT NOT NULL REFERENCES olympiad_editions(id) ON DELETE CASCADE,
    first_name TEXT NOT NULL,
    last_name TEXT NOT NULL,
    email TEXT NOT NULL,
    phone TEXT,
    date_of_birth TEXT,
    education_level TEXT NOT NULL,
    school_name TEXT,
    district TEXT,
    subjects TEXT NOT NULL DEFAULT '[]',
    enrollment_date TEXT NOT NULL,
    parent_consent INTEGER NOT NULL DEFAULT 0,
    consent_given_by TEXT,
    consent_contact TEXT,
    is_active INTEGER NOT NULL DEFAULT 1,
    current_stage TEXT NOT NULL DEFAULT 'Beginner',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS question_bank (
    id TEXT PRIMARY KEY,
    question_text TEXT NOT NULL,
    question_type TEXT NOT NULL
        CHECK(question_type IN ('multiple_choice', 'true_false', 'short_answer', 'essay')),
    difficulty TEXT NOT NULL CHECK(difficulty IN ('easy', 'medium', 'hard')),
    subject TEXT NOT NULL,
    education_level TEXT NOT NULL,
    stage TEXT NOT NULL,
    options TEXT,
    correct_answer TEXT NOT NULL,
    explanation TEXT,
    points_value REAL NOT NULL DEFAULT 1.0,
    time_limit_seconds INTEGER DEFAULT 60,
    is_active INTEGER NOT NULL DEFAULT 1,
    created_by_admin_id TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS exam_configurations (
    id TEXT PRIMARY KEY,
    edition_id TEXT NOT NULL REFERENCES olympiad_editions(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    description TEXT,
    education_level TEXT NOT NULL,
    subject TEXT NOT NULL,
    stage TEXT NOT NULL,
    total_questions INTEGER NOT NULL,
    questions_per_difficulty TEXT NOT NULL,
    randomize_questions INTEGER NOT NULL DEFAULT 1,
    randomize_options INTEGER NOT NULL DEFAULT 1,
    duration_minutes INTEGER NOT NULL,
    start_time TEXT,
    end_time TEXT,
    requires_supervision INTEGER NOT NULL DEFAULT 0,
    max_attempts INTEGER NOT NULL DEFAULT 1,
    status TEXT NOT NULL DEFAULT 'draft'
        CHECK(status IN ('draft', 'ready', 'active', 'completed', 'cancelled')),
    created_by_admin_id TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS exam_sessions (
    id TEXT PRIMARY KEY,
    exam_config_id TEXT NOT NULL REFERENCES exam_configurations(id) ON DELETE CASCADE,
    participant_id TEXT NOT NULL REFERENCES olympiad_participants(id) ON DELETE CASCADE,
    session_code TEXT UNIQUE,
    started_at TEXT,
    completed_at TEXT,
    last_activity_at TEXT,
    last_resumed_at TEXT,
    duration_minutes INTEGER NOT NULL,
    time_remaining_seconds INTEGER,
    is_paused INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL DEFAULT 'created'
        CHECK(status IN ('created', 'started', 'in_progress', 'completed', 'abandoned', 'expired')),
    total_score REAL NOT NULL DEFAULT 0,
    max_score REAL NOT NULL DEFAULT 0,
    percentage_score REAL NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS exam_answers (
    id TEXT PRIMARY KEY,
    session_id TEXT NOT NULL REFERENCES exam_sessions(id) ON DELETE CASCADE,
    question_id TEXT NOT NULL REFERENCES question_bank(id) ON DELETE CASCADE,
    question_order INTEGER NOT NULL DEFAULT 0,
    selected_answer TEXT,
    is_correct INTEGER,
    points_earned REAL NOT NULL DEFAULT 0,
    max_points REAL NOT NULL DEFAULT 1.0,
    time_taken_seconds INTEGER,
    answered_at TEXT,
    is_flagged_for_review INTEGER NOT NULL DEFAULT 0,
    UNIQUE(session_id, question_id)
);

CREATE TABLE IF NOT EXISTS marking_queue (
    id TEXT PRIMARY KEY,
    session_id TEXT NOT NULL REFERENCES exam_sessions(id) ON DELETE CASCADE,
    question_id TEXT NOT NULL REFERENCES question_bank(id) ON DELETE CASCADE,
    answer_id TEXT NOT NULL REFERENCES exam_answers(id) ON DELETE CASCADE,
    assigned_marker_id TEXT,
    marked_by_admin_id TEXT,
    status TEXT NOT NULL DEFAULT 'pending'
        CHECK(status IN ('pending', 'in_progress', 'completed', 'requires_review')),
    auto_score REAL,
    manual_score REAL,
    final_score REAL,
    marker_feedback TEXT,
    moderator_feedback TEXT,
    assigned_at TEXT,
    marking_started_at TEXT,
    marking_completed_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE(session_id, question_id)
);

CREATE TABLE IF NOT EXISTS stage_progression (
    id TEXT PRIMARY KEY,
    participant_id TEXT NOT NULL REFERENCES olympiad_participants(id) ON DELETE CASCADE,
    edition_id TEXT NOT NULL REFERENCES olympiad_editions(id) ON DELETE CASCADE,
    current_stage TEXT NOT NULL,
    stage_completed INTEGER NOT NULL DEFAULT 0,
    completion_date TEXT,
    stage_score REAL NOT NULL DEFAULT 0,
    stage_max_score REAL NOT NULL DEFAULT 0,
    stage_percentage REAL NOT NULL DEFAULT 0,
    stage_rank INTEGER,
    total_participants INTEGER,
    can_progress INTEGER NOT NULL DEFAULT 0,
    progression_reason TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE(participant_id, edition_id, current_stage)
);

CREATE TABLE IF NOT EXISTS final_venues (
    id TEXT PRIMARY KEY,
    edition_id TEXT NOT NULL REFERENCES olympiad_editions(id) ON DELETE CASCADE,
    education_level TEXT NOT NULL,
    subject TEXT NOT NULL,
    venue_name TEXT NOT NULL,
    venue_address TEXT,
    venue_map_link TEXT,
    district TEXT,
    event_date TEXT NOT NULL,
    capacity INTEGER,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE(edition_id, education_level, subject)
);

CREATE TABLE IF NOT EXISTS final_results (
    id TEXT PRIMARY KEY,
    participant_id TEXT NOT NULL REFERENCES olympiad_participants(id) ON DELETE CASCADE,
    final_venue_id TEXT NOT NULL REFERENCES final_venues(id) ON DELETE CASCADE,
    subject TEXT NOT NULL,
    attendance_status TEXT CHECK(attendance_status IN ('PRESENT', 'ABSENT')),
    final_score REAL,
    final_rank INTEGER,
    award_category TEXT
        CHECK(award_category IN ('GOLD', 'SILVER', 'BRONZE', 'MERIT', 'PARTICIPATION')),
    certificate_url TEXT,
    entered_by_admin_id TEXT,
    entered_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE(participant_id, final_venue_id, subject)
);

CREATE TABLE IF NOT EXISTS success_stories (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    summary TEXT NOT NULL,
    body TEXT NOT NULL,
    featured_image_url TEXT,
    video_url TEXT,
    quote TEXT,
    category TEXT,
    year INTEGER,
    is_featured INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL DEFAULT 'draft' CHECK(status IN ('draft', 'published')),
    published_at TEXT,
    created_at TEXT NOT NULL
);

-- Indexes
CREATE UNIQUE INDEX IF NOT EXISTS idx_participants_unique_enrollment
    ON olympiad_participants(edition_id, user_id, COALESCE(minor_profile_id, ''));
CREATE INDEX IF NOT EXISTS idx_editions_status ON olympiad_editions(status);
CREATE INDEX IF NOT EXISTS idx_minors_guardian ON minor_profiles(guardian_id);
CREATE INDEX IF NOT EXISTS idx_participants_edition ON olympiad_participants(edition_id);
CREATE INDEX IF NOT EXISTS idx_participants_user ON olympiad_participants(user_id);
CREATE INDEX IF NOT EXISTS idx_questions_subject_level ON question_bank(subject, education_level);
CREATE INDEX IF NOT EXISTS idx_questions_stage ON question_bank(stage);
CREATE INDEX IF NOT EXISTS idx_exam_configs_edition ON exam_configurations(edition_id);
CREATE INDEX IF NOT EXISTS idx_sessions_participant ON exam_sessions(participant_id);
CREATE INDEX IF NOT EXISTS idx_sessions_config ON exam_sessions(exam_config_id);
CREATE INDEX IF NOT EXISTS idx_answers_session ON exam_answers(session_id);
CREATE INDEX IF NOT EXISTS idx_marking_queue_status ON marking_queue(status);
CREATE INDEX IF NOT EXISTS idx_progression_participant ON stage_progression(participant_id);
CREATE INDEX IF NOT EXISTS idx_progression_edition_stage ON stage_progression(edition_id, current_stage);
CREATE INDEX IF NOT EXISTS idx_final_results_participant ON final_results(participant_id);
"""
