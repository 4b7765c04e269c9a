"""Tests for database initialization and shared row helpers."""

import sqlite3

import pytest

from olympiad.db.database import (
    EXPECTED_TABLES,
    SCHEMA_VERSION,
    build_set_clause,
    build_where,
    check_database_status,
    get_db,
    init_db,
    initialize_schema,
    set_db_path,
    to_db_value,
)


class TestSchema:
    def test_all_tables_created(self, db):
        status = check_database_status()
        assert status["initialized"] is True
        assert status["tables"] == sorted(EXPECTED_TABLES)
        assert status["schema_version"] == SCHEMA_VERSION

    def test_init_is_idempotent(self, db):
        init_db(db)
        with get_db() as conn:
            assert initialize_schema(conn) == len(EXPECTED_TABLES)

    def test_empty_file_not_initialized(self, tmp_path):
        set_db_path(tmp_path / "empty.db")
        status = check_database_status()
        assert status["initialized"] is False
        assert status["tables"] == []
        assert status["schema_version"] == 0

    def test_transaction_rolls_back_on_error(self, db):
        with pytest.raises(RuntimeError):
            with get_db() as conn:
                conn.execute(
                    "INSERT INTO admins (id, email, password_hash, full_name, created_at) "
                    "VALUES ('a1', 'a@example.org', 'x', 'A', '2026-01-01')"
                )
                raise RuntimeError("boom")
        with get_db() as conn:
            assert conn.execute("SELECT COUNT(*) FROM admins").fetchone()[0] == 0

    def test_foreign_keys_enforced(self, db):
        with pytest.raises(sqlite3.IntegrityError):
            with get_db() as conn:
                conn.execute(
                    "INSERT INTO edition_stages (id, edition_id, stage_name, stage_number, created_at) "
                    "VALUES ('s1', 'missing', 'Beginner', 1, '2026-01-01')"
                )

    def test_email_unique_per_account_table(self, db):
        insert = (
            "INSERT INTO admins (id, email, password_hash, full_name, created_at) "
            "VALUES (?, 'same@example.org', 'x', 'A', '2026-01-01')"
        )
        with get_db() as conn:
            conn.execute(insert, ("a1",))
        with pytest.raises(sqlite3.IntegrityError):
            with get_db() as conn:
                conn.execute(insert, ("a2",))


class TestRowHelpers:
    def test_build_where_skips_none(self):
        clause, params = build_where(
            {"status": "OPEN", "year": None, "is_active": True},
            {"status": "e.status", "year": "e.year", "is_active": "p.is_active"},
        )
        assert clause == " WHERE e.status = ? AND p.is_active = ?"
        assert params == ["OPEN", 1]

    def test_build_where_empty(self):
        assert build_where({"status": None}, {"status": "e.status"}) == ("", [])

    def test_build_where_rejects_unlisted_filter(self):
        with pytest.raises(KeyError):
            build_where({"password_hash": "x"}, {"status": "e.status"})

    def test_build_set_clause_encodes_values(self):
        clause, params = build_set_clause({"subjects": ["Math"], "is_active": False})
        assert clause == "subjects = ?, is_active = ?"
        assert params == ['["Math"]', 0]

    def test_to_db_value(self):
        assert to_db_value({"easy": 1}) == '{"easy": 1}'
        assert to_db_value(True) == 1
        assert to_db_value("text") == "text"
        assert to_db_value(None) is None
