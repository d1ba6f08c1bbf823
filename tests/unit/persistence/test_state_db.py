"""StateDB migration and query helper tests."""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING

import pytest

from report_intelligence.persistence import (
    STATE_DB_SCHEMA_VERSION,
    StateDB,
    StateDBBusyError,
    StateDBError,
    StateDBMigrationError,
)

if TYPE_CHECKING:
    from pathlib import Path

pytestmark = pytest.mark.unit


def test_migration_is_idempotent_and_creates_tables(tmp_path: Path) -> None:
    db = StateDB(tmp_path / "state" / "reports.sqlite3")

    assert db.migrate() == STATE_DB_SCHEMA_VERSION
    assert db.migrate() == STATE_DB_SCHEMA_VERSION

    rows = db.query_all("SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name")
    assert {row["name"] for row in rows} >= {
        "schema_versions",
        "decompiled_reports",
        "schema_mappings",
        "validation_results",
        "rule_sets",
    }
    record = db.query_one("SELECT version, name, checksum, applied_at FROM schema_versions")
    assert record is not None
    assert (record["version"], record["name"]) == (1, "initial_report_store")
    assert len(str(record["checksum"])) == 64
    assert str(record["applied_at"]).endswith("Z")


def test_connections_use_wal_journal(tmp_path: Path) -> None:
    db = StateDB(tmp_path / "reports.sqlite3", busy_timeout_ms=1_234)

    with db.connection() as conn:
        assert str(conn.execute("PRAGMA journal_mode").fetchone()[0]).lower() == "wal"
        assert conn.execute("PRAGMA busy_timeout").fetchone()[0] == 1_234


def test_checksum_drift_blocks_migration(tmp_path: Path) -> None:
    db = StateDB(tmp_path / "reports.sqlite3")
    db.migrate()
    db.execute("UPDATE schema_versions SET checksum = ? WHERE version = 1", ("f" * 64,))

    with pytest.raises(StateDBMigrationError, match="checksum mismatch"):
        db.migrate()


def test_newer_database_is_refused(tmp_path: Path) -> None:
    db = StateDB(tmp_path / "reports.sqlite3")
    db.migrate()
    db.execute(
        "INSERT INTO schema_versions (version, name, checksum, applied_at) VALUES (?, ?, ?, ?)",
        (STATE_DB_SCHEMA_VERSION + 1, "future", "0" * 64, "2030-01-01T00:00:00.000000Z"),
    )

    with pytest.raises(StateDBMigrationError, match="newer than supported"):
        db.migrate()


def test_failed_write_leaves_no_row(tmp_path: Path) -> None:
    db = StateDB(tmp_path / "reports.sqlite3")
    db.migrate()

    with pytest.raises(sqlite3.IntegrityError):
        db.execute(
            "INSERT INTO rule_sets (name, rule_count, updated_at, payload_json) "
            "VALUES (?, ?, ?, ?)",
            ("draft", -1, "2026-01-01T00:00:00.000000Z", "{}"),
        )

    assert db.query_one("SELECT name FROM rule_sets WHERE name = ?", ("draft",)) is None
    assert db.execute("DELETE FROM rule_sets WHERE name = ?", ("draft",)) == 0


def test_locked_database_surfaces_busy_error_after_retries(tmp_path: Path) -> None:
    db = StateDB(
        tmp_path / "reports.sqlite3",
        busy_timeout_ms=0,
        busy_retry_limit=1,
        busy_retry_backoff_ms=0,
    )
    db.migrate()

    with db.connection() as holder:
        holder.execute("BEGIN IMMEDIATE")
        with pytest.raises(StateDBBusyError, match=r"after 2 attempt\(s\)"):
            db.execute("DELETE FROM rule_sets")
        holder.execute("ROLLBACK")


def test_sql_errors_are_wrapped(tmp_path: Path) -> None:
    db = StateDB(tmp_path / "reports.sqlite3")

    with pytest.raises(StateDBError, match="query all failed"):
        db.query_all("SELECT * FROM missing_table")


def test_negative_settings_are_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="busy_timeout_ms"):
        StateDB(tmp_path / "x.sqlite3", busy_timeout_ms=-1)
    with pytest.raises(ValueError, match="busy_retry_limit"):
        StateDB(tmp_path / "x.sqlite3", busy_retry_limit=-1)
    with pytest.raises(ValueError, match="busy_retry_backoff_ms"):
        StateDB(tmp_path / "x.sqlite3", busy_retry_backoff_ms=-1)


@pytest.mark.asyncio
async def test_async_helpers_run_on_worker_threads(tmp_path: Path) -> None:
    db = StateDB(tmp_path / "reports.sqlite3")

    assert await db.migrate_async() == STATE_DB_SCHEMA_VERSION
    inserted = await db.execute_async(
        "INSERT INTO rule_sets (name, rule_count, updated_at, payload_json) VALUES (?, ?, ?, ?)",
        ("async", 3, "2026-01-01T00:00:00.000000Z", "{}"),
    )
    row = await db.query_one_async("SELECT rule_count FROM rule_sets WHERE name = ?", ("async",))
    rows = await db.query_all_async("SELECT name FROM rule_sets")

    assert inserted == 1
    assert row == {"rule_count": 3}
    assert rows == [{"name": "async"}]
