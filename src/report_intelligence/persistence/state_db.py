"""
report-intelligence — state database

File: src/report_intelligence/persistence/state_db.py

Purpose
- SQLite schema management, migrations, and connection lifecycle for stored
  reports, mapping results, validation results and rule sets.

Functional requirements
- Migrations apply idempotently and are checksummed in ``schema_versions``;
  a changed migration or a newer on-disk schema is refused.
- Repositories only need keyed upserts and reads: ``execute``, ``query_one`` and
  ``query_all``. Every write runs in its own immediate transaction.
- Connections run in WAL mode with a busy timeout; busy errors are retried with
  bounded exponential backoff before surfacing as ``StateDBBusyError``.
- Async variants offload the synchronous calls with ``asyncio.to_thread``.

Non-functional requirements
- Connections are short-lived; no lock is held between calls.
"""

from __future__ import annotations

import asyncio
import hashlib
import sqlite3
import time
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from report_intelligence.domain._coerce import iso8601z, utc_now
from report_intelligence.errors import StateDBError

SQLValue = str | int | float | bytes | None
SQLParams = Sequence[SQLValue]
RowValue = str | int | float | bytes | None

STATE_DB_SCHEMA_VERSION: Final[int] = 1
DEFAULT_BUSY_TIMEOUT_MS: Final[int] = 5_000
DEFAULT_BUSY_RETRY_LIMIT: Final[int] = 4
DEFAULT_BUSY_RETRY_BACKOFF_MS: Final[int] = 25

_SCHEMA_VERSIONS_TABLE_SQL: Final[str] = """
CREATE TABLE IF NOT EXISTS schema_versions (
    version INTEGER PRIMARY KEY CHECK (version > 0),
    name TEXT NOT NULL,
    checksum TEXT NOT NULL CHECK (length(checksum) = 64),
    applied_at TEXT NOT NULL
)
"""

_MIGRATION_0001_STATEMENTS: Final[tuple[str, ...]] = (
    _SCHEMA_VERSIONS_TABLE_SQL,
    """
    CREATE TABLE IF NOT EXISTS decompiled_reports (
        id TEXT PRIMARY KEY,
        source_hash TEXT NOT NULL CHECK (length(source_hash) = 64),
        input_format TEXT NOT NULL,
        detected_report_type TEXT,
        confidence_score REAL NOT NULL CHECK (confidence_score BETWEEN 0 AND 1),
        created_at TEXT NOT NULL,
        payload_json TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS schema_mappings (
        id TEXT PRIMARY KEY,
        decompiled_report_id TEXT NOT NULL,
        report_type_id TEXT,
        confidence_score REAL NOT NULL CHECK (confidence_score BETWEEN 0 AND 1),
        created_at TEXT NOT NULL,
        payload_json TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS validation_results (
        id TEXT PRIMARY KEY,
        schema_mapping_id TEXT NOT NULL,
        decompiled_report_id TEXT NOT NULL,
        status TEXT NOT NULL,
        overall_score REAL NOT NULL CHECK (overall_score BETWEEN 0 AND 100),
        created_at TEXT NOT NULL,
        payload_json TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS rule_sets (
        name TEXT PRIMARY KEY,
        rule_count INTEGER NOT NULL CHECK (rule_count >= 0),
        updated_at TEXT NOT NULL,
        payload_json TEXT NOT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_decompiled_reports_source_hash
    ON decompiled_reports(source_hash, created_at)
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_schema_mappings_report
    ON schema_mappings(decompiled_report_id, created_at)
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_validation_results_report
    ON validation_results(decompiled_report_id, created_at)
    """,
)


@dataclass(frozen=True, slots=True)
class _Migration:
    version: int
    name: str
    statements: tuple[str, ...]

    @property
    def checksum(self) -> str:
        digest = hashlib.sha256(f"{self.version}:{self.name}\n".encode())
        for statement in self.statements:
            normalized = "\n".join(line.rstrip() for line in statement.strip().splitlines())
            digest.update(normalized.encode("utf-8"))
            digest.update(b"\n--\n")
        return digest.hexdigest()


_MIGRATIONS: Final[tuple[_Migration, ...]] = (
    _Migration(1, "initial_report_store", _MIGRATION_0001_STATEMENTS),
)

_SQLITE_BUSY_CODES: Final[frozenset[int]] = frozenset(
    code
    for code in (
        getattr(sqlite3, "SQLITE_BUSY", None),
        getattr(sqlite3, "SQLITE_BUSY_SNAPSHOT", None),
        getattr(sqlite3, "SQLITE_LOCKED", None),
    )
    if isinstance(code, int)
)

_BUSY_SUBSTRINGS: Final[tuple[str, ...]] = (
    "database is locked",
    "database table is locked",
)


class StateDBBusyError(StateDBError):
    """Raised when bounded busy retries are exhausted."""


class StateDBMigrationError(StateDBError):
    """Raised when migrations cannot be applied safely."""


class StateDB:
    """SQLite file holding one table per stored collection."""

    def __init__(
        self,
        path: str | Path,
        *,
        busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
        busy_retry_limit: int = DEFAULT_BUSY_RETRY_LIMIT,
        busy_retry_backoff_ms: int = DEFAULT_BUSY_RETRY_BACKOFF_MS,
    ) -> None:
        for name, value in (
            ("busy_timeout_ms", busy_timeout_ms),
            ("busy_retry_limit", busy_retry_limit),
            ("busy_retry_backoff_ms", busy_retry_backoff_ms),
        ):
            if value < 0:
                raise ValueError(f"{name} must be >= 0")

        self._path = Path(path).expanduser()
        self._busy_timeout_ms = busy_timeout_ms
        self._busy_retry_limit = busy_retry_limit
        self._busy_retry_backoff_ms = busy_retry_backoff_ms

    @property
    def path(self) -> Path:
        return self._path

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Short-lived connection in WAL mode, closed on exit."""

        self._path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(
            self._path,
            timeout=self._busy_timeout_ms / 1000.0,
            isolation_level=None,
            check_same_thread=False,
        )
        try:
            conn.row_factory = sqlite3.Row
            conn.execute(f"PRAGMA busy_timeout={self._busy_timeout_ms}")
            journal_row = conn.execute("PRAGMA journal_mode=WAL").fetchone()
            journal_mode = "" if journal_row is None else str(journal_row[0]).lower()
            if journal_mode != "wal":
                raise StateDBError(f"journal_mode must be WAL, got {journal_mode!r}")
            yield conn
        finally:
            conn.close()

    def migrate(self) -> int:
        """Apply pending migrations and return the resulting schema version."""

        with self.connection() as conn:
            self._run(conn, _SCHEMA_VERSIONS_TABLE_SQL, (), operation="create schema_versions")
            applied = self._applied_checksums(conn)
            current = max(applied, default=0)
            if current > STATE_DB_SCHEMA_VERSION:
                raise StateDBMigrationError(
                    "database schema is newer than supported by this package "
                    f"(db={current}, code={STATE_DB_SCHEMA_VERSION})"
                )

            for migration in _MIGRATIONS:
                checksum = migration.checksum
                recorded = applied.get(migration.version)
                if recorded is not None:
                    if recorded != checksum:
                        raise StateDBMigrationError(
                            f"migration checksum mismatch for version {migration.version}: "
                            f"db={recorded} code={checksum}"
                        )
                    continue

                operation = f"apply migration {migration.version}"
                with self._transaction(conn):
                    for statement in migration.statements:
                        self._run(conn, statement, (), operation=operation)
                    self._run(
                        conn,
                        "INSERT INTO schema_versions (version, name, checksum, applied_at) "
                        "VALUES (?, ?, ?, ?)",
                        (migration.version, migration.name, checksum, iso8601z(utc_now())),
                        operation=operation,
                    )
                applied[migration.version] = checksum

            return max(applied, default=0)

    def execute(self, sql: str, params: SQLParams = ()) -> int:
        """Run one write statement in its own transaction; returns the affected row count."""

        with self.connection() as conn, self._transaction(conn):
            return self._run(conn, sql, params, operation="execute statement").rowcount

    def query_all(self, sql: str, params: SQLParams = ()) -> list[dict[str, RowValue]]:
        with self.connection() as conn:
            cursor = self._run(conn, sql, params, operation="query all")
            return [_row_to_dict(row) for row in cursor.fetchall()]

    def query_one(self, sql: str, params: SQLParams = ()) -> dict[str, RowValue] | None:
        with self.connection() as conn:
            row = self._run(conn, sql, params, operation="query one").fetchone()
            return None if row is None else _row_to_dict(row)

    async def migrate_async(self) -> int:
        return await asyncio.to_thread(self.migrate)

    async def execute_async(self, sql: str, params: SQLParams = ()) -> int:
        return await asyncio.to_thread(self.execute, sql, tuple(params))

    async def query_all_async(
        self, sql: str, params: SQLParams = ()
    ) -> list[dict[str, RowValue]]:
        return await asyncio.to_thread(self.query_all, sql, tuple(params))

    async def query_one_async(
        self, sql: str, params: SQLParams = ()
    ) -> dict[str, RowValue] | None:
        return await asyncio.to_thread(self.query_one, sql, tuple(params))

    @contextmanager
    def _transaction(self, conn: sqlite3.Connection) -> Iterator[None]:
        self._run(conn, "BEGIN IMMEDIATE", (), operation="begin transaction")
        try:
            yield
        except Exception:
            self._run(conn, "ROLLBACK", (), operation="rollback transaction")
            raise
        self._run(conn, "COMMIT", (), operation="commit transaction")

    def _applied_checksums(self, conn: sqlite3.Connection) -> dict[int, str]:
        cursor = self._run(
            conn,
            "SELECT version, checksum FROM schema_versions ORDER BY version",
            (),
            operation="load schema_versions",
        )
        applied: dict[int, str] = {}
        for row in cursor.fetchall():
            version, checksum = row["version"], row["checksum"]
            if not isinstance(version, int) or not isinstance(checksum, str):
                raise StateDBMigrationError("schema_versions rows must be (integer, text)")
            applied[version] = checksum
        return applied

    def _run(
        self,
        conn: sqlite3.Connection,
        sql: str,
        params: SQLParams,
        *,
        operation: str,
    ) -> sqlite3.Cursor:
        attempts = self._busy_retry_limit + 1
        for attempt in range(attempts):
            try:
                return conn.execute(sql, tuple(params))
            except sqlite3.IntegrityError:
                raise
            except sqlite3.Error as exc:
                if not _is_busy(exc):
                    raise StateDBError(f"{operation} failed for {self._path}: {exc}") from exc
                if attempt + 1 == attempts:
                    raise StateDBBusyError(
                        f"{operation} hit SQLITE_BUSY for {self._path} after "
                        f"{attempts} attempt(s): {exc}"
                    ) from exc
                time.sleep((self._busy_retry_backoff_ms / 1000.0) * float(2**attempt))
        raise StateDBBusyError(f"{operation} exhausted retries unexpectedly")


def _is_busy(exc: sqlite3.Error) -> bool:
    code = getattr(exc, "sqlite_errorcode", None)
    if isinstance(code, int) and code in _SQLITE_BUSY_CODES:
        return True
    message = str(exc).lower()
    return any(fragment in message for fragment in _BUSY_SUBSTRINGS)


def _row_to_dict(row: sqlite3.Row) -> dict[str, RowValue]:
    return {str(key): row[key] for key in row.keys()}


__all__ = [
    "DEFAULT_BUSY_RETRY_BACKOFF_MS",
    "DEFAULT_BUSY_RETRY_LIMIT",
    "DEFAULT_BUSY_TIMEOUT_MS",
    "RowValue",
    "SQLParams",
    "SQLValue",
    "STATE_DB_SCHEMA_VERSION",
    "StateDB",
    "StateDBBusyError",
    "StateDBError",
    "StateDBMigrationError",
]
