"""
report-intelligence — repositories

File: src/report_intelligence/persistence/repositories.py

Purpose
- Keyed read/write access to stored pipeline outputs and named rule sets.

Functional requirements
- ``save`` is an upsert: a later save of the same id replaces the stored payload.
- ``get`` returns ``None`` for unknown ids; ``delete`` reports whether a row existed.
- Lookups by source hash and by decompiled report id return rows oldest first.
- Every operation has an ``*_async`` twin that runs the synchronous call on a
  worker thread.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Final, Generic, TypeVar

from report_intelligence.domain._coerce import iso8601z, utc_now
from report_intelligence.domain.mapping import SchemaMappingResult
from report_intelligence.domain.report import DecompiledReport
from report_intelligence.domain.validation import ValidationResult
from report_intelligence.persistence.state_db import RowValue, SQLParams, StateDB
from report_intelligence.validation.rules import RuleSet

T = TypeVar("T")

_MAX_PAGE_SIZE: Final[int] = 1_000


class _BaseRepo(Generic[T]):
    """Shared keyed-store behavior over one table with a ``payload_json`` column."""

    _table: str = ""
    _key_column: str = "id"
    _order_column: str = "created_at"

    def __init__(self, db: StateDB) -> None:
        self._db = db
        self._db.migrate()

    def save(self, item: T) -> T:
        self._db.execute(self._upsert_sql(), self._row_params(item))
        return item

    def get(self, key: str) -> T | None:
        row = self._db.query_one(
            f"SELECT payload_json FROM {self._table} WHERE {self._key_column} = ?", (key,)
        )
        if row is None:
            return None
        return self._decode(_row_text(row, "payload_json", f"{self._table}.payload_json"))

    def get_all(self, *, limit: int = 100, offset: int = 0) -> list[T]:
        self._validate_page(limit, offset)
        return self._select(
            f"""
            SELECT payload_json FROM {self._table}
            ORDER BY {self._order_column} ASC, {self._key_column} ASC
            LIMIT ? OFFSET ?
            """,
            (limit, offset),
        )

    def delete(self, key: str) -> bool:
        deleted = self._db.execute(
            f"DELETE FROM {self._table} WHERE {self._key_column} = ?", (key,)
        )
        return deleted > 0

    async def save_async(self, item: T) -> T:
        return await asyncio.to_thread(self.save, item)

    async def get_async(self, key: str) -> T | None:
        return await asyncio.to_thread(self.get, key)

    async def get_all_async(self, *, limit: int = 100, offset: int = 0) -> list[T]:
        return await asyncio.to_thread(lambda: self.get_all(limit=limit, offset=offset))

    async def delete_async(self, key: str) -> bool:
        return await asyncio.to_thread(self.delete, key)

    def _select(self, sql: str, params: SQLParams) -> list[T]:
        return [
            self._decode(_row_text(row, "payload_json", f"{self._table}.payload_json"))
            for row in self._db.query_all(sql, params)
        ]

    def _upsert_sql(self) -> str:
        raise NotImplementedError

    def _row_params(self, item: T) -> SQLParams:
        raise NotImplementedError

    def _decode(self, payload: str) -> T:
        raise NotImplementedError

    @staticmethod
    def _validate_page(limit: int, offset: int) -> None:
        if limit <= 0 or limit > _MAX_PAGE_SIZE:
            raise ValueError(f"limit must be in [1, {_MAX_PAGE_SIZE}]")
        if offset < 0:
            raise ValueError("offset must be >= 0")


class DecompiledReportRepo(_BaseRepo[DecompiledReport]):
    """Repository for decompiled reports."""

    _table = "decompiled_reports"

    def find_by_source_hash(self, source_hash: str) -> list[DecompiledReport]:
        return self._select(
            """
            SELECT payload_json FROM decompiled_reports
            WHERE source_hash = ?
            ORDER BY created_at ASC, id ASC
            """,
            (source_hash,),
        )

    async def find_by_source_hash_async(self, source_hash: str) -> list[DecompiledReport]:
        return await asyncio.to_thread(self.find_by_source_hash, source_hash)

    def _upsert_sql(self) -> str:
        return """
        INSERT INTO decompiled_reports (
            id,
            source_hash,
            input_format,
            detected_report_type,
            confidence_score,
            created_at,
            payload_json
        ) VALUES (?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
            source_hash=excluded.source_hash,
            input_format=excluded.input_format,
            detected_report_type=excluded.detected_report_type,
            confidence_score=excluded.confidence_score,
            created_at=excluded.created_at,
            payload_json=excluded.payload_json
        """

    def _row_params(self, item: DecompiledReport) -> SQLParams:
        return (
            item.id,
            item.source_hash,
            item.input_format.value,
            item.detected_report_type,
            item.confidence_score,
            iso8601z(item.created_at),
            item.to_json(),
        )

    def _decode(self, payload: str) -> DecompiledReport:
        return DecompiledReport.from_json(payload)


class SchemaMappingRepo(_BaseRepo[SchemaMappingResult]):
    """Repository for schema mapping results."""

    _table = "schema_mappings"

    def list_for_report(self, decompiled_report_id: str) -> list[SchemaMappingResult]:
        return self._select(
            """
            SELECT payload_json FROM schema_mappings
            WHERE decompiled_report_id = ?
            ORDER BY created_at ASC, id ASC
            """,
            (decompiled_report_id,),
        )

    async def list_for_report_async(
        self, decompiled_report_id: str
    ) -> list[SchemaMappingResult]:
        return await asyncio.to_thread(self.list_for_report, decompiled_report_id)

    def _upsert_sql(self) -> str:
        return """
        INSERT INTO schema_mappings (
            id,
            decompiled_report_id,
            report_type_id,
            confidence_score,
            created_at,
            payload_json
        ) VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
            decompiled_report_id=excluded.decompiled_report_id,
            report_type_id=excluded.report_type_id,
            confidence_score=excluded.confidence_score,
            created_at=excluded.created_at,
            payload_json=excluded.payload_json
        """

    def _row_params(self, item: SchemaMappingResult) -> SQLParams:
        return (
            item.id,
            item.decompiled_report_id,
            item.report_type_id,
            item.confidence_score,
            iso8601z(item.created_at),
            item.to_json(),
        )

    def _decode(self, payload: str) -> SchemaMappingResult:
        return SchemaMappingResult.from_json(payload)


class ValidationResultRepo(_BaseRepo[ValidationResult]):
    """Repository for validation results."""

    _table = "validation_results"

    def list_for_report(self, decompiled_report_id: str) -> list[ValidationResult]:
        return self._select(
            """
            SELECT payload_json FROM validation_results
            WHERE decompiled_report_id = ?
            ORDER BY created_at ASC, id ASC
            """,
            (decompiled_report_id,),
        )

    async def list_for_report_async(self, decompiled_report_id: str) -> list[ValidationResult]:
        return await asyncio.to_thread(self.list_for_report, decompiled_report_id)

    def _upsert_sql(self) -> str:
        return """
        INSERT INTO validation_results (
            id,
            schema_mapping_id,
            decompiled_report_id,
            status,
            overall_score,
            created_at,
            payload_json
        ) VALUES (?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
            schema_mapping_id=excluded.schema_mapping_id,
            decompiled_report_id=excluded.decompiled_report_id,
            status=excluded.status,
            overall_score=excluded.overall_score,
            created_at=excluded.created_at,
            payload_json=excluded.payload_json
        """

    def _row_params(self, item: ValidationResult) -> SQLParams:
        return (
            item.id,
            item.schema_mapping_id,
            item.decompiled_report_id,
            item.status.value,
            item.scores.overall,
            iso8601z(item.created_at),
            item.to_json(),
        )

    def _decode(self, payload: str) -> ValidationResult:
        return ValidationResult.from_json(payload)


class RuleSetRepo(_BaseRepo[RuleSet]):
    """Repository for named rule sets; the rule-set name is the key."""

    _table = "rule_sets"
    _key_column = "name"
    _order_column = "updated_at"

    def _upsert_sql(self) -> str:
        return """
        INSERT INTO rule_sets (name, rule_count, updated_at, payload_json)
        VALUES (?, ?, ?, ?)
        ON CONFLICT(name) DO UPDATE SET
            rule_count=excluded.rule_count,
            updated_at=excluded.updated_at,
            payload_json=excluded.payload_json
        """

    def _row_params(self, item: RuleSet) -> SQLParams:
        return (item.name, len(item), iso8601z(utc_now()), item.to_json())

    def _decode(self, payload: str) -> RuleSet:
        return RuleSet.from_json(payload)


def _row_text(row: Mapping[str, RowValue], key: str, path: str) -> str:
    value = row.get(key)
    if not isinstance(value, str):
        raise ValueError(f"{path}: expected text value")
    return value


__all__ = [
    "DecompiledReportRepo",
    "RuleSetRepo",
    "SchemaMappingRepo",
    "ValidationResultRepo",
]
