"""SQLite-backed persistence for reports, mapping results, validation results and rule sets."""

from report_intelligence.persistence.repositories import (
    DecompiledReportRepo,
    RuleSetRepo,
    SchemaMappingRepo,
    ValidationResultRepo,
)
from report_intelligence.persistence.state_db import (
    STATE_DB_SCHEMA_VERSION,
    StateDB,
    StateDBBusyError,
    StateDBError,
    StateDBMigrationError,
)

__all__ = [
    "STATE_DB_SCHEMA_VERSION",
    "DecompiledReportRepo",
    "RuleSetRepo",
    "SchemaMappingRepo",
    "StateDB",
    "StateDBBusyError",
    "StateDBError",
    "StateDBMigrationError",
    "ValidationResultRepo",
]
