"""
report-intelligence — pipeline facade

File: src/report_intelligence/pipeline.py

Purpose
- Wire decompiler, schema mapper and validation engine into one call that turns
  raw report text into a decompiled report, a mapping result and a validation result.

Functional requirements
- ``from_config`` builds every collaborator from an effective config mapping:
  registry (builtin and/or extra directories), optional SQLite persistence,
  optional YAML rule set and strict evaluator mode.
- All three stages share one event bus so subscribers see a single ordered stream.
- When persistence is enabled the active rule set is stored under its name.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from report_intelligence.config.schema import assert_valid_config
from report_intelligence.decompiler import ReportDecompiler
from report_intelligence.domain._coerce import JSONValue, expect_object
from report_intelligence.domain.mapping import SchemaMappingResult
from report_intelligence.domain.report import DecompiledReport, InputFormat
from report_intelligence.domain.validation import ValidationResult
from report_intelligence.observability.events import EventBus
from report_intelligence.observability.logging import (
    LoggingConfig,
    LoggingHandle,
    configure_logging,
    correlation_scope,
)
from report_intelligence.persistence import (
    DecompiledReportRepo,
    RuleSetRepo,
    SchemaMappingRepo,
    StateDB,
    ValidationResultRepo,
)
from report_intelligence.registry import ReportTypeRegistry
from report_intelligence.schema_mapper import ReportSchemaMapper
from report_intelligence.validation import RuleSet, ValidationEngine, load_rules_yaml


@dataclass(frozen=True, slots=True)
class AnalysisOutcome:
    """Everything one ``analyze`` call produced."""

    report: DecompiledReport
    mapping: SchemaMappingResult
    validation: ValidationResult

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "report": self.report.to_dict(),
            "mapping": self.mapping.to_dict(),
            "validation": self.validation.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: object, path: str = "AnalysisOutcome") -> AnalysisOutcome:
        parsed = expect_object(data, path, required={"report", "mapping", "validation"})
        return cls(
            report=DecompiledReport.from_dict(parsed["report"]),
            mapping=SchemaMappingResult.from_dict(parsed["mapping"]),
            validation=ValidationResult.from_dict(parsed["validation"]),
        )


class ReportIntelligencePipeline:
    """Decompile, map and validate reports with a shared registry and event bus."""

    def __init__(
        self,
        *,
        decompiler: ReportDecompiler,
        mapper: ReportSchemaMapper,
        engine: ValidationEngine,
        event_bus: EventBus | None = None,
        state_db: StateDB | None = None,
        logging_handle: LoggingHandle | None = None,
        logger: Any | None = None,
    ) -> None:
        self._decompiler = decompiler
        self._mapper = mapper
        self._engine = engine
        self._event_bus = event_bus
        self._state_db = state_db
        self._logging_handle = logging_handle
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, object],
        *,
        event_bus: EventBus | None = None,
        setup_logging: bool = False,
        logger: Any | None = None,
    ) -> ReportIntelligencePipeline:
        """Build a pipeline from an effective config (see ``config.load_config``).

        ``setup_logging`` installs the process-wide log handlers described by the
        ``[observability]`` section; leave it off when the host application owns logging.
        """

        effective = assert_valid_config(config)
        storage = effective["storage"]
        registry_section = effective["registry"]
        validation_section = effective["validation"]
        observability = effective["observability"]

        logging_handle: LoggingHandle | None = None
        if setup_logging:
            logging_handle = configure_logging(
                LoggingConfig(
                    level=observability["log_level"],
                    log_format=observability["log_format"],
                    log_dir=observability["log_dir"] or None,
                    log_to_stdout=observability["log_to_stdout"],
                )
            )

        registry = _build_registry(
            load_builtin=registry_section["load_builtin"],
            extra_dirs=registry_section["extra_dirs"],
        )
        rules_file = validation_section["rules_file"]
        rule_set = load_rules_yaml(rules_file) if rules_file else RuleSet.default()
        bus = event_bus if event_bus is not None else EventBus()

        state_db: StateDB | None = None
        report_repo: DecompiledReportRepo | None = None
        mapping_repo: SchemaMappingRepo | None = None
        validation_repo: ValidationResultRepo | None = None
        if storage["persist_results"]:
            state_db = StateDB(Path(storage["state_db"]))
            report_repo = DecompiledReportRepo(state_db)
            mapping_repo = SchemaMappingRepo(state_db)
            validation_repo = ValidationResultRepo(state_db)
            RuleSetRepo(state_db).save(rule_set)

        pipeline = cls(
            decompiler=ReportDecompiler(
                registry=registry, event_bus=bus, repository=report_repo
            ),
            mapper=ReportSchemaMapper(registry=registry, event_bus=bus, repository=mapping_repo),
            engine=ValidationEngine(
                rule_set,
                strict_evaluators=validation_section["strict_evaluators"],
                registry=registry,
                event_bus=bus,
                repository=validation_repo,
            ),
            event_bus=bus,
            state_db=state_db,
            logging_handle=logging_handle,
            logger=logger,
        )
        pipeline._logger.info(
            "pipeline_configured",
            report_type_count=len(registry),
            rule_set_name=rule_set.name,
            rule_count=len(rule_set),
            persist_results=state_db is not None,
        )
        return pipeline

    @property
    def decompiler(self) -> ReportDecompiler:
        return self._decompiler

    @property
    def mapper(self) -> ReportSchemaMapper:
        return self._mapper

    @property
    def engine(self) -> ValidationEngine:
        return self._engine

    @property
    def event_bus(self) -> EventBus | None:
        return self._event_bus

    @property
    def state_db(self) -> StateDB | None:
        return self._state_db

    def analyze(
        self, raw_text: str, input_format: InputFormat | str = InputFormat.TEXT
    ) -> AnalysisOutcome:
        report = self._decompiler.decompile(raw_text, input_format)
        mapping = self._mapper.map(report)
        validation = self._engine.validate(mapping)
        with correlation_scope(
            report_id=report.id, mapping_id=mapping.id, validation_id=validation.id
        ):
            self._logger.info(
                "report_analyzed",
                report_type_id=mapping.report_type_id,
                status=validation.status.value,
                overall_score=validation.scores.overall,
            )
        return AnalysisOutcome(report=report, mapping=mapping, validation=validation)

    def close(self) -> None:
        """Flush and detach log handlers installed by ``from_config``."""

        if self._logging_handle is not None:
            self._logging_handle.shutdown()
            self._logging_handle = None

    def __enter__(self) -> ReportIntelligencePipeline:
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        del exc_type, exc, tb
        self.close()


def _build_registry(*, load_builtin: bool, extra_dirs: list[str]) -> ReportTypeRegistry:
    if load_builtin:
        return ReportTypeRegistry.builtin(*extra_dirs)
    if extra_dirs:
        return ReportTypeRegistry.load(*extra_dirs)
    return ReportTypeRegistry()


__all__ = ["AnalysisOutcome", "ReportIntelligencePipeline"]
