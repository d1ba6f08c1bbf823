"""Rule-based validation of schema mapping results."""

from report_intelligence.validation.engine import (
    CATEGORY_WEIGHTS,
    ValidationEngine,
    compute_scores,
    overall_score,
)
from report_intelligence.validation.evaluators import EVALUATORS, Evaluator, EvaluatorKey
from report_intelligence.validation.rules import (
    DEFAULT_RULE_SET_NAME,
    DEFAULT_RULES,
    RuleSet,
    load_rules_yaml,
)

__all__ = [
    "CATEGORY_WEIGHTS",
    "DEFAULT_RULES",
    "DEFAULT_RULE_SET_NAME",
    "EVALUATORS",
    "Evaluator",
    "EvaluatorKey",
    "RuleSet",
    "ValidationEngine",
    "compute_scores",
    "load_rules_yaml",
    "overall_score",
]
