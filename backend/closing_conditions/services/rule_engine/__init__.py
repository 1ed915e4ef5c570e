"""Rule engine for deciding which closing conditions apply to a loan."""

from .base import EvaluationContext, RuleEvaluator, RulePredicate
from .dynamic_fields import DynamicFieldProcessor
from .engine import RuleEngine
from .loan_types import LoanTypeConstraintParser, LoanTypeFilter, normalize_loan_type

__all__ = [
    "DynamicFieldProcessor",
    "EvaluationContext",
    "LoanTypeConstraintParser",
    "LoanTypeFilter",
    "RuleEngine",
    "RuleEvaluator",
    "RulePredicate",
    "normalize_loan_type",
]
