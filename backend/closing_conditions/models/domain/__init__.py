"""Domain models for the conditions engine."""

from closing_conditions.models.domain.condition import (
    Condition,
    LoanTypeConstraint,
    LoanTypeSupport,
)
from closing_conditions.models.domain.evaluation import (
    ApplicableCondition,
    EvaluationResult,
    LoanTypeFilterResult,
)
from closing_conditions.models.domain.loan import (
    BankAsset,
    IncomeItem,
    LoanFacts,
    RealEstateOwned,
)

__all__ = [
    "Condition",
    "LoanTypeConstraint",
    "LoanTypeSupport",
    "ApplicableCondition",
    "EvaluationResult",
    "LoanTypeFilterResult",
    "BankAsset",
    "IncomeItem",
    "LoanFacts",
    "RealEstateOwned",
]
