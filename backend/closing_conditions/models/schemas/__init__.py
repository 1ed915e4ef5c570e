"""Pydantic schemas for API validation and serialization."""

from closing_conditions.models.schemas.condition import (
    CatalogQualityResponse,
    CatalogStatsResponse,
    ConditionResponse,
    ConditionSearchResponse,
    ConditionSummary,
    LoanTypeConstraintResponse,
)
from closing_conditions.models.schemas.evaluation import (
    ApplicableConditionResponse,
    EvaluationResponse,
    FilteredConditionResponse,
    LoanTypeFilterResponse,
    LoanValidationResponse,
)

__all__ = [
    # Condition schemas
    "CatalogQualityResponse",
    "CatalogStatsResponse",
    "ConditionResponse",
    "ConditionSearchResponse",
    "ConditionSummary",
    "LoanTypeConstraintResponse",
    # Evaluation schemas
    "ApplicableConditionResponse",
    "EvaluationResponse",
    "FilteredConditionResponse",
    "LoanTypeFilterResponse",
    "LoanValidationResponse",
]
