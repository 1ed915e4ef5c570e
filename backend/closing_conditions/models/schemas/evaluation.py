"""Pydantic schemas for loan evaluation requests and results."""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from closing_conditions.core.enums import LoanType, Stage


class ApplicableConditionResponse(BaseModel):
    """Schema for a condition that applies to the evaluated loan."""

    code: str
    class_tag: str
    description: str
    borrower_description: Optional[str] = None
    document_provider: str
    category: str
    reason_applied: str
    dynamic_fields: Optional[dict[str, str]] = None

    model_config = ConfigDict(from_attributes=True)


class EvaluationResponse(BaseModel):
    """Schema for stage-grouped evaluation results."""

    loan_id: Optional[str] = None
    evaluation_date: str
    loan_type: LoanType
    conditions: dict[Stage, list[ApplicableConditionResponse]]
    total_conditions: int
    conditions_evaluated: int
    conditions_filtered: int

    model_config = ConfigDict(from_attributes=True)


class FilteredConditionResponse(BaseModel):
    """Schema for a condition dropped by the loan-type filter."""

    code: str
    supported_loan_types: list[LoanType]
    reason: str


class LoanTypeFilterResponse(BaseModel):
    """Schema for loan-type filter diagnostics."""

    loan_type: LoanType
    summary: str
    applicable_count: int
    filtered_count: int
    applicable: list[str]
    filtered: list[FilteredConditionResponse]


class LoanValidationResponse(BaseModel):
    """Schema for loan fact validation results."""

    valid: bool
    errors: list[str] = []
