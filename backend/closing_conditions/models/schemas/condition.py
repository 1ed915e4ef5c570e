"""Pydantic schemas for catalog conditions and catalog reports."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from closing_conditions.core.enums import ConstraintSource, LoanType, Stage
from closing_conditions.models.domain.condition import Condition


class LoanTypeConstraintResponse(BaseModel):
    """Schema for one parsed loan-type constraint."""

    source: ConstraintSource
    supported_types: list[LoanType]
    constraint: str


class ConditionSummary(BaseModel):
    """Schema for a condition in search results."""

    code: str
    stage: Stage
    name: str
    condition_type: str
    class_tag: str
    supported_loan_types: list[LoanType]

    model_config = ConfigDict(from_attributes=True)


class ConditionResponse(ConditionSummary):
    """Schema for a full catalog condition."""

    number: str
    rule_text: str
    logic_text: Optional[str] = None
    data_for_logic: Optional[str] = None
    description_template: str
    dynamic_description_template: Optional[str] = None
    borrower_description_template: Optional[str] = None
    document_provider: str
    responsibility: str
    category: str
    borrower_scope: str
    editable: str
    dynamic_data_tokens: Optional[str] = None
    byte_filter: Optional[str] = None
    constraints: list[LoanTypeConstraintResponse] = []

    @classmethod
    def from_condition(cls, condition: Condition) -> "ConditionResponse":
        response = cls.model_validate(condition)
        response.constraints = [
            LoanTypeConstraintResponse(
                source=constraint.source,
                supported_types=sorted(constraint.supported_types, key=_loan_type_order),
                constraint=constraint.constraint,
            )
            for constraint in condition.loan_type_support.constraints
        ]
        return response


def _loan_type_order(loan_type: LoanType) -> int:
    return list(LoanType).index(loan_type)


class ConditionSearchResponse(BaseModel):
    """Schema for condition search results."""

    query: str
    total: int
    conditions: list[ConditionSummary]


class CatalogStatsResponse(BaseModel):
    """Schema for catalog statistics."""

    version: int
    source: str
    loaded_at: datetime
    total: int
    by_stage: dict[str, int]
    by_type: dict[str, int]
    by_class: dict[str, int]
    by_loan_type: dict[str, int]


class CatalogQualityResponse(BaseModel):
    """Schema for the classification gap report."""

    total_conditions: int
    unclassified_count: int
    unclassified_codes: list[str]
