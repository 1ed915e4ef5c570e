"""Results produced by the condition engine."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from closing_conditions.core.enums import STAGE_ORDER, LoanType, Stage
from closing_conditions.models.domain.condition import Condition


@dataclass(frozen=True)
class ApplicableCondition:
    """
    A condition determined to apply to one loan, with loan-specific text.

    Attributes:
        code: Condition code
        class_tag: Condition class
        description: Description with placeholders resolved
        document_provider: INT or BWR
        category: Loan or Borrower
        reason_applied: Human-readable justification (advisory only)
        borrower_description: Borrower-facing text with placeholders resolved
        dynamic_fields: Resolved placeholder values, for audit
    """

    code: str
    class_tag: str
    description: str
    document_provider: str
    category: str
    reason_applied: str
    borrower_description: Optional[str] = None
    dynamic_fields: Optional[Dict[str, str]] = None


@dataclass
class EvaluationResult:
    """
    Stage-grouped outcome of evaluating the catalog against one loan.

    Attributes:
        loan_id: Loan identifier from the facts, if any
        evaluation_date: ISO-8601 timestamp of the evaluation
        loan_type: Normalized loan type the catalog was filtered by
        conditions: Applicable conditions per stage, each sorted by code
        conditions_evaluated: Conditions that reached the rule evaluator
        conditions_filtered: Conditions dropped by the loan-type filter
    """

    loan_id: Optional[str]
    evaluation_date: str
    loan_type: LoanType
    conditions: Dict[Stage, List[ApplicableCondition]] = field(
        default_factory=lambda: {stage: [] for stage in STAGE_ORDER}
    )
    conditions_evaluated: int = 0
    conditions_filtered: int = 0

    @property
    def total_conditions(self) -> int:
        return sum(len(bucket) for bucket in self.conditions.values())

    def codes(self, stage: Stage) -> List[str]:
        return [condition.code for condition in self.conditions[stage]]


@dataclass
class LoanTypeFilterResult:
    """
    Catalog split by loan-type compatibility.

    Attributes:
        loan_type: Normalized loan type used for filtering
        applicable: Conditions that support the loan type, in catalog order
        filtered: Conditions that do not, in catalog order
        reasons: Condition code -> why it was filtered out
    """

    loan_type: LoanType
    applicable: List[Condition] = field(default_factory=list)
    filtered: List[Condition] = field(default_factory=list)
    reasons: Dict[str, str] = field(default_factory=dict)

    def summary(self) -> str:
        total = len(self.applicable) + len(self.filtered)
        return (
            f"Loan Type Filter Summary for {self.loan_type.value}: "
            f"{len(self.applicable)}/{total} conditions applicable, "
            f"{len(self.filtered)} filtered out"
        )
