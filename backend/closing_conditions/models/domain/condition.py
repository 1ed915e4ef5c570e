"""Condition catalog domain models."""

from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Tuple

from closing_conditions.core.enums import (
    ALL_LOAN_TYPES,
    ConstraintSource,
    LoanType,
    Stage,
)


@dataclass(frozen=True)
class LoanTypeConstraint:
    """
    Loan types one catalog column claims support for.

    Attributes:
        condition_code: Code of the condition the text belongs to
        supported_types: Loan types parsed from the text
        constraint: The literal text the types were parsed from
        source: Which column the text came from
    """

    condition_code: str
    supported_types: FrozenSet[LoanType]
    constraint: str
    source: ConstraintSource


@dataclass(frozen=True)
class LoanTypeSupport:
    """
    Loan types a condition applies to, computed once at catalog load.

    Unconstrained support (no parseable constraint) covers all loan types.
    Constrained support keeps the constraints it was derived from.
    """

    types: FrozenSet[LoanType]
    constraints: Tuple[LoanTypeConstraint, ...] = ()

    @classmethod
    def unconstrained(cls) -> "LoanTypeSupport":
        return cls(types=frozenset(ALL_LOAN_TYPES))

    @classmethod
    def constrained(cls, constraints: Tuple[LoanTypeConstraint, ...]) -> "LoanTypeSupport":
        types: FrozenSet[LoanType] = frozenset()
        for constraint in constraints:
            types = types | constraint.supported_types
        if not types:
            return cls.unconstrained()
        return cls(types=types, constraints=tuple(constraints))

    @property
    def is_constrained(self) -> bool:
        return bool(self.constraints)

    @property
    def ordered(self) -> Tuple[LoanType, ...]:
        """Supported types in canonical order."""
        return tuple(loan_type for loan_type in ALL_LOAN_TYPES if loan_type in self.types)

    def supports(self, loan_type: LoanType) -> bool:
        return loan_type in self.types


@dataclass(frozen=True)
class Condition:
    """
    One closing condition from the catalog spreadsheet.

    Immutable once loaded; a reload replaces the whole catalog. Column letters
    refer to the spreadsheet export the catalog is loaded from.

    Attributes:
        code: Unique condition code (column A)
        stage: Lifecycle stage (column B)
        rule_text: Free-text eligibility description (column C)
        class_tag: Condition class (column D)
        description_template: Description text with placeholders (column H)
        document_provider: INT or BWR (column L)
        category: Loan or Borrower (column N)
        condition_type: Condition family, e.g. APP, ASSET (column E)
        number: Number within the family (column F)
        name: Short name (column G)
        editable: Whether the description may be edited (column I)
        dynamic_description_template: Overrides the description (column J)
        borrower_description_template: Borrower-facing text (column K)
        responsibility: Responsible party (column M)
        borrower_scope: Which borrowers the condition covers (column O)
        dynamic_data_tokens: Declared placeholder tokens, raw text (column P)
        data_for_logic: Data fields the logic refers to (column Q1)
        logic_text: Technical eligibility expression (column Q2)
        byte_filter: LOS filter expression (column R)
        loan_type_support: Loan types parsed from rule and logic text
    """

    code: str
    stage: Stage
    rule_text: str = ""
    class_tag: str = ""
    description_template: str = ""
    document_provider: str = ""
    category: str = ""
    condition_type: str = ""
    number: str = ""
    name: str = ""
    editable: str = ""
    dynamic_description_template: Optional[str] = None
    borrower_description_template: Optional[str] = None
    responsibility: str = ""
    borrower_scope: str = ""
    dynamic_data_tokens: Optional[str] = None
    data_for_logic: Optional[str] = None
    logic_text: Optional[str] = None
    byte_filter: Optional[str] = None
    loan_type_support: LoanTypeSupport = field(default_factory=LoanTypeSupport.unconstrained)

    @property
    def supported_loan_types(self) -> Tuple[LoanType, ...]:
        return self.loan_type_support.ordered

    def __repr__(self) -> str:
        return f"<Condition(code={self.code!r}, stage={self.stage.value})>"
