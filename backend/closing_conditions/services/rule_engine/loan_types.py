"""Loan-type constraint parsing, normalization, and catalog filtering."""

import logging
import re
from typing import FrozenSet, Iterable, List, Optional, Pattern, Tuple, Union

from closing_conditions.core.enums import ConstraintSource, LoanType
from closing_conditions.models.domain.condition import (
    Condition,
    LoanTypeConstraint,
    LoanTypeSupport,
)
from closing_conditions.models.domain.evaluation import LoanTypeFilterResult
from closing_conditions.models.domain.loan import LoanFacts

logger = logging.getLogger(__name__)

CONV, FHA, VA, USDA, NON_QM = (
    LoanType.CONV,
    LoanType.FHA,
    LoanType.VA,
    LoanType.USDA,
    LoanType.NON_QM,
)

_LOAN_TYPE_ALIASES = {
    "CONV": CONV,
    "CONVENTIONAL": CONV,
    "FHA": FHA,
    "VA": VA,
    "USDA": USDA,
    "RHS": USDA,
    "NON-QM": NON_QM,
    "NONQM": NON_QM,
    "NON_QM": NON_QM,
}

PatternTable = Tuple[Tuple[Pattern[str], FrozenSet[LoanType]], ...]


def _table(*entries: Tuple[str, Iterable[LoanType]]) -> PatternTable:
    return tuple(
        (re.compile(pattern, re.IGNORECASE | re.DOTALL), frozenset(types))
        for pattern, types in entries
    )


# Column C patterns, most specific first; first match wins
RULES_PATTERNS = _table(
    (r"VA\s+Only", [VA]),
    (r"FHA\s+Only", [FHA]),
    (r"USDA\s+Only", [USDA]),
    (r"Conv(?:entional)?\s+Only", [CONV]),
    (r"All\s+Files\s+Conventional\s+&\s+Govy", [CONV, FHA, VA, USDA]),
    (r"Conventional,?\s+FHA,?\s+VA\s+and\s+USDA", [CONV, FHA, VA, USDA]),
    (r"On\s+all\s+Convention,?\s+FHA,?\s+VA,?\s+USDA", [CONV, FHA, VA, USDA]),
    (r"Conv(?:entional)?\s+-or-\s+FHA\s+-or-\s+VA\s+-or-\s+(?:RHS|USDA)", [CONV, FHA, VA, USDA]),
    (r"Conv(?:entional)?\s+-or-\s+VA\s+-or-\s+FHA", [CONV, VA, FHA]),
    (r"FHA\s+-or-\s+VA", [FHA, VA]),
    (r"Conv(?:entional)?\s+or\s+FHA\s+or\s+VA\s+or\s+(?:RHS|USDA)", [CONV, FHA, VA, USDA]),
    (r"New\s+Const\s+in\s+specific\s+states\s+USDA/VA/FHA", [USDA, VA, FHA]),
    (r"^(?!.*\bConv).*\bVA\b.*\bFHA\b.*\bUSDA\b", [VA, FHA, USDA]),
)

# Column Q patterns, tried after the mortgage-type equality list; first match wins
LOGIC_PATTERNS = _table(
    (r"Mortgage\s+Type\s*(?:is\s+NOT|≠|!=|<>)\s*Non-?QM", [CONV, FHA, VA, USDA]),
    (r"Mortgage\s+Type.*Conv.*FHA.*VA.*(?:USDA|RHS)", [CONV, FHA, VA, USDA]),
    (r"Loan:\s*VA\b", [VA]),
    (r"Loan:\s*FHA\b", [FHA]),
)

# "Mortgage Type = Conv", "Mortgage Type = Conv -or- FHA -or- VA -or- RHS"
_TYPE_EQUALS = re.compile(
    r"Mortgage\s+Type\s*==?\s*(?P<types>[A-Za-z][\w-]*(?:\s+(?:-or-|or)\s+[A-Za-z][\w-]*)*)",
    re.IGNORECASE,
)
_OR_SEPARATOR = re.compile(r"\s+(?:-or-|or)\s+", re.IGNORECASE)

# Independent mentions used when no rules pattern matches
_BARE_MENTIONS = (
    (re.compile(r"\bVA\b", re.IGNORECASE), VA),
    (re.compile(r"\bFHA\b", re.IGNORECASE), FHA),
    (re.compile(r"\b(?:USDA|RHS)\b", re.IGNORECASE), USDA),
    (re.compile(r"\bConv(?:entional)?\b", re.IGNORECASE), CONV),
)

_IN_LIST = re.compile(r"Loan_MortgageType\s+In\s+List:\s*(?P<types>[^;\n]+)", re.IGNORECASE)


def try_normalize_loan_type(value: Union[str, LoanType, None]) -> Optional[LoanType]:
    """Map a raw mortgage type to a LoanType, or None if absent or unknown."""
    if value is None:
        return None
    if isinstance(value, LoanType):
        return value
    return _LOAN_TYPE_ALIASES.get(value.strip().upper())


def normalize_loan_type(value: Union[str, LoanType, None], warn: bool = True) -> LoanType:
    """
    Normalize a raw mortgage type, defaulting to conventional.

    Case-insensitive; RHS maps to USDA and NONQM to Non-QM. Unknown or
    missing values fall back to Conv, never an error; the fallback is logged
    as a warning unless warn is False.
    Idempotent: normalize_loan_type(normalize_loan_type(x)) == normalize_loan_type(x).
    """
    loan_type = try_normalize_loan_type(value)
    if loan_type is None:
        if warn:
            logger.warning(f"Unknown mortgage type: {value!r}, defaulting to Conv")
        return CONV
    return loan_type


class LoanTypeConstraintParser:
    """
    Extracts the loan types a condition's free text claims support for.

    Rule text (column C) is matched against an ordered pattern table, then
    against bare loan-type mentions. Logic text (column Q) is matched against
    mortgage-type expressions. Results from both columns are unioned; a
    condition with no parseable constraint is unconstrained.
    """

    def parse_rules_text(self, rules_text: Optional[str]) -> FrozenSet[LoanType]:
        text = (rules_text or "").strip()
        if not text:
            return frozenset()

        for pattern, types in RULES_PATTERNS:
            if pattern.search(text):
                return types

        return frozenset(loan_type for pattern, loan_type in _BARE_MENTIONS if pattern.search(text))

    def parse_logic_text(self, logic_text: Optional[str]) -> FrozenSet[LoanType]:
        text = (logic_text or "").strip()
        if not text:
            return frozenset()

        equals = _TYPE_EQUALS.search(text)
        if equals:
            types = self._normalize_all(_OR_SEPARATOR.split(equals.group("types")))
            if types:
                return types

        for pattern, types in LOGIC_PATTERNS:
            if pattern.search(text):
                return types

        in_list = _IN_LIST.search(text)
        if in_list:
            return self._normalize_all(re.split(r"[,/|]", in_list.group("types")))

        return frozenset()

    @staticmethod
    def _normalize_all(values: Iterable[str]) -> FrozenSet[LoanType]:
        types = (try_normalize_loan_type(value) for value in values)
        return frozenset(loan_type for loan_type in types if loan_type is not None)

    def parse_constraints(
        self,
        code: str,
        rules_text: Optional[str],
        logic_text: Optional[str],
    ) -> Tuple[LoanTypeConstraint, ...]:
        """
        Parse both text columns of a condition.

        Args:
            code: Condition code, recorded on each constraint
            rules_text: Column C text
            logic_text: Column Q text

        Returns:
            One constraint per column that yielded at least one loan type
        """
        constraints: List[LoanTypeConstraint] = []

        rules_types = self.parse_rules_text(rules_text)
        if rules_types:
            constraints.append(
                LoanTypeConstraint(
                    condition_code=code,
                    supported_types=rules_types,
                    constraint=rules_text or "",
                    source=ConstraintSource.RULES,
                )
            )

        logic_types = self.parse_logic_text(logic_text)
        if logic_types:
            constraints.append(
                LoanTypeConstraint(
                    condition_code=code,
                    supported_types=logic_types,
                    constraint=logic_text or "",
                    source=ConstraintSource.LOGIC,
                )
            )

        return tuple(constraints)

    def parse_support(
        self,
        code: str,
        rules_text: Optional[str],
        logic_text: Optional[str],
    ) -> LoanTypeSupport:
        constraints = self.parse_constraints(code, rules_text, logic_text)
        if not constraints:
            # No constraint means no restriction
            return LoanTypeSupport.unconstrained()
        return LoanTypeSupport.constrained(constraints)


class LoanTypeFilter:
    """
    Narrows the catalog to conditions compatible with a loan's type.

    Runs before rule evaluation so conditions for other products never reach
    the free-text classifier. Uses the support computed at catalog load.
    """

    def filter(self, conditions: Iterable[Condition], loan: LoanFacts) -> LoanTypeFilterResult:
        """
        Split conditions by whether they support the loan's type.

        Args:
            conditions: Catalog conditions, in catalog order
            loan: Loan facts; only mortgage_type is read

        Returns:
            LoanTypeFilterResult with applicable, filtered, and reasons
        """
        loan_type = normalize_loan_type(loan.mortgage_type)
        result = LoanTypeFilterResult(loan_type=loan_type)

        for condition in conditions:
            support = condition.loan_type_support
            if support.supports(loan_type):
                result.applicable.append(condition)
                continue

            result.filtered.append(condition)
            supported = ", ".join(t.value for t in support.ordered)
            result.reasons[condition.code] = (
                f"loan type '{loan_type.value}' not supported; supports: {supported}"
            )

        logger.debug(result.summary())
        return result
