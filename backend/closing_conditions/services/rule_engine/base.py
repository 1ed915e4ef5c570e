"""Rule engine foundation with evaluation context, predicates, and base evaluator."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from closing_conditions.core.enums import LoanType
from closing_conditions.core.policies import DEFAULT_POLICY, PlaceholderPolicy
from closing_conditions.models.domain.condition import Condition
from closing_conditions.models.domain.loan import LoanFacts
from closing_conditions.services.rule_engine import facts


@dataclass(frozen=True)
class EvaluationContext:
    """
    Everything a rule evaluator needs to decide one condition for one loan.

    Attributes:
        loan: The loan facts being evaluated
        condition: The condition whose text is being evaluated
        policy: Placeholder business defaults for facts the loan lacks
        loan_type: Normalized loan type, resolved from the loan when omitted
    """

    loan: LoanFacts
    condition: Condition
    policy: PlaceholderPolicy = DEFAULT_POLICY
    loan_type: Optional[LoanType] = None

    def __post_init__(self):
        if self.loan_type is None:
            object.__setattr__(self, "loan_type", facts.loan_type_of(self.loan))

    def is_loan_type(self, *loan_types: LoanType) -> bool:
        return self.loan_type in loan_types


@dataclass(frozen=True)
class RulePredicate:
    """
    One recognizable rule family.

    Attributes:
        name: Short family name, used in logs
        matches: Recognizes the family from lower-cased rule text
        evaluate: Decides the family for the evaluation context
    """

    name: str
    matches: Callable[[str], bool]
    evaluate: Callable[[EvaluationContext], bool]


class RuleEvaluator(ABC):
    """
    Abstract base class for rule text evaluators using the Strategy pattern.

    Each concrete evaluator owns an ordered table of RulePredicate entries
    for one kind of catalog text. evaluate() returns None when no entry
    recognizes the text, so the caller can fall through to another tier.
    """

    @property
    @abstractmethod
    def predicates(self) -> Sequence[RulePredicate]:
        """The evaluator's predicate table, in evaluation order."""

    @abstractmethod
    def text_for(self, condition: Condition) -> str:
        """The condition text this evaluator reads."""

    def recognizes(self, text: Optional[str]) -> bool:
        """Whether any predicate recognizes the text."""
        return self.first_match(text) is not None

    def evaluate(self, context: EvaluationContext) -> Optional[bool]:
        """
        Evaluate the condition's text against the loan.

        The text may match several predicates; the first one in table order
        that recognizes it decides.

        Args:
            context: EvaluationContext with loan, condition, and policy

        Returns:
            The deciding predicate's result, or None if nothing recognized
            the text
        """
        predicate = self.first_match(self.text_for(context.condition))
        if predicate is None:
            return None
        return bool(predicate.evaluate(context))

    def first_match(self, text: Optional[str]) -> Optional[RulePredicate]:
        """The first predicate recognizing the text, if any."""
        normalized = self._normalize(text)
        if not normalized:
            return None
        for predicate in self.predicates:
            if predicate.matches(normalized):
                return predicate
        return None

    @staticmethod
    def _normalize(text: Optional[str]) -> str:
        return " ".join((text or "").lower().split())
