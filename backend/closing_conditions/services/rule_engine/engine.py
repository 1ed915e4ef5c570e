"""Two-tier rule engine deciding whether a condition applies to a loan."""

import logging
from typing import Iterable, List, Optional

from closing_conditions.core.policies import DEFAULT_POLICY, PlaceholderPolicy
from closing_conditions.models.domain.condition import Condition
from closing_conditions.models.domain.loan import LoanFacts
from closing_conditions.services.rule_engine.base import EvaluationContext, RuleEvaluator
from closing_conditions.services.rule_engine.evaluators import (
    LogicExpressionEvaluator,
    RulesTextEvaluator,
    has_technical_signature,
)

logger = logging.getLogger(__name__)


class RuleEngine:
    """
    Rule engine coordinating the logic expression and rules text tiers.

    This class:
    - Tries the logic expression evaluator when the logic text is technical
    - Falls through to the rules text evaluator otherwise
    - Denies by default when neither tier recognizes the condition
    - Isolates each condition so one failure never aborts an evaluation
    """

    def __init__(
        self,
        logic_evaluator: Optional[RuleEvaluator] = None,
        text_evaluator: Optional[RuleEvaluator] = None,
        policy: PlaceholderPolicy = DEFAULT_POLICY,
    ):
        self.logic_evaluator = logic_evaluator or LogicExpressionEvaluator()
        self.text_evaluator = text_evaluator or RulesTextEvaluator()
        self.policy = policy

    def evaluate(self, loan: LoanFacts, condition: Condition) -> bool:
        """
        Decide whether a condition applies to a loan.

        Args:
            loan: Loan facts to evaluate against
            condition: Catalog condition already admitted by the loan-type filter

        Returns:
            True if the condition applies. Unrecognized text and evaluation
            errors both yield False.
        """
        try:
            return self._evaluate(loan, condition)
        except Exception as e:
            logger.error(f"Error evaluating condition {condition.code}: {e}", exc_info=True)
            return False

    def _evaluate(self, loan: LoanFacts, condition: Condition) -> bool:
        context = EvaluationContext(loan=loan, condition=condition, policy=self.policy)

        if has_technical_signature(condition.logic_text, condition.rule_text):
            result = self.logic_evaluator.evaluate(context)
            if result is not None:
                logger.debug(f"Condition {condition.code} decided by logic expression: {result}")
                return result

        result = self.text_evaluator.evaluate(context)
        if result is None:
            logger.warning(
                f"No rule matched condition {condition.code}; treating as not applicable"
            )
            return False
        return result

    def recognizes(self, condition: Condition) -> bool:
        """Whether either tier recognizes the condition's text."""
        if has_technical_signature(condition.logic_text, condition.rule_text):
            if self.logic_evaluator.recognizes(self.logic_evaluator.text_for(condition)):
                return True
        return self.text_evaluator.recognizes(self.text_evaluator.text_for(condition))

    def classification_gaps(self, conditions: Iterable[Condition]) -> List[str]:
        """
        List condition codes whose text neither tier recognizes.

        Such conditions can never apply; the list is a catalog quality report.
        """
        return [condition.code for condition in conditions if not self.recognizes(condition)]
