"""Tier-one evaluator for the technical logic column."""

import operator
import re
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, Optional, Sequence, Tuple

from closing_conditions.models.domain.condition import Condition
from closing_conditions.services.rule_engine import facts
from closing_conditions.services.rule_engine.base import (
    EvaluationContext,
    RuleEvaluator,
    RulePredicate,
)
from closing_conditions.services.rule_engine.loan_types import LoanTypeConstraintParser

_COMPARATORS: Dict[str, Callable[[Decimal, Decimal], bool]] = {
    "==": operator.eq,
    "=": operator.eq,
    "!=": operator.ne,
    "<=": operator.le,
    ">=": operator.ge,
    "<": operator.lt,
    ">": operator.gt,
}

# Text counts as an expression only if it carries one of these
_TECHNICAL_SIGNATURE = re.compile(r"==|!=|<=|>=|<|>|\bin list:|\bnot blank\b", re.IGNORECASE)

_CASH_COMPARISON = re.compile(
    r"cashfromtoborrower\s*(?P<op>==|!=|<=|>=|<|>|=)\s*(?P<amount>-?\$?[\d,]+(?:\.\d+)?)"
)
_LIEN_FIRST = re.compile(r"lien\s*position\s*==?\s*1\b")
_NEW_CONSTRUCTION_YES = re.compile(r"new\s*construction\s*==?\s*\"?yes\b")
_LOAN_PURPOSE = re.compile(r"loan\s*purpose\s*==?\s*\"?(?P<purpose>purchase|refinance)\b")
_MORTGAGE_TYPE_MENTION = re.compile(r"mortgage\s*_?type|\bloan:\s*\w")


def has_technical_signature(logic_text: Optional[str], rule_text: Optional[str] = None) -> bool:
    """
    Whether logic text reads as a machine expression rather than prose.

    The text must be non-empty, differ from the rule text, and contain a
    comparison operator, an "In List:" clause, or "Not Blank".
    """
    text = (logic_text or "").strip()
    if not text:
        return False
    if rule_text is not None and text == rule_text.strip():
        return False
    return bool(_TECHNICAL_SIGNATURE.search(text))


def _parse_amount(raw: str) -> Optional[Decimal]:
    try:
        return Decimal(raw.replace("$", "").replace(",", ""))
    except InvalidOperation:
        return None


class LogicExpressionEvaluator(RuleEvaluator):
    """
    Evaluator for recognized logic expression shapes.

    Handles:
    - VA refinance type IRRRL checks
    - CashFromToBorrower comparisons against a dollar amount
    - Retail origination channel checks
    - LiquidAssets / IncomeBase "Not Blank" checks
    - Mortgage type expressions (equality, "-or-" lists, "Loan:", "In List:", "is NOT Non-QM")
    - Lien position, new construction, and loan purpose equality

    The first recognized shape decides. Text no shape recognizes returns
    None so the engine falls through to the rules text tier.
    """

    def __init__(self, parser: Optional[LoanTypeConstraintParser] = None):
        self._parser = parser or LoanTypeConstraintParser()
        self._predicates: Tuple[RulePredicate, ...] = (
            RulePredicate("va_refi_irrrl", self._matches_va_refi, self._va_refi_irrrl),
            RulePredicate("cash_from_to_borrower", _CASH_COMPARISON.search, self._cash_comparison),
            RulePredicate("retail_channel", self._matches_retail, self._retail_channel),
            RulePredicate(
                "liquid_assets_not_blank",
                lambda text: "liquidassets" in text and "not blank" in text,
                lambda context: facts.has_bank_assets(context.loan),
            ),
            RulePredicate(
                "income_base_not_blank",
                lambda text: "incomebase" in text and "not blank" in text,
                lambda context: facts.has_income(context.loan),
            ),
            RulePredicate("mortgage_type", self._matches_mortgage_type, self._mortgage_type),
            RulePredicate(
                "first_lien",
                _LIEN_FIRST.search,
                lambda context: facts.is_first_lien(context.loan),
            ),
            RulePredicate(
                "new_construction",
                _NEW_CONSTRUCTION_YES.search,
                lambda context: context.loan.new_construction is True,
            ),
            RulePredicate("loan_purpose", _LOAN_PURPOSE.search, self._loan_purpose),
        )

    @property
    def predicates(self) -> Sequence[RulePredicate]:
        return self._predicates

    def text_for(self, condition: Condition) -> str:
        return condition.logic_text or ""

    @staticmethod
    def _matches_va_refi(text: str) -> bool:
        return "$refitypeva" in text and "irrr" in text

    @staticmethod
    def _va_refi_irrrl(context: EvaluationContext) -> bool:
        return facts.is_va_irrrl(context.loan)

    @staticmethod
    def _cash_comparison(context: EvaluationContext) -> bool:
        text = LogicExpressionEvaluator._normalize(context.condition.logic_text)
        match = _CASH_COMPARISON.search(text)
        cash = context.loan.cash_to_borrower
        if match is None or cash is None:
            return False

        threshold = _parse_amount(match.group("amount"))
        if threshold is None:
            return False
        return _COMPARATORS[match.group("op")](cash, threshold)

    @staticmethod
    def _matches_retail(text: str) -> bool:
        return "filedata_originationchannel" in text and "retail" in text

    @staticmethod
    def _retail_channel(context: EvaluationContext) -> bool:
        is_retail = facts.is_retail_channel(context.loan)
        if is_retail is None:
            return context.policy.assume_retail_channel
        return is_retail

    def _matches_mortgage_type(self, text: str) -> bool:
        return bool(_MORTGAGE_TYPE_MENTION.search(text)) and bool(
            self._parser.parse_logic_text(text)
        )

    def _mortgage_type(self, context: EvaluationContext) -> bool:
        supported = self._parser.parse_logic_text(context.condition.logic_text)
        return context.loan_type in supported

    @staticmethod
    def _loan_purpose(context: EvaluationContext) -> bool:
        text = LogicExpressionEvaluator._normalize(context.condition.logic_text)
        match = _LOAN_PURPOSE.search(text)
        return match is not None and facts.purpose_is(context.loan, match.group("purpose"))
