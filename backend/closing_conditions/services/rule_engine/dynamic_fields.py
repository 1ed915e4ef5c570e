"""Placeholder resolution for condition descriptions."""

import logging
import re
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Tuple

from closing_conditions.core.enums import LoanType
from closing_conditions.core.formatting import format_currency, format_percent, format_us_date
from closing_conditions.core.policies import DEFAULT_POLICY, PlaceholderPolicy
from closing_conditions.models.domain.condition import Condition
from closing_conditions.models.domain.loan import LoanFacts
from closing_conditions.services.rule_engine import facts
from closing_conditions.services.rule_engine.reasons import reason_applied

logger = logging.getLogger(__name__)

DECLARED_TOKEN = re.compile(r"<<[^<>]+>>|<[^<>]+>")

TAX_YEAR_TOKENS = ("______", "_____ & _____")

# Months of asset history for asset-verification conditions
ASSET_HISTORY_MONTHS = {
    LoanType.VA: 1,
    LoanType.FHA: 2,
    LoanType.CONV: 2,
    LoanType.USDA: 1,
}
DEFAULT_HISTORY_MONTHS = 2

# (max LTV, MI percent) brackets, first bracket containing the LTV wins
FHA_MI_BRACKETS = ((Decimal("90"), Decimal("0.80")),)
FHA_MI_ABOVE = Decimal("0.85")
CONV_MI_BRACKETS = (
    (Decimal("85"), Decimal("0.25")),
    (Decimal("90"), Decimal("0.35")),
    (Decimal("95"), Decimal("0.52")),
)
CONV_MI_ABOVE = Decimal("0.65")
DEFAULT_MI_PERCENT = Decimal("0.35")

BlankFill = Tuple[re.Pattern, Callable[["_RenderState"], Optional[str]]]


class _RenderState:
    """Inputs one rendering pass resolves values from."""

    def __init__(
        self,
        processor: "DynamicFieldProcessor",
        condition: Condition,
        loan: LoanFacts,
        as_of: date,
    ):
        self.processor = processor
        self.condition = condition
        self.loan = loan
        self.as_of = as_of


def _months(state: _RenderState) -> Optional[str]:
    return f"{state.processor.required_months(state.condition, state.loan)} months"


def _mi_percent(state: _RenderState) -> Optional[str]:
    return format_percent(state.processor.mi_percent(state.loan))


def _emd(state: _RenderState) -> Optional[str]:
    if state.loan.earnest_money_deposit is None:
        return None
    return f"{format_currency(state.loan.earnest_money_deposit)} EMD"


def _total_income(state: _RenderState) -> Optional[str]:
    if not state.loan.income_items:
        return None
    return f"to support {format_currency(state.loan.total_income)}"


def _reo_address(state: _RenderState) -> Optional[str]:
    address = state.loan.first_reo_address
    return f"located at {address}" if address else None


# Residual underscore blanks, filled in order after token substitution
BLANK_FILLS: Tuple[BlankFill, ...] = (
    (re.compile(r"_{3,} months"), _months),
    (re.compile(r"_{3,} ?%"), _mi_percent),
    (re.compile(r"\$_{3,} EMD"), _emd),
    (re.compile(r"for _{3,}\."), lambda state: "for borrower."),
    (re.compile(r"to support \$_{3,}"), _total_income),
    (re.compile(r"from _{3,}"), lambda state: "from employer"),
    (re.compile(r"for _{3,}"), lambda state: "for business"),
    (re.compile(r"located at _{3,}"), _reo_address),
)


def parse_declared_tokens(raw: Optional[str]) -> List[str]:
    """Tokens declared in a condition's dynamic data column, in order, without duplicates."""
    tokens: List[str] = []
    for token in DECLARED_TOKEN.findall(raw or ""):
        if token not in tokens:
            tokens.append(token)
    return tokens


class DynamicFieldProcessor:
    """
    Resolves placeholder tokens in condition text into loan-specific values.

    Substitution runs as a single non-overlapping pass, longest token first,
    so a value inserted for one token is never rescanned for another. Tokens
    whose value is empty or unknown are left in place. Residual underscore
    blanks are then filled by a fixed set of heuristics.
    """

    def __init__(self, policy: PlaceholderPolicy = DEFAULT_POLICY):
        self.policy = policy
        self._declared: Dict[str, Callable[[LoanFacts], Optional[str]]] = {
            "<ReqMIPercent>": lambda loan: format_percent(self.mi_percent(loan)),
            "<MI Company Name>": lambda loan: self.policy.mi_company_name,
            "<MI Rate Factor>": lambda loan: str(self.policy.mi_rate_factor),
            "<MI Type>": lambda loan: self.policy.mi_type,
            "<MI $ Amount>": lambda loan: format_currency(self.mi_amount(loan)),
            "<Monthly PITI>": lambda loan: format_currency(loan.monthly_piti),
            "<Earnest Money Deposit Amount>": lambda loan: format_currency(
                loan.earnest_money_deposit
            ),
        }

    def render_description(self, condition: Condition, loan: LoanFacts, as_of: date) -> str:
        """
        Render the condition's description for a loan.

        Args:
            condition: Condition whose template is rendered
            loan: Loan facts supplying values
            as_of: Evaluation date, used for application date and tax years

        Returns:
            The dynamic description template if present, else the description
            template, with placeholders resolved
        """
        template = condition.dynamic_description_template
        if not template or not template.strip():
            template = condition.description_template
        return self._render(template or "", condition, loan, as_of)

    def render_borrower_description(
        self, condition: Condition, loan: LoanFacts, as_of: date
    ) -> Optional[str]:
        if not condition.borrower_description_template:
            return None
        return self._render(condition.borrower_description_template, condition, loan, as_of)

    def compute_token_map(self, condition: Condition, loan: LoanFacts) -> Dict[str, str]:
        """
        Resolve the condition's declared tokens, for audit.

        Returns:
            Declared token -> resolved value; tokens without a value are omitted
        """
        token_map: Dict[str, str] = {}
        for token in parse_declared_tokens(condition.dynamic_data_tokens):
            resolver = self._declared.get(token)
            if resolver is None:
                logger.debug(f"Condition {condition.code} declares unsupported token {token}")
                continue
            value = resolver(loan)
            if value:
                token_map[token] = value
        return token_map

    def reason_applied(self, condition: Condition, loan: LoanFacts) -> str:
        return reason_applied(condition, loan)

    def required_months(self, condition: Condition, loan: LoanFacts) -> int:
        """Months of asset history the condition asks for."""
        if not condition.code.upper().startswith("ASSET"):
            return DEFAULT_HISTORY_MONTHS
        loan_type = facts.loan_type_of(loan)
        return ASSET_HISTORY_MONTHS.get(loan_type, DEFAULT_HISTORY_MONTHS)

    def mi_percent(self, loan: LoanFacts) -> Decimal:
        """Required mortgage insurance percent by loan type and LTV bracket."""
        loan_type = facts.loan_type_of(loan)
        if loan_type == LoanType.FHA:
            return self._bracket(loan.ltv, FHA_MI_BRACKETS, FHA_MI_ABOVE)
        if loan_type == LoanType.CONV:
            return self._bracket(loan.ltv, CONV_MI_BRACKETS, CONV_MI_ABOVE)
        return DEFAULT_MI_PERCENT

    @staticmethod
    def _bracket(
        ltv: Optional[Decimal],
        brackets: Tuple[Tuple[Decimal, Decimal], ...],
        above: Decimal,
    ) -> Decimal:
        # Unknown LTV takes the highest bracket
        if ltv is None:
            return above
        for max_ltv, percent in brackets:
            if ltv <= max_ltv:
                return percent
        return above

    def mi_amount(self, loan: LoanFacts) -> Optional[Decimal]:
        """Monthly MI dollars; the rate factor is an annual percentage of the loan amount."""
        if loan.loan_amount is None:
            return None
        return loan.loan_amount * (self.policy.mi_rate_factor / Decimal("100")) / Decimal("12")

    def _substitutions(self, condition: Condition, loan: LoanFacts, as_of: date) -> Dict[str, str]:
        tax_years = f"{as_of.year - 1} & {as_of.year - 2}"
        address = loan.first_reo_address or ""

        table = {
            "<Monthly PITI>": format_currency(loan.monthly_piti),
            "<Earnest Money Deposit>": format_currency(loan.earnest_money_deposit),
            "<<property address from REO linked to mortgage>>": address,
            "<REO.Street>": address,
            "<application date>": format_us_date(as_of),
            "<#>": str(self.required_months(condition, loan)),
        }
        for token in TAX_YEAR_TOKENS:
            table[token] = tax_years
        table.update(self.compute_token_map(condition, loan))

        return {token: value for token, value in table.items() if value}

    @staticmethod
    def _token_pattern(tokens: List[str]) -> re.Pattern:
        parts = []
        for token in sorted(tokens, key=len, reverse=True):
            escaped = re.escape(token)
            if token.startswith("_") or token.endswith("_"):
                # Exact underscore runs only; percent and month blanks belong to the blank fills
                escaped = rf"(?<!_){escaped}(?!_)(?!\s*(?:%|months))"
            parts.append(escaped)
        return re.compile("|".join(parts))

    def _render(self, template: str, condition: Condition, loan: LoanFacts, as_of: date) -> str:
        if not template:
            return template

        table = self._substitutions(condition, loan, as_of)
        text = template
        if table:
            pattern = self._token_pattern(list(table))
            text = pattern.sub(lambda match: table[match.group(0)], text)

        state = _RenderState(self, condition, loan, as_of)
        for pattern, fill in BLANK_FILLS:
            if not pattern.search(text):
                continue
            value = fill(state)
            if value:
                text = pattern.sub(lambda match, value=value: value, text)
        return text
