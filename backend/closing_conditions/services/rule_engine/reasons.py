"""Code-specific explanations of why a condition applied to a loan."""

from decimal import Decimal
from typing import Callable, Dict, Iterable, Optional

from closing_conditions.core.formatting import format_currency
from closing_conditions.models.domain.condition import Condition
from closing_conditions.models.domain.loan import LoanFacts, RealEstateOwned
from closing_conditions.services.rule_engine import facts

ReasonBuilder = Callable[[LoanFacts, Condition], Optional[str]]

GENERAL_REQUIREMENT = "General loan requirement"


def _describe(value: Optional[object]) -> str:
    return str(value) if value not in (None, "") else "not provided"


def _plural(count: int, noun: str, plural: Optional[str] = None) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {plural or noun + 's'}"


def _reo_summary(properties: Iterable[RealEstateOwned], label: str) -> Optional[str]:
    matching = list(properties)
    if not matching:
        return None

    balance = sum((p.mortgage_balance or Decimal("0") for p in matching), Decimal("0"))
    value = sum((p.market_value or Decimal("0") for p in matching), Decimal("0"))
    return (
        f"{_plural(len(matching), 'REO property', 'REO properties')} {label} "
        f"(mortgage balance {format_currency(balance)}, market value {format_currency(value)})"
    )


def _citizenship(loan: LoanFacts, condition: Condition) -> Optional[str]:
    return f"Borrower citizenship is {_describe(loan.citizenship)}"


def _ltv(loan: LoanFacts, condition: Condition) -> Optional[str]:
    if loan.ltv is None:
        return None
    return f"LTV {loan.ltv}% exceeds the 80% threshold"


def _aus(loan: LoanFacts, condition: Condition) -> Optional[str]:
    return f"AUS result is {_describe(loan.aus_result)}"


def _bank_assets(loan: LoanFacts, condition: Condition) -> Optional[str]:
    assets = loan.bank_assets or []
    if not assets:
        return "Bank assets listed on the URLA"
    return (
        f"{_plural(len(assets), 'bank asset')} listed on the URLA "
        f"totaling {format_currency(loan.total_bank_assets)}"
    )


def _emd(loan: LoanFacts, condition: Condition) -> Optional[str]:
    return f"Earnest money deposit of {format_currency(facts.emd_amount(loan))}"


def _va_irrrl(loan: LoanFacts, condition: Condition) -> Optional[str]:
    return f"VA refinance type is {_describe(loan.va_refi_type)}"


def _va_purchase(loan: LoanFacts, condition: Condition) -> Optional[str]:
    return f"VA loan with purpose {_describe(loan.loan_purpose)}"


def _bankruptcy(loan: LoanFacts, condition: Condition) -> Optional[str]:
    return f"Bankruptcy reported with AUS result {_describe(loan.aus_result)}"


def _reo_linked(loan: LoanFacts, condition: Condition) -> Optional[str]:
    return _reo_summary(
        (p for p in loan.reo_properties if p.linked_to_mortgage),
        "linked to a mortgage liability",
    )


def _reo_paid_off(loan: LoanFacts, condition: Condition) -> Optional[str]:
    return _reo_summary(
        (p for p in loan.reo_properties if p.paid_off_at_closing),
        "paid off at closing",
    )


def _reo_to_be_sold(loan: LoanFacts, condition: Condition) -> Optional[str]:
    return _reo_summary(
        (p for p in loan.reo_properties if p.marked_to_be_sold),
        "marked to be sold",
    )


def _lien(loan: LoanFacts, condition: Condition) -> Optional[str]:
    return f"Lien position is {_describe(loan.lien_position)}"


def _community_property(loan: LoanFacts, condition: Condition) -> Optional[str]:
    status = _describe(loan.marriage_status)
    return f"Marital status is {status} on a {_describe(loan.mortgage_type)} loan"


def _income_of_type(income_type: str, label: str) -> ReasonBuilder:
    def build(loan: LoanFacts, condition: Condition) -> Optional[str]:
        items = [i for i in loan.income_items if income_type in (i.type or "").lower()]
        if not items:
            return f"{label} income reported"
        total = sum((i.amount or Decimal("0") for i in items), Decimal("0"))
        return f"{label} income of {format_currency(total)} reported"

    return build


def _self_employment(loan: LoanFacts, condition: Condition) -> Optional[str]:
    if loan.self_employed:
        return f"Self-employed borrower on a {_describe(loan.mortgage_type)} loan"
    if facts.is_manual_underwrite(loan):
        return f"Manual underwrite on a {_describe(loan.mortgage_type)} loan"
    return None


def _employment(loan: LoanFacts, condition: Condition) -> Optional[str]:
    return f"Current employment income of {format_currency(loan.total_income)}"


def _new_construction(loan: LoanFacts, condition: Condition) -> Optional[str]:
    purpose = _describe(loan.loan_purpose).lower()
    return f"New construction {purpose} on a {_describe(loan.mortgage_type)} loan"


def _termite(loan: LoanFacts, condition: Condition) -> Optional[str]:
    return f"Property in termite inspection state {_describe(loan.property_state)}"


REASON_BUILDERS: Dict[str, ReasonBuilder] = {
    "APP100": _citizenship,
    "APP102": _ltv,
    "APP108": _aus,
    "ASSET500": _bank_assets,
    "ASSET507": _emd,
    "CLSNG827": _va_irrrl,
    "CLSNG890": _va_purchase,
    "CRED301": _reo_to_be_sold,
    "CRED305": _bankruptcy,
    "CRED308": _reo_linked,
    "CRED309": _reo_paid_off,
    "CRED310": _reo_paid_off,
    "CRED317": _lien,
    "CRED318": _community_property,
    "INC400": _employment,
    "INC401": _income_of_type("alimony", "Alimony"),
    "INC402": _income_of_type("alimony", "Alimony"),
    "INC403": _income_of_type("child support", "Child support"),
    "INC406": _income_of_type("pension", "Pension"),
    "INC407": _self_employment,
    "INC408": _self_employment,
    "NEW CONST1400": _new_construction,
    "NEW CONST1401": _termite,
    "NEW CONST1404": _new_construction,
    "PROP603": _termite,
    "PROP616": _termite,
}


def reason_applied(condition: Condition, loan: LoanFacts) -> str:
    """
    Explain why a condition applied to a loan.

    Uses the condition code's builder when one exists and can explain the
    loan; otherwise names the supported loan types for constrained
    conditions. Advisory text only, never part of the applicability decision.
    """
    builder = REASON_BUILDERS.get(condition.code.upper())
    if builder is not None:
        reason = builder(loan, condition)
        if reason:
            return reason

    support = condition.loan_type_support
    if support.is_constrained:
        return f"Applies to {facts.loan_type_of(loan).value} loans"
    return GENERAL_REQUIREMENT
