"""Fact accessors shared by rule predicates, templating, and reasons.

Each accessor treats a missing fact as unknown: predicates built on them
return False for unknown values rather than guessing.
"""

import re
from decimal import Decimal
from typing import Optional

from closing_conditions.core.enums import LoanType
from closing_conditions.models.domain.loan import LoanFacts
from closing_conditions.services.rule_engine.loan_types import normalize_loan_type

# States requiring termite inspection, by name and postal code
TERMITE_STATES = {
    "Alabama": "AL",
    "Arkansas": "AR",
    "Arizona": "AZ",
    "California": "CA",
    "Connecticut": "CT",
    "Delaware": "DE",
    "Florida": "FL",
    "Georgia": "GA",
    "Hawaii": "HI",
    "Iowa": "IA",
    "Illinois": "IL",
    "Indiana": "IN",
    "Kansas": "KS",
    "Kentucky": "KY",
    "Louisiana": "LA",
    "Massachusetts": "MA",
    "Maryland": "MD",
    "Mississippi": "MS",
    "Missouri": "MO",
    "North Carolina": "NC",
    "Nebraska": "NE",
    "New Jersey": "NJ",
    "New Mexico": "NM",
    "Nevada": "NV",
    "Ohio": "OH",
    "Oklahoma": "OK",
    "Pennsylvania": "PA",
    "Rhode Island": "RI",
    "South Carolina": "SC",
    "Tennessee": "TN",
    "Texas": "TX",
    "Utah": "UT",
    "Virginia": "VA",
    "West Virginia": "WV",
    "Washington, D.C.": "DC",
}

_TERMITE_KEYS = {name.upper() for name in TERMITE_STATES} | set(TERMITE_STATES.values()) | {
    "DISTRICT OF COLUMBIA",
    "WASHINGTON DC",
}

_IRRRL_TYPES = {"IRRRL", "IRRR"}


def _squash(value: Optional[str]) -> str:
    """Lower-case and drop everything but letters and digits."""
    return re.sub(r"[^a-z0-9]", "", (value or "").lower())


def loan_type_of(loan: LoanFacts) -> LoanType:
    """The loan's normalized type; missing or unknown types are Conv, as in the loan-type filter."""
    return normalize_loan_type(loan.mortgage_type, warn=False)


def is_loan_type(loan: LoanFacts, *loan_types: LoanType) -> bool:
    return loan_type_of(loan) in loan_types


def purpose_is(loan: LoanFacts, purpose: str) -> bool:
    """Loan purpose mentions the given purpose, e.g. "CashOutRefinance" is a refinance."""
    if not loan.loan_purpose:
        return False
    return _squash(purpose) in _squash(loan.loan_purpose)


def is_first_lien(loan: LoanFacts) -> bool:
    return loan.lien_position == 1


def is_non_us_citizen(loan: LoanFacts) -> bool:
    """Citizenship is known and is anything other than US citizen."""
    if not loan.citizenship:
        return False
    return _squash(loan.citizenship) not in {"uscitizen", "citizen"}


def is_married(loan: LoanFacts) -> bool:
    return _squash(loan.marriage_status) == "married"


def aus_approved(loan: LoanFacts) -> bool:
    """AUS recommendation is an approval, e.g. "Approved" or "Approve/Eligible"."""
    return _squash(loan.aus_result).startswith("approve")


def is_manual_underwrite(loan: LoanFacts) -> bool:
    return _squash(loan.underwriting_method).startswith("manual")


def is_va_irrrl(loan: LoanFacts) -> bool:
    return (loan.va_refi_type or "").strip().upper() in _IRRRL_TYPES


def is_retail_channel(loan: LoanFacts) -> Optional[bool]:
    """True/False for a known channel, None when the channel is unknown."""
    if not loan.origination_channel:
        return None
    return _squash(loan.origination_channel) == "retail"


def in_termite_state(loan: LoanFacts) -> bool:
    state = (loan.property_state or "").strip().upper()
    return state in _TERMITE_KEYS


def has_bank_assets(loan: LoanFacts) -> bool:
    """Bank assets are listed, by the parsed flag or the asset list."""
    if loan.has_bank_assets is not None:
        return loan.has_bank_assets
    return bool(loan.bank_assets)


def has_income(loan: LoanFacts) -> bool:
    return bool(loan.income)


def has_income_type(loan: LoanFacts, income_type: str) -> bool:
    needle = income_type.lower()
    return any(needle in (item.type or "").lower() for item in loan.income_items)


def has_alimony_income(loan: LoanFacts) -> bool:
    if loan.has_alimony_income is not None:
        return loan.has_alimony_income
    return has_income_type(loan, "alimony")


def has_child_support_income(loan: LoanFacts) -> bool:
    if loan.has_child_support_income is not None:
        return loan.has_child_support_income
    return has_income_type(loan, "child support") or has_income_type(loan, "childsupport")


def emd_amount(loan: LoanFacts) -> Decimal:
    return loan.earnest_money_deposit or Decimal("0")
