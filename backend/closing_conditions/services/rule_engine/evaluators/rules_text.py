"""Tier-two evaluator for the prose rules column."""

import re
from typing import Callable, Sequence, Tuple

from closing_conditions.core.enums import AGENCY_LOAN_TYPES, GOVERNMENT_LOAN_TYPES, LoanType
from closing_conditions.models.domain.condition import Condition
from closing_conditions.services.rule_engine import facts
from closing_conditions.services.rule_engine.base import (
    EvaluationContext,
    RuleEvaluator,
    RulePredicate,
)

Matcher = Callable[[str], bool]

LTV_THRESHOLD = 80


def _has(*phrases: str) -> Matcher:
    """Text contains every phrase."""
    return lambda text: all(phrase in text for phrase in phrases)


def _any(*phrases: str) -> Matcher:
    """Text contains at least one phrase."""
    return lambda text: any(phrase in text for phrase in phrases)


def _word(word: str) -> Matcher:
    pattern = re.compile(rf"\b{re.escape(word)}\b")
    return lambda text: bool(pattern.search(text))


def _all(*matchers: Matcher) -> Matcher:
    return lambda text: all(matcher(text) for matcher in matchers)


def _without(matcher: Matcher, *phrases: str) -> Matcher:
    """Matcher that also requires none of the phrases to appear."""
    return lambda text: matcher(text) and not any(phrase in text for phrase in phrases)


# Predicates over the loan


def _conv_ltv_over_threshold(context: EvaluationContext) -> bool:
    loan = context.loan
    return (
        context.is_loan_type(LoanType.CONV)
        and loan.ltv is not None
        and loan.ltv > LTV_THRESHOLD
    )


def _agency_aus_approved(context: EvaluationContext) -> bool:
    loan = context.loan
    return context.is_loan_type(*AGENCY_LOAN_TYPES) and facts.aus_approved(loan)


def _government_bankruptcy_without_approval(context: EvaluationContext) -> bool:
    loan = context.loan
    return (
        loan.bankruptcy is True
        and not facts.aus_approved(loan)
        and context.is_loan_type(*GOVERNMENT_LOAN_TYPES)
    )


def _agency_first_lien_refinance(context: EvaluationContext) -> bool:
    loan = context.loan
    return (
        facts.purpose_is(loan, "refinance")
        and facts.is_first_lien(loan)
        and context.is_loan_type(*AGENCY_LOAN_TYPES)
    )


def _mortgaged_reo_paid_off(context: EvaluationContext) -> bool:
    return _agency_first_lien_refinance(context) and any(
        reo.linked_to_mortgage and reo.paid_off_at_closing
        for reo in context.loan.reo_properties
    )


def _reo_paid_off(context: EvaluationContext) -> bool:
    return _agency_first_lien_refinance(context) and any(
        reo.paid_off_at_closing for reo in context.loan.reo_properties
    )


def _employed_not_self_employed(context: EvaluationContext) -> bool:
    loan = context.loan
    return (
        facts.has_income(loan)
        and loan.self_employed is not True
        and context.is_loan_type(*AGENCY_LOAN_TYPES)
    )


def _fha_self_employed_or_va_manual(context: EvaluationContext) -> bool:
    loan = context.loan
    fha_self_employed = context.is_loan_type(LoanType.FHA) and loan.self_employed is True
    va_manual = context.is_loan_type(LoanType.VA) and facts.is_manual_underwrite(loan)
    return fha_self_employed or va_manual


def _self_employed_business_owner(context: EvaluationContext) -> bool:
    loan = context.loan
    return loan.self_employed is True and any(
        (item.ownership_share is not None and item.ownership_share >= 25)
        or item.employed_by_family is True
        for item in loan.income_items
    )


def _termite_new_construction(context: EvaluationContext) -> bool:
    loan = context.loan
    return (
        loan.new_construction is True
        and facts.in_termite_state(loan)
        and context.is_loan_type(*GOVERNMENT_LOAN_TYPES)
    )


def _va_termite_not_irrrl(context: EvaluationContext) -> bool:
    loan = context.loan
    return (
        context.is_loan_type(LoanType.VA)
        and facts.in_termite_state(loan)
        and not facts.is_va_irrrl(loan)
        and loan.new_construction is not True
        and facts.is_first_lien(loan)
    )


def _new_construction_purchase(*loan_types: LoanType):
    def evaluate(context: EvaluationContext) -> bool:
        loan = context.loan
        return (
            context.is_loan_type(*loan_types)
            and loan.new_construction is True
            and facts.purpose_is(loan, "purchase")
        )

    return evaluate


def _va_appraisal(context: EvaluationContext) -> bool:
    loan = context.loan
    return (
        context.is_loan_type(LoanType.VA)
        and not facts.is_va_irrrl(loan)
        and facts.is_first_lien(loan)
    )


def _loan_types_first_lien(*loan_types: LoanType):
    def evaluate(context: EvaluationContext) -> bool:
        loan = context.loan
        return context.is_loan_type(*loan_types) and facts.is_first_lien(loan)

    return evaluate


def _loan_types(*loan_types: LoanType):
    return lambda context: context.is_loan_type(*loan_types)


# Ordered most specific first; broad catch-alls last
RULES_TEXT_PREDICATES: Tuple[RulePredicate, ...] = (
    RulePredicate(
        "non_us_citizen",
        _has("citizenship", "other than us citizen"),
        lambda context: facts.is_non_us_citizen(context.loan),
    ),
    RulePredicate(
        "conventional_ltv_over_80",
        _all(_has("ltv"), _any("conventional", "conv "), _any("greater than 80", "> 80", ">80")),
        _conv_ltv_over_threshold,
    ),
    RulePredicate(
        "agency_aus_approved",
        _has("all files conventional & govy", "approved"),
        _agency_aus_approved,
    ),
    RulePredicate(
        "bank_assets_on_urla",
        _has("bank assets", "urla"),
        lambda context: facts.has_bank_assets(context.loan),
    ),
    RulePredicate(
        "earnest_money_deposit",
        _any("emd amount is > $0", "emd amount > $0", "emd amount is greater than $0"),
        lambda context: facts.emd_amount(context.loan) >= 1,
    ),
    RulePredicate(
        "va_irrrl",
        _has("va irrrl"),
        lambda context: context.is_loan_type(LoanType.VA)
        and facts.is_va_irrrl(context.loan),
    ),
    RulePredicate(
        "va_purchase",
        _has("loan: va, purchase"),
        lambda context: context.is_loan_type(LoanType.VA)
        and facts.purpose_is(context.loan, "purchase"),
    ),
    RulePredicate(
        "government_bankruptcy_no_aus",
        _has("bk in the last 7 years", "no aus", "govy"),
        _government_bankruptcy_without_approval,
    ),
    RulePredicate(
        "bankruptcy",
        _without(_any("bankrupt", "bk in the last"), "no aus"),
        lambda context: context.loan.bankruptcy is True,
    ),
    RulePredicate(
        "reo_linked_to_mortgage",
        _has("reo", "linked to a mortgage liability"),
        lambda context: any(reo.linked_to_mortgage for reo in context.loan.reo_properties),
    ),
    RulePredicate(
        "mortgaged_reo_paid_off",
        _has("refinance", "any reo has a mortgage", "paid off at closing"),
        _mortgaged_reo_paid_off,
    ),
    RulePredicate(
        "reo_paid_off",
        _without(_has("refinance", "paid off at closing"), "any reo has a mortgage"),
        _reo_paid_off,
    ),
    RulePredicate(
        "reo_to_be_sold",
        _any("reo to be sold", "reo marked to be sold"),
        lambda context: any(reo.marked_to_be_sold for reo in context.loan.reo_properties),
    ),
    RulePredicate(
        "first_lien",
        lambda text: bool(re.search(r"lien position\s*=\s*1\b", text)),
        lambda context: facts.is_first_lien(context.loan),
    ),
    RulePredicate(
        "community_property_married",
        _has("community property", "married"),
        lambda context: facts.is_married(context.loan)
        and context.is_loan_type(*GOVERNMENT_LOAN_TYPES),
    ),
    RulePredicate(
        "employed_not_self_employed",
        _has("employer status", "current"),
        _employed_not_self_employed,
    ),
    RulePredicate(
        "alimony_income",
        _has("alimony"),
        lambda context: facts.has_alimony_income(context.loan),
    ),
    RulePredicate(
        "child_support_income",
        _has("child support"),
        lambda context: facts.has_child_support_income(context.loan),
    ),
    RulePredicate(
        "pension_income",
        _any("pension", "retirement income"),
        lambda context: facts.has_income_type(context.loan, "pension")
        or facts.has_income_type(context.loan, "retirement"),
    ),
    RulePredicate(
        "fha_self_employed_or_va_manual",
        lambda text: (_word("fha")(text) and "self-employed" in text)
        or (_word("va")(text) and "manual underwrite" in text),
        _fha_self_employed_or_va_manual,
    ),
    RulePredicate(
        "self_employed_business_owner",
        _any("self employed or business owner", "ownership share", "employed by family"),
        _self_employed_business_owner,
    ),
    RulePredicate(
        "termite_new_construction",
        _has("new const in specific states"),
        _termite_new_construction,
    ),
    RulePredicate(
        "va_termite_not_irrrl",
        _all(_word("va"), _has("termite", "not irrrl")),
        _va_termite_not_irrrl,
    ),
    RulePredicate(
        "va_new_construction_purchase",
        _has("va only", "new construction"),
        _new_construction_purchase(LoanType.VA),
    ),
    RulePredicate(
        "fha_new_construction_purchase",
        _has("all fha new construction purchase"),
        _new_construction_purchase(LoanType.FHA),
    ),
    RulePredicate(
        "fha_new_construction",
        _has("fha new construction"),
        lambda context: context.is_loan_type(LoanType.FHA)
        and context.loan.new_construction is True,
    ),
    RulePredicate(
        "new_construction",
        _has("new construction"),
        lambda context: context.loan.new_construction is True,
    ),
    RulePredicate(
        "credit_run",
        _has("where credit was run"),
        lambda context: context.is_loan_type(*AGENCY_LOAN_TYPES)
        and context.loan.credit_run_indicator is True,
    ),
    RulePredicate(
        "government_transactions",
        _has("all fha, va and usda transactions"),
        _loan_types(*GOVERNMENT_LOAN_TYPES),
    ),
    RulePredicate(
        "va_appraisal",
        _all(_word("va"), _has("exclude irrrl")),
        _va_appraisal,
    ),
    RulePredicate(
        "hazard_insurance",
        _any("hazard insurance", "coventional"),
        _loan_types_first_lien(LoanType.CONV, LoanType.FHA, LoanType.VA),
    ),
    RulePredicate(
        "title",
        _any("preliminary title", "closing protection"),
        _loan_types_first_lien(*AGENCY_LOAN_TYPES),
    ),
    RulePredicate(
        "agency_transactions",
        _any("conventional, fha, va and usda", "all transactions"),
        _loan_types(*AGENCY_LOAN_TYPES),
    ),
    RulePredicate(
        "every_loan",
        _any("every loan", "all loans"),
        lambda context: True,
    ),
)


class RulesTextEvaluator(RuleEvaluator):
    """
    Evaluator for the prose business rule families.

    Reads the rules column, or the logic column when the rules column is
    empty. Each family pairs a phrase matcher with a predicate over the
    loan facts; the first family whose phrases match decides. Unknown facts
    make predicates return False.
    """

    def __init__(self, predicates: Sequence[RulePredicate] = RULES_TEXT_PREDICATES):
        self._predicates = tuple(predicates)

    @property
    def predicates(self) -> Sequence[RulePredicate]:
        return self._predicates

    def text_for(self, condition: Condition) -> str:
        return condition.rule_text or condition.logic_text or ""
