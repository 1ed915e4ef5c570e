import logging
from decimal import Decimal

import pytest

from closing_conditions.core.enums import LoanType, Stage
from closing_conditions.core.policies import PlaceholderPolicy
from closing_conditions.models.domain.loan import IncomeItem, RealEstateOwned
from closing_conditions.services.catalog.loader import build_condition
from closing_conditions.services.rule_engine.base import EvaluationContext
from closing_conditions.services.rule_engine.engine import RuleEngine
from closing_conditions.services.rule_engine.evaluators import (
    RulesTextEvaluator,
    has_technical_signature,
)


def _condition(catalog, code):
    return next(c for c in catalog if c.code == code)


class ExplodingEvaluator(RulesTextEvaluator):
    def evaluate(self, context):
        raise RuntimeError("boom")


class TestRuleEngine:
    def setup_method(self):
        self.engine = RuleEngine()

    @pytest.mark.parametrize("ltv, expected", [("85", True), ("80.01", True), ("80", False), ("75", False)])
    def test_conventional_ltv_threshold(self, catalog, loan_factory, ltv, expected):
        loan = loan_factory(ltv=Decimal(ltv))

        assert self.engine.evaluate(loan, _condition(catalog, "APP102")) is expected

    def test_ltv_rule_needs_a_known_ltv(self, catalog, loan_factory):
        assert self.engine.evaluate(loan_factory(ltv=None), _condition(catalog, "APP102")) is False

    @pytest.mark.parametrize(
        "emd, expected", [("10000", True), ("1", True), ("0.50", False), ("0", False), (None, False)]
    )
    def test_earnest_money_deposit(self, catalog, loan_factory, emd, expected):
        loan = loan_factory(earnest_money_deposit=Decimal(emd) if emd else None)

        assert self.engine.evaluate(loan, _condition(catalog, "ASSET507")) is expected

    @pytest.mark.parametrize(
        "citizenship, expected",
        [("Permanent Resident", True), ("NonPermanentResidentAlien", True), ("US Citizen", False), (None, False)],
    )
    def test_citizenship(self, catalog, loan_factory, citizenship, expected):
        loan = loan_factory(citizenship=citizenship)

        assert self.engine.evaluate(loan, _condition(catalog, "APP100")) is expected

    def test_va_irrrl_decided_by_logic_expression(self, catalog, loan_factory):
        condition = _condition(catalog, "CLSNG827")

        irrrl = loan_factory(mortgage_type="VA", loan_purpose="Refinance", va_refi_type="IRRRL")
        purchase = loan_factory(mortgage_type="VA")

        assert self.engine.evaluate(irrrl, condition) is True
        assert self.engine.evaluate(purchase, condition) is False

    def test_unrecognized_text_is_denied_and_logged(self, catalog, loan_factory, caplog):
        with caplog.at_level(logging.WARNING):
            applies = self.engine.evaluate(loan_factory(), _condition(catalog, "INC999"))

        assert applies is False
        assert "No rule matched condition INC999" in caplog.text

    def test_evaluation_errors_are_isolated(self, catalog, loan_factory, caplog):
        engine = RuleEngine(text_evaluator=ExplodingEvaluator())

        with caplog.at_level(logging.ERROR):
            applies = engine.evaluate(loan_factory(), _condition(catalog, "APP100"))

        assert applies is False
        assert "Error evaluating condition APP100" in caplog.text

    def test_unrecognized_logic_falls_through_to_rules_text(self, loan_factory):
        condition = build_condition(
            "GEN200",
            Stage.PTD,
            rule_text="Apply on every loan",
            logic_text="FileData_Investor == 'Agency'",
        )

        assert self.engine.evaluate(loan_factory(), condition) is True

    @pytest.mark.parametrize("cash, expected", [("-1000", True), ("-500", False), ("0", False), (None, False)])
    def test_cash_from_borrower_comparison(self, loan_factory, cash, expected):
        condition = build_condition(
            "CLSNG850",
            Stage.PTF,
            rule_text="Borrower brings more than $500 to closing",
            logic_text="CashFromToBorrower < -500",
        )
        loan = loan_factory(cash_to_borrower=Decimal(cash) if cash else None)

        assert self.engine.evaluate(loan, condition) is expected

    def test_unknown_channel_uses_retail_policy(self, loan_factory):
        condition = build_condition(
            "CLSNG860",
            Stage.PTD,
            rule_text="Retail files only",
            logic_text="FileData_OriginationChannel In List: Retail",
        )
        wholesale_default = RuleEngine(policy=PlaceholderPolicy(assume_retail_channel=False))

        assert self.engine.evaluate(loan_factory(), condition) is True
        assert wholesale_default.evaluate(loan_factory(), condition) is False
        assert self.engine.evaluate(loan_factory(origination_channel="Broker"), condition) is False

    def test_mortgage_type_in_list_expression(self, loan_factory):
        condition = build_condition(
            "GOV100",
            Stage.PTD,
            rule_text="Government files",
            logic_text="Loan_MortgageType In List: FHA, VA",
        )

        assert self.engine.evaluate(loan_factory(mortgage_type="FHA"), condition) is True
        assert self.engine.evaluate(loan_factory(mortgage_type="Conv"), condition) is False

    def test_first_matching_family_decides(self, loan_factory):
        # Hazard insurance is matched before the every-loan catch-all
        condition = build_condition("PROP601", Stage.POST, rule_text="Hazard insurance on all loans")

        assert self.engine.evaluate(loan_factory(mortgage_type="FHA"), condition) is True
        assert self.engine.evaluate(loan_factory(mortgage_type="NonQM"), condition) is False
        assert self.engine.evaluate(loan_factory(lien_position=2), condition) is False

    def test_government_bankruptcy_without_aus_approval(self, catalog, loan_factory):
        condition = _condition(catalog, "CRED305")

        assert self.engine.evaluate(
            loan_factory(mortgage_type="FHA", bankruptcy=True, aus_result="Refer/Eligible"), condition
        )
        assert not self.engine.evaluate(
            loan_factory(mortgage_type="FHA", bankruptcy=True, aus_result="Approve/Eligible"), condition
        )
        assert not self.engine.evaluate(
            loan_factory(mortgage_type="Conv", bankruptcy=True), condition
        )

    def test_refinance_payoff_of_mortgaged_reo(self, loan_factory):
        condition = build_condition(
            "CRED310",
            Stage.PTD,
            rule_text=(
                "Loan Purpose = Refinance and any REO has a mortgage "
                "marked to be paid off at closing"
            ),
        )
        paid_off = RealEstateOwned(address="9 Elm St", linked_to_mortgage=True, paid_off_at_closing=True)
        kept = RealEstateOwned(address="9 Elm St", linked_to_mortgage=True, paid_off_at_closing=False)

        assert self.engine.evaluate(loan_factory(loan_purpose="CashOutRefinance", reo=[paid_off]), condition)
        assert not self.engine.evaluate(loan_factory(loan_purpose="Refinance", reo=[kept]), condition)
        assert not self.engine.evaluate(loan_factory(loan_purpose="Purchase", reo=[paid_off]), condition)

    @pytest.mark.parametrize("state, expected", [("FL", True), ("Florida", True), ("Virginia", True), ("CO", False)])
    def test_va_termite_states(self, loan_factory, state, expected):
        condition = build_condition(
            "PROP603",
            Stage.PTD,
            rule_text="VA Only - termite inspection in termite states, not IRRRL",
        )
        loan = loan_factory(mortgage_type="VA", property_state=state)

        assert self.engine.evaluate(loan, condition) is expected

    def test_va_termite_exclusions(self, loan_factory):
        condition = build_condition(
            "PROP603",
            Stage.PTD,
            rule_text="VA Only - termite inspection in termite states, not IRRRL",
        )

        assert not self.engine.evaluate(
            loan_factory(mortgage_type="VA", property_state="FL", lien_position=2), condition
        )
        assert not self.engine.evaluate(
            loan_factory(mortgage_type="VA", property_state="FL", va_refi_type="IRRRL"), condition
        )
        assert not self.engine.evaluate(
            loan_factory(mortgage_type="VA", property_state="FL", new_construction=True), condition
        )
        assert not self.engine.evaluate(loan_factory(property_state="FL"), condition)

    @pytest.mark.parametrize(
        "self_employed, income, expected",
        [
            (True, IncomeItem(type="Self Employment", ownership_share=Decimal("25")), True),
            (True, IncomeItem(type="Self Employment", ownership_share=Decimal("24.99")), False),
            (True, IncomeItem(type="Base", employed_by_family=True), True),
            (False, IncomeItem(type="Base", employed_by_family=True), False),
            (None, IncomeItem(type="Self Employment", ownership_share=Decimal("40")), False),
            (True, IncomeItem(type="Base"), False),
        ],
    )
    def test_self_employed_business_owner(self, loan_factory, self_employed, income, expected):
        condition = build_condition(
            "INC408",
            Stage.PTD,
            rule_text=(
                "Self employed or business owner field is not empty and "
                "ownership share = greater than or equal to 25 percent"
            ),
        )
        loan = loan_factory(self_employed=self_employed, income=[income])

        assert self.engine.evaluate(loan, condition) is expected

    def test_citizenship_mention_alone_is_not_a_residency_rule(self, catalog, loan_factory):
        id_copy = build_condition("APP105", Stage.PTD, rule_text="All loans - copy of ID with citizenship shown")

        assert self.engine.evaluate(loan_factory(), id_copy) is True
        assert self.engine.evaluate(loan_factory(), _condition(catalog, "APP100")) is False

    def test_missing_mortgage_type_evaluates_as_conventional(self, catalog, loan_factory):
        loan = loan_factory(mortgage_type=None, ltv=Decimal("85"))

        assert self.engine.evaluate(loan, _condition(catalog, "APP102")) is True
        assert EvaluationContext(loan=loan, condition=_condition(catalog, "APP102")).loan_type == LoanType.CONV

    def test_unknown_mortgage_type_evaluates_as_conventional(self, loan_factory):
        condition = build_condition(
            "PROP601", Stage.POST, rule_text="Hazard insurance on all loans"
        )

        assert self.engine.evaluate(loan_factory(mortgage_type="Jumbo"), condition) is True

    def test_classification_gaps(self, catalog):
        assert self.engine.classification_gaps(catalog) == ["INC999"]


@pytest.mark.parametrize(
    "logic, rules, expected",
    [
        ("CashFromToBorrower < -500", "Cash to close", True),
        ("1003App1_LiquidAssets Not Blank", "", True),
        ("Loan_MortgageType In List: FHA", "", True),
        ("Mortgage Type = VA", "", False),
        ("Apply on every loan", "Apply on every loan", False),
        ("", "Apply on every loan", False),
        (None, None, False),
    ],
)
def test_technical_signature(logic, rules, expected):
    assert has_technical_signature(logic, rules) is expected


LINKED_REO = RealEstateOwned(address="12 Oak Ave", linked_to_mortgage=True)
UNLINKED_REO = RealEstateOwned(address="12 Oak Ave", linked_to_mortgage=False)
REO_PAID_OFF = RealEstateOwned(address="12 Oak Ave", paid_off_at_closing=True)
REO_FOR_SALE = RealEstateOwned(address="12 Oak Ave", marked_to_be_sold=True)


@pytest.mark.parametrize(
    "rule_text, overrides, expected",
    [
        pytest.param("REO linked to a mortgage liability", {"reo": [LINKED_REO]}, True, id="reo-linked"),
        pytest.param("REO linked to a mortgage liability", {"reo": [UNLINKED_REO]}, False, id="reo-unlinked"),
        pytest.param("REO linked to a mortgage liability", {}, False, id="reo-linked-none"),
        pytest.param("Any REO to be sold", {"reo": [REO_FOR_SALE]}, True, id="reo-for-sale"),
        pytest.param("Any REO to be sold", {"reo": [UNLINKED_REO]}, False, id="reo-kept"),
        pytest.param(
            "Refinance with liabilities paid off at closing",
            {"loan_purpose": "Refinance", "reo": [REO_PAID_OFF]},
            True,
            id="payoff-refinance",
        ),
        pytest.param(
            "Refinance with liabilities paid off at closing",
            {"loan_purpose": "Refinance", "reo": [REO_PAID_OFF], "lien_position": 2},
            False,
            id="payoff-second-lien",
        ),
        pytest.param(
            "Refinance with liabilities paid off at closing",
            {"loan_purpose": "Refinance", "reo": [REO_PAID_OFF], "mortgage_type": "NonQM"},
            False,
            id="payoff-non-agency",
        ),
        pytest.param(
            "Refinance with liabilities paid off at closing",
            {"loan_purpose": "Purchase", "reo": [REO_PAID_OFF]},
            False,
            id="payoff-purchase",
        ),
        pytest.param("Lien Position = 1", {}, True, id="first-lien"),
        pytest.param("Lien Position = 1", {"lien_position": 2}, False, id="first-lien-second"),
        pytest.param("Lien Position = 1", {"lien_position": None}, False, id="first-lien-unknown"),
        pytest.param(
            "FHA, USDA and VA in community property states with a married borrower",
            {"mortgage_type": "FHA", "marriage_status": "Married"},
            True,
            id="community-married",
        ),
        pytest.param(
            "FHA, USDA and VA in community property states with a married borrower",
            {"mortgage_type": "FHA", "marriage_status": "Unmarried"},
            False,
            id="community-unmarried",
        ),
        pytest.param(
            "FHA, USDA and VA in community property states with a married borrower",
            {"marriage_status": "Married"},
            False,
            id="community-conventional",
        ),
        pytest.param(
            "Employer status = current and self employed field is empty",
            {"income": [IncomeItem(type="Base", amount=Decimal("6000"))]},
            True,
            id="employed",
        ),
        pytest.param(
            "Employer status = current and self employed field is empty",
            {"income": [IncomeItem(type="Base", amount=Decimal("6000"))], "self_employed": True},
            False,
            id="employed-self-employed",
        ),
        pytest.param(
            "Employer status = current and self employed field is empty",
            {},
            False,
            id="employed-no-income",
        ),
        pytest.param(
            "Employer status = current and self employed field is empty",
            {"income": [IncomeItem(type="Base")], "mortgage_type": "NonQM"},
            False,
            id="employed-non-agency",
        ),
        pytest.param("Other income type = Alimony", {"has_alimony_income": True}, True, id="alimony-flag"),
        pytest.param("Other income type = Alimony", {"income": [IncomeItem(type="Alimony")]}, True, id="alimony-item"),
        pytest.param(
            "Other income type = Alimony",
            {"has_alimony_income": False, "income": [IncomeItem(type="Alimony")]},
            False,
            id="alimony-flag-wins",
        ),
        pytest.param("Other income type = Alimony", {"income": [IncomeItem(type="Base")]}, False, id="alimony-none"),
        pytest.param(
            "Other income type = Child Support",
            {"income": [IncomeItem(type="Child Support")]},
            True,
            id="child-support",
        ),
        pytest.param("Other income type = Child Support", {}, False, id="child-support-none"),
        pytest.param("Income type = Pension", {"income": [IncomeItem(type="Pension")]}, True, id="pension"),
        pytest.param(
            "Income type = Pension",
            {"income": [IncomeItem(type="Retirement")]},
            True,
            id="pension-retirement",
        ),
        pytest.param("Income type = Pension", {"income": [IncomeItem(type="Base")]}, False, id="pension-none"),
        pytest.param(
            "FHA self-employed borrowers or VA manual underwrite",
            {"mortgage_type": "FHA", "self_employed": True},
            True,
            id="fha-self-employed",
        ),
        pytest.param(
            "FHA self-employed borrowers or VA manual underwrite",
            {"mortgage_type": "VA", "underwriting_method": "Manual"},
            True,
            id="va-manual",
        ),
        pytest.param(
            "FHA self-employed borrowers or VA manual underwrite",
            {"mortgage_type": "VA", "underwriting_method": "DU"},
            False,
            id="va-automated",
        ),
        pytest.param(
            "FHA self-employed borrowers or VA manual underwrite",
            {"self_employed": True},
            False,
            id="conventional-self-employed",
        ),
        pytest.param(
            "New Const in specific states USDA/VA/FHA - termite protection",
            {"mortgage_type": "FHA", "new_construction": True, "property_state": "TX"},
            True,
            id="termite-new-construction",
        ),
        pytest.param(
            "New Const in specific states USDA/VA/FHA - termite protection",
            {"mortgage_type": "FHA", "new_construction": True, "property_state": "CO"},
            False,
            id="termite-new-construction-other-state",
        ),
        pytest.param(
            "New Const in specific states USDA/VA/FHA - termite protection",
            {"new_construction": True, "property_state": "TX"},
            False,
            id="termite-new-construction-conventional",
        ),
        pytest.param(
            "New Const in specific states USDA/VA/FHA - termite protection",
            {"mortgage_type": "USDA", "property_state": "TX"},
            False,
            id="termite-existing-home",
        ),
        pytest.param(
            "VA Only - New Construction checkbox = true only, Purchase only",
            {"mortgage_type": "VA", "new_construction": True},
            True,
            id="va-new-construction",
        ),
        pytest.param(
            "VA Only - New Construction checkbox = true only, Purchase only",
            {"mortgage_type": "VA", "new_construction": True, "loan_purpose": "Refinance"},
            False,
            id="va-new-construction-refinance",
        ),
        pytest.param(
            "VA Only - New Construction checkbox = true only, Purchase only",
            {"mortgage_type": "FHA", "new_construction": True},
            False,
            id="va-new-construction-fha",
        ),
        pytest.param(
            "All FHA New Construction Purchase transactions",
            {"mortgage_type": "FHA", "new_construction": True},
            True,
            id="fha-new-construction-purchase",
        ),
        pytest.param(
            "All FHA New Construction Purchase transactions",
            {"mortgage_type": "FHA", "new_construction": True, "loan_purpose": "Refinance"},
            False,
            id="fha-new-construction-refinance",
        ),
        pytest.param(
            "FHA New Construction certification",
            {"mortgage_type": "FHA", "new_construction": True, "loan_purpose": "Refinance"},
            True,
            id="fha-new-construction",
        ),
        pytest.param(
            "FHA New Construction certification",
            {"new_construction": True},
            False,
            id="fha-new-construction-conventional",
        ),
        pytest.param("New construction inspection", {"new_construction": True}, True, id="new-construction"),
        pytest.param("New construction inspection", {}, False, id="new-construction-unknown"),
        pytest.param(
            "Conventional, FHA, VA and USDA where credit was run",
            {"credit_run_indicator": True},
            True,
            id="credit-run",
        ),
        pytest.param(
            "Conventional, FHA, VA and USDA where credit was run",
            {"credit_run_indicator": False},
            False,
            id="credit-not-run",
        ),
        pytest.param(
            "Conventional, FHA, VA and USDA where credit was run",
            {"credit_run_indicator": True, "mortgage_type": "NonQM"},
            False,
            id="credit-run-non-agency",
        ),
        pytest.param("All FHA, VA and USDA transactions", {"mortgage_type": "USDA"}, True, id="government"),
        pytest.param("All FHA, VA and USDA transactions", {}, False, id="government-conventional"),
        pytest.param("VA appraisal, exclude IRRRL", {"mortgage_type": "VA"}, True, id="va-appraisal"),
        pytest.param(
            "VA appraisal, exclude IRRRL",
            {"mortgage_type": "VA", "loan_purpose": "Refinance", "va_refi_type": "IRRRL"},
            False,
            id="va-appraisal-irrrl",
        ),
        pytest.param(
            "VA appraisal, exclude IRRRL",
            {"mortgage_type": "VA", "lien_position": 2},
            False,
            id="va-appraisal-second-lien",
        ),
        pytest.param("VA appraisal, exclude IRRRL", {}, False, id="va-appraisal-conventional"),
        pytest.param("Preliminary title commitment", {"mortgage_type": "USDA"}, True, id="title"),
        pytest.param("Preliminary title commitment", {"lien_position": 2}, False, id="title-second-lien"),
        pytest.param("Preliminary title commitment", {"mortgage_type": "NonQM"}, False, id="title-non-agency"),
        pytest.param("All transactions - flood certification", {"mortgage_type": "FHA"}, True, id="agency"),
        pytest.param(
            "All transactions - flood certification",
            {"mortgage_type": "NonQM"},
            False,
            id="agency-non-agency",
        ),
    ],
)
def test_rules_text_families(loan_factory, rule_text, overrides, expected):
    condition = build_condition("GEN300", Stage.PTD, rule_text=rule_text)

    assert RuleEngine().evaluate(loan_factory(**overrides), condition) is expected
