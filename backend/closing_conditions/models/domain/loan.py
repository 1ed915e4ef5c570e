"""Normalized loan facts the condition engine evaluates against."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _FactsModel(BaseModel):
    """Frozen model accepting snake_case or camelCase keys."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )


class BankAsset(_FactsModel):
    """Depository asset listed on the application."""

    type: Optional[str] = None
    amount: Optional[Decimal] = None
    borrower_id: Optional[str] = None


class IncomeItem(_FactsModel):
    """One income source of one borrower."""

    type: Optional[str] = None
    amount: Optional[Decimal] = None
    source: Optional[str] = None
    borrower_id: Optional[str] = None
    ownership_share: Optional[Decimal] = Field(None, ge=0, le=100)
    employed_by_family: Optional[bool] = None


class RealEstateOwned(_FactsModel):
    """Property the borrowers already own."""

    address: Optional[str] = None
    linked_to_mortgage: Optional[bool] = None
    paid_off_at_closing: Optional[bool] = None
    marked_to_be_sold: Optional[bool] = None
    mortgage_balance: Optional[Decimal] = None
    market_value: Optional[Decimal] = None


class LoanFacts(_FactsModel):
    """
    Flat record of what is known about one loan.

    Every field is optional; None means unknown and is never read as False
    unless a rule explicitly defaults it.
    """

    # Identity and classification
    loan_id: Optional[str] = None
    mortgage_type: Optional[str] = None
    loan_purpose: Optional[str] = None
    product_code: Optional[str] = None
    lien_position: Optional[int] = None
    loan_amount: Optional[Decimal] = None
    origination_channel: Optional[str] = None

    # Risk and underwriting
    ltv: Optional[Decimal] = None
    aus_result: Optional[str] = None
    underwriting_method: Optional[str] = None
    credit_run_indicator: Optional[bool] = None

    # Borrower
    citizenship: Optional[str] = None
    marriage_status: Optional[str] = None
    self_employed: Optional[bool] = None
    bankruptcy: Optional[bool] = None

    # Derived income and asset flags
    has_alimony_income: Optional[bool] = None
    has_child_support_income: Optional[bool] = None
    has_bank_assets: Optional[bool] = None

    # Collections
    bank_assets: Optional[list[BankAsset]] = None
    income: Optional[list[IncomeItem]] = None
    reo: Optional[list[RealEstateOwned]] = None

    # Money
    earnest_money_deposit: Optional[Decimal] = None
    cash_to_borrower: Optional[Decimal] = None
    monthly_piti: Optional[Decimal] = None

    # Property
    property_state: Optional[str] = None
    property_type: Optional[str] = None
    new_construction: Optional[bool] = None

    # VA specific
    va_refi_type: Optional[str] = None

    @property
    def reo_properties(self) -> list[RealEstateOwned]:
        return list(self.reo or [])

    @property
    def income_items(self) -> list[IncomeItem]:
        return list(self.income or [])

    @property
    def first_reo_address(self) -> Optional[str]:
        for property_ in self.reo_properties:
            if property_.address:
                return property_.address
        return None

    @property
    def total_income(self) -> Decimal:
        return sum((item.amount or Decimal("0") for item in self.income_items), Decimal("0"))

    @property
    def total_bank_assets(self) -> Decimal:
        return sum(
            (asset.amount or Decimal("0") for asset in self.bank_assets or []),
            Decimal("0"),
        )
