"""Placeholder business defaults used where loan facts carry no data."""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class PlaceholderPolicy:
    """
    Named stand-ins for business values the loan facts do not provide.

    Attributes:
        mi_company_name: Mortgage insurance carrier quoted in MI conditions
        mi_rate_factor: Annual MI rate factor, as a percentage of loan amount
        mi_type: MI payment type quoted in MI conditions
        assume_retail_channel: Treat an unknown origination channel as retail
    """

    mi_company_name: str = "Genworth Mortgage Insurance"
    mi_rate_factor: Decimal = Decimal("0.35")
    mi_type: str = "Monthly"
    assume_retail_channel: bool = True


DEFAULT_POLICY = PlaceholderPolicy()
