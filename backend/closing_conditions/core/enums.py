"""Core enums for type safety across the application."""

from enum import Enum


class Stage(str, Enum):
    """Lifecycle phase a closing condition belongs to."""

    PTD = "PTD"  # Prior to docs
    PTF = "PTF"  # Prior to funding
    POST = "POST"  # Post funding


class LoanType(str, Enum):
    """Mortgage product families the catalog distinguishes."""

    CONV = "Conv"
    FHA = "FHA"
    VA = "VA"
    USDA = "USDA"
    NON_QM = "Non-QM"


class ConstraintSource(str, Enum):
    """Catalog column a loan-type constraint was parsed from."""

    RULES = "rules"  # Column C
    LOGIC = "logic"  # Column Q


# Canonical ordering used whenever loan types are listed
ALL_LOAN_TYPES = (
    LoanType.CONV,
    LoanType.FHA,
    LoanType.VA,
    LoanType.USDA,
    LoanType.NON_QM,
)

# Conventional plus the three government programs
AGENCY_LOAN_TYPES = (
    LoanType.CONV,
    LoanType.FHA,
    LoanType.VA,
    LoanType.USDA,
)

GOVERNMENT_LOAN_TYPES = (
    LoanType.FHA,
    LoanType.VA,
    LoanType.USDA,
)

STAGE_ORDER = (Stage.PTD, Stage.PTF, Stage.POST)
