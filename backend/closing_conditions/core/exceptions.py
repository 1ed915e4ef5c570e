"""Exceptions raised by the conditions engine and its catalog."""

from typing import Optional


class ConditionsEngineError(Exception):
    """Base class for all conditions engine errors."""


class CatalogLoadError(ConditionsEngineError, ValueError):
    """
    The condition catalog could not be read or contains invalid data.

    Fatal to a load or reload; the previously loaded snapshot stays current.

    Attributes:
        source: Path or description of the catalog source
        row: 1-based spreadsheet row the problem was found on, if known
    """

    def __init__(self, message: str, source: Optional[str] = None, row: Optional[int] = None):
        self.source = source
        self.row = row
        location = ""
        if source:
            location = f" ({source}" + (f", row {row})" if row is not None else ")")
        super().__init__(f"{message}{location}")


class CatalogNotLoadedError(ConditionsEngineError):
    """An operation needed the catalog before any load succeeded."""


class InvalidLoanFactsError(ConditionsEngineError, ValueError):
    """Loan facts supplied by the caller are structurally unusable."""
