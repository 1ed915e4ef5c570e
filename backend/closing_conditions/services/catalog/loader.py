"""Loads the condition catalog from its spreadsheet CSV export."""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

import pandas as pd

from closing_conditions.core.enums import Stage
from closing_conditions.core.exceptions import CatalogLoadError
from closing_conditions.models.domain.condition import Condition
from closing_conditions.services.rule_engine.loan_types import LoanTypeConstraintParser

logger = logging.getLogger(__name__)

# Spreadsheet columns A..R in order; column Q is split into two
CATALOG_COLUMNS = [
    "code",  # A
    "stage",  # B
    "rules",  # C
    "class",  # D
    "type",  # E
    "number",  # F
    "name",  # G
    "description",  # H
    "editable",  # I
    "dynamic_description",  # J
    "borrower_description",  # K
    "document_provider",  # L
    "responsibility",  # M
    "category",  # N
    "borrower_scope",  # O
    "dynamic_data",  # P
    "data_for_logic",  # Q1
    "logic_to_apply",  # Q2
    "byte_filter",  # R
]

HEADER_CODE = "Condition Code"

_parser = LoanTypeConstraintParser()


def _text(value: object) -> str:
    # Short rows are padded with NaN
    return value.strip() if isinstance(value, str) else ""


def _optional(value: Optional[str]) -> Optional[str]:
    return _text(value) or None


def parse_stage(value: Optional[str]) -> Stage:
    """Parse a stage value case-insensitively, raising ValueError if unknown."""
    normalized = (value or "").strip().upper()
    try:
        return Stage(normalized)
    except ValueError:
        raise ValueError(f"Unknown stage {value!r}; expected one of PTD, PTF, POST")


def build_condition(
    code: str,
    stage: Union[Stage, str],
    rule_text: str = "",
    logic_text: Optional[str] = None,
    **fields,
) -> Condition:
    """
    Build a Condition with its loan-type support computed.

    Args:
        code: Condition code
        stage: Stage enum or its string value
        rule_text: Column C text
        logic_text: Column Q2 text
        **fields: Any other Condition field

    Returns:
        Immutable Condition with loan_type_support parsed from both texts

    Raises:
        CatalogLoadError: If the code is empty or the stage is unknown
    """
    code = (code or "").strip()
    if not code:
        raise CatalogLoadError("Condition code is required")

    if not isinstance(stage, Stage):
        try:
            stage = parse_stage(stage)
        except ValueError as e:
            raise CatalogLoadError(f"Condition {code}: {e}")

    support = _parser.parse_support(code, rule_text, logic_text)
    return Condition(
        code=code,
        stage=stage,
        rule_text=rule_text or "",
        logic_text=logic_text,
        loan_type_support=support,
        **fields,
    )


class CatalogLoader:
    """
    Reads catalog rows from a CSV file into Condition objects.

    The header row and rows without a code are skipped. Every value is
    stripped; optional columns left empty become None.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read_frame(self) -> pd.DataFrame:
        source = str(self.path)
        try:
            return pd.read_csv(
                self.path,
                header=None,
                names=CATALOG_COLUMNS,
                dtype=str,
                keep_default_na=False,
                index_col=False,
                encoding="utf-8-sig",
            )
        except FileNotFoundError:
            raise CatalogLoadError("Catalog file not found", source=source)
        except pd.errors.EmptyDataError:
            raise CatalogLoadError("Catalog file is empty", source=source)
        except (pd.errors.ParserError, UnicodeDecodeError, ValueError) as e:
            raise CatalogLoadError(f"Catalog file could not be parsed: {e}", source=source)

    def _row_to_condition(self, row: Dict[str, str], row_number: int) -> Condition:
        values = {key: _text(value) for key, value in row.items()}
        try:
            return build_condition(
                code=values["code"],
                stage=values["stage"],
                rule_text=values["rules"],
                logic_text=_optional(values["logic_to_apply"]),
                class_tag=values["class"],
                condition_type=values["type"],
                number=values["number"],
                name=values["name"],
                description_template=values["description"],
                editable=values["editable"],
                dynamic_description_template=_optional(values["dynamic_description"]),
                borrower_description_template=_optional(values["borrower_description"]),
                document_provider=values["document_provider"],
                responsibility=values["responsibility"],
                category=values["category"],
                borrower_scope=values["borrower_scope"],
                dynamic_data_tokens=_optional(values["dynamic_data"]),
                data_for_logic=_optional(values["data_for_logic"]),
                byte_filter=_optional(values["byte_filter"]),
            )
        except CatalogLoadError as e:
            raise CatalogLoadError(str(e), source=str(self.path), row=row_number)

    def load(self) -> List[Condition]:
        """
        Read and validate every catalog row.

        Returns:
            Conditions in file order

        Raises:
            CatalogLoadError: If the file is unreadable or holds no conditions,
                a stage is unknown, or a code appears twice
        """
        frame = self._read_frame()
        conditions: List[Condition] = []
        seen: Dict[str, int] = {}

        for index, row in enumerate(frame.to_dict(orient="records")):
            row_number = index + 1
            code = _text(row.get("code"))
            if not code or code == HEADER_CODE:
                continue

            if code in seen:
                raise CatalogLoadError(
                    f"Duplicate condition code {code} (first seen on row {seen[code]})",
                    source=str(self.path),
                    row=row_number,
                )
            seen[code] = row_number
            conditions.append(self._row_to_condition(row, row_number))

        if not conditions:
            raise CatalogLoadError("Catalog contains no conditions", source=str(self.path))

        logger.info(f"Loaded {len(conditions)} conditions from {self.path}")
        return conditions
