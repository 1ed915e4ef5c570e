from datetime import datetime, timezone
from decimal import Decimal

import pandas as pd
import pytest

from closing_conditions.core.enums import Stage
from closing_conditions.models.domain.loan import LoanFacts
from closing_conditions.services.catalog.loader import CATALOG_COLUMNS, build_condition
from closing_conditions.services.conditions_service import ConditionsService
from closing_conditions.services.orchestrator import ConditionsOrchestrator

FIXED_NOW = datetime(2025, 3, 14, 15, 30, tzinfo=timezone.utc)

HEADER_ROW = [
    "Condition Code", "Stage", "Rules", "Class", "Type", "Number", "Name", "Description",
    "Editable in Byte", "Dynamic Description", "Borrower Description", "Document Provider",
    "Responsibility", "Category", "Borrower Scope", "Dynamic Data", "Data for Logic",
    "Logic to Apply", "Byte Filter",
]


def make_loan(**overrides) -> LoanFacts:
    """A first-lien conventional purchase by a US citizen, with overrides."""
    values = {
        "loan_id": "LN-1001",
        "mortgage_type": "Conv",
        "loan_purpose": "Purchase",
        "lien_position": 1,
        "loan_amount": Decimal("300000"),
        "ltv": Decimal("75"),
        "citizenship": "US Citizen",
    }
    values.update(overrides)
    return LoanFacts(**values)


def sample_catalog():
    return [
        build_condition(
            "APP100",
            Stage.PTD,
            rule_text="Apply when citizenship is anything other than US Citizen",
            class_tag="APP",
            name="Citizenship documentation",
            description_template="Provide evidence of lawful residency",
            document_provider="BWR",
            category="Borrower",
            condition_type="APP",
        ),
        build_condition(
            "APP102",
            Stage.PTD,
            rule_text="Conventional loans with LTV greater than 80%",
            class_tag="APP",
            name="Mortgage insurance",
            description_template="MI of ______ % is required",
            document_provider="INT",
            category="Loan",
            condition_type="APP",
        ),
        build_condition(
            "ASSET507",
            Stage.PTF,
            rule_text="Apply when EMD amount is > $0",
            class_tag="ASSET",
            name="Earnest money",
            description_template="Verify <Earnest Money Deposit> earnest money deposit",
            document_provider="BWR",
            category="Loan",
            condition_type="ASSET",
        ),
        build_condition(
            "CLSNG827",
            Stage.PTD,
            rule_text="VA IRRRL loans",
            logic_text='$RefiTypeVA == "IRRR"',
            class_tag="CLSNG",
            name="VA IRRRL net tangible benefit",
            description_template="Provide the net tangible benefit statement",
            document_provider="INT",
            category="Loan",
            condition_type="CLSNG",
        ),
        build_condition(
            "CRED305",
            Stage.PTD,
            rule_text="BK in the last 7 years and no AUS approval on Govy loans",
            class_tag="CRED",
            name="Bankruptcy letter",
            description_template="Provide bankruptcy discharge papers",
            document_provider="BWR",
            category="Borrower",
            condition_type="CRED",
        ),
        build_condition(
            "INC999",
            Stage.PTF,
            rule_text="Borrower must provide a notarized unicorn statement",
            class_tag="INC",
            name="Unclassifiable",
            description_template="Unicorn statement",
            document_provider="BWR",
            category="Borrower",
            condition_type="INC",
        ),
        build_condition(
            "PROP601",
            Stage.POST,
            rule_text="Hazard insurance required",
            class_tag="PROP",
            name="Hazard insurance",
            description_template="Provide hazard insurance declarations page",
            document_provider="BWR",
            category="Loan",
            condition_type="PROP",
        ),
        build_condition(
            "USDA700",
            Stage.PTD,
            rule_text="USDA Only - guarantee fee required on all loans",
            class_tag="CLSNG",
            name="USDA guarantee fee",
            description_template="Collect the USDA guarantee fee",
            document_provider="INT",
            category="Loan",
            condition_type="CLSNG",
        ),
    ]


def catalog_row(code, stage, rules="", logic="", **columns) -> list:
    row = {name: "" for name in CATALOG_COLUMNS}
    row.update(code=code, stage=stage, rules=rules, logic_to_apply=logic, **columns)
    return [row[name] for name in CATALOG_COLUMNS]


def write_catalog_csv(path, rows, header=True):
    data = ([HEADER_ROW] if header else []) + list(rows)
    pd.DataFrame(data).to_csv(path, index=False, header=False)
    return path


@pytest.fixture
def catalog():
    return sample_catalog()


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def orchestrator(fixed_clock):
    return ConditionsOrchestrator(clock=fixed_clock)


@pytest.fixture
def catalog_csv(tmp_path):
    rows = [
        catalog_row(
            "APP100",
            "PTD",
            rules="Apply when citizenship is anything other than US Citizen",
            name="Citizenship documentation",
            description="Provide evidence of lawful residency",
            type="APP",
            **{"class": "APP"},
        ),
        catalog_row(
            "PROP601",
            "POST",
            rules="Hazard insurance required",
            name="Hazard insurance",
            description="Provide hazard insurance declarations page",
            type="PROP",
            **{"class": "PROP"},
        ),
        catalog_row(
            "USDA700",
            "ptd",
            rules="USDA Only - guarantee fee required on all loans",
            name="USDA guarantee fee",
            description="Collect the USDA guarantee fee",
            dynamic_data="<ReqMIPercent>\n<MI Type>",
            type="CLSNG",
            **{"class": "CLSNG"},
        ),
        catalog_row("", "", rules="blank spacer row"),
    ]
    return write_catalog_csv(tmp_path / "conditions.csv", rows)


@pytest.fixture
def service(catalog_csv, fixed_clock):
    service = ConditionsService(csv_path=catalog_csv, clock=fixed_clock)
    service.store.replace(sample_catalog(), source="fixture")
    return service


@pytest.fixture
def loan_factory():
    return make_loan


@pytest.fixture
def row_factory():
    return catalog_row


@pytest.fixture
def csv_writer(tmp_path):
    def write(rows, name="conditions.csv", header=True):
        return write_catalog_csv(tmp_path / name, rows, header=header)

    return write
