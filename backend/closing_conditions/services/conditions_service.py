"""Conditions service coordinating the catalog store and the evaluation pipeline."""

import logging
from pathlib import Path
from typing import List, Optional, Union

from closing_conditions.core.policies import DEFAULT_POLICY, PlaceholderPolicy
from closing_conditions.models.domain.condition import Condition
from closing_conditions.models.domain.evaluation import EvaluationResult, LoanTypeFilterResult
from closing_conditions.models.domain.loan import LoanFacts
from closing_conditions.services.catalog.store import CatalogSnapshot, CatalogStats, CatalogStore
from closing_conditions.services.orchestrator import Clock, ConditionsOrchestrator, utc_now
from closing_conditions.services.rule_engine.dynamic_fields import DynamicFieldProcessor
from closing_conditions.services.rule_engine.engine import RuleEngine

logger = logging.getLogger(__name__)


class ConditionsService:
    """
    Service for loading the catalog and evaluating loans against it.

    This service:
    - Owns the catalog store and its configured CSV path
    - Runs loans through the evaluation orchestrator
    - Validates loan facts before evaluation
    - Reports catalog statistics and classification gaps
    """

    def __init__(
        self,
        csv_path: Union[str, Path],
        policy: PlaceholderPolicy = DEFAULT_POLICY,
        clock: Clock = utc_now,
        store: Optional[CatalogStore] = None,
    ):
        """
        Initialize the conditions service.

        Args:
            csv_path: Catalog CSV export to load and reload from
            policy: Placeholder business defaults
            clock: Source of the evaluation timestamp
            store: Catalog store, a fresh empty one by default
        """
        self.csv_path = Path(csv_path)
        self.store = store or CatalogStore()
        self.rule_engine = RuleEngine(policy=policy)
        self.orchestrator = ConditionsOrchestrator(
            rule_engine=self.rule_engine,
            field_processor=DynamicFieldProcessor(policy=policy),
            clock=clock,
        )

    @property
    def is_loaded(self) -> bool:
        return self.store.is_loaded

    def initialize(self) -> CatalogSnapshot:
        """
        Load the catalog from the configured path.

        Raises:
            CatalogLoadError: If the catalog cannot be loaded
        """
        logger.info(f"Loading condition catalog from {self.csv_path}")
        return self.store.load(self.csv_path)

    def reload(self) -> CatalogSnapshot:
        """
        Reload the catalog; on failure the previous snapshot stays current.

        Raises:
            CatalogLoadError: If the catalog cannot be loaded
        """
        logger.info(f"Reloading condition catalog from {self.csv_path}")
        return self.store.load(self.csv_path)

    def evaluate_loan(self, loan: LoanFacts) -> EvaluationResult:
        """
        Evaluate a loan against the current catalog.

        Raises:
            CatalogNotLoadedError: If no catalog has been loaded
            InvalidLoanFactsError: If the facts are not LoanFacts
        """
        return self.orchestrator.evaluate(self.store.snapshot, loan)

    def filter_loan(self, loan: LoanFacts) -> LoanTypeFilterResult:
        return self.orchestrator.filter_by_loan_type(self.store.snapshot, loan)

    def validate_loan_facts(self, loan: LoanFacts) -> List[str]:
        """
        Check the facts evaluation depends on.

        Returns:
            Validation error messages, empty when the facts are usable
        """
        errors: List[str] = []

        if not loan.mortgage_type:
            errors.append("Mortgage type is required")
        if not loan.loan_purpose:
            errors.append("Loan purpose is required")
        if loan.loan_amount is not None and loan.loan_amount <= 0:
            errors.append("Loan amount must be greater than 0")
        if loan.ltv is not None and not (0 < loan.ltv <= 100):
            errors.append("LTV must be greater than 0 and at most 100")

        return errors

    def stats(self) -> CatalogStats:
        return self.store.snapshot.stats()

    def search(self, query: str) -> List[Condition]:
        return self.store.snapshot.search(query)

    def get_condition(self, code: str) -> Optional[Condition]:
        return self.store.snapshot.get(code)

    def classification_gaps(self) -> List[str]:
        """Codes in the current catalog whose text no rule tier recognizes."""
        snapshot = self.store.snapshot
        gaps = self.rule_engine.classification_gaps(snapshot.conditions)
        if gaps:
            logger.warning(f"{len(gaps)} of {len(snapshot)} conditions have no recognized rule")
        return gaps
