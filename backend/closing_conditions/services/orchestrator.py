"""Evaluation pipeline from catalog and loan facts to stage-grouped conditions."""

import logging
from datetime import date, datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence, Union

from closing_conditions.core.enums import STAGE_ORDER, Stage
from closing_conditions.core.exceptions import InvalidLoanFactsError
from closing_conditions.core.policies import DEFAULT_POLICY, PlaceholderPolicy
from closing_conditions.models.domain.condition import Condition
from closing_conditions.models.domain.evaluation import (
    ApplicableCondition,
    EvaluationResult,
    LoanTypeFilterResult,
)
from closing_conditions.models.domain.loan import LoanFacts
from closing_conditions.services.catalog.store import CatalogSnapshot
from closing_conditions.services.rule_engine.dynamic_fields import DynamicFieldProcessor
from closing_conditions.services.rule_engine.engine import RuleEngine
from closing_conditions.services.rule_engine.loan_types import LoanTypeFilter

logger = logging.getLogger(__name__)

Catalog = Union[CatalogSnapshot, Sequence[Condition]]
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ConditionsOrchestrator:
    """
    Runs one loan through filter, evaluation, rendering, and grouping.

    Pure over the catalog, the loan facts, and the injected clock: the same
    inputs at the same clock reading give an identical result.
    """

    def __init__(
        self,
        rule_engine: Optional[RuleEngine] = None,
        field_processor: Optional[DynamicFieldProcessor] = None,
        loan_type_filter: Optional[LoanTypeFilter] = None,
        clock: Clock = utc_now,
        policy: PlaceholderPolicy = DEFAULT_POLICY,
    ):
        self.rule_engine = rule_engine or RuleEngine(policy=policy)
        self.field_processor = field_processor or DynamicFieldProcessor(policy=policy)
        self.loan_type_filter = loan_type_filter or LoanTypeFilter()
        self.clock = clock

    @staticmethod
    def _conditions(catalog: Catalog) -> Sequence[Condition]:
        if isinstance(catalog, CatalogSnapshot):
            return catalog.conditions
        return catalog

    @staticmethod
    def _require_facts(loan: object) -> LoanFacts:
        if not isinstance(loan, LoanFacts):
            raise InvalidLoanFactsError(
                f"Loan facts must be LoanFacts, got {type(loan).__name__}"
            )
        return loan

    def filter_by_loan_type(self, catalog: Catalog, loan: LoanFacts) -> LoanTypeFilterResult:
        """Split the catalog by loan-type compatibility without evaluating rules."""
        loan = self._require_facts(loan)
        return self.loan_type_filter.filter(self._conditions(catalog), loan)

    def evaluate(self, catalog: Catalog, loan: LoanFacts) -> EvaluationResult:
        """
        Determine which catalog conditions apply to a loan.

        Args:
            catalog: Catalog snapshot or sequence of conditions
            loan: Normalized loan facts

        Returns:
            EvaluationResult with applicable conditions grouped by stage,
            each stage sorted by code

        Raises:
            InvalidLoanFactsError: If loan is not a LoanFacts instance
        """
        loan = self._require_facts(loan)
        now = self.clock()
        as_of = now.date()

        filtered = self.loan_type_filter.filter(self._conditions(catalog), loan)
        buckets: Dict[Stage, List[ApplicableCondition]] = {stage: [] for stage in STAGE_ORDER}

        for condition in filtered.applicable:
            if not self.rule_engine.evaluate(loan, condition):
                continue

            applicable = self._build_applicable(condition, loan, as_of)
            if applicable is not None:
                buckets[condition.stage].append(applicable)

        for bucket in buckets.values():
            bucket.sort(key=lambda item: item.code)

        result = EvaluationResult(
            loan_id=loan.loan_id,
            evaluation_date=now.isoformat(),
            loan_type=filtered.loan_type,
            conditions=buckets,
            conditions_evaluated=len(filtered.applicable),
            conditions_filtered=len(filtered.filtered),
        )
        logger.info(
            f"Evaluated loan {loan.loan_id or '<unidentified>'} ({result.loan_type.value}): "
            f"{result.total_conditions} applicable of {result.conditions_evaluated} evaluated, "
            f"{result.conditions_filtered} filtered by loan type"
        )
        return result

    def _build_applicable(
        self, condition: Condition, loan: LoanFacts, as_of: date
    ) -> Optional[ApplicableCondition]:
        # Rendering failures are isolated like evaluation failures
        try:
            token_map = self.field_processor.compute_token_map(condition, loan)
            return ApplicableCondition(
                code=condition.code,
                class_tag=condition.class_tag,
                description=self.field_processor.render_description(condition, loan, as_of),
                borrower_description=self.field_processor.render_borrower_description(
                    condition, loan, as_of
                ),
                document_provider=condition.document_provider,
                category=condition.category,
                reason_applied=self.field_processor.reason_applied(condition, loan),
                dynamic_fields=token_map or None,
            )
        except Exception as e:
            logger.error(f"Error rendering condition {condition.code}: {e}", exc_info=True)
            return None
