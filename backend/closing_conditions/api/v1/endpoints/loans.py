"""Loan endpoints for evaluating loan facts against the condition catalog."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from closing_conditions.core.exceptions import CatalogNotLoadedError
from closing_conditions.deps import get_conditions_service
from closing_conditions.models.domain.loan import LoanFacts
from closing_conditions.models.schemas.evaluation import (
    EvaluationResponse,
    FilteredConditionResponse,
    LoanTypeFilterResponse,
    LoanValidationResponse,
)
from closing_conditions.services.conditions_service import ConditionsService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/evaluate",
    response_model=EvaluationResponse,
    summary="Evaluate a loan",
    description="Determine which closing conditions apply to a loan, grouped by stage",
)
def evaluate_loan(
    loan: LoanFacts,
    service: Annotated[ConditionsService, Depends(get_conditions_service)],
) -> EvaluationResponse:
    """
    Evaluate loan facts against the current catalog.

    The catalog is first narrowed to conditions supporting the loan's type,
    then each remaining condition's rules are evaluated. Applicable
    conditions come back with loan-specific descriptions, grouped by stage
    and sorted by code.
    """
    try:
        result = service.evaluate_loan(loan)
        return EvaluationResponse.model_validate(result)
    except CatalogNotLoadedError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )
    except ValueError as e:
        logger.error(f"Validation error evaluating loan: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except Exception as e:
        logger.error(f"Error evaluating loan: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to evaluate loan",
        )


@router.post(
    "/filter",
    response_model=LoanTypeFilterResponse,
    summary="Filter the catalog by loan type",
    description="Show which conditions the loan-type filter keeps and drops, without evaluating rules",
)
def filter_loan(
    loan: LoanFacts,
    service: Annotated[ConditionsService, Depends(get_conditions_service)],
) -> LoanTypeFilterResponse:
    try:
        result = service.filter_loan(loan)
    except CatalogNotLoadedError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )
    except Exception as e:
        logger.error(f"Error filtering loan: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to filter conditions",
        )

    return LoanTypeFilterResponse(
        loan_type=result.loan_type,
        summary=result.summary(),
        applicable_count=len(result.applicable),
        filtered_count=len(result.filtered),
        applicable=[condition.code for condition in result.applicable],
        filtered=[
            FilteredConditionResponse(
                code=condition.code,
                supported_loan_types=list(condition.supported_loan_types),
                reason=result.reasons[condition.code],
            )
            for condition in result.filtered
        ],
    )


@router.post(
    "/validate",
    response_model=LoanValidationResponse,
    summary="Validate loan facts",
    description="Check that the facts evaluation depends on are present and in range",
)
def validate_loan(
    loan: LoanFacts,
    service: Annotated[ConditionsService, Depends(get_conditions_service)],
) -> LoanValidationResponse:
    errors = service.validate_loan_facts(loan)
    if errors:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=errors,
        )
    return LoanValidationResponse(valid=True)
