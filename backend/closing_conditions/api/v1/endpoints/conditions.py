"""Catalog endpoints for inspecting and reloading the condition catalog."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from closing_conditions.core.exceptions import CatalogLoadError, CatalogNotLoadedError
from closing_conditions.deps import get_conditions_service
from closing_conditions.models.schemas.condition import (
    CatalogQualityResponse,
    CatalogStatsResponse,
    ConditionResponse,
    ConditionSearchResponse,
    ConditionSummary,
)
from closing_conditions.services.catalog.store import CatalogSnapshot
from closing_conditions.services.conditions_service import ConditionsService

logger = logging.getLogger(__name__)

router = APIRouter()


def _not_loaded(e: CatalogNotLoadedError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=str(e),
    )


def _stats_response(snapshot: CatalogSnapshot) -> CatalogStatsResponse:
    stats = snapshot.stats()
    return CatalogStatsResponse(
        version=snapshot.version,
        source=snapshot.source,
        loaded_at=snapshot.loaded_at,
        total=stats.total,
        by_stage=stats.by_stage,
        by_type=stats.by_type,
        by_class=stats.by_class,
        by_loan_type=stats.by_loan_type,
    )


@router.get(
    "/stats",
    response_model=CatalogStatsResponse,
    summary="Catalog statistics",
)
def get_stats(
    service: Annotated[ConditionsService, Depends(get_conditions_service)],
) -> CatalogStatsResponse:
    """
    Get condition counts by stage, type, class, and supported loan type.
    """
    try:
        return _stats_response(service.store.snapshot)
    except CatalogNotLoadedError as e:
        raise _not_loaded(e)


@router.get(
    "/quality",
    response_model=CatalogQualityResponse,
    summary="Catalog classification gaps",
    description="List conditions whose rule text no evaluator recognizes; they can never apply",
)
def get_quality(
    service: Annotated[ConditionsService, Depends(get_conditions_service)],
) -> CatalogQualityResponse:
    try:
        gaps = service.classification_gaps()
        total = len(service.store.snapshot)
    except CatalogNotLoadedError as e:
        raise _not_loaded(e)

    return CatalogQualityResponse(
        total_conditions=total,
        unclassified_count=len(gaps),
        unclassified_codes=gaps,
    )


@router.get(
    "/search",
    response_model=ConditionSearchResponse,
    summary="Search conditions",
)
def search_conditions(
    service: Annotated[ConditionsService, Depends(get_conditions_service)],
    q: str = Query(..., min_length=1, description="Text to find in code, name, description, or rules"),
) -> ConditionSearchResponse:
    try:
        conditions = service.search(q)
    except CatalogNotLoadedError as e:
        raise _not_loaded(e)

    return ConditionSearchResponse(
        query=q,
        total=len(conditions),
        conditions=[ConditionSummary.model_validate(c) for c in conditions],
    )


@router.post(
    "/reload",
    response_model=CatalogStatsResponse,
    summary="Reload the catalog",
    description="Reload the catalog from the configured CSV; on failure the current catalog stays active",
)
def reload_catalog(
    service: Annotated[ConditionsService, Depends(get_conditions_service)],
) -> CatalogStatsResponse:
    try:
        snapshot = service.reload()
        return _stats_response(snapshot)
    except CatalogLoadError as e:
        logger.error(f"Catalog reload failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to reload catalog: {str(e)}",
        )
    except Exception as e:
        logger.error(f"Error reloading catalog: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to reload catalog",
        )


@router.get(
    "/{code}",
    response_model=ConditionResponse,
    summary="Get a condition by code",
)
def get_condition(
    code: str,
    service: Annotated[ConditionsService, Depends(get_conditions_service)],
) -> ConditionResponse:
    try:
        condition = service.get_condition(code)
    except CatalogNotLoadedError as e:
        raise _not_loaded(e)

    if condition is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Condition {code} not found",
        )
    return ConditionResponse.from_condition(condition)
