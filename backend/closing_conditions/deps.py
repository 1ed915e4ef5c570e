"""Dependency injection for FastAPI endpoints."""

from fastapi import HTTPException, Request, status

from closing_conditions.services.conditions_service import ConditionsService

__all__ = ["get_conditions_service"]


def get_conditions_service(request: Request) -> ConditionsService:
    """
    Get the conditions service created at application startup.

    Raises:
        HTTPException: 503 if the service has not been initialized
    """
    service = getattr(request.app.state, "conditions_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Conditions service is not initialized",
        )
    return service
