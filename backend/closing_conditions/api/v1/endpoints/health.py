"""Health check endpoint."""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> dict:
    """
    Health check endpoint.

    Reports whether the API is running and whether a condition catalog is loaded.

    Returns:
        dict: Health status with catalog status
    """
    service = getattr(request.app.state, "conditions_service", None)
    snapshot = service.store.snapshot if service is not None and service.is_loaded else None

    return {
        "status": "healthy" if snapshot is not None else "degraded",
        "api": "healthy",
        "catalog_loaded": snapshot is not None,
        "conditions_count": len(snapshot) if snapshot is not None else 0,
        "catalog_version": snapshot.version if snapshot is not None else None,
    }
