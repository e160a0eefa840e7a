"""Health check route."""

from fastapi import APIRouter

from wine_value.web.dependencies import ServiceDep

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health(service: ServiceDep) -> dict:
    """Service status, remaining price API calls and cache size."""
    return {
        "status": "ok",
        "remaining_api_calls": service.remaining_api_calls(),
        "cache_size": service.cache_size(),
    }
