"""Liveness probe for load balancers and the Lambda warmer."""

from fastapi import APIRouter, Depends

from ..config import Settings, get_settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    """Report that the process is up. Upstream providers are not contacted."""
    return {
        "status": "healthy",
        "service": settings.service_name,
        "environment": settings.environment,
        "model": settings.llm_model,
    }
