"""
Health endpoints.

`/health` answers as long as the process is up; `/health/ready`
reports per-provider breaker state. Readiness degrades (but never
fails) when every provider is excluded, because the emergency fallback
still answers classification requests.
"""

import time
from typing import Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.core.config import get_settings
from app.services.classification_service import (
    WildlifeClassificationService,
    get_classification_service,
)

router = APIRouter(prefix="/health", tags=["Health"])

_started_at: Optional[float] = None


def set_startup_time() -> None:
    """Record process start; called from the application lifespan."""
    global _started_at
    _started_at = time.time()


class HealthResponse(BaseModel):
    status: str
    timestamp: float
    version: str


class ReadinessResponse(HealthResponse):
    """Health plus provider breaker state."""
    providers: Dict[str, Dict]
    available_providers: int
    uptime_seconds: Optional[float] = None


@router.get("", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    return HealthResponse(
        status="healthy",
        timestamp=time.time(),
        version=get_settings().app_version,
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(
    service: WildlifeClassificationService = Depends(get_classification_service)
) -> ReadinessResponse:
    """
    "ready" when at least one provider can be tried, "degraded" when
    every provider is excluded and requests fall through to the
    emergency fallback.
    """
    providers = {
        info["name"]: {
            "status": info["status"],
            "priority": info["priority"],
            "type": info["type"],
        }
        for info in service.get_provider_info()
    }
    available = len(service.get_available_apis())

    return ReadinessResponse(
        status="ready" if available else "degraded",
        timestamp=time.time(),
        version=get_settings().app_version,
        providers=providers,
        available_providers=available,
        uptime_seconds=time.time() - _started_at if _started_at else None,
    )


@router.get("/live")
async def liveness_check() -> dict:
    """Liveness probe; 200 while the process is running."""
    return {"status": "alive"}
