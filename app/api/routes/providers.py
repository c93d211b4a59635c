"""
Provider status and operator control endpoints.

Feeds the technical/observability panel:
- Per-provider metrics
- Available / excluded provider lists
- Manual reset of excluded providers
"""

import logging
from typing import Dict, List

from fastapi import APIRouter, Depends

from app.models.schemas import ProviderListResponse, ProviderMetricsResponse
from app.services.classification_service import (
    WildlifeClassificationService,
    get_classification_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/providers", tags=["Providers"])


@router.get("", summary="Configured providers")
async def list_providers(
    service: WildlifeClassificationService = Depends(get_classification_service)
) -> List[Dict]:
    """Priority, thresholds, weights and status of every configured provider."""
    return service.get_provider_info()


@router.get(
    "/metrics",
    response_model=Dict[str, ProviderMetricsResponse],
    summary="Provider metrics",
)
async def get_metrics(
    service: WildlifeClassificationService = Depends(get_classification_service)
) -> Dict[str, ProviderMetricsResponse]:
    """Call counts, success rate and smoothed confidence per provider."""
    return {
        name: ProviderMetricsResponse.from_summary(entry)
        for name, entry in service.get_metrics().items()
    }


@router.get("/available", response_model=ProviderListResponse)
async def get_available_providers(
    service: WildlifeClassificationService = Depends(get_classification_service)
) -> ProviderListResponse:
    """Providers that will be tried on the next request."""
    return ProviderListResponse(providers=service.get_available_apis())


@router.get("/failed", response_model=ProviderListResponse)
async def get_failed_providers(
    service: WildlifeClassificationService = Depends(get_classification_service)
) -> ProviderListResponse:
    """Providers currently excluded after a failure."""
    return ProviderListResponse(providers=service.get_failed_apis())


@router.post("/reset", response_model=ProviderListResponse)
async def reset_failed_providers(
    service: WildlifeClassificationService = Depends(get_classification_service)
) -> ProviderListResponse:
    """Clear all exclusions; returns the now-available providers."""
    logger.info("Operator reset of failed providers")
    service.reset_failed_apis()
    return ProviderListResponse(providers=service.get_available_apis())
