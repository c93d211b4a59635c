# Data models module
from app.models.schemas import (
    ClassificationRequest,
    ClassificationResponse,
    BatchClassificationRequest,
    BatchClassificationResponse,
    ProviderMetricsResponse,
    ProviderListResponse,
    ErrorResponse,
)
from app.models.enums import ConfidenceLevel, ProviderStatus

__all__ = [
    "ClassificationRequest",
    "ClassificationResponse",
    "BatchClassificationRequest",
    "BatchClassificationResponse",
    "ProviderMetricsResponse",
    "ProviderListResponse",
    "ErrorResponse",
    "ConfidenceLevel",
    "ProviderStatus",
]
