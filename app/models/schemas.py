"""
Pydantic schemas for API request/response validation.

These schemas define the contract between the API and the presentation
layer. Field names on the wire are camelCase (`scientificName`,
`successRate`, ...) to match what the UI and research export consume.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.ml.failover import FinalClassification
from app.models.enums import ConfidenceLevel, ProviderStatus


class CamelModel(BaseModel):
    """Base model accepting either field names or camelCase aliases."""
    model_config = ConfigDict(populate_by_name=True)


# === Request Schemas ===

class ClassificationRequest(CamelModel):
    """
    Request schema for wildlife image classification.

    Attributes:
        image: Base64-encoded image data (JPEG, PNG, ...)
        filename: Original filename; used by the offline fallback heuristics
    """
    image: str = Field(
        ...,
        description="Base64-encoded image data, optionally as a data URL",
        min_length=1,
    )
    filename: Optional[str] = Field(
        default=None,
        description="Original filename of the upload",
        max_length=255,
    )


class BatchClassificationRequest(CamelModel):
    """Request for batch classification."""
    images: List[ClassificationRequest] = Field(..., min_length=1)


# === Response Schemas ===

class TaxonomyInfo(CamelModel):
    """Seven-rank taxonomy of the identified species."""
    kingdom: Optional[str] = None
    phylum: Optional[str] = None
    class_: Optional[str] = Field(default=None, alias="class")
    order: Optional[str] = None
    family: Optional[str] = None
    genus: Optional[str] = None
    species: Optional[str] = None


class ClassificationResponse(CamelModel):
    """
    Final classification.

    `source` is the provider that produced the result, or "ensemble" /
    "emergency-fallback"; `isFallback` lets the UI warn that the result
    is only a heuristic guess.
    """
    label: str = Field(..., min_length=1, description="Species label")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Confidence score (0-1)")
    scientific_name: Optional[str] = Field(default=None, alias="scientificName")
    taxonomy: Optional[TaxonomyInfo] = None
    source: str = Field(..., description="Provider name, 'ensemble' or 'emergency-fallback'")
    is_fallback: bool = Field(default=False, alias="isFallback")
    confidence_level: ConfidenceLevel = Field(..., alias="confidenceLevel")
    attempted_providers: List[str] = Field(default_factory=list, alias="attemptedProviders")

    @classmethod
    def from_result(cls, result: FinalClassification) -> "ClassificationResponse":
        return cls(
            label=result.label,
            confidence=result.confidence,
            scientific_name=result.scientific_name,
            taxonomy=TaxonomyInfo.model_validate(result.taxonomy) if result.taxonomy else None,
            source=result.source,
            is_fallback=result.is_fallback,
            confidence_level=ConfidenceLevel.from_score(result.confidence),
            attempted_providers=list(result.attempted_providers),
        )


class BatchItemResponse(CamelModel):
    """Result for one image in a batch."""
    index: int
    filename: Optional[str] = None
    result: Optional[ClassificationResponse] = None
    error: Optional[str] = None


class BatchClassificationResponse(CamelModel):
    """Response for batch classification."""
    results: List[BatchItemResponse]
    summary: Dict[str, float]


class ProviderMetricsResponse(CamelModel):
    """Metrics for one provider, as shown in the technical panel."""
    success_rate: float = Field(..., ge=0.0, le=100.0, alias="successRate")
    calls: int = Field(..., ge=0)
    avg_confidence: float = Field(..., ge=0.0, le=1.0, alias="avgConfidence")
    last_used: Optional[datetime] = Field(default=None, alias="lastUsed")
    status: ProviderStatus

    @classmethod
    def from_summary(cls, entry: Dict[str, Any]) -> "ProviderMetricsResponse":
        last_used = entry.get("lastUsed")
        return cls(
            success_rate=entry["successRate"],
            calls=entry["calls"],
            avg_confidence=entry["avgConfidence"],
            last_used=(
                datetime.fromtimestamp(last_used, tz=timezone.utc)
                if last_used is not None else None
            ),
            status=ProviderStatus(entry["status"]),
        )


class ProviderListResponse(CamelModel):
    """List of provider names."""
    providers: List[str]


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[dict] = Field(default=None, description="Additional error details")
