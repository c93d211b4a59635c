# Services module
from app.services.classification_service import (
    BatchItemResult,
    BatchResult,
    WildlifeClassificationService,
    get_classification_service,
)

__all__ = [
    "BatchItemResult",
    "BatchResult",
    "WildlifeClassificationService",
    "get_classification_service",
]
