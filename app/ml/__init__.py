# ML module initialization
from app.ml.image_validation import ImageValidator
from app.ml.failover import FailoverOrchestrator, ImagePayload

__all__ = [
    "ImageValidator",
    "FailoverOrchestrator",
    "ImagePayload",
]
