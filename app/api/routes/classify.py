"""
Classification API endpoints.

Main endpoints for wildlife image classification:
- Single image classification with multi-provider failover
- Batch classification of independent images
"""

import logging
from fastapi import APIRouter, HTTPException, Depends

from app.core.config import Settings, get_settings
from app.ml.failover import InvalidInputError
from app.models.schemas import (
    ClassificationRequest,
    ClassificationResponse,
    BatchClassificationRequest,
    BatchClassificationResponse,
    BatchItemResponse,
    ErrorResponse,
)
from app.services.classification_service import (
    WildlifeClassificationService,
    get_classification_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/classify", tags=["Classification"])


@router.post(
    "",
    response_model=ClassificationResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid image"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
    summary="Classify wildlife image",
    description="""
    Identify the species in a wildlife image.

    Providers are tried in priority order; the first provider whose
    confidence meets its own threshold wins. Otherwise the collected
    guesses are combined by weighted ensemble voting, and if every
    provider failed an offline fallback produces a low-confidence guess
    (`isFallback: true`).

    **Image Requirements:**
    - Base64-encoded image (data URL prefix allowed)
    - At most 10MB by default
    """
)
async def classify_image(
    request: ClassificationRequest,
    service: WildlifeClassificationService = Depends(get_classification_service)
) -> ClassificationResponse:
    """Classify a single wildlife image."""
    logger.info(f"Received classification request (filename={request.filename})")

    try:
        result = await service.classify_base64(request.image, filename=request.filename)
    except InvalidInputError as e:
        logger.warning(f"Validation error: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(
        f"Classification complete: {result.label} "
        f"({result.confidence:.2%}) via {result.source}"
    )
    return ClassificationResponse.from_result(result)


@router.post(
    "/batch",
    response_model=BatchClassificationResponse,
    summary="Batch classification",
    description="Classify several images concurrently. Invalid images are reported per item."
)
async def classify_batch(
    request: BatchClassificationRequest,
    service: WildlifeClassificationService = Depends(get_classification_service),
    settings: Settings = Depends(get_settings),
) -> BatchClassificationResponse:
    """Classify multiple images in one request."""
    if len(request.images) > settings.max_batch_size:
        raise HTTPException(
            status_code=400,
            detail=f"Maximum {settings.max_batch_size} images per batch"
        )

    payloads = []
    rejected = {}
    for index, item in enumerate(request.images):
        try:
            payloads.append((index, service.validator.from_base64(item.image, filename=item.filename)))
        except InvalidInputError as e:
            rejected[index] = str(e)

    batch = await service.classify_batch([payload for _, payload in payloads])

    results = [
        BatchItemResponse(index=index, filename=request.images[index].filename, error=error)
        for index, error in rejected.items()
    ]
    for (index, _), item in zip(payloads, batch.items):
        results.append(BatchItemResponse(
            index=index,
            filename=item.filename,
            result=ClassificationResponse.from_result(item.result) if item.result else None,
            error=item.error,
        ))
    results.sort(key=lambda r: r.index)

    summary = batch.summary()
    summary["total_images"] = len(request.images)
    summary["rejected"] = summary["rejected"] + len(rejected)

    return BatchClassificationResponse(results=results, summary=summary)
