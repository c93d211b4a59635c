"""
Wildlife Classification API

FastAPI application that identifies wildlife species by coordinating
several independent classification providers with failover, circuit
breaking and ensemble voting.

Run locally:
    uvicorn app.main:app --reload

Configuration comes from WILDLIFE_CLASSIFIER_* environment variables
(see app/core/config.py).
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.api.routes import classify_router, health_router, providers_router
from app.api.routes.health import set_startup_time
from app.ml.failover import InvalidInputError
from app.models.schemas import ErrorResponse
from app.services.classification_service import get_classification_service

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build the classification service before serving traffic and
    release provider clients on shutdown.

    A ConfigurationError from the provider setup propagates and aborts
    startup.
    """
    set_startup_time()

    service = get_classification_service()
    logger.info(
        f"{settings.app_name} {settings.app_version} serving with providers: "
        f"{', '.join(service.get_available_apis()) or 'none (fallback only)'}"
    )

    yield

    logger.info("Closing provider clients")
    await service.close()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
## Wildlife Classification API

Identifies the species in an uploaded wildlife photo.

### How classification works

1. Providers (Google Vision, AWS Rekognition, iNaturalist, local model)
   are tried one at a time in priority order
2. The first provider that meets its own confidence threshold wins
3. Otherwise the collected guesses are combined by weighted ensemble voting
4. If every provider fails, an offline fallback returns a low-confidence
   guess flagged with `isFallback: true`

A provider that fails is skipped for a cooldown period (5 minutes by default).

### API Endpoints

- `POST /api/v1/classify` - Classify one image
- `POST /api/v1/classify/batch` - Classify several images
- `GET /api/v1/providers/metrics` - Per-provider metrics
- `GET /api/v1/providers/available` - Providers that will be tried
- `GET /api/v1/providers/failed` - Providers currently excluded
- `POST /api/v1/providers/reset` - Make all providers available again
- `GET /api/v1/health` - Health check
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url=None,
)

# The browser UI is served from a different origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    """Reject unusable images before any provider is contacted."""
    body = ErrorResponse(error="invalid_input", message=str(exc))
    return JSONResponse(status_code=400, content=body.model_dump())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Last-resort 500; provider failures never reach this point."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    body = ErrorResponse(
        error="internal_server_error",
        message="Classification service error",
        details={"exception": repr(exc)} if settings.debug else None,
    )
    return JSONResponse(status_code=500, content=body.model_dump())


app.include_router(health_router, prefix=settings.api_prefix)
app.include_router(classify_router, prefix=settings.api_prefix)
app.include_router(providers_router, prefix=settings.api_prefix)


@app.get("/", tags=["Root"])
async def index() -> dict:
    """Service name, version and where to find things."""
    prefix = settings.api_prefix
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "endpoints": {
            "classify": f"{prefix}/classify",
            "batch": f"{prefix}/classify/batch",
            "providers": f"{prefix}/providers",
            "metrics": f"{prefix}/providers/metrics",
            "health": f"{prefix}/health",
        },
    }


if __name__ == "__main__":
    import uvicorn

    # reload and multiple workers are mutually exclusive in uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=settings.debug,
        workers=None if settings.debug else settings.workers,
    )
