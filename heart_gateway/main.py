"""
Heart Health Classification API

Gateway between health-risk classification clients and the external
inference service.

This API provides:
- Classifier whitelist discovery
- Single, batch and model-comparison predictions relayed upstream
- Model metadata passthrough
- Uniform error envelopes for validation and upstream failures
"""

import time
from contextlib import asynccontextmanager
from typing import Any
from uuid import uuid4

from fastapi import Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from heart_gateway.config.config import Settings, get_settings
from heart_gateway.config.logging_config import configure_logging, get_logger, log_request_context
from heart_gateway.models.models import (
    BatchPredictionResponse,
    ClassifiersResponse,
    CompareModelsResponse,
    ErrorResponse,
    HealthResponse,
    HealthStatus,
    PredictionResponse,
)
from heart_gateway.services.classifier_registry import ClassifierRegistry, build_registry
from heart_gateway.services.errors import GatewayError, GatewayErrorKind
from heart_gateway.services.inference_client import InferenceClient
from heart_gateway.services.relay_service import RelayService

logger = get_logger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Resource-Policy": "same-origin",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Logs the configuration on startup and closes the shared inference
    client on shutdown.
    """
    settings: Settings = app.state.settings
    registry: ClassifierRegistry = app.state.registry

    logger.info(
        "Application starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        inference_service_url=settings.inference_base_url,
        config=settings.get_safe_config_dict(),
    )
    for classifier in registry.classifier_ids:
        logger.info(
            "Classifier available",
            classifier=classifier,
            models=list(registry.models_for(classifier)),
        )

    yield

    await app.state.inference_client.aclose()
    logger.info("Application shutting down")


def create_app(
    settings: Settings | None = None,
    registry: ClassifierRegistry | None = None,
    inference_client: InferenceClient | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Optional settings override for testing.
        registry: Optional classifier whitelist; defaults to build_registry().
        inference_client: Optional upstream client, e.g. one with a mock transport.

    Returns:
        Configured FastAPI application.
    """
    settings = settings or get_settings()
    configure_logging(settings)
    registry = registry or build_registry()
    inference_client = inference_client or InferenceClient(settings)

    app = FastAPI(
        title=settings.app_name,
        description=__doc__,
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.state.settings = settings
    app.state.registry = registry
    app.state.inference_client = inference_client
    app.state.relay_service = RelayService(registry, inference_client)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests with timing and context."""
        request_id = str(uuid4())
        request.state.request_id = request_id
        start_time = time.perf_counter()

        log_request_context(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            client_host=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.exception("Unhandled exception", error=str(exc))
            response = _error_response(request, 500, GatewayErrorKind.INTERNAL, "An unexpected error occurred")

        processing_time = int((time.perf_counter() - start_time) * 1000)
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Processing-Time-Ms"] = str(processing_time)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)

        logger.info(
            "Request completed",
            status_code=response.status_code,
            processing_time_ms=processing_time,
        )

        return response

    register_exception_handlers(app)
    register_routes(app)

    return app


def _error_response(request: Request, status_code: int, kind: GatewayErrorKind, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=message,
            kind=kind,
            request_id=getattr(request.state, "request_id", None),
        ).model_dump(mode="json"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Map every failure onto the shared error envelope."""

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        """Handle relay failures raised by the services."""
        return _error_response(request, exc.status_code, exc.kind, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Malformed request bodies are client errors."""
        logger.warning("Request validation failed", errors=exc.errors())
        return _error_response(request, 400, GatewayErrorKind.VALIDATION, "Invalid request body")

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle routing and framework HTTP errors."""
        if exc.status_code == 404:
            message = "Endpoint not found"
        elif exc.status_code == 405:
            message = "Method not allowed"
        else:
            message = str(exc.detail)
        return _error_response(request, exc.status_code, GatewayErrorKind.VALIDATION, message)


def get_registry(request: Request) -> ClassifierRegistry:
    return request.app.state.registry


def get_relay_service(request: Request) -> RelayService:
    return request.app.state.relay_service


def register_routes(app: FastAPI) -> None:
    """Register all API routes."""

    @app.get("/", tags=["Root"])
    async def root(request: Request):
        """Root endpoint with API information."""
        settings: Settings = request.app.state.settings
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "status": "operational",
            "health_check": "/health",
            "docs": "/docs" if settings.debug else "disabled",
        }

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check(request: Request) -> HealthResponse:
        """Liveness check for monitoring."""
        settings: Settings = request.app.state.settings
        return HealthResponse(
            status=HealthStatus.HEALTHY,
            service=settings.app_name,
            version=settings.app_version,
            environment=settings.environment,
        )

    @app.get("/api/classifiers", response_model=ClassifiersResponse, tags=["Classifiers"])
    async def list_classifiers(registry: ClassifierRegistry = Depends(get_registry)) -> ClassifiersResponse:
        """Get the classifier whitelist and the models valid for each."""
        classifiers = registry.to_dict()
        return ClassifiersResponse(classifiers=classifiers, count=len(classifiers))

    @app.post("/api/predict/{classifier}", response_model=PredictionResponse, tags=["Predictions"])
    async def predict(
        classifier: str,
        model: str | None = None,
        record: Any = Body(default=None),
        relay: RelayService = Depends(get_relay_service),
    ) -> PredictionResponse:
        """
        Predict one classifier for a patient record.

        **Example:** `POST /api/predict/BP_Class?model=GradientBoosting`
        with a JSON object of numeric patient fields.
        """
        return await relay.predict(classifier, record, model=model)

    @app.post("/api/predict-all", response_model=BatchPredictionResponse, tags=["Predictions"])
    async def predict_all(
        record: Any = Body(default=None),
        relay: RelayService = Depends(get_relay_service),
    ) -> BatchPredictionResponse:
        """Predict every classifier for a patient record in one upstream call."""
        return await relay.predict_all(record)

    @app.post("/api/compare-models/{classifier}", response_model=CompareModelsResponse, tags=["Predictions"])
    async def compare_models(
        classifier: str,
        record: Any = Body(default=None),
        relay: RelayService = Depends(get_relay_service),
    ) -> CompareModelsResponse:
        """Run every model of one classifier against a patient record."""
        return await relay.compare_models(classifier, record)

    @app.get("/api/model-info/{classifier}", tags=["Models"])
    async def model_info(
        classifier: str,
        model: str | None = None,
        relay: RelayService = Depends(get_relay_service),
    ):
        """Metadata for a classifier, passed through from the inference service."""
        result = await relay.model_info(classifier, model=model)
        return result.model_dump(mode="json")


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "heart_gateway.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
