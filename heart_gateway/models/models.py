"""
Pydantic models for gateway responses.

Request bodies are forwarded to the inference service verbatim, so only the
envelopes the gateway produces itself are modelled here.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from heart_gateway.services.errors import GatewayErrorKind


def utc_now() -> datetime:
    """Timezone-aware current time, serialised as ISO 8601."""
    return datetime.now(timezone.utc)


class PredictionResponse(BaseModel):
    """
    Result of a single classifier prediction.

    Attributes:
        classifier: The classifier that was requested.
        prediction: Predicted class code(s) as returned upstream.
        probabilities: Per-class probability rows.
        class_labels: Ordered class labels matching the probability columns.
        model: The model the inference service actually used.
        input: The patient record that was forwarded.
    """
    success: bool = Field(default=True, description="Always true for successful predictions")
    classifier: str = Field(..., description="Requested classifier id")
    prediction: Any = Field(default=None, description="Predicted class code")
    probabilities: Any = Field(default=None, description="Per-class probabilities")
    class_labels: Any = Field(default=None, description="Ordered class labels")
    model: Any = Field(default=None, description="Model used by the inference service")
    input: dict[str, Any] = Field(..., description="Forwarded patient record")
    timestamp: datetime = Field(default_factory=utc_now, description="Response timestamp")


class BatchPredictionResponse(BaseModel):
    """Predictions for every classifier from the inference service's batch endpoint."""
    success: bool = True
    predictions: Any = Field(default=None, description="Upstream predictions keyed by classifier")
    input: dict[str, Any] = Field(..., description="Forwarded patient record")
    timestamp: datetime = Field(default_factory=utc_now)


class CompareModelsResponse(BaseModel):
    """Every model's prediction for one classifier."""
    success: bool = True
    classifier: str = Field(..., description="Requested classifier id")
    models: Any = Field(default=None, description="Upstream per-model results")
    input: dict[str, Any] = Field(..., description="Forwarded patient record")
    timestamp: datetime = Field(default_factory=utc_now)


class ModelInfoResponse(BaseModel):
    """Model metadata passed through from the inference service."""
    model_config = ConfigDict(extra="allow")

    success: bool = True


class ClassifiersResponse(BaseModel):
    """The classifier whitelist and the models valid for each."""
    success: bool = True
    classifiers: dict[str, list[str]] = Field(..., description="Classifier id to valid model ids")
    count: int = Field(..., ge=0, description="Number of classifiers")


class HealthStatus(str, Enum):
    """System health status levels."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """
    Liveness check response.

    The gateway holds no state of its own, so it reports healthy whenever it
    can answer; upstream availability is not checked.
    """
    status: HealthStatus = Field(..., description="Overall health status")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Application version")
    environment: str = Field(..., description="Deployment environment")
    timestamp: datetime = Field(default_factory=utc_now, description="Check timestamp")


class ErrorResponse(BaseModel):
    """
    Standardized error response.

    Attributes:
        error: Human-readable error message.
        kind: Which failure kind produced the error.
        request_id: Request ID for tracing.
    """
    success: bool = Field(default=False, description="Always false for errors")
    error: str = Field(..., description="Error message")
    kind: GatewayErrorKind = Field(..., description="Error kind")
    request_id: str | None = Field(default=None, description="Request ID for tracing")
    timestamp: datetime = Field(default_factory=utc_now, description="Error timestamp")
