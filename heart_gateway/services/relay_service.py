"""
Relay service: validates gateway requests and forwards them upstream.

Validation always runs before any network call, in a fixed order:
classifier, then model, then the patient record.
"""

from typing import Any

from heart_gateway.config.logging_config import get_logger
from heart_gateway.models.models import (
    BatchPredictionResponse,
    CompareModelsResponse,
    ModelInfoResponse,
    PredictionResponse,
)
from heart_gateway.services.classifier_registry import ClassifierRegistry
from heart_gateway.services.errors import GatewayError
from heart_gateway.services.inference_client import InferenceClient

logger = get_logger(__name__)


class RelayService:
    """
    Stateless relay between gateway routes and the inference service.

    Holds only read-only references: the classifier registry and the shared
    inference client.
    """

    def __init__(self, registry: ClassifierRegistry, inference_client: InferenceClient):
        self.registry = registry
        self.inference_client = inference_client

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_classifier(self, classifier: str) -> None:
        if not self.registry.has_classifier(classifier):
            raise GatewayError.validation(
                f"Invalid classifier. Must be one of: {', '.join(self.registry.classifier_ids)}"
            )

    def validate_model(self, classifier: str, model: str | None) -> None:
        if model and not self.registry.is_valid_model(classifier, model):
            raise GatewayError.validation(
                f"Invalid model type. Must be one of: {', '.join(self.registry.models_for(classifier))}"
            )

    @staticmethod
    def validate_record(record: Any) -> dict[str, Any]:
        if not isinstance(record, dict) or not record:
            raise GatewayError.validation("No input data provided")
        return record

    # ------------------------------------------------------------------
    # Relay operations
    # ------------------------------------------------------------------

    async def predict(
        self,
        classifier: str,
        record: Any,
        model: str | None = None,
    ) -> PredictionResponse:
        """Single-classifier prediction, optionally pinned to one model."""
        self.validate_classifier(classifier)
        self.validate_model(classifier, model)
        record = self.validate_record(record)

        logger.info("Prediction request", classifier=classifier, model=model, field_count=len(record))
        data = await self.inference_client.predict(classifier, record, model=model)

        return PredictionResponse(
            classifier=classifier,
            prediction=data.get("prediction"),
            probabilities=data.get("probabilities"),
            class_labels=data.get("class_labels"),
            model=data.get("model"),
            input=record,
        )

    async def predict_all(self, record: Any) -> BatchPredictionResponse:
        """Batch prediction across every classifier, using upstream defaults."""
        record = self.validate_record(record)

        logger.info("Batch prediction request", field_count=len(record))
        data = await self.inference_client.predict_all(record)

        return BatchPredictionResponse(predictions=data.get("predictions"), input=record)

    async def compare_models(self, classifier: str, record: Any) -> CompareModelsResponse:
        """Every model's prediction for one classifier."""
        self.validate_classifier(classifier)
        record = self.validate_record(record)

        logger.info("Model comparison request", classifier=classifier)
        data = await self.inference_client.compare_models(classifier, record)

        return CompareModelsResponse(classifier=classifier, models=data.get("models"), input=record)

    async def model_info(self, classifier: str, model: str | None = None) -> ModelInfoResponse:
        """Metadata lookup for a classifier and optional model."""
        self.validate_classifier(classifier)
        self.validate_model(classifier, model)

        logger.info("Model info request", classifier=classifier, model=model)
        data = await self.inference_client.model_info(classifier, model=model)

        return ModelInfoResponse.model_validate({"success": True, **data})
