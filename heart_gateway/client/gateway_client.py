"""
Async client for the gateway's HTTP API.
"""

from dataclasses import dataclass
from typing import Any, Mapping

import httpx

from heart_gateway.config.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_GATEWAY_URL = "http://localhost:3000"


@dataclass(frozen=True)
class PredictionResult:
    """One classifier/model prediction as returned by the gateway."""

    prediction: Any
    probabilities: Any
    class_labels: Any
    model: str | None

    @classmethod
    def from_response(cls, data: Mapping[str, Any]) -> "PredictionResult":
        return cls(
            prediction=data.get("prediction"),
            probabilities=data.get("probabilities"),
            class_labels=data.get("class_labels"),
            model=data.get("model"),
        )

    @property
    def predicted_class(self) -> Any:
        """The predicted class code, unwrapping single-row predictions."""
        if isinstance(self.prediction, list):
            return self.prediction[0] if self.prediction else None
        return self.prediction

    @property
    def is_positive(self) -> bool:
        return self.predicted_class == 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "prediction": self.prediction,
            "probabilities": self.probabilities,
            "class_labels": self.class_labels,
            "model": self.model,
        }


class GatewayCallError(Exception):
    """A gateway call that failed, either over the wire or with an error envelope."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class GatewayClient:
    """
    Thin async wrapper around the gateway routes.

    Use as an async context manager, or call aclose() when done.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_GATEWAY_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "GatewayClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def health(self) -> dict[str, Any]:
        return await self._call("GET", "/health")

    async def classifiers(self) -> dict[str, list[str]]:
        data = await self._call("GET", "/api/classifiers")
        return data.get("classifiers", {})

    async def predict(
        self,
        classifier: str,
        record: Mapping[str, float],
        model: str | None = None,
    ) -> PredictionResult:
        data = await self._call(
            "POST",
            f"/api/predict/{classifier}",
            params={"model": model} if model else None,
            json=dict(record),
        )
        return PredictionResult.from_response(data)

    async def predict_all(self, record: Mapping[str, float]) -> dict[str, Any]:
        return await self._call("POST", "/api/predict-all", json=dict(record))

    async def compare_models(self, classifier: str, record: Mapping[str, float]) -> dict[str, Any]:
        return await self._call("POST", f"/api/compare-models/{classifier}", json=dict(record))

    async def model_info(self, classifier: str, model: str | None = None) -> dict[str, Any]:
        return await self._call(
            "GET",
            f"/api/model-info/{classifier}",
            params={"model": model} if model else None,
        )

    async def _call(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.HTTPError as e:
            logger.warning("Gateway request failed", path=path, error=str(e))
            raise GatewayCallError(str(e) or type(e).__name__) from e

        try:
            data = response.json()
        except ValueError as e:
            raise GatewayCallError(
                f"Invalid response from gateway (HTTP {response.status_code})",
                status_code=response.status_code,
            ) from e

        if not isinstance(data, dict):
            raise GatewayCallError("Invalid response from gateway", status_code=response.status_code)

        if not response.is_success or data.get("success") is False:
            raise GatewayCallError(
                data.get("error") or "Prediction failed",
                status_code=response.status_code,
            )
        return data
