"""
HTTP client for the external inference service.

Wraps a shared httpx.AsyncClient and translates every transport or HTTP
failure into a GatewayError.
"""

from typing import Any

import httpx

from heart_gateway.config.config import Settings, get_settings
from heart_gateway.config.logging_config import get_logger
from heart_gateway.services.errors import GatewayError

logger = get_logger(__name__)


class InferenceClient:
    """
    Client for the inference service's prediction endpoints.

    One instance is shared by all requests in a process. Each call carries
    its own timeout; nothing is retried.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or get_settings()
        self.base_url = self.settings.inference_base_url
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            logger.debug("Creating inference HTTP client", base_url=self.base_url)
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Accept": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the underlying HTTP client if it was created."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def predict(
        self,
        classifier: str,
        record: dict[str, Any],
        model: str | None = None,
    ) -> dict[str, Any]:
        """POST a record to /predict/{classifier}, optionally pinning a model."""
        return await self._request(
            "POST",
            f"/predict/{classifier}",
            params={"model": model} if model else None,
            json=record,
            timeout=self.settings.predict_timeout_seconds,
            failure_message="Prediction failed",
            internal_message="Internal server error during prediction",
        )

    async def predict_all(self, record: dict[str, Any]) -> dict[str, Any]:
        """POST a record to /predict-all."""
        return await self._request(
            "POST",
            "/predict-all",
            json=record,
            timeout=self.settings.batch_timeout_seconds,
            failure_message="Batch prediction failed",
            internal_message="Internal server error during batch prediction",
        )

    async def compare_models(self, classifier: str, record: dict[str, Any]) -> dict[str, Any]:
        """POST a record to /compare-models/{classifier}."""
        return await self._request(
            "POST",
            f"/compare-models/{classifier}",
            json=record,
            timeout=self.settings.batch_timeout_seconds,
            failure_message="Model comparison failed",
            internal_message="Internal server error during model comparison",
        )

    async def model_info(self, classifier: str, model: str | None = None) -> dict[str, Any]:
        """GET /model-info/{classifier}."""
        return await self._request(
            "GET",
            f"/model-info/{classifier}",
            params={"model": model} if model else None,
            timeout=self.settings.model_info_timeout_seconds,
            failure_message="Failed to retrieve model information",
            internal_message="Failed to retrieve model information",
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        timeout: float,
        failure_message: str,
        internal_message: str,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Issue one upstream request and decode its JSON object body.

        Raises:
            GatewayError: upstream_transport when the service cannot be
                reached, upstream_application for non-2xx responses, and
                internal for anything else (timeouts, undecodable bodies).
        """
        logger.info("Forwarding to inference service", method=method, path=path, params=params)

        try:
            response = await self.client.request(
                method,
                path,
                params=params,
                json=json,
                timeout=timeout,
            )
        except httpx.ConnectError as e:
            logger.error("Inference service unreachable", path=path, error=str(e))
            raise GatewayError.upstream_transport() from e
        except httpx.HTTPError as e:
            logger.error(
                "Inference request failed",
                path=path,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise GatewayError.internal(internal_message) from e

        if not response.is_success:
            message = _upstream_error_message(response, failure_message)
            logger.warning(
                "Inference service returned an error",
                path=path,
                status_code=response.status_code,
                upstream_error=message,
            )
            raise GatewayError.upstream_application(response.status_code, message)

        try:
            data = response.json()
        except ValueError as e:
            logger.error("Inference service returned invalid JSON", path=path, body=response.text[:500])
            raise GatewayError.internal(internal_message) from e

        if not isinstance(data, dict):
            logger.error("Inference service returned a non-object body", path=path)
            raise GatewayError.internal(internal_message)

        logger.info("Inference service response received", path=path, response_keys=list(data.keys()))
        return data


def _upstream_error_message(response: httpx.Response, fallback: str) -> str:
    """Pull the `error` field out of an upstream error body, else the fallback."""
    try:
        body = response.json()
    except ValueError:
        return fallback
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return fallback
