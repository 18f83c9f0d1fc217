import json

import httpx
import pytest
from fastapi.testclient import TestClient

from heart_gateway.config.config import Settings
from heart_gateway.main import create_app
from heart_gateway.services.inference_client import InferenceClient

UPSTREAM_URL = "http://inference.test:5000"

PATIENT = {
    "age": 45,
    "sex": 1,
    "weight": 82.5,
    "height": 178,
    "BMI": 26.0,
    "smoking": 0,
    "alcohol_consumption": 1,
    "physical_activity": 2,
    "family_history": 1,
    "cholesterol_medication": 0,
}


def prediction_payload(model: str = "GradientBoosting") -> dict:
    return {
        "prediction": 1,
        "probabilities": [[0.2, 0.8]],
        "class_labels": ["Negative", "Positive"],
        "model": model,
    }


class FakeUpstream:
    """Records upstream requests and answers them with a swappable handler."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.handler = lambda request: httpx.Response(
            200, json=prediction_payload(request.url.params.get("model", "GradientBoosting"))
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def settings() -> Settings:
    return Settings(inference_service_url=UPSTREAM_URL, log_level="WARNING")


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def app(settings, upstream):
    inference_client = InferenceClient(settings, transport=httpx.MockTransport(upstream))
    return create_app(settings=settings, inference_client=inference_client)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
