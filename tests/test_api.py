from datetime import datetime

import httpx
import pytest
from fastapi.testclient import TestClient

from tests.conftest import PATIENT, UPSTREAM_URL, prediction_payload


def refuse_connection(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("Connection refused", request=request)


RELAY_CALLS = [
    ("post", "/api/predict/BP_Class?model=GradientBoosting"),
    ("post", "/api/predict-all"),
    ("post", "/api/compare-models/BP_Class"),
]


def test_root_endpoint(client):
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "operational"
    assert data["health_check"] == "/health"


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "Heart Health Classification API"
    assert "timestamp" in data


def test_list_classifiers(client):
    response = client.get("/api/classifiers")
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["count"] == 3
    assert data["classifiers"]["BP_Class"] == ["GradientBoosting", "LogisticRegression", "RandomForest"]


def test_predict_relays_and_reshapes(client, upstream):
    response = client.post("/api/predict/BP_Class?model=GradientBoosting", json=PATIENT)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["classifier"] == "BP_Class"
    assert data["prediction"] == 1
    assert data["probabilities"] == [[0.2, 0.8]]
    assert data["class_labels"] == ["Negative", "Positive"]
    assert data["model"] == "GradientBoosting"
    assert data["input"] == PATIENT
    datetime.fromisoformat(data["timestamp"].replace("Z", "+00:00"))

    assert len(upstream.requests) == 1
    sent = upstream.requests[0]
    assert sent.method == "POST"
    assert str(sent.url) == f"{UPSTREAM_URL}/predict/BP_Class?model=GradientBoosting"
    assert upstream.last_json == PATIENT
    assert sent.extensions["timeout"]["read"] == 10.0


def test_predict_without_model_omits_query(client, upstream):
    response = client.post("/api/predict/Diabetes_Class", json=PATIENT)
    assert response.status_code == 200
    assert str(upstream.requests[0].url) == f"{UPSTREAM_URL}/predict/Diabetes_Class"


def test_invalid_classifier_is_rejected_before_upstream(client, upstream):
    response = client.post("/api/predict/Cancer_Class", json=PATIENT)

    assert response.status_code == 400
    data = response.json()
    assert data["success"] is False
    assert data["kind"] == "validation"
    assert data["error"] == "Invalid classifier. Must be one of: BP_Class, Diabetes_Class, Dyslipidemia_Class"
    assert upstream.requests == []


@pytest.mark.parametrize("method,path", [
    ("post", "/api/predict/Unknown"),
    ("post", "/api/compare-models/Unknown"),
    ("get", "/api/model-info/Unknown"),
])
def test_every_classifier_route_checks_whitelist(client, upstream, method, path):
    kwargs = {"json": PATIENT} if method == "post" else {}
    response = getattr(client, method)(path, **kwargs)
    assert response.status_code == 400
    assert "BP_Class" in response.json()["error"]
    assert upstream.requests == []


def test_invalid_model_is_rejected_before_upstream(client, upstream):
    response = client.post("/api/predict/BP_Class?model=NeuralNet", json=PATIENT)

    assert response.status_code == 400
    assert response.json()["error"] == (
        "Invalid model type. Must be one of: GradientBoosting, LogisticRegression, RandomForest"
    )
    assert upstream.requests == []


def test_classifier_is_validated_before_model(client):
    response = client.post("/api/predict/Unknown?model=NeuralNet", json=PATIENT)
    assert response.json()["error"].startswith("Invalid classifier")


def test_model_is_validated_before_body(client):
    response = client.post("/api/predict/BP_Class?model=NeuralNet", json={})
    assert response.json()["error"].startswith("Invalid model type")


@pytest.mark.parametrize("method,path", RELAY_CALLS)
def test_empty_record_is_rejected(client, upstream, method, path):
    response = getattr(client, method)(path, json={})

    assert response.status_code == 400
    assert response.json()["error"] == "No input data provided"
    assert upstream.requests == []


def test_missing_body_is_rejected(client, upstream):
    response = client.post("/api/predict/BP_Class")
    assert response.status_code == 400
    assert response.json()["error"] == "No input data provided"
    assert upstream.requests == []


def test_non_object_body_is_rejected(client, upstream):
    response = client.post("/api/predict-all", json=[1, 2, 3])
    assert response.status_code == 400
    assert upstream.requests == []


def test_malformed_json_is_client_error(client, upstream):
    response = client.post(
        "/api/predict/BP_Class",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["kind"] == "validation"
    assert upstream.requests == []


@pytest.mark.parametrize("method,path", RELAY_CALLS + [("get", "/api/model-info/BP_Class")])
def test_unreachable_upstream_is_service_unavailable(client, upstream, method, path):
    upstream.handler = refuse_connection
    kwargs = {"json": PATIENT} if method == "post" else {}

    response = getattr(client, method)(path, **kwargs)

    assert response.status_code == 503
    data = response.json()
    assert data["kind"] == "upstream_transport"
    assert "not running" in data["error"]


def test_upstream_error_status_and_message_pass_through(client, upstream):
    upstream.handler = lambda request: httpx.Response(422, json={"error": "Missing feature: BMI"})

    response = client.post("/api/predict/BP_Class", json=PATIENT)

    assert response.status_code == 422
    data = response.json()
    assert data["error"] == "Missing feature: BMI"
    assert data["kind"] == "upstream_application"


@pytest.mark.parametrize("method,path,fallback", [
    ("post", "/api/predict/BP_Class", "Prediction failed"),
    ("post", "/api/predict-all", "Batch prediction failed"),
    ("post", "/api/compare-models/BP_Class", "Model comparison failed"),
    ("get", "/api/model-info/BP_Class", "Failed to retrieve model information"),
])
def test_upstream_error_without_message_uses_fallback(client, upstream, method, path, fallback):
    upstream.handler = lambda request: httpx.Response(502, text="<html>Bad Gateway</html>")
    kwargs = {"json": PATIENT} if method == "post" else {}

    response = getattr(client, method)(path, **kwargs)

    assert response.status_code == 502
    assert response.json()["error"] == fallback


def test_upstream_timeout_is_generic_failure(client, upstream):
    def time_out(request):
        raise httpx.ReadTimeout("timed out", request=request)

    upstream.handler = time_out

    response = client.post("/api/predict/BP_Class", json=PATIENT)

    assert response.status_code == 500
    data = response.json()
    assert data["error"] == "Internal server error during prediction"
    assert "timed out" not in data["error"]


def test_upstream_invalid_json_is_generic_failure(client, upstream):
    upstream.handler = lambda request: httpx.Response(200, text="not json")

    response = client.post("/api/predict-all", json=PATIENT)

    assert response.status_code == 500
    assert response.json()["error"] == "Internal server error during batch prediction"


def test_predict_all(client, upstream):
    predictions = {"BP_Class": prediction_payload(), "Diabetes_Class": prediction_payload()}
    upstream.handler = lambda request: httpx.Response(200, json={"predictions": predictions})

    response = client.post("/api/predict-all", json=PATIENT)

    assert response.status_code == 200
    data = response.json()
    assert data["predictions"] == predictions
    assert data["input"] == PATIENT
    assert str(upstream.requests[0].url) == f"{UPSTREAM_URL}/predict-all"
    assert upstream.requests[0].extensions["timeout"]["read"] == 15.0


def test_compare_models(client, upstream):
    models = {"GradientBoosting": prediction_payload(), "RandomForest": prediction_payload("RandomForest")}
    upstream.handler = lambda request: httpx.Response(200, json={"models": models})

    response = client.post("/api/compare-models/Dyslipidemia_Class", json=PATIENT)

    assert response.status_code == 200
    data = response.json()
    assert data["classifier"] == "Dyslipidemia_Class"
    assert data["models"] == models
    assert str(upstream.requests[0].url) == f"{UPSTREAM_URL}/compare-models/Dyslipidemia_Class"
    assert upstream.requests[0].extensions["timeout"]["read"] == 15.0


def test_model_info_passthrough(client, upstream):
    info = {"classifier": "BP_Class", "model": "RandomForest", "features": ["age", "sex"]}
    upstream.handler = lambda request: httpx.Response(200, json=info)

    response = client.get("/api/model-info/BP_Class?model=RandomForest")

    assert response.status_code == 200
    assert response.json() == {"success": True, **info}
    sent = upstream.requests[0]
    assert sent.method == "GET"
    assert str(sent.url) == f"{UPSTREAM_URL}/model-info/BP_Class?model=RandomForest"
    assert sent.content == b""
    assert sent.extensions["timeout"]["read"] == 5.0


def test_model_info_rejects_invalid_model(client, upstream):
    response = client.get("/api/model-info/BP_Class?model=NeuralNet")
    assert response.status_code == 400
    assert upstream.requests == []


def test_unknown_route(client):
    response = client.get("/api/does-not-exist")
    assert response.status_code == 404
    data = response.json()
    assert data["success"] is False
    assert data["error"] == "Endpoint not found"


def test_unhandled_error_hides_details(app):
    async def explode(*args, **kwargs):
        raise RuntimeError("database password is hunter2")

    app.state.relay_service.predict = explode

    with TestClient(app, raise_server_exceptions=False) as test_client:
        response = test_client.post("/api/predict/BP_Class", json=PATIENT)

    assert response.status_code == 500
    data = response.json()
    assert data["error"] == "An unexpected error occurred"
    assert "hunter2" not in response.text
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "SAMEORIGIN"
    assert data["request_id"] == response.headers["X-Request-ID"]
    assert "X-Processing-Time-Ms" in response.headers


def test_response_headers(client):
    response = client.get("/health")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "SAMEORIGIN"
    assert "X-Request-ID" in response.headers
    assert "X-Processing-Time-Ms" in response.headers


def test_error_envelope_carries_request_id(client):
    response = client.post("/api/predict/Unknown", json=PATIENT)
    assert response.json()["request_id"] == response.headers["X-Request-ID"]


def test_non_string_model_from_upstream_is_relayed(client, upstream):
    payload = dict(prediction_payload(), model={"name": "GradientBoosting", "version": 3})
    upstream.handler = lambda request: httpx.Response(200, json=payload)

    response = client.post("/api/predict/BP_Class", json=PATIENT)

    assert response.status_code == 200
    assert response.json()["model"] == {"name": "GradientBoosting", "version": 3}
