import pytest

from carbon.config import EngineConfig
from carbon.engine import CarbonEngine
from web.app import app


@pytest.fixture
def client():
    app.config["TESTING"] = True
    app.config["CARBON_ENGINE"] = CarbonEngine(EngineConfig())
    with app.test_client() as client:
        yield client
    app.config.pop("CARBON_ENGINE", None)


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.get_json() == {
        "status": "ok",
        "baselineTonnes": 120.0,
        "refundPolicy": "net",
        "financingThreshold": 70,
    }


def test_metrics_for_list_body(client, sample_batch):
    response = client.post("/api/metrics", json=sample_batch)

    assert response.status_code == 200
    data = response.get_json()
    assert data["score"] == 75
    assert data["totalEmissions"] == 60.0
    assert [tx["id"] for tx in data["transactions"]] == [tx["id"] for tx in sample_batch]


def test_metrics_for_wrapped_body_with_rejection(client, sample_batch):
    batch = sample_batch + [{"id": "TX999", "date": "2024-10-01", "category": "fuel", "amount": 1, "scope": 4}]

    response = client.post("/api/metrics", json={"transactions": batch})

    assert response.status_code == 200
    assert response.get_json()["rejectedIds"] == ["TX999"]


def test_metrics_rejects_non_batch_body(client):
    response = client.post("/api/metrics", data="not json", content_type="application/json")
    assert response.status_code == 400

    response = client.post("/api/metrics", json={"rows": []})
    assert response.status_code == 400


def test_engine_built_from_environment_on_first_use(monkeypatch):
    monkeypatch.setenv("CARBON_BASELINE_TONNES", "60")
    app.config.pop("CARBON_ENGINE", None)

    with app.test_client() as client:
        response = client.get("/api/health")

    app.config.pop("CARBON_ENGINE", None)
    assert response.get_json()["baselineTonnes"] == 60.0


def test_configuration_error_is_reported(monkeypatch):
    monkeypatch.setenv("CARBON_BASELINE_TONNES", "0")
    app.config.pop("CARBON_ENGINE", None)

    with app.test_client() as client:
        response = client.get("/api/health")

    assert response.status_code == 500
    assert response.get_json()["error"] == "configuration"
