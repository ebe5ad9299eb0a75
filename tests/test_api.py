"""Tests for the FastAPI application."""

import pytest
from fastapi.testclient import TestClient
from src.presentation.api.main import app, get_service


@pytest.fixture
def client(service):
    app.dependency_overrides[get_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_root_and_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
    body = client.get("/").json()
    assert "decompose" in body["endpoints"]


def test_decompose(client):
    """Test a full decomposition over the API."""
    response = client.post("/decompose", json={"group_by": ["zone"]})
    assert response.status_code == 200

    body = response.json()
    assert body["status"] == "success"
    assert body["n_records"] == 320
    assert body["n_complete"] == 320
    assert [s["stage"] for s in body["stages"]][0] == "preparation"
    assert body["frontier"]["cobb_douglas"]["n_obs"] == 320

    rows = body["summaries"]["zone"]
    assert {row["zone"] for row in rows} == {"Arsi", "Bale"}
    assert sum(row["n_observations"] for row in rows) == 320


def test_summary_after_decompose(client):
    assert client.get("/summary", params={"group_by": "zone"}).status_code == 404

    client.post("/decompose", json={})
    response = client.get("/summary", params={"group_by": ["zone", "farming_system"]})
    assert response.status_code == 200
    assert len(response.json()) == 4


def test_decompose_unknown_group(client):
    response = client.post("/decompose", json={"group_by": ["woreda"]})
    assert response.status_code == 422
