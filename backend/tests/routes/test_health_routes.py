# backend/tests/routes/test_health_routes.py
"""
Tests for the public health and metrics endpoints.
"""

from discovery.services.search.circuit_breaker import CircuitState


def test_health_reports_circuit_state(client):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["listing_store_circuit"] == CircuitState.CLOSED.value


def test_health_stays_healthy_with_open_circuit(client, listing_store):
    listing_store.fail = True
    for _ in range(5):
        client.get("/api/v1/search")

    data = client.get("/health").json()

    assert data["status"] == "healthy"
    assert data["listing_store_circuit"] == CircuitState.OPEN.value


def test_metrics_exposition(client):
    client.get("/api/v1/search")

    response = client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")


def test_root(client):
    assert client.get("/").json()["message"] == "Listing Discovery API"
