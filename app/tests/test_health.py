from fastapi.testclient import TestClient

from main import app

client = TestClient(app)


def test_read_main():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_root():
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "Fleet Manager API"}


def test_cors_preflight_allows_any_origin():
    response = client.options(
        "/vehicles",
        headers={
            "Origin": "http://example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type",
        },
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"


def test_prometheus_endpoint_exposes_fleet_metrics():
    response = client.get("/metrics/prometheus")
    assert response.status_code == 200
    assert "fleet_manager_info" in response.text


def test_metrics_router_has_no_second_health_route():
    assert client.get("/metrics/health").status_code == 404
