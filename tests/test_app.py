from fastapi.testclient import TestClient

from conftest import make_settings
from faucet_api.main import create_app

USER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"


def _client(settings, contract, stores, clock, **kwargs):
    return TestClient(create_app(settings, contract=contract, stores=stores, clock=clock), **kwargs)


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["version"] == "v1"
    assert body["uptime"] >= 0


def test_endpoint_index(client):
    body = client.get("/api/v1/docs").json()

    assert body["basePath"] == "/api/v1"
    assert "POST /faucet/claim" in body["endpoints"]["faucet"]
    assert "GET /admin/claims/export" in body["endpoints"]["admin"]


def test_security_headers(client):
    headers = client.get("/health").headers
    assert headers["x-content-type-options"] == "nosniff"
    assert headers["x-frame-options"] == "SAMEORIGIN"


def test_security_headers_can_be_disabled(contract, stores, clock):
    with _client(make_settings(helmet_enabled=False), contract, stores, clock) as client:
        assert "x-frame-options" not in client.get("/health").headers


def test_cors_preflight(client):
    response = client.options("/api/v1/faucet/tokens", headers={
        "Origin": "http://localhost:3000",
        "Access-Control-Request-Method": "POST",
    })
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"


def test_unknown_route_is_json_404(client):
    response = client.get("/api/v1/nowhere")

    assert response.status_code == 404
    assert response.json() == {"error": "Not Found", "message": "Not Found", "statusCode": 404}


def test_malformed_json_is_400(client):
    response = client.post(
        "/api/v1/faucet/claim",
        content="{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Validation Error"


def test_rate_limit(contract, stores, clock):
    settings = make_settings(rate_limit_enabled=True, rate_limit_max=2)
    with _client(settings, contract, stores, clock) as client:
        assert client.get("/api/v1/faucet/tokens").status_code == 200
        assert client.get("/api/v1/faucet/tokens").status_code == 200

        limited = client.get("/api/v1/faucet/tokens")
        assert limited.status_code == 429
        assert limited.json()["error"] == "Rate Limit Exceeded"
        assert "retry-after" in limited.headers

        for _ in range(3):
            assert client.get("/health").status_code == 200


def test_unexpected_error_includes_stack_outside_production(contract, stores, clock):
    contract.is_blacklisted.side_effect = RuntimeError("node exploded")
    with _client(make_settings(), contract, stores, clock, raise_server_exceptions=False) as client:
        response = client.post("/api/v1/faucet/claim", json={"address": USER})

    assert response.status_code == 500
    body = response.json()
    assert body["message"] == "node exploded"
    assert body["stack"]


def test_unexpected_error_is_opaque_in_production(contract, stores, clock):
    contract.is_blacklisted.side_effect = RuntimeError("node exploded")
    settings = make_settings(node_env="production")
    with _client(settings, contract, stores, clock, raise_server_exceptions=False) as client:
        response = client.post("/api/v1/faucet/claim", json={"address": USER})

    assert response.status_code == 500
    assert response.json() == {
        "error": "Internal Server Error",
        "message": "An unexpected error occurred",
        "statusCode": 500,
    }
