from fastapi.testclient import TestClient

from tasktracker.middleware import SECURITY_HEADERS


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["timestamp"].endswith("Z")
    assert body["uptime"] >= 0


def test_security_headers_are_set(client):
    response = client.get("/health")

    for name, value in SECURITY_HEADERS.items():
        assert response.headers[name] == value


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/v1/nothing-here")

    assert response.status_code == 404
    assert response.json() == {"status": "error", "message": "Not Found"}


def test_oversized_body_is_rejected(client, user_a):
    response = client.post(
        "/api/v1/tasks",
        content=b"x" * (50 * 1024 + 1),
        headers=dict(user_a["headers"], **{"Content-Type": "application/json"}),
    )

    assert response.status_code == 413
    assert response.json() == {"status": "error", "message": "Request body too large"}


def test_body_at_limit_passes_through(client, user_a):
    title = "t" * 100
    response = client.post("/api/v1/tasks", json={"title": title}, headers=user_a["headers"])

    assert response.status_code == 200


def _chunked(*parts):
    yield from parts


def test_streamed_oversized_body_is_rejected(client, user_a):
    body = _chunked(b'{"title": "big", "description": "', *([b"x" * 4096] * 50), b'"}')

    response = client.post(
        "/api/v1/tasks",
        content=body,
        headers=dict(user_a["headers"], **{"Content-Type": "application/json"}),
    )

    assert response.status_code == 413
    assert response.json() == {"status": "error", "message": "Request body too large"}
    assert client.get("/api/v1/tasks", headers=user_a["headers"]).json()["data"] == []


def test_streamed_body_under_limit_passes_through(client, user_a):
    body = _chunked(b'{"title": ', b'"streamed"}')

    response = client.post(
        "/api/v1/tasks",
        content=body,
        headers=dict(user_a["headers"], **{"Content-Type": "application/json"}),
    )

    assert response.status_code == 200
    assert response.json()["data"]["title"] == "streamed"


def test_draining_server_refuses_requests(client, lifecycle):
    lifecycle.begin_draining()

    response = client.get("/health")

    assert response.status_code == 503
    assert response.json() == {"status": "error", "message": "Server is shutting down"}
    assert response.headers["Connection"] == "close"


def test_cors_preflight_for_allowed_origin(client):
    response = client.options(
        "/api/v1/tasks",
        headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "POST"},
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
    assert response.headers["access-control-allow-credentials"] == "true"


def test_unhandled_error_is_generic_500(app):
    @app.get("/boom")
    def boom():
        raise RuntimeError("database password is hunter2")

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/boom")

    assert response.status_code == 500
    assert response.json() == {"status": "error", "message": "Internal server error"}
    assert "hunter2" not in response.text
