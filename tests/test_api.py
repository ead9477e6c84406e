import json

from fastapi.testclient import TestClient

from sessiontrack.api import app


def start_test_server():
    return TestClient(app)


def stop_test_server(client):
    client.close()


def auth(token):
    return {"Authorization": f"Bearer {token}"}


def request(client, method, path, body=None, headers=None):
    res = client.request(method, path, json=body, headers=headers or {})
    return res.status_code, dict(res.headers), res.content


def register_user(client, email, user_type="musician", password="password123", **extra):
    payload = {
        "email": email,
        "password": password,
        "user_type": user_type,
        "first_name": email.split("@")[0].capitalize(),
        "last_name": "Tester",
        **extra,
    }
    status, _, body = request(client, "POST", "/api/auth/register", payload)
    assert status == 201, body
    data = json.loads(body)
    return data["token"], data["user"]


def create_instrument(client, token, name="Bass Guitar", category="Strings"):
    status, _, body = request(client, "POST", "/api/instruments", {"name": name, "category": category}, auth(token))
    assert status == 201, body
    return json.loads(body)["id"]


def test_register_and_login():
    client = start_test_server()
    try:
        status, _, body = request(
            client,
            "POST",
            "/api/auth/register",
            {
                "email": "Alice@Example.com",
                "password": "password123",
                "user_type": "musician",
                "first_name": "Alice",
                "last_name": "Smith",
                "years_experience": 7,
            },
        )
        assert status == 201
        data = json.loads(body)
        assert data["message"] == "User registered successfully"
        assert data["user"]["email"] == "alice@example.com"
        assert data["user"]["musician_profile"]["years_experience"] == 7
        assert "password_hash" not in data["user"]
        assert data["token"]

        status, _, body = request(
            client, "POST", "/api/auth/login", {"email": "ALICE@example.com", "password": "password123"}
        )
        assert status == 200
        data = json.loads(body)
        assert data["message"] == "Login successful"
        token = data["token"]

        status, _, body = request(client, "GET", "/api/auth/me", headers=auth(token))
        assert status == 200
        assert json.loads(body)["user"]["first_name"] == "Alice"
    finally:
        stop_test_server(client)


def test_producer_has_no_musician_profile():
    client = start_test_server()
    try:
        _, user = register_user(client, "pat@example.com", user_type="producer")
        assert user["user_type"] == "producer"
        assert user["musician_profile"] is None
    finally:
        stop_test_server(client)


def test_login_rejects_bad_credentials():
    client = start_test_server()
    try:
        register_user(client, "bob@example.com")
        status, _, body = request(client, "POST", "/api/auth/login", {"email": "bob@example.com", "password": "nope"})
        assert status == 401
        assert json.loads(body)["detail"] == "Invalid email or password"
        status, _, body = request(
            client, "POST", "/api/auth/login", {"email": "ghost@example.com", "password": "password123"}
        )
        assert status == 401
        assert json.loads(body)["detail"] == "Invalid email or password"
    finally:
        stop_test_server(client)


def test_short_password_rejected():
    client = start_test_server()
    try:
        status, _, body = request(
            client,
            "POST",
            "/api/auth/register",
            {
                "email": "carl@example.com",
                "password": "short",
                "user_type": "studio",
                "first_name": "Carl",
                "last_name": "Studio",
            },
        )
        assert status == 400
        assert "at least" in json.loads(body)["detail"]
    finally:
        stop_test_server(client)


def test_invalid_payload_returns_validation_error():
    client = start_test_server()
    try:
        status, _, body = request(
            client,
            "POST",
            "/api/auth/register",
            {"email": "not-an-email", "password": "password123", "user_type": "dj", "first_name": "X", "last_name": "Y"},
        )
        assert status == 400
        data = json.loads(body)
        assert data["detail"] == "Validation error"
        fields = {err["loc"][-1] for err in data["errors"]}
        assert {"email", "user_type"} <= fields
    finally:
        stop_test_server(client)


def test_protected_routes_require_token():
    client = start_test_server()
    try:
        status, _, body = request(client, "GET", "/api/auth/me")
        assert status == 401
        assert json.loads(body)["detail"] == "Authentication required"
        status, _, body = request(client, "GET", "/api/auth/me", headers=auth("bogus"))
        assert status == 401
        assert json.loads(body)["detail"] == "Invalid or expired token"
    finally:
        stop_test_server(client)


def test_logout_revokes_token():
    client = start_test_server()
    try:
        token, _ = register_user(client, "dana@example.com")
        status, _, _ = request(client, "POST", "/api/auth/logout", headers=auth(token))
        assert status == 200
        status, _, _ = request(client, "GET", "/api/auth/me", headers=auth(token))
        assert status == 401
    finally:
        stop_test_server(client)


def test_health():
    client = start_test_server()
    try:
        status, _, body = request(client, "GET", "/health")
        assert status == 200
        assert json.loads(body) == {"status": "ok"}
    finally:
        stop_test_server(client)
