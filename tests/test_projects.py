import json

from test_api import auth, create_instrument, register_user, request, start_test_server, stop_test_server


def _create_project(client, token, **fields):
    payload = {"title": "Debut Album", "description": "Ten songs", **fields}
    status, _, body = request(client, "POST", "/api/projects", payload, auth(token))
    assert status == 201, body
    return json.loads(body)


def test_create_project_with_needs_and_genres():
    client = start_test_server()
    try:
        token, producer = register_user(client, "pat@example.com", user_type="producer")
        bass = create_instrument(client, token, "Bass Guitar")
        status, _, body = request(client, "POST", "/api/genres", {"name": "Soul"}, auth(token))
        soul = json.loads(body)["id"]

        project = _create_project(
            client,
            token,
            budget="2500",
            start_date="2030-01-10",
            genre_ids=[soul],
            instruments=[{"instrument_id": bass, "requirements": "Motown feel"}],
        )
        assert project["status"] == "draft"
        assert project["creator_id"] == producer["id"]
        assert project["budget"] == 2500.0
        assert project["genres"] == [{"id": soul, "name": "Soul"}]
        assert project["instruments"] == [
            {"instrument_id": bass, "name": "Bass Guitar", "requirements": "Motown feel", "filled": False}
        ]
        assert project["invitations"] == []

        status, _, body = request(client, "GET", "/api/projects", headers=auth(token))
        assert [p["id"] for p in json.loads(body)] == [project["id"]]
    finally:
        stop_test_server(client)


def test_end_date_before_start_date_rejected():
    client = start_test_server()
    try:
        token, _ = register_user(client, "pat@example.com", user_type="producer")
        status, _, body = request(
            client,
            "POST",
            "/api/projects",
            {"title": "X", "description": "Y", "start_date": "2030-02-01", "end_date": "2030-01-01"},
            auth(token),
        )
        assert status == 400
    finally:
        stop_test_server(client)


def test_project_visibility_and_ownership():
    client = start_test_server()
    try:
        owner_token, _ = register_user(client, "pat@example.com", user_type="producer")
        other_token, _ = register_user(client, "bob@example.com")
        project = _create_project(client, owner_token)

        status, _, _ = request(client, "GET", f"/api/projects/{project['id']}", headers=auth(other_token))
        assert status == 403
        status, _, _ = request(
            client, "PUT", f"/api/projects/{project['id']}", {"title": "Mine now"}, auth(other_token)
        )
        assert status == 403

        status, _, body = request(
            client, "PATCH", f"/api/projects/{project['id']}/status", {"status": "open"}, auth(owner_token)
        )
        assert status == 200
        assert json.loads(body)["status"] == "open"

        status, _, body = request(client, "GET", f"/api/projects/{project['id']}", headers=auth(other_token))
        assert status == 200
        assert "invitations" not in json.loads(body)

        status, _, body = request(client, "GET", "/api/projects/open", headers=auth(other_token))
        assert [p["id"] for p in json.loads(body)] == [project["id"]]

        status, _, body = request(
            client, "PUT", f"/api/projects/{project['id']}", {"title": "Second Album"}, auth(owner_token)
        )
        assert json.loads(body)["title"] == "Second Album"
    finally:
        stop_test_server(client)


def test_project_status_transitions():
    client = start_test_server()
    try:
        token, _ = register_user(client, "pat@example.com", user_type="producer")
        project = _create_project(client, token)
        path = f"/api/projects/{project['id']}/status"

        status, _, body = request(client, "PATCH", path, {"status": "completed"}, auth(token))
        assert status == 409
        assert json.loads(body)["detail"] == "Cannot change project status from 'draft' to 'completed'"

        for target in ("open", "in_progress", "completed"):
            status, _, _ = request(client, "PATCH", path, {"status": target}, auth(token))
            assert status == 200

        status, _, _ = request(client, "PATCH", path, {"status": "cancelled"}, auth(token))
        assert status == 409
    finally:
        stop_test_server(client)


def test_instrument_needs():
    client = start_test_server()
    try:
        token, _ = register_user(client, "pat@example.com", user_type="producer")
        drums = create_instrument(client, token, "Drums", "Percussion")
        project = _create_project(client, token)
        path = f"/api/projects/{project['id']}/instruments"

        status, _, body = request(client, "POST", path, {"instrument_id": drums}, auth(token))
        assert status == 201
        assert [i["instrument_id"] for i in json.loads(body)["instruments"]] == [drums]

        status, _, _ = request(client, "POST", path, {"instrument_id": drums}, auth(token))
        assert status == 409

        status, _, body = request(client, "DELETE", f"{path}/{drums}", headers=auth(token))
        assert status == 200
        assert json.loads(body)["instruments"] == []
        status, _, _ = request(client, "DELETE", f"{path}/{drums}", headers=auth(token))
        assert status == 404
    finally:
        stop_test_server(client)


def test_delete_project():
    client = start_test_server()
    try:
        token, _ = register_user(client, "pat@example.com", user_type="producer")
        project = _create_project(client, token)
        status, _, body = request(client, "DELETE", f"/api/projects/{project['id']}", headers=auth(token))
        assert json.loads(body) == {"success": True}
        status, _, _ = request(client, "GET", f"/api/projects/{project['id']}", headers=auth(token))
        assert status == 404
    finally:
        stop_test_server(client)
