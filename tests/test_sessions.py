import json

from test_api import auth, create_instrument, register_user, request, start_test_server, stop_test_server


def _setup(client):
    producer_token, producer = register_user(client, "pat@example.com", user_type="producer")
    musician_token, musician = register_user(client, "alice@example.com")
    guitar = create_instrument(client, producer_token, "Electric Guitar")
    status, _, body = request(
        client, "POST", "/api/projects", {"title": "Album", "description": "LP", "status": "open"}, auth(producer_token)
    )
    assert status == 201
    return producer_token, musician_token, musician, guitar, json.loads(body)["id"]


def _create_session(client, token, project_id, participants=(), **fields):
    payload = {
        "project_id": project_id,
        "title": "Tracking day",
        "start_time": "2030-03-01T10:00:00Z",
        "end_time": "2030-03-01T14:30:00Z",
        "location": "Studio A",
        "participants": list(participants),
        **fields,
    }
    return request(client, "POST", "/api/sessions", payload, auth(token))


def test_create_session_with_participants():
    client = start_test_server()
    try:
        producer_token, musician_token, musician, guitar, project_id = _setup(client)
        status, _, body = _create_session(
            client, producer_token, project_id, [{"musician_id": musician["id"], "instrument_id": guitar, "rate": "150"}]
        )
        assert status == 201
        session = json.loads(body)
        assert session["status"] == "scheduled"
        assert session["duration_minutes"] == 270
        assert session["start_time"] == "2030-03-01T10:00:00Z"
        assert [(p["musician_id"], p["status"]) for p in session["participants"]] == [(musician["id"], "invited")]

        status, _, body = request(client, "GET", "/api/notifications", headers=auth(musician_token))
        assert [n["kind"] for n in json.loads(body)] == ["session_invitation"]

        # Participants see the session too
        status, _, body = request(client, "GET", "/api/sessions", headers=auth(musician_token))
        assert [s["id"] for s in json.loads(body)] == [session["id"]]
        status, _, body = request(client, "GET", "/api/sessions/upcoming", headers=auth(musician_token))
        assert [s["id"] for s in json.loads(body)] == [session["id"]]
    finally:
        stop_test_server(client)


def test_session_validation_and_access():
    client = start_test_server()
    try:
        producer_token, musician_token, _, _, project_id = _setup(client)
        status, _, body = _create_session(client, producer_token, project_id, end_time="2030-03-01T09:00:00Z")
        assert status == 400
        assert json.loads(body)["detail"] == "End time must be after start time"

        status, _, _ = _create_session(client, musician_token, project_id)
        assert status == 403

        status, _, body = _create_session(client, producer_token, project_id)
        session_id = json.loads(body)["id"]
        status, _, _ = request(client, "GET", f"/api/sessions/{session_id}", headers=auth(musician_token))
        assert status == 403
        status, _, _ = request(client, "GET", "/api/sessions/999", headers=auth(musician_token))
        assert status == 404

        status, _, _ = request(
            client,
            "PUT",
            f"/api/sessions/{session_id}",
            {"end_time": "2030-03-01T08:00:00Z"},
            auth(producer_token),
        )
        assert status == 400
        status, _, body = request(
            client, "PUT", f"/api/sessions/{session_id}", {"location": "Studio B"}, auth(producer_token)
        )
        assert status == 200
        assert json.loads(body)["location"] == "Studio B"
    finally:
        stop_test_server(client)


def test_participant_responses():
    client = start_test_server()
    try:
        producer_token, musician_token, musician, guitar, project_id = _setup(client)
        _, _, body = _create_session(client, producer_token, project_id)
        session_id = json.loads(body)["id"]

        status, _, body = request(client, "POST", f"/api/sessions/{session_id}/respond", {"status": "confirmed"},
                                  auth(musician_token))
        assert status == 403
        assert json.loads(body)["detail"] == "You are not invited to this session"

        status, _, body = request(
            client,
            "POST",
            f"/api/sessions/{session_id}/participants",
            {"musician_id": musician["id"], "instrument_id": guitar},
            auth(producer_token),
        )
        assert status == 201
        participant_id = json.loads(body)["id"]
        status, _, _ = request(
            client,
            "POST",
            f"/api/sessions/{session_id}/participants",
            {"musician_id": musician["id"], "instrument_id": guitar},
            auth(producer_token),
        )
        assert status == 409

        path = f"/api/sessions/{session_id}/respond"
        status, _, body = request(client, "POST", path, {"status": "confirmed"}, auth(musician_token))
        assert status == 200
        assert json.loads(body)["participants"][0]["status"] == "confirmed"
        status, _, body = request(client, "POST", path, {"status": "declined"}, auth(musician_token))
        assert json.loads(body)["participants"][0]["status"] == "declined"
        status, _, body = request(client, "POST", path, {"status": "confirmed"}, auth(musician_token))
        assert json.loads(body)["participants"][0]["status"] == "confirmed"

        status, _, body = request(client, "GET", "/api/notifications", headers=auth(producer_token))
        assert {n["kind"] for n in json.loads(body)} == {"session_response"}

        # Completing the session completes confirmed participants
        status_path = f"/api/sessions/{session_id}/status"
        request(client, "PATCH", status_path, {"status": "in_progress"}, auth(producer_token))
        status, _, body = request(client, "PATCH", status_path, {"status": "completed"}, auth(producer_token))
        assert status == 200
        session = json.loads(body)
        assert session["status"] == "completed"
        assert session["participants"][0]["status"] == "completed"

        status, _, _ = request(client, "POST", path, {"status": "declined"}, auth(musician_token))
        assert status == 409
        status, _, _ = request(
            client,
            "PATCH",
            f"/api/sessions/{session_id}/participants/{participant_id}",
            {"status": "no_show"},
            auth(producer_token),
        )
        assert status == 409
    finally:
        stop_test_server(client)


def test_session_status_transitions():
    client = start_test_server()
    try:
        producer_token, musician_token, _, _, project_id = _setup(client)
        _, _, body = _create_session(client, producer_token, project_id)
        session_id = json.loads(body)["id"]
        path = f"/api/sessions/{session_id}/status"

        status, _, _ = request(client, "PATCH", path, {"status": "completed"}, auth(producer_token))
        assert status == 409
        status, _, _ = request(client, "PATCH", path, {"status": "cancelled"}, auth(musician_token))
        assert status == 403
        status, _, _ = request(client, "PATCH", path, {"status": "cancelled"}, auth(producer_token))
        assert status == 200
        status, _, _ = request(client, "PATCH", path, {"status": "scheduled"}, auth(producer_token))
        assert status == 409

        status, _, body = request(client, "GET", "/api/sessions/upcoming", headers=auth(producer_token))
        assert json.loads(body) == []
    finally:
        stop_test_server(client)


def test_no_show_and_participant_removal():
    client = start_test_server()
    try:
        producer_token, musician_token, musician, guitar, project_id = _setup(client)
        _, _, body = _create_session(
            client, producer_token, project_id, [{"musician_id": musician["id"], "instrument_id": guitar}]
        )
        session = json.loads(body)
        participant_id = session["participants"][0]["id"]
        participant_path = f"/api/sessions/{session['id']}/participants/{participant_id}"

        status, _, _ = request(client, "PATCH", participant_path, {"status": "no_show"}, auth(producer_token))
        assert status == 409

        request(client, "POST", f"/api/sessions/{session['id']}/respond", {"status": "confirmed"}, auth(musician_token))
        status, _, body = request(client, "PATCH", participant_path, {"status": "no_show"}, auth(producer_token))
        assert status == 200
        assert json.loads(body)["status"] == "no_show"

        status, _, body = request(client, "DELETE", participant_path, headers=auth(producer_token))
        assert json.loads(body) == {"success": True}
        status, _, body = request(client, "GET", f"/api/sessions/{session['id']}", headers=auth(producer_token))
        assert json.loads(body)["participants"] == []

        status, _, _ = request(client, "DELETE", f"/api/sessions/{session['id']}", headers=auth(producer_token))
        assert status == 200
        status, _, _ = request(client, "GET", f"/api/sessions/{session['id']}", headers=auth(producer_token))
        assert status == 404
    finally:
        stop_test_server(client)
