import json

from test_api import auth, register_user, request, start_test_server, stop_test_server


def _send(client, token, recipient_id, content):
    return request(client, "POST", "/api/messages", {"recipient_id": recipient_id, "content": content}, auth(token))


def test_conversation_flow():
    client = start_test_server()
    try:
        alice_token, alice = register_user(client, "alice@example.com")
        bob_token, bob = register_user(client, "bob@example.com", user_type="producer")
        carol_token, carol = register_user(client, "carol@example.com", user_type="studio")

        status, _, body = _send(client, alice_token, bob["id"], "  Hi Bob  ")
        assert status == 201
        first = json.loads(body)
        assert first["content"] == "Hi Bob"
        assert first["read"] is False
        _send(client, bob_token, alice["id"], "Hey Alice")
        _send(client, alice_token, bob["id"], "Free on Friday?")
        _send(client, carol_token, alice["id"], "Studio is booked")

        status, _, body = request(client, "GET", "/api/messages/unread-count", headers=auth(bob_token))
        assert json.loads(body) == {"unread": 2}

        status, _, body = request(client, "GET", "/api/messages/conversations", headers=auth(alice_token))
        conversations = json.loads(body)
        assert [c["participant"]["id"] for c in conversations] == [carol["id"], bob["id"]]
        assert conversations[0]["unread_count"] == 1
        assert conversations[1]["last_message"]["content"] == "Free on Friday?"
        assert conversations[1]["unread_count"] == 1

        status, _, body = request(client, "GET", f"/api/messages/{alice['id']}?mark_read=true", headers=auth(bob_token))
        thread = json.loads(body)
        assert [m["content"] for m in thread] == ["Hi Bob", "Hey Alice", "Free on Friday?"]
        status, _, body = request(client, "GET", "/api/messages/unread-count", headers=auth(bob_token))
        assert json.loads(body) == {"unread": 0}
    finally:
        stop_test_server(client)


def test_message_validation():
    client = start_test_server()
    try:
        alice_token, alice = register_user(client, "alice@example.com")
        _, bob = register_user(client, "bob@example.com")
        status, _, _ = _send(client, alice_token, bob["id"], "   ")
        assert status == 400
        status, _, _ = _send(client, alice_token, alice["id"], "note to self")
        assert status == 400
        status, _, _ = _send(client, alice_token, 999, "hello?")
        assert status == 404
    finally:
        stop_test_server(client)


def test_only_recipient_marks_read():
    client = start_test_server()
    try:
        alice_token, _ = register_user(client, "alice@example.com")
        bob_token, bob = register_user(client, "bob@example.com")
        _, _, body = _send(client, alice_token, bob["id"], "ping")
        message_id = json.loads(body)["id"]
        status, _, _ = request(client, "POST", f"/api/messages/{message_id}/read", headers=auth(alice_token))
        assert status == 403
        status, _, body = request(client, "POST", f"/api/messages/{message_id}/read", headers=auth(bob_token))
        assert status == 200
        assert json.loads(body)["read"] is True
    finally:
        stop_test_server(client)
