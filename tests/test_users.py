import json

from test_api import auth, create_instrument, register_user, request, start_test_server, stop_test_server


def test_profile_update_is_self_only():
    client = start_test_server()
    try:
        alice_token, alice = register_user(client, "alice@example.com", location="Austin")
        bob_token, _ = register_user(client, "bob@example.com")

        status, _, body = request(
            client,
            "PUT",
            f"/api/users/{alice['id']}",
            {"bio": "Session bassist", "years_experience": 12, "hourly_rate": "85.50"},
            auth(alice_token),
        )
        assert status == 200
        user = json.loads(body)["user"]
        assert user["bio"] == "Session bassist"
        assert user["hourly_rate"] == 85.5
        assert user["musician_profile"]["years_experience"] == 12

        status, _, body = request(client, "PUT", f"/api/users/{alice['id']}", {"bio": "hacked"}, auth(bob_token))
        assert status == 403
        assert json.loads(body)["detail"] == "You can only modify your own profile"
    finally:
        stop_test_server(client)


def test_null_name_is_ignored_on_update():
    client = start_test_server()
    try:
        token, alice = register_user(client, "alice@example.com")
        status, _, body = request(
            client,
            "PUT",
            f"/api/users/{alice['id']}",
            {"first_name": None, "last_name": None, "bio": "Drummer"},
            auth(token),
        )
        assert status == 200
        user = json.loads(body)["user"]
        assert user["first_name"] == "Alice"
        assert user["last_name"] == "Tester"
        assert user["bio"] == "Drummer"
    finally:
        stop_test_server(client)


def test_non_musician_cannot_set_musician_fields():
    client = start_test_server()
    try:
        token, user = register_user(client, "studio@example.com", user_type="studio")
        status, _, _ = request(client, "PUT", f"/api/users/{user['id']}", {"years_experience": 3}, auth(token))
        assert status == 400
        status, _, _ = request(client, "PUT", f"/api/users/{user['id']}/genres", {"genre_ids": []}, auth(token))
        assert status == 400
    finally:
        stop_test_server(client)


def test_public_profile_hides_email_and_reports_rating():
    client = start_test_server()
    try:
        alice_token, alice = register_user(client, "alice@example.com")
        bob_token, _ = register_user(client, "bob@example.com", user_type="producer")
        request(client, "POST", "/api/reviews", {"reviewee_id": alice["id"], "rating": 4}, auth(bob_token))

        status, _, body = request(client, "GET", f"/api/users/{alice['id']}", headers=auth(bob_token))
        assert status == 200
        profile = json.loads(body)
        assert "email" not in profile
        assert profile["average_rating"] == 4.0
        assert profile["review_count"] == 1

        status, _, _ = request(client, "GET", "/api/users/999", headers=auth(bob_token))
        assert status == 404
    finally:
        stop_test_server(client)


def test_instrument_skills_and_musician_search():
    client = start_test_server()
    try:
        alice_token, alice = register_user(client, "alice@example.com", location="Austin, TX")
        bob_token, _ = register_user(client, "bob@example.com", location="Nashville")
        bass = create_instrument(client, alice_token, "Bass Guitar")
        drums = create_instrument(client, alice_token, "Drums", "Percussion")

        status, _, body = request(
            client,
            "PUT",
            f"/api/users/{alice['id']}/instruments",
            {"instruments": [{"instrument_id": bass, "proficiency_level": 5}]},
            auth(alice_token),
        )
        assert status == 200
        skills = json.loads(body)["user"]["musician_profile"]["instruments"]
        assert skills == [{"instrument_id": bass, "name": "Bass Guitar", "category": "Strings", "proficiency_level": 5}]

        status, _, _ = request(
            client,
            "PUT",
            f"/api/users/{alice['id']}/instruments",
            {"instruments": [{"instrument_id": drums, "proficiency_level": 6}]},
            auth(alice_token),
        )
        assert status == 400

        status, _, body = request(client, "GET", f"/api/users/musicians?instrument_id={bass}", headers=auth(bob_token))
        assert [u["id"] for u in json.loads(body)] == [alice["id"]]

        status, _, body = request(client, "GET", "/api/users/musicians?location=austin", headers=auth(bob_token))
        assert [u["id"] for u in json.loads(body)] == [alice["id"]]

        status, _, body = request(client, "GET", "/api/users?q=bob", headers=auth(alice_token))
        assert [u["first_name"] for u in json.loads(body)] == ["Bob"]
    finally:
        stop_test_server(client)


def test_replacing_genres():
    client = start_test_server()
    try:
        token, user = register_user(client, "alice@example.com")
        genre_ids = []
        for name in ("Jazz", "Funk"):
            status, _, body = request(client, "POST", "/api/genres", {"name": name}, auth(token))
            assert status == 201
            genre_ids.append(json.loads(body)["id"])

        status, _, body = request(client, "PUT", f"/api/users/{user['id']}/genres", {"genre_ids": genre_ids}, auth(token))
        assert status == 200
        assert {g["name"] for g in json.loads(body)["user"]["musician_profile"]["genres"]} == {"Jazz", "Funk"}

        status, _, body = request(
            client, "PUT", f"/api/users/{user['id']}/genres", {"genre_ids": genre_ids[:1]}, auth(token)
        )
        assert [g["name"] for g in json.loads(body)["user"]["musician_profile"]["genres"]] == ["Jazz"]
    finally:
        stop_test_server(client)
