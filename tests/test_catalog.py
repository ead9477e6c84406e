import json

from sessiontrack.db import SessionLocal
from sessiontrack.db.seed import DEFAULT_GENRES, seed_catalog

from test_api import auth, create_instrument, register_user, request, start_test_server, stop_test_server


def test_instruments_are_listed_by_name_and_unique():
    client = start_test_server()
    try:
        token, _ = register_user(client, "alice@example.com")
        create_instrument(client, token, "Violin", "Strings")
        create_instrument(client, token, "Cello", "Strings")
        create_instrument(client, token, "Drums", "Percussion")

        status, _, body = request(
            client, "POST", "/api/instruments", {"name": "violin", "category": "Strings"}, auth(token)
        )
        assert status == 409
        assert json.loads(body)["detail"] == "Instrument already exists"

        status, _, body = request(client, "GET", "/api/instruments")
        assert [i["name"] for i in json.loads(body)] == ["Cello", "Drums", "Violin"]
        status, _, body = request(client, "GET", "/api/instruments?category=percussion")
        assert [i["name"] for i in json.loads(body)] == ["Drums"]
    finally:
        stop_test_server(client)


def test_creating_catalog_entries_requires_login():
    client = start_test_server()
    try:
        status, _, _ = request(client, "POST", "/api/genres", {"name": "Jazz"})
        assert status == 401
    finally:
        stop_test_server(client)


def test_genre_conflict():
    client = start_test_server()
    try:
        token, _ = register_user(client, "alice@example.com")
        status, _, _ = request(client, "POST", "/api/genres", {"name": "Jazz"}, auth(token))
        assert status == 201
        status, _, body = request(client, "POST", "/api/genres", {"name": "JAZZ"}, auth(token))
        assert status == 409
        assert json.loads(body)["detail"] == "Genre already exists"
    finally:
        stop_test_server(client)


def test_seed_catalog_is_idempotent():
    db = SessionLocal()
    try:
        instruments, genres = seed_catalog(db)
        assert instruments > 0
        assert genres == len(DEFAULT_GENRES)
        assert seed_catalog(db) == (0, 0)
    finally:
        db.close()
