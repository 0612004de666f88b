# tests/v1/test_error_responses.py
"""Tests for the mapping of service errors to HTTP responses."""

import logging

from fastapi import status
from fastapi.testclient import TestClient

from nakama import id as ids


def test_domain_errors_map_to_status_codes(client, make_user, auth_headers) -> None:
    """Each error kind has its own status and body shape."""
    user = make_user("mapper")
    missing = ids.generate()

    r = client.get(f"/api/posts/{missing}")
    assert r.status_code == status.HTTP_404_NOT_FOUND
    assert r.json() == {"error": "post not found"}

    r = client.get("/api/posts/not-an-id")
    assert r.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert r.json() == {"errors": {"post_id": ["Invalid post ID"]}}

    r = client.post("/api/chats", json={"other_user_id": user.id, "content": "me"}, headers=auth_headers(user))
    assert r.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    r = client.get("/api/timeline")
    assert r.status_code == status.HTTP_401_UNAUTHORIZED


def test_unexpected_errors_are_logged_and_hidden(app, service, mocker, caplog) -> None:
    """Unexpected exceptions become a generic 500 and are logged with the request."""
    mocker.patch.object(service, "has_unread_notifications", side_effect=RuntimeError("db exploded"))
    client = TestClient(app, base_url="http://nakama.test", raise_server_exceptions=False)

    with caplog.at_level(logging.ERROR, logger="nakama.api.v1.errors"):
        r = client.get("/api/has_unread_notifications")

    assert r.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert r.json() == {"error": "internal server error"}
    assert "GET http://nakama.test/api/has_unread_notifications" in caplog.text
    assert "db exploded" in caplog.text
