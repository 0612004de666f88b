# tests/v1/test_notifications.py
"""Tests for notification and timeline endpoints."""

from fastapi import status


def test_notification_inbox(client, service, make_user, auth_headers) -> None:
    """Follows produce a notification that can be marked read."""
    dave = make_user("dave")
    carol = make_user("carol")

    client.post(f"/api/users/{dave.id}/toggle_follow", headers=auth_headers(carol))
    service.wait_background(5)

    r = client.get("/api/has_unread_notifications", headers=auth_headers(dave))
    assert r.json() == {"has_unread": True}

    r = client.get("/api/notifications", headers=auth_headers(dave))
    [notification] = r.json()["items"]
    assert notification["kind"] == "follow"
    assert notification["actor_user_ids"] == [carol.id]
    assert notification["actors"][0]["username"] == "carol"

    r = client.post(f"/api/notifications/{notification['id']}/mark_as_read", headers=auth_headers(dave))
    assert r.status_code == status.HTTP_204_NO_CONTENT
    assert client.get("/api/has_unread_notifications", headers=auth_headers(dave)).json() == {"has_unread": False}


def test_mark_all_notifications_as_read(client, service, make_user, auth_headers) -> None:
    """One call clears the whole inbox."""
    dave = make_user("dave")
    for name in ("eve", "frank"):
        client.post(f"/api/users/{dave.id}/toggle_follow", headers=auth_headers(make_user(name)))
        service.wait_background(5)

    r = client.post("/api/mark_notifications_as_read", headers=auth_headers(dave))
    assert r.status_code == status.HTTP_204_NO_CONTENT
    items = client.get("/api/notifications", headers=auth_headers(dave)).json()["items"]
    assert all(n["read_at"] is not None for n in items)


def test_timeline(client, service, make_user, auth_headers) -> None:
    """Followers see new posts and can hide them from their own feed."""
    author = make_user("author")
    follower = make_user("follower")
    client.post(f"/api/users/{author.id}/toggle_follow", headers=auth_headers(follower))
    service.wait_background(5)

    post = client.post("/api/posts", data={"content": "fresh"}, headers=auth_headers(author)).json()
    service.wait_background(5)

    r = client.get("/api/timeline", headers=auth_headers(follower))
    [item] = r.json()["items"]
    assert item["post"]["id"] == post["id"]

    r = client.delete(f"/api/timeline/{item['id']}", headers=auth_headers(follower))
    assert r.status_code == status.HTTP_204_NO_CONTENT
    assert client.get("/api/timeline", headers=auth_headers(follower)).json()["items"] == []
    assert len(client.get("/api/timeline", headers=auth_headers(author)).json()["items"]) == 1
