# tests/v1/test_users.py
"""Tests for profile, search, follow and avatar endpoints."""

from unittest.mock import AsyncMock

from fastapi import status

from nakama import ffmpeg


def test_profiles(client, make_user, auth_headers) -> None:
    """Profiles are reachable by username and id; e-mail only for oneself."""
    user = make_user("Hikari")

    r = client.get("/api/users/hikari")
    assert r.status_code == status.HTTP_200_OK
    assert r.json()["id"] == user.id
    assert r.json()["email"] is None

    r = client.get(f"/api/user_ids/{user.id}", headers=auth_headers(user))
    assert r.json()["email"] == "hikari@example.com"

    assert client.get("/api/users/nobody").status_code == status.HTTP_404_NOT_FOUND
    assert client.get("/api/user_ids/bad-id").status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_search_users(client, make_user) -> None:
    """Search returns numbered pages."""
    for name in ("sora", "sorano", "tsora"):
        make_user(name)

    r = client.get("/api/users", params={"search": "sora", "per_page": 2})
    body = r.json()
    assert [u["username"] for u in body["items"]] == ["sora", "sorano"]
    assert body["page_info"]["next_page"] == 2


def test_toggle_follow(client, service, make_user, auth_headers) -> None:
    """Following twice unfollows; follower lists reflect the graph."""
    star = make_user("star")
    fan = make_user("fan")

    r = client.post(f"/api/users/{star.id}/toggle_follow", headers=auth_headers(fan))
    assert r.json() == {"following": True, "followers_count": 1}
    service.wait_background(5)

    r = client.get(f"/api/users/{star.id}/followers", headers=auth_headers(star))
    [follower] = r.json()["items"]
    assert follower["username"] == "fan"
    assert follower["relationship"]["follows_you"] is True

    r = client.get(f"/api/users/{fan.id}/followees")
    assert [u["username"] for u in r.json()["items"]] == ["star"]

    r = client.post(f"/api/users/{star.id}/toggle_follow", headers=auth_headers(fan))
    assert r.json() == {"following": False, "followers_count": 0}

    r = client.post(f"/api/users/{star.id}/toggle_follow", headers=auth_headers(star))
    assert r.status_code == status.HTTP_403_FORBIDDEN


def test_update_avatar(client, service, make_user, auth_headers, mocker) -> None:
    """The avatar upload returns the public URL of the stored image."""
    user = make_user("painter")
    mocker.patch.object(
        ffmpeg,
        "resize_images",
        AsyncMock(side_effect=lambda max_res, streams: [
            ffmpeg.ProcessedImage(streams[0], 100, 100, "image/webp", 9)
        ]),
    )

    r = client.put(
        "/api/auth_user/avatar",
        files={"avatar": ("me.webp", b"webp-data", "image/webp")},
        headers=auth_headers(user),
    )
    assert r.status_code == status.HTTP_200_OK
    url = r.json()["avatar_url"]
    assert url.startswith("http://cdn.test/avatars/") and url.endswith(".webp")
    assert client.get("/api/users/painter").json()["avatar_url"] == url
