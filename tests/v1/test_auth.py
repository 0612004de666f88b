# tests/v1/test_auth.py
"""Tests for the magic link, dev login and token endpoints."""

from urllib.parse import parse_qs, urlsplit

from fastapi import status

TEST_REDIRECT_URI = "http://nakama.test/login-callback"


def fragment(response) -> dict[str, str]:
    location = response.headers["location"]
    assert location.startswith(TEST_REDIRECT_URI + "#")
    return {key: values[0] for key, values in parse_qs(urlsplit(location).fragment).items()}


def request_link(client, sender, email: str) -> str:
    r = client.post("/api/send_magic_link", json={"email": email, "redirect_uri": TEST_REDIRECT_URI})
    assert r.status_code == status.HTTP_204_NO_CONTENT
    link = urlsplit(sender.sent[-1][3])
    return f"{link.path}?{link.query}"


def test_magic_link_signup_redirects_with_token(client, sender, service) -> None:
    """A fresh e-mail plus username creates the account and returns a token."""
    path = request_link(client, sender, "newbie@example.com")

    r = client.get(path + "&username=newbie", follow_redirects=False)
    assert r.status_code == status.HTTP_302_FOUND
    data = fragment(r)
    assert data["user.username"] == "newbie"
    assert service.auth_user_id(data["token"]) == data["user.id"]

    # The code is single use.
    again = fragment(client.get(path + "&username=newbie", follow_redirects=False))
    assert again == {"error": "verification code not found"}


def test_magic_link_errors_go_to_the_fragment(client, sender, make_user) -> None:
    """Service errors end up in the redirect, tagged with their field."""
    make_user("taken")
    path = request_link(client, sender, "someone@example.com")

    r = client.get(path + "&username=taken", follow_redirects=False)
    assert r.status_code == status.HTTP_302_FOUND
    assert fragment(r) == {"error": "username taken", "field": "username"}


def test_send_magic_link_rejects_untrusted_redirect(client, sender) -> None:
    """Redirects outside the service origin are refused before any mail goes out."""
    r = client.post(
        "/api/send_magic_link",
        json={"email": "someone@example.com", "redirect_uri": "https://evil.test/cb"},
    )
    assert r.status_code == status.HTTP_403_FORBIDDEN
    assert r.json() == {"errors": {"redirect_uri": ["untrusted redirect URI"]}}
    assert sender.sent == []


def test_dev_login_and_auth_user(client, make_user) -> None:
    """dev_login issues a token usable on authenticated endpoints."""
    user = make_user("dev")

    r = client.post("/api/dev_login", json={"email": "dev@example.com"})
    assert r.status_code == status.HTTP_200_OK
    token = r.json()["token"]

    r = client.get("/api/auth_user", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == status.HTTP_200_OK
    body = r.json()
    assert body["id"] == user.id
    assert body["email"] == "dev@example.com"
    assert body["relationship"]["is_me"] is True

    r = client.get("/api/token", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == status.HTTP_200_OK
    assert r.json()["token"]


def test_auth_user_requires_a_valid_token(client) -> None:
    """Anonymous and forged requests are rejected."""
    r = client.get("/api/auth_user")
    assert r.status_code == status.HTTP_401_UNAUTHORIZED
    assert r.json() == {"error": "unauthenticated"}

    r = client.get("/api/auth_user", headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert r.json() == {"errors": {"token": ["invalid token"]}}
