# tests/v1/test_publications.py
"""Tests for publication and chapter endpoints."""

from fastapi import status


def test_publication_and_chapters(client, make_user, auth_headers) -> None:
    """Authors publish works and add numbered chapters."""
    author = make_user("mangaka")

    r = client.post(
        "/api/publications",
        json={"kind": "manga", "title": "Tide", "description": "Sea stories."},
        headers=auth_headers(author),
    )
    assert r.status_code == status.HTTP_201_CREATED
    pub_id = r.json()["id"]

    assert client.get(f"/api/publications/{pub_id}/latest_chapter_number").json() == {"number": 0}

    for number in (1, 2):
        r = client.post(
            f"/api/publications/{pub_id}/chapters",
            json={"number": number, "title": f"Chapter {number}", "content": "..."},
            headers=auth_headers(author),
        )
        assert r.status_code == status.HTTP_201_CREATED

    r = client.post(
        f"/api/publications/{pub_id}/chapters",
        json={"number": 2, "title": "Dup", "content": "..."},
        headers=auth_headers(author),
    )
    assert r.status_code == status.HTTP_409_CONFLICT
    assert r.json() == {"errors": {"number": ["Chapter with this number already exists"]}}

    r = client.get(f"/api/publications/{pub_id}/chapters")
    assert [c["number"] for c in r.json()["items"]] == [2, 1]
    assert client.get(f"/api/publications/{pub_id}/chapters/1").json()["title"] == "Chapter 1"
    assert client.get(f"/api/publications/{pub_id}/latest_chapter_number").json() == {"number": 2}

    r = client.get("/api/publications", params={"kind": "manga"})
    assert [p["id"] for p in r.json()["items"]] == [pub_id]


def test_invalid_publication_kind(client, make_user, auth_headers) -> None:
    """Unknown kinds are rejected by request validation."""
    r = client.post(
        "/api/publications",
        json={"kind": "poem", "title": "T", "description": "D"},
        headers=auth_headers(make_user("poet")),
    )
    assert r.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
