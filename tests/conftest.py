# tests/conftest.py
from __future__ import annotations

import threading
from collections.abc import Callable, Generator, Iterator
from itertools import count

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from nakama import models
from nakama.core.security import TokenCodec
from nakama.db.session import Base, create_tables, drop_tables, make_engine
from nakama.mailing import LoggingSender
from nakama.main import app as fastapi_app
from nakama.pubsub import Hub
from nakama.services import Service
from nakama.services.base import AVATARS_BUCKET, POST_ATTACHMENTS_BUCKET
from nakama.services.posts import insert_tags
from nakama.storage import MemoryBlobStore, Uploader, create_read_only_bucket

TEST_TOKEN_KEY = bytes(range(32))
TEST_ORIGIN = "http://nakama.test"

_USER_COUNTER = count(1)


@pytest.fixture(scope="session")
def engine(tmp_path_factory: pytest.TempPathFactory) -> Generator[Engine, None, None]:
    # A file database lets background workers use their own connections.
    path = tmp_path_factory.mktemp("db") / "nakama.db"
    engine = make_engine(f"sqlite:///{path}")
    create_tables(engine)
    try:
        yield engine
    finally:
        drop_tables(engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> Iterator[sessionmaker[Session]]:
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    try:
        yield factory
    finally:
        # Ensure each test sees a clean database.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def blob_store() -> MemoryBlobStore:
    store = MemoryBlobStore()
    for bucket in (AVATARS_BUCKET, POST_ATTACHMENTS_BUCKET):
        create_read_only_bucket(store, bucket)
    return store


@pytest.fixture()
def sender() -> LoggingSender:
    return LoggingSender()


@pytest.fixture()
def service(
    session_factory: sessionmaker[Session], blob_store: MemoryBlobStore, sender: LoggingSender
) -> Iterator[Service]:
    """Service on the test database.

    A single background worker keeps SQLite writers few; tests call
    ``wait_background`` before reading what those tasks wrote.
    """
    service = Service(
        session_factory=session_factory,
        hub=Hub(),
        tokens=TokenCodec(TEST_TOKEN_KEY, 3600),
        sender=sender,
        uploader=Uploader(blob_store, cleanup_timeout=1.0),
        origin=TEST_ORIGIN,
        allowed_origins=["http://localhost:5173"],
        avatar_url_prefix="http://cdn.test/avatars/",
        media_url_prefix="http://cdn.test/post-attachments/",
        background_workers=1,
        background_timeout=5.0,
    )
    try:
        yield service
    finally:
        service.close()


@pytest.fixture()
def make_user(session_factory: sessionmaker[Session]) -> Callable[..., models.User]:
    """Persist a user; the returned instance is detached but fully loaded."""

    def _make_user(username: str | None = None, *, email: str | None = None) -> models.User:
        username = username or f"user{next(_USER_COUNTER)}"
        with session_factory() as db:
            user = models.User(email=email or f"{username.lower()}@example.com", username=username)
            db.add(user)
            db.commit()
            db.refresh(user)
            db.expunge(user)
        return user

    return _make_user


@pytest.fixture()
def make_post(session_factory: sessionmaker[Session]) -> Callable[..., models.Post]:
    """Persist a post with its tags and author subscription, skipping fan-out."""

    def _make_post(user: models.User, content: str = "hello", **fields) -> models.Post:
        with session_factory() as db:
            post = models.Post(user_id=user.id, content=content, **fields)
            db.add(post)
            db.flush()
            db.add(models.PostSubscription(user_id=user.id, post_id=post.id))
            insert_tags(db, post.id, content)
            db.commit()
            db.refresh(post)
            db.expunge(post)
        return post

    return _make_post


@pytest.fixture()
def app(service: Service) -> Iterator[FastAPI]:
    fastapi_app.state.service = service
    try:
        yield fastapi_app
    finally:
        del fastapi_app.state.service


@pytest.fixture()
def client(app: FastAPI) -> TestClient:
    # Not entered as a context manager: startup would connect to MinIO.
    return TestClient(app, base_url="http://nakama.test")


@pytest.fixture()
def auth_headers(service: Service) -> Callable[[models.User], dict[str, str]]:
    """Return authorization headers for a user."""

    def _auth_headers(user: models.User) -> dict[str, str]:
        return {"Authorization": f"Bearer {service.tokens.encode(user.id)}"}

    return _auth_headers


@pytest.fixture()
def run_concurrently() -> Callable[..., list[Exception]]:
    """Run each ``(fn, *args)`` call on its own thread; return the raised errors."""

    def _run(*calls: tuple) -> list[Exception]:
        errors: list[Exception] = []

        def target(fn: Callable[..., object], *args: object) -> None:
            try:
                fn(*args)
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=target, args=call) for call in calls]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(10)
        return errors

    return _run
