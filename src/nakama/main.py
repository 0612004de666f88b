# src/nakama/main.py
"""Main entry point for the Nakama application."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

import httpx
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from minio import Minio

from nakama import __version__
from nakama.api.v1 import api_v1, install_error_handlers
from nakama.core.security import TokenCodec
from nakama.core.settings import settings
from nakama.db.session import SessionLocal, create_tables, engine
from nakama.mailing import LoggingSender
from nakama.preview import Fetcher, Monitored
from nakama.pubsub import Hub
from nakama.services import Service
from nakama.services.base import AVATARS_BUCKET, POST_ATTACHMENTS_BUCKET
from nakama.storage import Uploader, create_read_only_bucket

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Nakama API",
    description="Small social network: posts, comments, follows, chats and publications",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware)

install_error_handlers(app)
app.include_router(api_v1, prefix="/api")


def build_service(http_client: httpx.AsyncClient) -> Service:
    """Wire the service with its production collaborators."""
    store = Minio(
        settings.minio_endpoint,
        access_key=settings.minio_access_key,
        secret_key=settings.minio_secret_key,
        secure=settings.minio_secure,
    )
    for bucket in (AVATARS_BUCKET, POST_ATTACHMENTS_BUCKET):
        create_read_only_bucket(store, bucket)

    fetcher = Fetcher(
        http_client,
        size=settings.preview_cache_size,
        success_ttl=settings.preview_success_ttl,
        error_ttl=settings.preview_error_ttl,
        timeout=settings.preview_timeout,
    )
    return Service(
        session_factory=SessionLocal,
        hub=Hub(),
        tokens=TokenCodec(settings.token_key_bytes, settings.token_ttl_seconds),
        sender=LoggingSender(),
        uploader=Uploader(store, cleanup_timeout=settings.cleanup_timeout),
        previews=Monitored(fetcher),
        origin=settings.origin,
        allowed_origins=settings.allowed_origins,
        avatar_url_prefix=settings.avatar_url_prefix,
        media_url_prefix=settings.media_url_prefix,
        disabled_dev_login=settings.disabled_dev_login,
        verification_code_ttl=timedelta(seconds=settings.verification_code_ttl_seconds),
        background_workers=settings.background_workers,
        background_timeout=settings.background_timeout,
    )


@app.on_event("startup")
async def on_startup() -> None:
    create_tables(engine)
    app.state.http_client = httpx.AsyncClient(follow_redirects=True)
    app.state.service = build_service(app.state.http_client)
    logger.info("nakama %s ready at %s", __version__, settings.origin)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    service: Service | None = getattr(app.state, "service", None)
    if service is not None:
        service.hub.close()
        if service.uploader is not None:
            await service.uploader.close()
        await asyncio.to_thread(service.close)
    client: httpx.AsyncClient | None = getattr(app.state, "http_client", None)
    if client is not None:
        await client.aclose()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


def run() -> None:
    """Serve the API with uvicorn; configured through ``NAKAMA_*`` variables."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
