"""Application settings and configuration.

This module defines all configuration options for the Nakama service.
Settings are loaded from ``NAKAMA_*`` environment variables with sensible defaults.
"""

from urllib.parse import urlsplit

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Nakama", alias="NAKAMA_APP_NAME")
    app_version: str = Field(default="0.1.0", alias="NAKAMA_APP_VERSION")
    debug: bool = Field(default=False, alias="NAKAMA_DEBUG")
    log_level: str = Field(default="INFO", alias="NAKAMA_LOG_LEVEL")

    # HTTP server
    host: str = Field(default="0.0.0.0", alias="NAKAMA_HOST")
    port: int = Field(default=4444, alias="NAKAMA_PORT")
    origin: str = Field(default="http://localhost:4444", alias="NAKAMA_ORIGIN")
    allowed_origins: list[str] = Field(default=[], alias="NAKAMA_ALLOWED_ORIGINS")
    cors_origins: list[str] = Field(default=["*"], alias="NAKAMA_CORS_ORIGINS")

    # Database configuration
    cockroach_url: str = Field(default="sqlite:///./nakama.db", alias="NAKAMA_COCKROACH_URL")
    test_database_url: str | None = Field(default=None, alias="NAKAMA_TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="NAKAMA_USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="NAKAMA_SQL_DEBUG")

    # Object storage
    minio_endpoint: str = Field(default="localhost:9000", alias="NAKAMA_MINIO_ENDPOINT")
    minio_access_key: str = Field(default="minioadmin", alias="NAKAMA_MINIO_ACCESS_KEY")
    minio_secret_key: str = Field(default="minioadmin", alias="NAKAMA_MINIO_SECRET_KEY")
    minio_secure: bool = Field(default=False, alias="NAKAMA_MINIO_SECURE")
    avatar_url_prefix: str = Field(
        default="http://localhost:9000/avatars/",
        alias="NAKAMA_AVATAR_URL_PREFIX",
    )
    media_url_prefix: str = Field(
        default="http://localhost:9000/post-attachments/",
        alias="NAKAMA_MEDIA_URL_PREFIX",
    )

    # Background work
    cleanup_timeout: float = Field(default=5.0, alias="NAKAMA_CLEANUP_TIMEOUT")
    background_timeout: float = Field(default=30.0, alias="NAKAMA_BACKGROUND_TIMEOUT")
    background_workers: int = Field(default=4, alias="NAKAMA_BACKGROUND_WORKERS")

    # Authentication
    token_key: str = Field(
        default="73757065722d7365637265742d6b65792d666f722d6e616b616d612d64657621",
        alias="NAKAMA_TOKEN_KEY",
    )
    token_ttl_seconds: int = Field(default=60 * 60 * 24 * 14, alias="NAKAMA_TOKEN_TTL_SECONDS")
    verification_code_ttl_seconds: int = Field(
        default=60 * 60 * 2,
        alias="NAKAMA_VERIFICATION_CODE_TTL_SECONDS",
    )
    disabled_dev_login: bool = Field(default=False, alias="NAKAMA_DISABLED_DEV_LOGIN")

    # Link previews
    preview_cache_size: int = Field(default=256, alias="NAKAMA_PREVIEW_CACHE_SIZE")
    preview_success_ttl: float = Field(default=60 * 60, alias="NAKAMA_PREVIEW_SUCCESS_TTL")
    preview_error_ttl: float = Field(default=60 * 5, alias="NAKAMA_PREVIEW_ERROR_TTL")
    preview_timeout: float = Field(default=10.0, alias="NAKAMA_PREVIEW_TIMEOUT")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.cockroach_url

    @property
    def token_key_bytes(self) -> bytes:
        """Return the symmetric token key as raw bytes.

        Raises:
            ValueError: If the configured key is not 32 bytes of hex.
        """
        key = bytes.fromhex(self.token_key)
        if len(key) != 32:
            raise ValueError("NAKAMA_TOKEN_KEY must be 32 bytes encoded as hex")
        return key

    @property
    def origin_host(self) -> str:
        """Return the host name of the public origin."""
        return urlsplit(self.origin).hostname or ""


settings = Settings()
