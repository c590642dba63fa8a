"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables (and `.env`) with
sensible defaults. Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

Settings are read once here and turned into explicit config objects
(StorageConfig) for the storage layer. Nothing in core/ reads the
environment.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..infrastructure.storage.client import StorageConfig


class ConfigurationError(RuntimeError):
    """Raised when required configuration is missing."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"Missing required environment variables: {', '.join(missing)}")
        self.missing = missing


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Variable names follow the field names, case-insensitively
    (b2_bucket <- B2_BUCKET).
    """

    # API Configuration
    api_title: str = "Whisperdrop API"
    api_version: str = "0.1.0"

    # B2 / S3-compatible storage
    b2_endpoint: str = Field(
        default="",
        description="S3-compatible endpoint, e.g. https://s3.us-west-002.backblazeb2.com"
    )
    b2_region: str = Field(
        default="us-west-002",
        description="Region used for SigV4 signing"
    )
    b2_key_id: str = Field(
        default="",
        description="Application key ID"
    )
    b2_app_key: str = Field(
        default="",
        description="Application key secret"
    )
    b2_bucket: str = Field(
        default="",
        description="Bucket holding audio/ and transcripts/ objects"
    )
    storage_mock_mode: bool = Field(
        default=False,
        description="Use in-memory mock instead of real object storage. Enables local dev without a bucket."
    )
    storage_connect_timeout: float = Field(
        default=5.0,
        description="Seconds to wait for a connection to the object store"
    )
    storage_read_timeout: float = Field(
        default=30.0,
        description="Seconds to wait for an object store response"
    )

    # Grants
    url_expiry_seconds: int = Field(
        default=3600,
        ge=1,
        le=604800,
        description="Lifetime of presigned URLs. SigV4 caps this at 7 days."
    )

    # Bucket CORS
    auto_setup_cors: bool = Field(
        default=True,
        description="Reconcile the bucket CORS policy once on startup"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS for this API
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of origins allowed to call this API."
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 3000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def validate_required_fields(self) -> list[str]:
        """
        Return the names of required variables that are unset.

        Storage credentials aren't needed in mock mode.
        """
        if self.storage_mock_mode:
            return []

        missing = []
        if not self.b2_endpoint:
            missing.append("B2_ENDPOINT")
        if not self.b2_key_id:
            missing.append("B2_KEY_ID")
        if not self.b2_app_key:
            missing.append("B2_APP_KEY")
        if not self.b2_bucket:
            missing.append("B2_BUCKET")
        return missing

    def require_valid(self) -> None:
        """Raise ConfigurationError if anything required is missing."""
        missing = self.validate_required_fields()
        if missing:
            raise ConfigurationError(missing)

    def storage_config(self) -> StorageConfig:
        return StorageConfig(
            access_key_id=self.b2_key_id,
            secret_access_key=self.b2_app_key,
            bucket_name=self.b2_bucket,
            endpoint_url=self.b2_endpoint,
            region=self.b2_region,
            connect_timeout=self.storage_connect_timeout,
            read_timeout=self.storage_read_timeout,
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    For tests, call get_settings.cache_clear() to reset.
    """
    return Settings()
