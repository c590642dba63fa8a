"""
Shared fixtures.

Tests never read the real environment: settings are built explicitly
with _env_file=None and the B2 variables are cleared.
"""

import pytest

from whisperdrop.config.settings import Settings
from whisperdrop.infrastructure.storage.client import MockStorageClient

_ENV_VARS = (
    "B2_ENDPOINT",
    "B2_REGION",
    "B2_KEY_ID",
    "B2_APP_KEY",
    "B2_BUCKET",
    "STORAGE_MOCK_MODE",
    "AUTO_SETUP_CORS",
    "URL_EXPIRY_SECONDS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def mock_store() -> MockStorageClient:
    """Empty in-memory bucket with no CORS policy."""
    return MockStorageClient(bucket_name="test-bucket")


@pytest.fixture
def mock_settings() -> Settings:
    """Mock-mode settings with startup reconciliation off."""
    return Settings(
        _env_file=None,
        storage_mock_mode=True,
        b2_bucket="test-bucket",
        auto_setup_cors=False,
    )


@pytest.fixture
def b2_settings() -> Settings:
    """Complete settings for a real (stubbed) B2 bucket."""
    return Settings(
        _env_file=None,
        b2_endpoint="https://s3.us-west-002.backblazeb2.com",
        b2_key_id="test-key-id",
        b2_app_key="test-app-key",
        b2_bucket="test-bucket",
    )
