"""
Tests for settings, startup reconciliation and the operator command.
"""

import logging

import pytest

from whisperdrop import cli
from whisperdrop.bootstrap import build_storage_client, reconcile_on_startup
from whisperdrop.config.settings import ConfigurationError, Settings
from whisperdrop.core.storage.models import DESIRED_CORS_POLICY
from whisperdrop.infrastructure.storage.client import MockStorageClient, S3StorageClient


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

class TestSettings:

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.b2_region == "us-west-002"
        assert settings.url_expiry_seconds == 3600
        assert settings.auto_setup_cors is True

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("B2_BUCKET", "from-env")
        monkeypatch.setenv("AUTO_SETUP_CORS", "false")
        monkeypatch.setenv("URL_EXPIRY_SECONDS", "120")

        settings = Settings(_env_file=None)

        assert settings.b2_bucket == "from-env"
        assert settings.auto_setup_cors is False
        assert settings.url_expiry_seconds == 120

    def test_reports_every_missing_field(self):
        missing = Settings(_env_file=None).validate_required_fields()
        assert missing == ["B2_ENDPOINT", "B2_KEY_ID", "B2_APP_KEY", "B2_BUCKET"]

    def test_require_valid_raises(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Settings(_env_file=None, b2_bucket="b").require_valid()

        assert "B2_BUCKET" not in exc_info.value.missing
        assert "B2_ENDPOINT" in str(exc_info.value)

    def test_mock_mode_needs_no_credentials(self, mock_settings):
        assert mock_settings.validate_required_fields() == []

    def test_complete_settings_are_valid(self, b2_settings):
        b2_settings.require_valid()

    def test_storage_config_carries_credentials(self, b2_settings):
        config = b2_settings.storage_config()

        assert config.bucket_name == "test-bucket"
        assert config.access_key_id == "test-key-id"
        assert config.endpoint_url == "https://s3.us-west-002.backblazeb2.com"
        assert config.region == "us-west-002"

    def test_cors_origins_list(self):
        assert Settings(_env_file=None).cors_origins_list == ["*"]
        settings = Settings(_env_file=None, cors_origins="https://a.example, https://b.example")
        assert settings.cors_origins_list == ["https://a.example", "https://b.example"]


class TestBuildStorageClient:

    def test_mock_mode(self, mock_settings):
        assert isinstance(build_storage_client(mock_settings), MockStorageClient)

    def test_real_mode(self, b2_settings):
        assert isinstance(build_storage_client(b2_settings), S3StorageClient)


# ---------------------------------------------------------------------------
# Startup reconciliation
# ---------------------------------------------------------------------------

class TestReconcileOnStartup:

    @pytest.mark.asyncio
    async def test_success(self, mock_store):
        status = await reconcile_on_startup(mock_store)

        assert status.state == "ok"
        assert status.healthy
        assert mock_store.cors_policy == DESIRED_CORS_POLICY

    @pytest.mark.asyncio
    async def test_failure_is_logged_not_raised(self, mock_store, caplog):
        mock_store.fail(
            "put_bucket_cors",
            "The bucket contains B2 Native CORS rules",
            code="InvalidRequest",
        )

        status = await reconcile_on_startup(mock_store)

        assert status.state == "failed"
        assert not status.healthy
        assert status.error_kind == "provider_mode_conflict"
        assert "Could not verify/setup CORS automatically" in caplog.text
        assert "secure.backblaze.com" in caplog.text

    @pytest.mark.asyncio
    async def test_failure_remediation_logged_once_as_warning(self, mock_store, caplog):
        caplog.set_level(logging.INFO)
        mock_store.fail("put_bucket_cors", "Access Denied", code="AccessDenied", status_code=403)

        await reconcile_on_startup(mock_store)

        remediation = [r for r in caplog.records if "writeBuckets" in r.getMessage()]
        assert [r.levelno for r in remediation] == [logging.WARNING]


# ---------------------------------------------------------------------------
# Operator command
# ---------------------------------------------------------------------------

class TestCli:

    def test_applies_cors_in_mock_mode(self, mock_settings):
        assert cli.main([], settings=mock_settings) == 0

    def test_force_flag(self, mock_settings, monkeypatch):
        calls = []

        async def fake_setup(settings, force=False):
            calls.append(force)
            from whisperdrop.bootstrap import run_cors_setup
            return await run_cors_setup(settings, force=force)

        monkeypatch.setattr(cli, "run_cors_setup", fake_setup)

        assert cli.main(["--force"], settings=mock_settings) == 0
        assert calls == [True]

    def test_missing_configuration_exits_one(self):
        assert cli.main([], settings=Settings(_env_file=None)) == 1

    def test_unrecoverable_failure_exits_nonzero(self, mock_settings, monkeypatch):
        original = MockStorageClient.__init__

        def failing_init(self, *args, **kwargs):
            original(self, *args, **kwargs)
            self.fail("put_bucket_cors", "Access Denied", code="AccessDenied", status_code=403)

        monkeypatch.setattr(MockStorageClient, "__init__", failing_init)

        with pytest.raises(SystemExit) as exc_info:
            cli.main([], settings=mock_settings)

        assert exc_info.value.code == 1

    @pytest.mark.parametrize("configured, expected", [
        ("WARNING", "INFO"),
        ("error", "INFO"),
        ("INFO", "INFO"),
        ("debug", "DEBUG"),
        ("nonsense", "INFO"),
    ])
    def test_log_level_never_hides_progress(self, configured, expected):
        assert cli.operator_log_level(configured) == expected

    def test_quiet_log_level_setting_still_narrates(self, mock_settings, monkeypatch):
        levels = []
        monkeypatch.setattr(cli, "configure_logging", levels.append)
        settings = mock_settings.model_copy(update={"log_level": "WARNING"})

        assert cli.main([], settings=settings) == 0
        assert levels == ["INFO"]
