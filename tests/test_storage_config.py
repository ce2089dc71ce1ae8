"""Storage configuration: connection strings, account keys and Settings wiring."""

import pytest

from app.core.config import Settings
from app.services.blob_store import BlobStorageConfig, StorageConfigurationError, StorageResult


class TestConnectionString:
    def test_parses_all_known_keys(self):
        """Keys are matched case-insensitively and unknown keys ignored."""
        config = BlobStorageConfig.from_connection_string(
            "accountname=lawdocs; AccountKey=s3cr3t;EndpointUrl=http://minio:9000;REGION=eu-west-1;Foo=bar"
        )

        assert config.account_name == "lawdocs"
        assert config.account_key == "s3cr3t"
        assert config.endpoint_url == "http://minio:9000"
        assert config.region == "eu-west-1"
        assert config.from_connection_string_mode is True
        assert config.has_signing_credentials is True

    def test_value_may_contain_equals_sign(self):
        """Base64 keys end with '='; only the first '=' splits."""
        config = BlobStorageConfig.from_connection_string("AccountName=a;AccountKey=abc==")
        assert config.account_key == "abc=="

    def test_without_key_cannot_sign(self):
        config = BlobStorageConfig.from_connection_string("AccountName=public", default_region="us-west-2")

        assert config.account_key is None
        assert config.region == "us-west-2"
        assert config.has_signing_credentials is False

    def test_segment_without_equals_is_rejected(self):
        with pytest.raises(StorageConfigurationError):
            BlobStorageConfig.from_connection_string("AccountName=a;garbage")

    def test_requires_account_or_endpoint(self):
        with pytest.raises(StorageConfigurationError):
            BlobStorageConfig.from_connection_string("AccountKey=abc;Region=us-east-1")


class TestAccountKey:
    def test_missing_credentials_raise(self):
        with pytest.raises(StorageConfigurationError):
            BlobStorageConfig.from_account_key("", "")

    def test_builds_config(self):
        config = BlobStorageConfig.from_account_key("name", "key", container_prefix="dev-")
        assert config.container_prefix == "dev-"
        assert config.has_signing_credentials is True


class TestSettings:
    def test_connection_string_wins(self):
        settings = Settings(
            STORAGE_CONNECTION_STRING="AccountName=fromcs;AccountKey=k",
            STORAGE_ACCOUNT_NAME="fromenv",
            STORAGE_ACCOUNT_KEY="envkey",
        )
        assert settings.blob_storage_config().account_name == "fromcs"

    def test_falls_back_to_account_pair(self):
        settings = Settings(
            STORAGE_CONNECTION_STRING="",
            STORAGE_ACCOUNT_NAME="fromenv",
            STORAGE_ACCOUNT_KEY="envkey",
            STORAGE_ENDPOINT_URL="",
        )
        config = settings.blob_storage_config()
        assert config.account_name == "fromenv"
        assert config.endpoint_url is None

    def test_nothing_configured_raises(self):
        settings = Settings(STORAGE_CONNECTION_STRING="", STORAGE_ACCOUNT_NAME="", STORAGE_ACCOUNT_KEY="")
        with pytest.raises(StorageConfigurationError):
            settings.blob_storage_config()


class TestStorageResult:
    def test_success_and_failure(self):
        ok = StorageResult.success([])
        failed = StorageResult.failure(RuntimeError("boom"))

        assert ok and ok.value == []
        assert not failed
        assert failed.error_message == "boom"
        assert failed.unwrap_or(["default"]) == ["default"]

    def test_unwrap_raises_original_error(self):
        with pytest.raises(RuntimeError, match="boom"):
            StorageResult.failure(RuntimeError("boom")).unwrap()
