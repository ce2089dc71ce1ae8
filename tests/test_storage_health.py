"""Startup self test and service status snapshots."""

from unittest.mock import Mock

import pytest

from app.core.config import settings
from app.services.blob_storage_service import BlobStorageService, Containers
from app.services.blob_store import BlobStore
from app.services.storage_health import (
    check_services_health,
    get_service_status,
    run_blob_storage_self_test,
)


class TestSelfTest:
    def test_round_trip_leaves_nothing_behind(self, blob_storage):
        run_blob_storage_self_test(blob_storage)

        assert blob_storage.list_files(Containers.TEMP).unwrap() == []

    def test_failure_is_reraised(self, storage_config):
        store = Mock(spec=BlobStore)
        store.list.return_value = []
        store.put.side_effect = RuntimeError("read-only account")
        service = BlobStorageService(storage_config, store=store)

        with pytest.raises(RuntimeError, match="read-only account"):
            run_blob_storage_self_test(service)

    def test_metadata_failure_is_reraised(self, storage_config):
        store = Mock(spec=BlobStore)
        store.list.return_value = []
        store.set_metadata.side_effect = RuntimeError("metadata rejected")
        service = BlobStorageService(storage_config, store=store)

        with pytest.raises(RuntimeError, match="metadata rejected"):
            run_blob_storage_self_test(service)


class TestServiceStatus:
    def test_healthy(self, blob_storage):
        status = get_service_status(blob_storage)

        assert status["timestamp"]
        assert status["services"]["blobStorage"] == {"status": "healthy", "error": None}
        for name in ("documentIntelligence", "searchService", "openAI", "cosmosDB"):
            assert status["services"][name]["status"] == "not_implemented"

    def test_error_is_captured_not_raised(self, storage_config):
        store = Mock(spec=BlobStore)
        store.list.side_effect = RuntimeError("access denied")
        service = BlobStorageService(storage_config, store=store)

        status = get_service_status(service)

        assert status["services"]["blobStorage"] == {"status": "error", "error": "access denied"}

    def test_availability_map(self, blob_storage):
        health = check_services_health(blob_storage, settings)

        assert health["blobStorage"] is True
        assert health["documentIntelligence"] is False
        assert health["searchService"] is False
        assert health["cosmosDb"] is False
        assert health["bedrock"] == settings.bedrock_configured

    def test_disabled_storage(self):
        status = get_service_status(None)

        assert status["services"]["blobStorage"] == {"status": "error", "error": "Blob storage is not configured"}
        assert check_services_health(None, settings)["blobStorage"] is False
