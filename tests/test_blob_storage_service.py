"""BlobStorageService against moto S3, plus failure paths through a mocked store."""

import json
import re
import uuid
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse
from unittest.mock import Mock

import pytest

from app.services.blob_storage_service import (
    BlobStorageService,
    Containers,
    sanitize_file_name,
    sanitize_metadata,
)
from app.services.blob_store import BlobStorageConfig, BlobStore


@pytest.fixture
def mock_store():
    store = Mock(spec=BlobStore)
    store.blob_url.side_effect = lambda c, b: f"https://storage.local/{c}/{b}"
    return store


@pytest.fixture
def mocked_service(storage_config, mock_store):
    return BlobStorageService(storage_config, store=mock_store)


class TestNaming:
    def test_sanitize_file_name(self):
        assert sanitize_file_name("ER report (final) 2024!.pdf") == "ER_report__final__2024_.pdf"
        assert sanitize_file_name("scan-01.v2.png") == "scan-01.v2.png"

    def test_generate_blob_name_layout(self, mocked_service):
        user_id = uuid.uuid4()
        name = mocked_service.generate_blob_name("bill #3.pdf", user_id)

        assert re.fullmatch(rf"{user_id}/\d{{13}}_[0-9a-z]+_bill__3\.pdf", name)

    def test_generate_blob_name_is_unique(self, mocked_service):
        names = {mocked_service.generate_blob_name("a.txt", "u1") for _ in range(200)}
        assert len(names) == 200


class TestMetadataSanitizing:
    def test_keys_lowercased_and_stripped(self):
        clean = sanitize_metadata({"Test-Upload": "true", "Time Stamp": "2024-01-01T00:00:00Z"})
        assert clean == {"testupload": "true", "timestamp": "2024-01-01T00:00:00Z"}

    def test_punctuation_stripped(self):
        assert sanitize_metadata({"Valid-Key!": "value"}) == {"validkey": "value"}

    def test_non_ascii_values_dropped(self):
        assert sanitize_metadata({"patient": "José Ñ"}) == {"patient": "Jos "}

    def test_empty_pairs_dropped(self):
        assert sanitize_metadata({"---": "x", "note": "éè", "ok": None}) == {}

    def test_key_length_capped(self):
        clean = sanitize_metadata({"k" * 100: "v"})
        assert list(clean) == ["k" * 64]


class TestUploadAndRead:
    def test_round_trip(self, blob_storage):
        blob_storage.upload_file(Containers.DOCUMENTS, "u1/file.txt", b"hello world", "text/plain")

        result = blob_storage.read_file(Containers.DOCUMENTS, "u1/file.txt")
        assert result.ok
        assert result.value == b"hello world"

        metadata = blob_storage.get_blob_metadata(Containers.DOCUMENTS, "u1/file.txt").unwrap()
        assert "uploadedat" in metadata

    def test_upload_overwrites(self, blob_storage):
        blob_storage.upload_file(Containers.TEMP, "same.txt", b"one")
        blob_storage.upload_file(Containers.TEMP, "same.txt", b"two")

        assert blob_storage.read_file(Containers.TEMP, "same.txt").value == b"two"

    def test_upload_errors_propagate(self, mocked_service, mock_store):
        mock_store.put.side_effect = RuntimeError("network down")

        with pytest.raises(RuntimeError):
            mocked_service.upload_file(Containers.DOCUMENTS, "x", b"data")

    def test_read_missing_is_failure(self, blob_storage):
        assert not blob_storage.read_file(Containers.DOCUMENTS, "missing.txt").ok


class TestDownload:
    def test_missing_blob_is_404_json(self, blob_storage):
        response = blob_storage.download_file(Containers.DOCUMENTS, "nope.pdf")

        assert response.status_code == 404
        assert json.loads(response.body) == {"error": "File not found"}

    def test_backend_error_is_500_json(self, mocked_service, mock_store):
        mock_store.exists.side_effect = RuntimeError("boom")

        response = mocked_service.download_file(Containers.DOCUMENTS, "x.pdf")

        assert response.status_code == 500
        assert json.loads(response.body) == {"error": "Failed to download file"}


class TestDelete:
    def test_delete_is_idempotent(self, blob_storage):
        blob_storage.upload_file(Containers.TEMP, "gone.txt", b"x")

        assert blob_storage.delete_file(Containers.TEMP, "gone.txt").value is True
        assert blob_storage.delete_file(Containers.TEMP, "gone.txt").value is True
        assert not blob_storage.read_file(Containers.TEMP, "gone.txt").ok

    def test_delete_failure_is_reported(self, mocked_service, mock_store):
        mock_store.delete.side_effect = RuntimeError("denied")

        result = mocked_service.delete_file(Containers.TEMP, "x")

        assert not result.ok
        assert result.error_message == "denied"


class TestCopy:
    def test_copy_keeps_source(self, blob_storage):
        blob_storage.upload_file(Containers.TEMP, "src.txt", b"payload")

        result = blob_storage.copy_blob(Containers.TEMP, "src.txt", Containers.PROCESSED, "dst.txt")

        assert result.ok and result.value is True
        assert blob_storage.read_file(Containers.PROCESSED, "dst.txt").value == b"payload"
        assert blob_storage.read_file(Containers.TEMP, "src.txt").ok

    def test_move_deletes_source(self, blob_storage):
        blob_storage.upload_file(Containers.TEMP, "src.txt", b"payload")

        result = blob_storage.copy_blob(
            Containers.TEMP, "src.txt", Containers.PROCESSED, "dst.txt", delete_source=True
        )

        assert result.value is True
        assert not blob_storage.read_file(Containers.TEMP, "src.txt").ok
        assert blob_storage.read_file(Containers.PROCESSED, "dst.txt").ok

    def test_missing_source_is_failure(self, blob_storage):
        result = blob_storage.copy_blob(Containers.TEMP, "missing.txt", Containers.PROCESSED, "dst.txt")
        assert not result.ok

    def test_incomplete_copy_keeps_source(self, mocked_service, mock_store):
        mock_store.copy.return_value = "pending"

        result = mocked_service.copy_blob("a", "x", "b", "y", delete_source=True)

        assert result.ok and result.value is False
        mock_store.delete.assert_not_called()

    def test_source_delete_failure_is_reported(self, mocked_service, mock_store):
        mock_store.copy.return_value = "success"
        mock_store.delete.side_effect = RuntimeError("locked")

        result = mocked_service.copy_blob("a", "x", "b", "y", delete_source=True)

        assert not result.ok


class TestListing:
    def test_list_with_prefix_and_content_type(self, blob_storage):
        blob_storage.upload_file(Containers.DOCUMENTS, "u1/a.pdf", b"%PDF", "application/pdf")
        blob_storage.upload_file(Containers.DOCUMENTS, "u1/b.txt", b"text", "text/plain")
        blob_storage.upload_file(Containers.DOCUMENTS, "u2/c.txt", b"text", "text/plain")

        files = blob_storage.list_files(Containers.DOCUMENTS, prefix="u1/").unwrap()

        by_name = {f.name: f for f in files}
        assert set(by_name) == {"u1/a.pdf", "u1/b.txt"}
        assert by_name["u1/a.pdf"].content_type == "application/pdf"
        assert by_name["u1/a.pdf"].size == 4

    def test_empty_container_is_ok(self, blob_storage):
        result = blob_storage.list_files(Containers.MEDICAL_BILLS)
        assert result.ok and result.value == []

    def test_missing_container_is_failure(self, blob_storage):
        assert not blob_storage.list_files("no-such-container").ok


class TestMetadata:
    def test_set_then_get(self, blob_storage):
        blob_storage.upload_file(Containers.TEMP, "m.txt", b"x", "text/plain")

        assert blob_storage.set_blob_metadata(Containers.TEMP, "m.txt", {"Case-Id": "PI-1"}).ok

        metadata = blob_storage.get_blob_metadata(Containers.TEMP, "m.txt").unwrap()
        assert metadata == {"caseid": "PI-1"}

    def test_metadata_replace_keeps_content_type(self, blob_storage):
        blob_storage.upload_file(Containers.TEMP, "m.pdf", b"x", "application/pdf")
        blob_storage.set_blob_metadata(Containers.TEMP, "m.pdf", {"reviewed": "yes"}).unwrap()

        files = blob_storage.list_files(Containers.TEMP).unwrap()
        assert files[0].content_type == "application/pdf"

    def test_empty_metadata_is_noop(self, mocked_service, mock_store):
        result = mocked_service.set_blob_metadata(Containers.TEMP, "m.txt", {"!!!": "é"})

        assert result.ok
        mock_store.set_metadata.assert_not_called()

    def test_metadata_of_missing_blob_is_failure(self, blob_storage):
        assert not blob_storage.get_blob_metadata(Containers.TEMP, "missing").ok


class TestSignedUrls:
    def test_signed_url(self, blob_storage):
        blob_storage.upload_file(Containers.DOCUMENTS, "u1/a.pdf", b"%PDF")

        before = datetime.now(timezone.utc)
        signed = blob_storage.generate_blob_sas_url(Containers.DOCUMENTS, "u1/a.pdf")

        assert signed.signed is True
        assert "u1/a.pdf" in signed.url
        query = parse_qs(urlparse(signed.url).query)
        assert "X-Amz-Signature" in query
        assert query["X-Amz-Expires"] == ["7200"]
        expected = before + timedelta(hours=2)
        assert abs((signed.expires_at - expected).total_seconds()) < 5

    def test_custom_expiry(self, blob_storage):
        blob_storage.upload_file(Containers.DOCUMENTS, "u1/a.pdf", b"%PDF")

        before = datetime.now(timezone.utc)
        signed = blob_storage.generate_blob_sas_url(Containers.DOCUMENTS, "u1/a.pdf", expiry_hours=0.5)

        assert parse_qs(urlparse(signed.url).query)["X-Amz-Expires"] == ["1800"]
        assert abs((signed.expires_at - (before + timedelta(minutes=30))).total_seconds()) < 5

    def test_without_credentials_returns_plain_url(self):
        config = BlobStorageConfig.from_connection_string("AccountName=public;Region=us-east-1")
        service = BlobStorageService(config)

        signed = service.generate_blob_sas_url(Containers.DOCUMENTS, "u1/a b.pdf")

        assert signed.signed is False
        assert signed.expires_at is None
        assert signed.url == "https://documents.s3.us-east-1.amazonaws.com/u1/a%20b.pdf"

    def test_signing_failure_falls_back(self, mocked_service, mock_store):
        mock_store.can_sign = True
        mock_store.sign_read_url.side_effect = RuntimeError("clock skew")

        signed = mocked_service.generate_blob_sas_url("documents", "x.pdf")

        assert signed.signed is False
        assert signed.url == "https://storage.local/documents/x.pdf"

    def test_upload_url_is_plain(self, mocked_service):
        assert mocked_service.get_upload_url("documents", "x.pdf") == "https://storage.local/documents/x.pdf"


class TestContainers:
    def test_initialize_creates_all(self, blob_storage):
        containers = blob_storage.store.list_containers()
        assert set(Containers.ALL) <= set(containers)

    def test_initialize_is_idempotent(self, blob_storage):
        blob_storage.initialize_containers()

    def test_initialize_propagates_errors(self, mocked_service, mock_store):
        mock_store.ensure_container.side_effect = RuntimeError("forbidden")

        with pytest.raises(RuntimeError):
            mocked_service.initialize_containers()


class TestLifecycle:
    def test_upload_download_delete(self, blob_storage):
        name = blob_storage.generate_blob_name("report.PDF", "u1")
        assert re.fullmatch(r"u1/\d+_[0-9a-z]+_report\.PDF", name)

        blob_storage.upload_file(Containers.DOCUMENTS, name, b"%PDF-1.7 body")

        response = blob_storage.download_file(Containers.DOCUMENTS, name)
        assert response.status_code == 200
        assert response.media_type == "application/octet-stream"
        assert response.headers["content-length"] == str(len(b"%PDF-1.7 body"))

        blob_storage.delete_file(Containers.DOCUMENTS, name).unwrap()
        names = [f.name for f in blob_storage.list_files(Containers.DOCUMENTS).unwrap()]
        assert name not in names
