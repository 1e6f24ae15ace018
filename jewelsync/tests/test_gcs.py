"""Tests for the Cloud Storage object store."""

import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock, patch

from django.test import TestCase, override_settings
from google.auth.exceptions import RefreshError, TransportError
from googleapiclient.errors import HttpError
from httplib2 import ServerNotFoundError

from jewelsync.providers.gcs import (
    CloudStorageError,
    GcsObjectStore,
    ObjectNotFoundError,
    RemoteObject,
    load_credentials,
)


def http_error(status):
    return HttpError(MagicMock(status=status, reason="error"), b"")


class RemoteObjectTests(TestCase):
    def test_from_api_response(self):
        """Test creating RemoteObject from API response."""
        obj = RemoteObject.from_api_response(
            "jewel-backups",
            {
                "name": "database_backups/m/s/backup_file_1.xlsx",
                "size": "2048",
                "updated": "2024-01-15T10:30:00.000Z",
                "md5Hash": "abc==",
                "generation": "17",
            },
        )

        self.assertEqual(obj.size, 2048)
        self.assertEqual(obj.updated, datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc))
        self.assertEqual(obj.url, "gs://jewel-backups/database_backups/m/s/backup_file_1.xlsx")
        self.assertEqual(obj.file_name, "backup_file_1.xlsx")
        self.assertEqual(obj.md5_hash, "abc==")

    def test_from_api_response_without_metadata(self):
        obj = RemoteObject.from_api_response("b", {"name": "a.xlsx"})

        self.assertIsNone(obj.size)
        self.assertIsNone(obj.updated)


class GcsObjectStoreTests(TestCase):
    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.service = MagicMock()
        self.objects = self.service.objects.return_value
        self.store = GcsObjectStore("jewel-backups", service=self.service)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_requires_bucket(self):
        with self.assertRaises(CloudStorageError):
            GcsObjectStore("")

    def test_list_objects_follows_pages(self):
        """Test that listing walks every page."""
        self.objects.list.return_value.execute.side_effect = [
            {"items": [{"name": "p/a.xlsx", "size": "1"}], "nextPageToken": "t1"},
            {"items": [{"name": "p/b.xlsx", "size": "2"}]},
        ]

        objects = self.store.list_objects("p/")

        self.assertEqual([obj.name for obj in objects], ["p/a.xlsx", "p/b.xlsx"])
        second_call = self.objects.list.call_args_list[-1]
        self.assertEqual(second_call.kwargs["pageToken"], "t1")
        self.assertEqual(second_call.kwargs["prefix"], "p/")

    def test_list_objects_error(self):
        self.objects.list.return_value.execute.side_effect = http_error(500)

        with self.assertRaises(CloudStorageError):
            self.store.list_objects("p/")

    @patch("jewelsync.providers.gcs.MediaFileUpload")
    def test_upload_file(self, mock_media):
        request = self.objects.insert.return_value
        progress = MagicMock()
        progress.progress.return_value = 0.5
        request.next_chunk.side_effect = [
            (progress, None),
            (None, {"name": "p/a.xlsx", "size": "5", "updated": "2024-01-15T10:30:00Z"}),
        ]

        obj = self.store.upload_file(self.temp_dir / "a.xlsx", "p/a.xlsx")

        self.assertEqual(obj.url, "gs://jewel-backups/p/a.xlsx")
        self.assertEqual(obj.size, 5)
        self.assertEqual(request.next_chunk.call_count, 2)
        self.objects.insert.assert_called_once_with(
            bucket="jewel-backups", name="p/a.xlsx", media_body=mock_media.return_value
        )

    @patch("jewelsync.providers.gcs.MediaFileUpload")
    def test_upload_file_error(self, mock_media):
        self.objects.insert.return_value.next_chunk.side_effect = http_error(403)

        with self.assertRaises(CloudStorageError):
            self.store.upload_file(self.temp_dir / "a.xlsx", "p/a.xlsx")

    @patch("jewelsync.providers.gcs.MediaIoBaseDownload")
    def test_download_file(self, mock_download):
        def fake_download(stream, request):
            stream.write(b"bytes")
            downloader = MagicMock()
            downloader.next_chunk.return_value = (None, True)
            return downloader

        mock_download.side_effect = fake_download
        target = self.temp_dir / "copy.xlsx"

        size = self.store.download_file("p/a.xlsx", target)

        self.assertEqual(size, 5)
        self.assertEqual(target.read_bytes(), b"bytes")
        self.objects.get_media.assert_called_once_with(bucket="jewel-backups", object="p/a.xlsx")

    @patch("jewelsync.providers.gcs.MediaIoBaseDownload")
    def test_download_missing_object(self, mock_download):
        mock_download.return_value.next_chunk.side_effect = http_error(404)

        with self.assertRaises(ObjectNotFoundError):
            self.store.download_file("p/none.xlsx", self.temp_dir / "copy.xlsx")

    def test_delete_object(self):
        self.store.delete_object("p/a.xlsx")

        self.objects.delete.assert_called_once_with(bucket="jewel-backups", object="p/a.xlsx")

    def test_delete_errors(self):
        self.objects.delete.return_value.execute.side_effect = http_error(404)
        with self.assertRaises(ObjectNotFoundError):
            self.store.delete_object("p/a.xlsx")

        self.objects.delete.return_value.execute.side_effect = http_error(500)
        with self.assertRaises(CloudStorageError) as ctx:
            self.store.delete_object("p/a.xlsx")
        self.assertNotIsInstance(ctx.exception, ObjectNotFoundError)

    def test_list_objects_auth_error(self):
        """Test that an expired token surfaces as CloudStorageError."""
        self.objects.list.return_value.execute.side_effect = RefreshError("token expired")

        with self.assertRaises(CloudStorageError) as ctx:
            self.store.list_objects("p/")
        self.assertIn("token expired", str(ctx.exception))

    @patch("jewelsync.providers.gcs.MediaFileUpload")
    def test_upload_file_transport_error(self, mock_media):
        self.objects.insert.return_value.next_chunk.side_effect = TransportError("connection reset")

        with self.assertRaises(CloudStorageError):
            self.store.upload_file(self.temp_dir / "a.xlsx", "p/a.xlsx")

    @patch("jewelsync.providers.gcs.MediaIoBaseDownload")
    def test_download_network_error(self, mock_download):
        mock_download.return_value.next_chunk.side_effect = ServerNotFoundError("no route")

        with self.assertRaises(CloudStorageError) as ctx:
            self.store.download_file("p/a.xlsx", self.temp_dir / "copy.xlsx")
        self.assertNotIsInstance(ctx.exception, ObjectNotFoundError)

    def test_delete_auth_error(self):
        self.objects.delete.return_value.execute.side_effect = RefreshError("revoked")

        with self.assertRaises(CloudStorageError):
            self.store.delete_object("p/a.xlsx")

    @patch("jewelsync.providers.gcs.build")
    def test_service_build_network_error(self, mock_build):
        mock_build.side_effect = ServerNotFoundError("no route")
        store = GcsObjectStore("jewel-backups", credentials=MagicMock())

        with self.assertRaises(CloudStorageError):
            store.list_objects("p/")


class ServiceConstructionTests(TestCase):
    @override_settings(SYNC_GCS_BUCKET="jewel-backups", SYNC_GCS_CREDENTIALS_FILE="/keys/sa.json")
    @patch("jewelsync.providers.gcs.build")
    @patch("jewelsync.providers.gcs.load_credentials")
    def test_service_built_lazily(self, mock_credentials, mock_build):
        store = GcsObjectStore.from_settings()
        mock_build.assert_not_called()

        store._get_service()
        store._get_service()

        mock_credentials.assert_called_once_with("/keys/sa.json")
        mock_build.assert_called_once_with(
            "storage", "v1", credentials=mock_credentials.return_value, cache_discovery=False
        )

    @patch("jewelsync.providers.gcs.service_account.Credentials.from_service_account_file")
    def test_load_service_account(self, mock_from_file):
        self.assertIs(load_credentials("/keys/sa.json"), mock_from_file.return_value)

    @patch("jewelsync.providers.gcs.default_credentials")
    def test_load_default_credentials(self, mock_default):
        mock_default.return_value = ("creds", "project")
        self.assertEqual(load_credentials(), "creds")

    @patch("jewelsync.providers.gcs.default_credentials")
    def test_no_credentials(self, mock_default):
        mock_default.side_effect = RuntimeError("no ADC")
        with self.assertRaises(CloudStorageError):
            load_credentials()
