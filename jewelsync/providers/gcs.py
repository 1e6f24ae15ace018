"""
Google Cloud Storage client for backup objects.

Uses the Cloud Storage JSON API through google-api-python-client with
service-account or application-default credentials.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterator

from django.conf import settings
from google.auth import default as default_credentials
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaFileUpload, MediaIoBaseDownload
from httplib2 import HttpLib2Error

from jewelsync.sync.workbook import XLSX_MIME_TYPE

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/devstorage.read_write"]


class CloudStorageError(Exception):
    """Base exception for Cloud Storage operations."""

    pass


class ObjectNotFoundError(CloudStorageError):
    """Raised when an object does not exist."""

    pass


@contextmanager
def api_errors(action: str, not_found: str | None = None):
    """
    Map client, auth and transport failures of one API call to CloudStorageError.

    Args:
        action: Description used in the error message, e.g. "Upload of x"
        not_found: Message of the ObjectNotFoundError raised on a 404 response;
            a 404 is an ordinary failure when None
    """
    try:
        yield
    except HttpError as e:
        if not_found and e.resp.status == 404:
            raise ObjectNotFoundError(not_found) from e
        raise CloudStorageError(f"{action} failed: {e}") from e
    except GoogleAuthError as e:
        logger.error(f"{action}: authentication failed: {e}")
        raise CloudStorageError(f"{action} failed: authentication error: {e}") from e
    except HttpLib2Error as e:
        raise CloudStorageError(f"{action} failed: {e}") from e


@dataclass
class RemoteObject:
    """An object in a bucket (or in the local mirror of one)."""

    name: str
    size: int | None
    updated: datetime | None
    url: str
    md5_hash: str | None = None
    generation: str | None = None

    @classmethod
    def from_api_response(cls, bucket: str, data: dict) -> "RemoteObject":
        """Create RemoteObject from a JSON API object resource."""
        updated = data.get("updated")
        return cls(
            name=data["name"],
            size=int(data["size"]) if "size" in data else None,
            updated=datetime.fromisoformat(updated.replace("Z", "+00:00")) if updated else None,
            url=f"gs://{bucket}/{data['name']}",
            md5_hash=data.get("md5Hash"),
            generation=data.get("generation"),
        )

    @property
    def file_name(self) -> str:
        return self.name.rsplit("/", 1)[-1]


def load_credentials(credentials_file: str | None = None):
    """
    Load credentials for the storage API.

    Args:
        credentials_file: Service-account JSON key; application-default
            credentials are used when empty

    Raises:
        CloudStorageError: If no credentials can be found
    """
    try:
        if credentials_file:
            return service_account.Credentials.from_service_account_file(
                credentials_file, scopes=SCOPES
            )
        credentials, _project = default_credentials(scopes=SCOPES)
        return credentials
    except Exception as e:
        logger.error(f"Unable to load Cloud Storage credentials: {e}")
        raise CloudStorageError(f"Unable to load credentials: {e}") from e


class GcsObjectStore:
    """
    ObjectStore backed by a Cloud Storage bucket.

    Handles listing by prefix, resumable uploads, chunked downloads and
    deletes. The API service is built lazily on first use.
    """

    def __init__(self, bucket: str, credentials=None, service=None):
        """
        Args:
            bucket: Bucket name
            credentials: google-auth credentials (loaded from settings if None)
            service: Prebuilt API service, mainly for tests
        """
        if not bucket:
            raise CloudStorageError("No bucket configured (SYNC_GCS_BUCKET)")
        self.bucket = bucket
        self._credentials = credentials
        self._service = service

    @classmethod
    def from_settings(cls) -> "GcsObjectStore":
        return cls(bucket=getattr(settings, "SYNC_GCS_BUCKET", ""))

    def _get_service(self):
        """Get or create the storage API service."""
        if self._service is None:
            if self._credentials is None:
                self._credentials = load_credentials(
                    getattr(settings, "SYNC_GCS_CREDENTIALS_FILE", "")
                )
            self._service = build(
                "storage", "v1", credentials=self._credentials, cache_discovery=False
            )
        return self._service

    def list_objects(self, prefix: str = "") -> list[RemoteObject]:
        """
        List every object under a prefix.

        Args:
            prefix: Object name prefix, e.g. "database_backups/<mobile>/<store>/"

        Returns:
            List of RemoteObject in API order
        """
        return list(self.iter_objects(prefix))

    def iter_objects(self, prefix: str = "") -> Iterator[RemoteObject]:
        page_token = None

        while True:
            params = {
                "bucket": self.bucket,
                "prefix": prefix,
                "fields": "nextPageToken,items(name,size,updated,md5Hash,generation)",
            }
            if page_token:
                params["pageToken"] = page_token

            with api_errors(f"List of {prefix!r}"):
                response = self._get_service().objects().list(**params).execute()

            for item in response.get("items", []):
                yield RemoteObject.from_api_response(self.bucket, item)

            page_token = response.get("nextPageToken")
            if not page_token:
                break

    def upload_file(self, path: Path | str, name: str) -> RemoteObject:
        """
        Upload a local file as ``name``.

        Returns:
            RemoteObject for the stored object
        """
        with api_errors(f"Upload of {name}"):
            service = self._get_service()
            media = MediaFileUpload(str(path), mimetype=XLSX_MIME_TYPE, resumable=True)
            request = service.objects().insert(bucket=self.bucket, name=name, media_body=media)

            response = None
            while response is None:
                status, response = request.next_chunk()
                if status:
                    logger.debug(f"Upload progress: {int(status.progress() * 100)}%")

        logger.info(f"Uploaded gs://{self.bucket}/{name}")
        return RemoteObject.from_api_response(self.bucket, response)

    def download_file(self, name: str, target: Path | str) -> int:
        """
        Download ``name`` into a local file.

        Returns:
            Number of bytes written

        Raises:
            ObjectNotFoundError: If the object does not exist
        """
        with api_errors(f"Download of {name}", not_found=f"Object {name} not found"):
            request = self._get_service().objects().get_media(bucket=self.bucket, object=name)
            with open(target, "wb") as stream:
                downloader = MediaIoBaseDownload(stream, request)
                done = False
                while not done:
                    status, done = downloader.next_chunk()
                    if status:
                        logger.debug(f"Download progress: {int(status.progress() * 100)}%")
                return stream.tell()

    def delete_object(self, name: str) -> None:
        """
        Delete ``name``.

        Raises:
            ObjectNotFoundError: If the object does not exist
        """
        with api_errors(f"Delete of {name}", not_found=f"Object {name} not found"):
            self._get_service().objects().delete(bucket=self.bucket, object=name).execute()
        logger.debug(f"Deleted gs://{self.bucket}/{name}")
