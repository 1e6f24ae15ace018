"""
Scoped backup storage on top of an object store.

Backups for one (user mobile, store) pair live under
    <SYNC_BACKUP_FOLDER>/<userMobile>/<storeId>/<fileName>

Every BackupStore method returns a StoreResult; provider errors are turned
into RemoteIOError messages instead of being raised.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Generic, Protocol, TypeVar

from django.conf import settings
from django.utils import timezone

from jewelsync.providers.gcs import CloudStorageError, GcsObjectStore, RemoteObject
from jewelsync.providers.local import LocalObjectStore, LocalStoreError
from jewelsync.sync.exceptions import RemoteIOError
from jewelsync.sync.workbook import XLSX_EXTENSION

logger = logging.getLogger(__name__)

T = TypeVar("T")

PROVIDER_ERRORS = (CloudStorageError, LocalStoreError, OSError)


class ObjectStore(Protocol):
    """Minimal blob store the backup layer needs."""

    def list_objects(self, prefix: str = "") -> list[RemoteObject]:
        ...

    def upload_file(self, path: Path | str, name: str) -> RemoteObject:
        ...

    def download_file(self, name: str, target: Path | str) -> int:
        ...

    def delete_object(self, name: str) -> None:
        ...


@dataclass
class StoreResult(Generic[T]):
    """Outcome of a BackupStore call."""

    success: bool
    value: T | None = None
    error: RemoteIOError | None = None

    @classmethod
    def ok(cls, value: Any = None) -> "StoreResult":
        return cls(success=True, value=value)

    @classmethod
    def failed(cls, message: str) -> "StoreResult":
        return cls(success=False, error=RemoteIOError(message))

    def unwrap(self) -> T:
        """Return the value or raise the RemoteIOError."""
        if not self.success:
            raise self.error
        return self.value


@dataclass
class BackupInfo:
    """A backup object visible to the current scope."""

    file_name: str
    upload_date: datetime
    file_size: int
    download_url: str
    description: str = ""

    def to_dict(self) -> dict:
        return {
            "file_name": self.file_name,
            "upload_date": self.upload_date.isoformat(),
            "file_size": self.file_size,
            "download_url": self.download_url,
            "description": self.description,
        }


def backup_file_name(now: datetime | None = None) -> str:
    """Remote object name for a new backup; later backups sort later."""
    stamp = (now or timezone.now()).strftime("%Y%m%d%H%M%S%f")
    return f"backup_file_{stamp}{XLSX_EXTENSION}"


def scope_prefix(user_mobile: str, store_id: str, folder: str | None = None) -> str:
    folder = folder or getattr(settings, "SYNC_BACKUP_FOLDER", "database_backups")
    return f"{folder}/{user_mobile}/{store_id}/"


def get_object_store() -> ObjectStore:
    """
    Build the object store selected by SYNC_REMOTE_BACKEND.

    Raises:
        ValueError: If the backend name is unknown
    """
    backend = getattr(settings, "SYNC_REMOTE_BACKEND", "local").lower()
    if backend == "gcs":
        return GcsObjectStore.from_settings()
    if backend == "local":
        return LocalObjectStore.from_settings()
    raise ValueError(f"Unknown SYNC_REMOTE_BACKEND: {backend}")


class BackupStore:
    """
    Upload, download, list and prune backups for one user/store scope.

    Args:
        object_store: Backend implementing ObjectStore
        user_mobile: Mobile number of the current user
        store_id: Current store id
    """

    def __init__(self, object_store: ObjectStore, user_mobile: str, store_id: str):
        self.object_store = object_store
        self.user_mobile = user_mobile
        self.store_id = store_id
        self.prefix = scope_prefix(user_mobile, store_id)

    def _objects(self) -> list[RemoteObject]:
        return self.object_store.list_objects(self.prefix)

    def upload(self, local_file: Path | str, file_name: str | None = None) -> StoreResult[str]:
        """
        Replace the scope's backups with ``local_file``.

        Every existing object under the scope is deleted first; a failed
        delete is logged and does not stop the upload.

        Returns:
            StoreResult carrying the URL of the uploaded object
        """
        file_name = file_name or backup_file_name()
        logger.info(f"Uploading {file_name} for {self.user_mobile}/{self.store_id}")
        try:
            self._delete_previous()
            uploaded = self.object_store.upload_file(local_file, self.prefix + file_name)
        except PROVIDER_ERRORS as e:
            logger.error(f"Upload failed: {e}")
            return StoreResult.failed(f"Upload failed: {e}")

        logger.info(f"Backup uploaded: {uploaded.url}")
        return StoreResult.ok(uploaded.url)

    def _delete_previous(self) -> None:
        for obj in self._objects():
            try:
                self.object_store.delete_object(obj.name)
                logger.debug(f"Deleted previous backup {obj.name}")
            except PROVIDER_ERRORS as e:
                logger.warning(f"Failed to delete previous backup {obj.name}: {e}")

    def download_latest(self, dest_dir: Path | str | None = None) -> StoreResult[Path]:
        """
        Download the newest backup (greatest name) to a temp file.

        Args:
            dest_dir: Directory for the temp file (system temp dir if None)

        Returns:
            StoreResult carrying the local path
        """
        try:
            objects = self._objects()
        except PROVIDER_ERRORS as e:
            logger.error(f"Listing backups failed: {e}")
            return StoreResult.failed(f"Download failed: {e}")

        if not objects:
            return StoreResult.failed(f"No sync files found for user: {self.user_mobile}")

        latest = max(objects, key=lambda obj: obj.name)
        target = None
        try:
            fd, tmp_name = tempfile.mkstemp(prefix="backup_file", suffix=XLSX_EXTENSION, dir=dest_dir)
            os.close(fd)
            target = Path(tmp_name)
            size = self.object_store.download_file(latest.name, target)
        except PROVIDER_ERRORS as e:
            if target is not None:
                target.unlink(missing_ok=True)
            logger.error(f"Download of {latest.name} failed: {e}")
            return StoreResult.failed(f"Download failed: {e}")

        logger.info(f"Downloaded {latest.file_name} ({size} bytes)")
        return StoreResult.ok(target)

    def list_backups(self) -> StoreResult[list[BackupInfo]]:
        """List backups newest first; objects without metadata are skipped."""
        try:
            objects = self._objects()
        except PROVIDER_ERRORS as e:
            return StoreResult.failed(f"Listing backups failed: {e}")

        backups = []
        for obj in objects:
            if obj.updated is None or obj.size is None:
                logger.warning(f"Skipping {obj.name}: no metadata")
                continue
            backups.append(
                BackupInfo(
                    file_name=obj.file_name,
                    upload_date=obj.updated,
                    file_size=obj.size,
                    download_url=obj.url,
                )
            )
        backups.sort(key=lambda info: info.upload_date, reverse=True)
        return StoreResult.ok(backups)

    def prune_to_recent(self, keep: int) -> StoreResult[int]:
        """
        Keep the newest ``keep`` backups by name and delete the rest.

        Returns:
            StoreResult carrying the number of objects deleted
        """
        try:
            objects = self._objects()
        except PROVIDER_ERRORS as e:
            return StoreResult.failed(f"Cleanup failed: {e}")

        if len(objects) <= keep:
            return StoreResult.ok(0)

        stale = sorted(objects, key=lambda obj: obj.name, reverse=True)[max(keep, 0):]
        deleted = 0
        for obj in stale:
            try:
                self.object_store.delete_object(obj.name)
                deleted += 1
            except PROVIDER_ERRORS as e:
                logger.warning(f"Failed to delete sync file {obj.name}: {e}")

        logger.info(f"Cleanup completed. Deleted {deleted} old sync files.")
        return StoreResult.ok(deleted)

    def delete_backup(self, file_name: str) -> StoreResult[None]:
        try:
            self.object_store.delete_object(self.prefix + file_name)
        except PROVIDER_ERRORS as e:
            logger.error(f"Failed to delete sync file {file_name}: {e}")
            return StoreResult.failed(f"Delete failed: {e}")
        logger.info(f"Sync file deleted: {file_name}")
        return StoreResult.ok()

    def exists(self) -> bool:
        """True if the scope holds at least one backup; False on any error."""
        try:
            return bool(self._objects())
        except PROVIDER_ERRORS as e:
            logger.warning(f"Backup check failed: {e}")
            return False
