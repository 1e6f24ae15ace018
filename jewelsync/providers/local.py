"""
Directory-tree object store.

Mirrors the bucket layout on the local filesystem, for single-machine
installs and for tests:
    SYNC_LOCAL_REMOTE_ROOT/
        database_backups/<userMobile>/<storeId>/<fileName>
        tmp/      - In-progress uploads
"""

from __future__ import annotations

import logging
import os
import shutil
import uuid
from datetime import datetime, timezone
from pathlib import Path

from django.conf import settings

from jewelsync.providers.gcs import ObjectNotFoundError, RemoteObject

logger = logging.getLogger(__name__)

CHUNK_SIZE = 65536


class LocalStoreError(Exception):
    """Raised when the local object store cannot be read or written."""

    pass


class LocalObjectStore:
    """
    ObjectStore over a directory.

    Object names are '/'-separated paths relative to the root. Uploads are
    written to tmp/ first, fsynced, then renamed into place.
    """

    def __init__(self, root: Path | str):
        self.root = Path(root)
        self.tmp_dir = self.root / "tmp"

    @classmethod
    def from_settings(cls) -> "LocalObjectStore":
        return cls(getattr(settings, "SYNC_LOCAL_REMOTE_ROOT", ""))

    def _path(self, name: str) -> Path:
        parts = [part for part in name.split("/") if part]
        if not parts or any(part in (".", "..") for part in parts):
            raise LocalStoreError(f"Invalid object name: {name!r}")
        return self.root.joinpath(*parts)

    def _to_object(self, path: Path) -> RemoteObject:
        stat = path.stat()
        name = path.relative_to(self.root).as_posix()
        return RemoteObject(
            name=name,
            size=stat.st_size,
            updated=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            url=path.resolve().as_uri(),
        )

    def list_objects(self, prefix: str = "") -> list[RemoteObject]:
        """List files whose root-relative name starts with ``prefix``."""
        if not self.root.exists():
            return []

        objects = []
        for path in sorted(self.root.rglob("*")):
            if not path.is_file() or self.tmp_dir in path.parents:
                continue
            name = path.relative_to(self.root).as_posix()
            if name.startswith(prefix):
                try:
                    objects.append(self._to_object(path))
                except OSError as e:
                    logger.warning(f"Unable to stat {name}: {e}")
        return objects

    def upload_file(self, path: Path | str, name: str) -> RemoteObject:
        target = self._path(name)
        self.tmp_dir.mkdir(parents=True, exist_ok=True)
        tmp_path = self.tmp_dir / f"{uuid.uuid4().hex}.tmp"

        try:
            with open(path, "rb") as source, open(tmp_path, "wb") as f:
                for chunk in iter(lambda: source.read(CHUNK_SIZE), b""):
                    f.write(chunk)
                f.flush()
                os.fsync(f.fileno())

            target.parent.mkdir(parents=True, exist_ok=True)
            os.replace(tmp_path, target)

        except OSError as e:
            if tmp_path.exists():
                tmp_path.unlink()
            raise LocalStoreError(f"Upload of {name} failed: {e}") from e

        logger.info(f"Stored {name} under {self.root}")
        return self._to_object(target)

    def download_file(self, name: str, target: Path | str) -> int:
        source = self._path(name)
        if not source.is_file():
            raise ObjectNotFoundError(f"Object {name} not found")
        try:
            shutil.copyfile(source, target)
        except OSError as e:
            raise LocalStoreError(f"Download of {name} failed: {e}") from e
        return Path(target).stat().st_size

    def delete_object(self, name: str) -> None:
        path = self._path(name)
        if not path.is_file():
            raise ObjectNotFoundError(f"Object {name} not found")
        try:
            path.unlink()
        except OSError as e:
            raise LocalStoreError(f"Delete of {name} failed: {e}") from e
        self._cleanup_empty_dirs(path.parent)

    def _cleanup_empty_dirs(self, path: Path) -> None:
        """Remove empty directories up to the root."""
        while path != self.root and path.exists():
            try:
                path.rmdir()
                path = path.parent
            except OSError:
                # Directory not empty
                break
