"""
Retention for remote backups.

Walks every user/store scope under the backup folder and keeps only the
newest backups of each, ordered by object name.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field

from django.conf import settings

from jewelsync.providers.backup_store import PROVIDER_ERRORS, ObjectStore
from jewelsync.providers.gcs import RemoteObject

logger = logging.getLogger(__name__)


@dataclass
class PruneResult:
    """Result of a retention run."""

    scopes_checked: int = 0
    objects_deleted: int = 0
    bytes_freed: int = 0
    errors: list[str] = field(default_factory=list)


class BackupPruner:
    """
    Prunes every scope of an object store to the newest ``keep`` backups.
    """

    def __init__(
        self,
        object_store: ObjectStore,
        keep: int | None = None,
        dry_run: bool = False,
        folder: str | None = None,
        scope: str | None = None,
    ):
        """
        Args:
            object_store: Store to prune
            keep: Backups kept per scope (SYNC_KEEP_BACKUPS if None)
            dry_run: If True, report what would be deleted without deleting
            folder: Backup folder (SYNC_BACKUP_FOLDER if None)
            scope: Only prune this "<folder>/<mobile>/<store>/" prefix
        """
        self.object_store = object_store
        self.keep = getattr(settings, "SYNC_KEEP_BACKUPS", 5) if keep is None else keep
        self.dry_run = dry_run
        self.folder = folder or getattr(settings, "SYNC_BACKUP_FOLDER", "database_backups")
        self.scope = scope

    def scopes(self) -> dict[str, list[RemoteObject]]:
        """Group objects by their "<folder>/<mobile>/<store>/" prefix."""
        grouped: dict[str, list[RemoteObject]] = defaultdict(list)
        for obj in self.object_store.list_objects(self.scope or f"{self.folder}/"):
            parts = obj.name.split("/")
            if len(parts) != 4:
                logger.debug(f"Ignoring {obj.name}: not in a user/store scope")
                continue
            grouped["/".join(parts[:3]) + "/"].append(obj)
        return grouped

    def run(self) -> PruneResult:
        """
        Execute the retention run.

        Returns:
            PruneResult with statistics about the cleanup
        """
        result = PruneResult()
        logger.info(f"Starting backup retention (keep={self.keep}, dry_run={self.dry_run})")

        try:
            scopes = self.scopes()
        except PROVIDER_ERRORS as e:
            logger.error(f"Unable to list backups: {e}")
            result.errors.append(f"list: {e}")
            return result

        for prefix, objects in scopes.items():
            result.scopes_checked += 1
            stale = sorted(objects, key=lambda obj: obj.name, reverse=True)[max(self.keep, 0):]
            if not stale:
                continue

            if self.dry_run:
                logger.info(f"[DRY RUN] Would delete {len(stale)} backups under {prefix}")
                result.objects_deleted += len(stale)
                result.bytes_freed += sum(obj.size or 0 for obj in stale)
                continue

            for obj in stale:
                try:
                    self.object_store.delete_object(obj.name)
                    result.objects_deleted += 1
                    result.bytes_freed += obj.size or 0
                except PROVIDER_ERRORS as e:
                    logger.warning(f"Failed to delete {obj.name}: {e}")
                    result.errors.append(f"{obj.name}: {e}")

        logger.info(
            f"Backup retention complete: {result.scopes_checked} scopes checked, "
            f"{result.objects_deleted} backups deleted ({result.bytes_freed:,} bytes freed)"
        )
        return result
