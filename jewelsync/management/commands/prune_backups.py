"""
Django management command to delete old remote backups.
"""

from django.conf import settings
from django.core.management.base import CommandError

from jewelsync import preferences
from jewelsync.management.base import SyncCommand
from jewelsync.providers.backup_store import get_object_store, scope_prefix
from jewelsync.providers.gcs import CloudStorageError
from jewelsync.retention import BackupPruner


class Command(SyncCommand):
    help = "Delete all but the newest remote backups"

    def add_arguments(self, parser):
        parser.add_argument(
            "--keep",
            type=int,
            default=None,
            help="Backups to keep per store (default: SYNC_KEEP_BACKUPS)",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Report what would be deleted without actually deleting",
        )
        parser.add_argument(
            "--all-scopes",
            action="store_true",
            help="Prune every user/store under the backup folder, not just the current one",
        )

    def handle(self, *args, **options):
        keep = options["keep"]
        if keep is None:
            keep = getattr(settings, "SYNC_KEEP_BACKUPS", 5)
        if keep < 0:
            raise CommandError("--keep must be zero or more")

        if options["dry_run"]:
            self.stdout.write(self.style.WARNING("Running in dry-run mode"))

        if options["all_scopes"] or options["dry_run"]:
            self._run_pruner(keep, options["dry_run"], options["all_scopes"])
            return

        result = self.get_orchestrator().prune_backups(keep)
        self.check_result(result, "Prune")
        self.stdout.write(
            self.style.SUCCESS(f"\nDeleted {result.value} old backup(s), kept up to {keep}")
        )

    def _run_pruner(self, keep: int, dry_run: bool, all_scopes: bool) -> None:
        try:
            store = get_object_store()
        except (ValueError, CloudStorageError) as e:
            raise CommandError(f"Remote store unavailable: {e}")

        scope = None
        if not all_scopes:
            identity = preferences.get_identity()
            mobile = identity["user_mobile"] or identity["current_user_id"]
            if not mobile or not identity["current_store_id"]:
                raise CommandError("No current user/store set; run set_identity or use --all-scopes")
            scope = scope_prefix(mobile, identity["current_store_id"])

        pruner = BackupPruner(store, keep=keep, dry_run=dry_run, scope=scope)
        result = pruner.run()

        style = self.style.WARNING if dry_run else self.style.SUCCESS
        prefix = "[DRY RUN] Would have" if dry_run else "Retention completed"
        self.stdout.write(
            style(
                f"\n{prefix}:\n"
                f"  - Checked {result.scopes_checked} store(s)\n"
                f"  - Deleted {result.objects_deleted} backup(s)\n"
                f"  - Freed {result.bytes_freed:,} bytes"
            )
        )

        if result.errors:
            self.stdout.write(
                self.style.WARNING(f"\nEncountered {len(result.errors)} error(s):")
            )
            for error in result.errors[:10]:
                self.stdout.write(f"  - {error}")
            if len(result.errors) > 10:
                self.stdout.write(f"  ... and {len(result.errors) - 10} more")
