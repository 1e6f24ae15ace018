"""
Django management command to list remote backups of the current store.
"""

import json

from django.core.management.base import CommandError

from jewelsync.management.base import SyncCommand


class Command(SyncCommand):
    help = "List remote backups for the current user and store"

    def add_arguments(self, parser):
        parser.add_argument(
            "--json",
            action="store_true",
            help="Output as JSON",
        )

    def handle(self, *args, **options):
        result = self.get_orchestrator().list_backups()
        if not result.success:
            raise CommandError(f"Listing backups failed: {result.error}")

        backups = result.value
        if options["json"]:
            self.stdout.write(json.dumps([b.to_dict() for b in backups], indent=2))
            return

        if not backups:
            self.stdout.write(self.style.WARNING("No backups found."))
            self.stdout.write("\nRun 'python manage.py backup_database' to create one")
            return

        self.stdout.write("\n" + "=" * 80)
        self.stdout.write(f"{'File':<44} {'Uploaded':<18} {'Size':>14}")
        self.stdout.write("=" * 80)
        for backup in backups:
            self.stdout.write(
                f"{backup.file_name:<44} {backup.upload_date:%Y-%m-%d %H:%M}   {backup.file_size:>14,}"
            )
        self.stdout.write("=" * 80)
        self.stdout.write(f"Total: {len(backups)} backup(s)\n")
