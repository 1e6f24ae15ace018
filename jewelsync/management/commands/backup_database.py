"""
Django management command to back up the database to the remote store.
"""

from jewelsync.management.base import SyncCommand


class Command(SyncCommand):
    help = "Export the database to a workbook and upload it as the store's backup"

    def add_arguments(self, parser):
        parser.add_argument(
            "--quiet",
            action="store_true",
            help="Do not print progress",
        )

    def handle(self, *args, **options):
        orchestrator = self.get_orchestrator()
        result = orchestrator.remote_backup(self.get_context(options["quiet"]))
        self.check_result(result, "Backup")

        self.stdout.write(self.style.SUCCESS(f"\n✓ Backup uploaded: {result.remote_url}"))
