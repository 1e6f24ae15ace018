"""
Django management command to export the database to a local workbook.
"""

from jewelsync.management.base import SyncCommand


class Command(SyncCommand):
    help = "Export every entity table to a local .xlsx workbook"

    def add_arguments(self, parser):
        parser.add_argument(
            "--output",
            help="Output path (default: timestamped file in SYNC_EXPORT_DIR)",
        )
        parser.add_argument(
            "--quiet",
            action="store_true",
            help="Do not print progress",
        )

    def handle(self, *args, **options):
        result = self.get_orchestrator().local_export(
            options["output"], self.get_context(options["quiet"])
        )
        self.check_result(result, "Export")

        self.stdout.write(self.style.SUCCESS(f"\n✓ Workbook written to {result.artifact}"))
