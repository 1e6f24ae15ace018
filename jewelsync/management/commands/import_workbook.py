"""
Django management command to import a local workbook.
"""

from jewelsync.management.base import SyncCommand
from jewelsync.sync.conflicts import RestoreMode


class Command(SyncCommand):
    help = "Import a workbook produced by export_workbook or backup_database"

    def add_arguments(self, parser):
        parser.add_argument(
            "file",
            help="Path of the .xlsx workbook",
        )
        parser.add_argument(
            "--mode",
            choices=[mode.value for mode in RestoreMode],
            default=RestoreMode.MERGE.value,
            help="merge keeps existing records; replace overwrites them (default: merge)",
        )
        parser.add_argument(
            "--quiet",
            action="store_true",
            help="Do not print progress",
        )

    def handle(self, *args, **options):
        result = self.get_orchestrator().local_import(
            options["file"], options["mode"], self.get_context(options["quiet"])
        )
        self.check_result(result, "Import")

        self.write_summary(result.summary)
        self.stdout.write(self.style.SUCCESS("\n✓ Import completed"))
