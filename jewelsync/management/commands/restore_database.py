"""
Django management command to restore the database from a backup.
"""

from django.core.management.base import CommandError

from jewelsync.management.base import SyncCommand
from jewelsync.sync.conflicts import RestoreMode
from jewelsync.sync.orchestrator import SOURCE_LOCAL, SOURCE_REMOTE


class Command(SyncCommand):
    help = "Restore the database from the latest remote backup or a local workbook"

    def add_arguments(self, parser):
        parser.add_argument(
            "--mode",
            choices=[mode.value for mode in RestoreMode],
            default=RestoreMode.MERGE.value,
            help="merge keeps existing records; replace overwrites them (default: merge)",
        )
        parser.add_argument(
            "--source",
            choices=[SOURCE_REMOTE, SOURCE_LOCAL],
            default=SOURCE_REMOTE,
            help="Where to restore from (default: remote)",
        )
        parser.add_argument(
            "--file",
            help="Workbook to restore from when --source=local",
        )
        parser.add_argument(
            "--quiet",
            action="store_true",
            help="Do not print progress",
        )

    def handle(self, *args, **options):
        if options["source"] == SOURCE_LOCAL and not options["file"]:
            raise CommandError("--file is required with --source=local")

        mode = RestoreMode.parse(options["mode"])
        if mode is RestoreMode.REPLACE:
            self.stdout.write(
                self.style.WARNING("Replace mode: existing records will be overwritten")
            )

        result = self.get_orchestrator().restore_from_source(
            options["source"],
            mode,
            file_path=options["file"],
            context=self.get_context(options["quiet"]),
        )
        self.check_result(result, "Restore")

        self.write_summary(result.summary)
        self.stdout.write(self.style.SUCCESS("\n✓ Restore completed"))
