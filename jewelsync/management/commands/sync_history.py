"""
Django management command to show recent backup and restore runs.
"""

import json

from django.core.management.base import BaseCommand

from jewelsync.sync.models import OperationStatus, SyncOperation


class Command(BaseCommand):
    help = "Show recent backup, restore, export and import runs"

    def add_arguments(self, parser):
        parser.add_argument(
            "--limit",
            type=int,
            default=20,
            help="Number of runs to show (default: 20)",
        )
        parser.add_argument(
            "--json",
            action="store_true",
            help="Output as JSON",
        )

    def handle(self, *args, **options):
        operations = SyncOperation.objects.all()[: options["limit"]]

        if options["json"]:
            self._output_json(operations)
            return

        if not operations:
            self.stdout.write(self.style.WARNING("No sync operations recorded."))
            return

        self._output_table(operations)

    def _output_table(self, operations):
        """Output runs as formatted table."""
        self.stdout.write("\n" + "=" * 80)
        self.stdout.write(f"{'ID':<5} {'Kind':<16} {'Mode':<8} {'Status':<12} {'Started':<17} Detail")
        self.stdout.write("=" * 80)

        for operation in operations:
            if operation.status == OperationStatus.COMPLETED:
                status_display = self.style.SUCCESS(f"{operation.status:<12}")
            elif operation.status == OperationStatus.FAILED:
                status_display = self.style.ERROR(f"{operation.status:<12}")
            else:
                status_display = self.style.WARNING(f"{operation.status:<12}")

            detail = operation.error_message or operation.remote_url or operation.artifact_path
            self.stdout.write(
                f"{operation.id:<5} {operation.kind:<16} {operation.mode or '-':<8} "
                f"{status_display} {operation.started_at:%Y-%m-%d %H:%M} {detail[:60]}"
            )

        self.stdout.write("=" * 80)

    def _output_json(self, operations):
        """Output runs as JSON."""
        data = []
        for operation in operations:
            data.append({
                "id": operation.id,
                "kind": operation.kind,
                "mode": operation.mode,
                "status": operation.status,
                "user_id": operation.user_id,
                "store_id": operation.store_id,
                "started_at": operation.started_at.isoformat(),
                "completed_at": operation.completed_at.isoformat() if operation.completed_at else None,
                "file_name": operation.file_name,
                "remote_url": operation.remote_url,
                "artifact_path": operation.artifact_path,
                "summary": operation.summary,
                "error_type": operation.error_type,
                "error_message": operation.error_message,
            })

        self.stdout.write(json.dumps(data, indent=2))
