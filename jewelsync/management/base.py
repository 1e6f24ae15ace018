"""
Shared plumbing for the sync management commands.
"""

from django.core.management.base import BaseCommand, CommandError

from jewelsync.preferences import PreferencesIdentityProvider
from jewelsync.repository import DatabaseAccess
from jewelsync.sync.context import OperationContext
from jewelsync.sync.orchestrator import SyncOrchestrator


class SyncCommand(BaseCommand):
    """Base command that runs one orchestrator operation with console progress."""

    def get_orchestrator(self) -> SyncOrchestrator:
        return SyncOrchestrator(DatabaseAccess(), PreferencesIdentityProvider())

    def get_context(self, quiet: bool = False) -> OperationContext:
        if quiet:
            return OperationContext()
        return OperationContext(progress=self.write_progress)

    def write_progress(self, message: str, percent: int) -> None:
        self.stdout.write(f"[{percent:>3}%] {message}")

    def check_result(self, result, action: str) -> None:
        """
        Raise CommandError for a failed operation.

        Raises:
            CommandError: If the operation failed or was rejected as busy
        """
        if result.success:
            return
        if result.busy:
            raise CommandError(f"{action} skipped: {result.error}")
        if result.artifact:
            self.stdout.write(
                self.style.WARNING(f"Exported workbook kept at {result.artifact}")
            )
        raise CommandError(f"{action} failed ({result.error_type}): {result.error}")

    def write_summary(self, summary) -> None:
        """Print per-entity import counts."""
        self.stdout.write("\n" + "=" * 64)
        self.stdout.write(f"{'Entity':<30} {'Added':>10} {'Skipped':>10} {'Failed':>10}")
        self.stdout.write("=" * 64)
        for sheet, counts in summary.counts.items():
            line = f"{sheet:<30} {counts.added:>10} {counts.skipped:>10} {counts.failed:>10}"
            self.stdout.write(self.style.WARNING(line) if counts.failed else line)
        self.stdout.write("=" * 64)
        self.stdout.write(
            f"{'Total':<30} {summary.total_added:>10} {summary.total_skipped:>10} {summary.total_failed:>10}"
        )

        if summary.missing_sheets:
            self.stdout.write(
                self.style.WARNING(f"\nMissing sheets: {', '.join(summary.missing_sheets)}")
            )
        if summary.missing_columns:
            self.stdout.write(
                self.style.WARNING(f"Columns defaulted: {len(summary.missing_columns)}")
            )
        if summary.errors:
            self.stdout.write(
                self.style.WARNING(f"\nEncountered {len(summary.errors)} row error(s):")
            )
            for error in summary.errors[:10]:
                self.stdout.write(f"  - {error}")
            if len(summary.errors) > 10:
                self.stdout.write(f"  ... and {len(summary.errors) - 10} more")
