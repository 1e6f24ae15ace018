"""
Celery tasks for backup and restore operations.

Each task builds a SyncOrchestrator over the local database and the
preferences identity, runs one operation and returns its result as a dict.
"""

import logging

from celery import shared_task

from jewelsync.sync.exceptions import RemoteIOError

logger = logging.getLogger(__name__)

SKIPPED_BUSY = {"status": "skipped", "reason": "operation_in_progress"}


def get_orchestrator():
    from jewelsync.preferences import PreferencesIdentityProvider
    from jewelsync.repository import DatabaseAccess
    from jewelsync.sync.orchestrator import SyncOrchestrator

    return SyncOrchestrator(DatabaseAccess(), PreferencesIdentityProvider())


def _progress_logger(task_name: str):
    def report(message: str, percent: int) -> None:
        logger.debug(f"{task_name}: {percent}% {message}")

    return report


def _finish(result, retry_remote: bool = False) -> dict:
    """
    Turn an OperationResult into the task return value.

    Raises:
        RemoteIOError: For remote failures when ``retry_remote`` is set, so
            autoretry_for can reschedule the task
    """
    if result.busy:
        logger.info(f"{result.kind} skipped: another operation is in progress")
        return dict(SKIPPED_BUSY)
    if not result.success and retry_remote and result.error_type == RemoteIOError.__name__:
        raise RemoteIOError(result.error)

    payload = result.to_dict()
    payload["status"] = "completed" if result.success else "failed"
    return payload


@shared_task(
    bind=True,
    autoretry_for=(RemoteIOError,),
    retry_backoff=True,
    retry_backoff_max=600,
    max_retries=3,
)
def remote_backup_task(self):
    """Export the database and upload it to the remote store."""
    from jewelsync.sync.context import OperationContext

    logger.info("Starting remote backup")
    context = OperationContext(progress=_progress_logger("remote_backup"))
    return _finish(get_orchestrator().remote_backup(context), retry_remote=True)


@shared_task(
    bind=True,
    autoretry_for=(RemoteIOError,),
    retry_backoff=True,
    retry_backoff_max=600,
    max_retries=3,
)
def remote_restore_task(self, mode: str = "merge"):
    """
    Download the latest backup and import it.

    Args:
        mode: "merge" or "replace"
    """
    from jewelsync.sync.context import OperationContext

    logger.info(f"Starting remote restore (mode={mode})")
    context = OperationContext(progress=_progress_logger("remote_restore"))
    return _finish(get_orchestrator().remote_restore(mode, context), retry_remote=True)


@shared_task
def local_export_task(destination: str | None = None):
    """
    Export the database to a local workbook.

    Args:
        destination: Output path (timestamped file in SYNC_EXPORT_DIR if None)
    """
    return _finish(get_orchestrator().local_export(destination))


@shared_task
def local_import_task(file_path: str, mode: str = "merge"):
    """
    Import a local workbook.

    Args:
        file_path: Path of the .xlsx file
        mode: "merge" or "replace"
    """
    return _finish(get_orchestrator().local_import(file_path, mode))


@shared_task(
    bind=True,
    autoretry_for=(RemoteIOError,),
    retry_backoff=True,
    max_retries=3,
)
def prune_backups_task(self, keep: int | None = None):
    """
    Delete all but the newest backups of the current scope.

    Args:
        keep: Backups to keep (SYNC_KEEP_BACKUPS if None)
    """
    return _finish(get_orchestrator().prune_backups(keep), retry_remote=True)


@shared_task
def automatic_backup_task():
    """Scheduled backup; does nothing when automatic backups are disabled."""
    from jewelsync.scheduling import SyncFrequency, configured_frequency

    frequency = configured_frequency()
    if frequency is SyncFrequency.DISABLED:
        logger.info("Automatic backup disabled")
        return {"status": "skipped", "reason": "disabled"}

    logger.info(f"Running automatic backup ({frequency.display_name})")
    return _finish(get_orchestrator().remote_backup())
