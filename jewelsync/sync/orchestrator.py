"""
Backup and restore pipelines.

SyncOrchestrator sequences export, upload, download, validation and import,
reports progress through an OperationContext and records every run on a
SyncOperation row. Public methods never raise: failures come back as an
OperationResult with success=False.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

from django.conf import settings
from django.db import DatabaseError
from django.utils import timezone

from jewelsync import preferences
from jewelsync.providers.backup_store import BackupStore, backup_file_name, get_object_store
from jewelsync.sync.access import Identity
from jewelsync.sync.conflicts import RestoreMode
from jewelsync.sync.context import PROCESS_GUARD, InFlightGuard, OperationContext
from jewelsync.sync.exceptions import ConcurrencyError, IdentityError, RemoteIOError, StructuralError
from jewelsync.sync.exporter import WorkbookExporter
from jewelsync.sync.importer import ImportSummary, WorkbookImporter
from jewelsync.sync.models import OperationKind, OperationStatus, SyncOperation
from jewelsync.sync.validation import validate_structure
from jewelsync.sync.workbook import XLSX_EXTENSION, WorkbookReader

if TYPE_CHECKING:
    from jewelsync.sync.access import DataAccess, IdentityProvider

logger = logging.getLogger(__name__)

StoreFactory = Callable[[str, str], BackupStore]

SOURCE_REMOTE = "remote"
SOURCE_LOCAL = "local"


def default_store_factory(user_mobile: str, store_id: str) -> BackupStore:
    return BackupStore(get_object_store(), user_mobile, store_id)


@dataclass
class OperationResult:
    """Outcome of one orchestrator call."""

    kind: str
    success: bool
    status: str = OperationStatus.COMPLETED
    value: Any = None
    summary: ImportSummary | None = None
    artifact: Path | None = None
    remote_url: str = ""
    error: str = ""
    error_type: str = ""
    operation_id: int | None = None

    @classmethod
    def failed(cls, kind: str, error: BaseException, **kwargs) -> "OperationResult":
        return cls(
            kind=kind,
            success=False,
            status=OperationStatus.FAILED,
            error=str(error),
            error_type=type(error).__name__,
            **kwargs,
        )

    @property
    def busy(self) -> bool:
        return self.error_type == ConcurrencyError.__name__

    def to_dict(self) -> dict:
        value = self.value
        if isinstance(value, Path):
            value = str(value)
        elif isinstance(value, list):
            value = [v.to_dict() if hasattr(v, "to_dict") else v for v in value]
        elif isinstance(value, ImportSummary):
            value = value.to_dict()
        return {
            "kind": str(self.kind),
            "success": self.success,
            "status": str(self.status),
            "value": value,
            "summary": self.summary.to_dict() if self.summary else None,
            "artifact": str(self.artifact) if self.artifact else None,
            "remote_url": self.remote_url,
            "error": self.error,
            "error_type": self.error_type,
            "operation_id": self.operation_id,
        }


class _Run:
    """Bookkeeping for one guarded operation: audit row and temp files."""

    def __init__(self, kind: str, context: OperationContext, mode: str = ""):
        self.kind = kind
        self.context = context
        self.mode = mode
        self.operation: SyncOperation | None = None
        self.temp_files: list[Path] = []
        self.artifact: Path | None = None

    def begin(self) -> None:
        self.operation = SyncOperation.objects.create(
            kind=self.kind, mode=self.mode, status=OperationStatus.STAGING
        )

    def advance(self, status: str) -> None:
        self.operation.advance(status)

    def scope(self, identity: Identity) -> Identity:
        self.operation.user_id = identity.user_id
        self.operation.store_id = identity.store_id
        self.operation.save(update_fields=["user_id", "store_id"])
        return identity

    def track(self, path: Path) -> Path:
        self.temp_files.append(path)
        return path

    def keep(self, path: Path) -> None:
        """Report ``path`` as the run's artifact and leave it on disk."""
        self.artifact = path
        if path in self.temp_files:
            self.temp_files.remove(path)

    def cleanup(self) -> None:
        for path in self.temp_files:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Unable to remove temporary file {path}: {e}")
        self.temp_files.clear()

    def fail(self, error: BaseException) -> None:
        if self.operation is None:
            return
        try:
            self.operation.fail(error, artifact_path=str(self.artifact or ""))
        except DatabaseError as e:
            logger.error(f"Unable to record failure of {self.kind}: {e}")


class SyncOrchestrator:
    """
    Runs backup and restore operations one at a time.

    Args:
        data_access: DataAccess over the local store
        identity_provider: Source of the current user/store
        store_factory: Builds a BackupStore for (user mobile, store id)
        guard: In-flight guard; a second operation is rejected while one runs
        work_dir: Directory for staged and downloaded workbooks
    """

    def __init__(
        self,
        data_access: DataAccess,
        identity_provider: IdentityProvider,
        store_factory: StoreFactory | None = None,
        guard: InFlightGuard = PROCESS_GUARD,
        work_dir: Path | str | None = None,
    ):
        self.data_access = data_access
        self.identity_provider = identity_provider
        self.store_factory = store_factory or default_store_factory
        self.guard = guard
        self.work_dir = Path(
            work_dir or getattr(settings, "SYNC_WORK_DIR", "") or tempfile.gettempdir()
        )
        self.exporter = WorkbookExporter(data_access)
        self.importer = WorkbookImporter(data_access)

    # Identity

    def _identity(self, need_user: bool = True, need_store: bool = True) -> Identity:
        identity = Identity.from_provider(self.identity_provider)
        if need_user and not identity.user_id:
            raise IdentityError("User ID not found")
        if need_store and not identity.store_id:
            raise IdentityError("Store ID not found")
        if not identity.user_mobile:
            raise IdentityError("User mobile not found")
        return identity

    def _store(self, identity: Identity) -> BackupStore:
        return self.store_factory(identity.user_mobile, identity.store_id)

    # Execution

    def _execute(
        self,
        kind: str,
        body: Callable[[_Run], OperationResult],
        context: OperationContext | None = None,
        mode: str = "",
    ) -> OperationResult:
        context = context or OperationContext()
        try:
            with self.guard.hold(kind):
                return self._run_locked(_Run(kind, context, mode), body)
        except ConcurrencyError as e:
            return OperationResult.failed(kind, e)

    def _run_locked(self, run: _Run, body: Callable[[_Run], OperationResult]) -> OperationResult:
        logger.info(f"Starting {run.kind}")
        try:
            run.begin()
            result = body(run)
            run.operation.complete(
                summary=result.summary.to_dict() if result.summary else {},
                remote_url=result.remote_url,
                artifact_path=str(result.artifact or ""),
            )
        except Exception as e:
            logger.error(f"{run.kind} failed: {e}", exc_info=True)
            run.fail(e)
            return OperationResult.failed(
                run.kind,
                e,
                artifact=run.artifact,
                operation_id=run.operation.pk if run.operation else None,
            )
        finally:
            run.cleanup()

        result.operation_id = run.operation.pk
        logger.info(f"{run.kind} completed")
        return result

    def _query(self, kind: str, fn: Callable[[], Any]) -> OperationResult:
        try:
            return OperationResult(kind=kind, success=True, value=fn())
        except Exception as e:
            logger.error(f"{kind} failed: {e}")
            return OperationResult.failed(kind, e)

    # Remote backup

    def remote_backup(self, context: OperationContext | None = None) -> OperationResult:
        """
        Export the database and upload it as the scope's only backup.

        Returns:
            OperationResult whose value is the remote URL. When the export
            succeeded but the upload failed, ``artifact`` is the staged file.
        """
        return self._execute(OperationKind.REMOTE_BACKUP, self._remote_backup, context)

    def _remote_backup(self, run: _Run) -> OperationResult:
        context = run.context
        context.report("Starting sync process...", 0)
        identity = run.scope(self._identity(need_user=False))

        run.advance(OperationStatus.EXPORTING)
        context.report("Exporting database to Excel...", 20)
        self.work_dir.mkdir(parents=True, exist_ok=True)
        staged = run.track(
            self.work_dir / getattr(settings, "SYNC_BACKUP_FILE_NAME", "backup_file.xlsx")
        )
        export = self.exporter.export(staged, context.child(20, 0.4))
        logger.info(f"Staged {export.total_rows} rows for upload")
        context.check_cancelled()

        run.advance(OperationStatus.UPLOADING)
        context.report("Uploading to cloud storage...", 60)
        file_name = backup_file_name()
        run.operation.file_name = file_name
        run.operation.save(update_fields=["file_name"])
        uploaded = self._store(identity).upload(staged, file_name)
        if not uploaded.success:
            run.keep(staged)
            raise uploaded.error

        url = uploaded.value
        try:
            preferences.record_sync()
        except preferences.PreferencesError as e:
            logger.warning(f"Backup uploaded but last sync time not saved: {e}")

        context.report("Cleaning up temporary files...", 90)
        context.report("Sync completed successfully!", 100)
        return OperationResult(kind=run.kind, success=True, value=url, remote_url=url)

    # Restore

    def remote_restore(
        self,
        mode: RestoreMode | str = RestoreMode.MERGE,
        context: OperationContext | None = None,
    ) -> OperationResult:
        """
        Download the latest backup of the scope and import it.

        Returns:
            OperationResult whose value is the ImportSummary
        """
        mode = RestoreMode.parse(mode)
        return self._execute(
            OperationKind.REMOTE_RESTORE,
            lambda run: self._remote_restore(run, mode),
            context,
            mode=mode.value,
        )

    def _remote_restore(self, run: _Run, mode: RestoreMode) -> OperationResult:
        context = run.context
        context.report("Starting restore process...", 0)
        identity = run.scope(self._identity())

        run.advance(OperationStatus.DOWNLOADING)
        context.report("Downloading backup from cloud...", 20)
        self.work_dir.mkdir(parents=True, exist_ok=True)
        downloaded = self._store(identity).download_latest(self.work_dir)
        if not downloaded.success:
            raise downloaded.error
        path = run.track(downloaded.value)
        context.check_cancelled()

        summary = self._validate_and_import(run, path, identity, mode, validating_percent=40)
        context.report("Restore completed successfully!", 100)
        return OperationResult(kind=run.kind, success=True, value=summary, summary=summary)

    def local_import(
        self,
        file_path: Path | str,
        mode: RestoreMode | str = RestoreMode.MERGE,
        context: OperationContext | None = None,
    ) -> OperationResult:
        """
        Import a workbook from the local filesystem.

        The file is copied to a temporary validation copy first, so the
        original is never held open while importing.

        Returns:
            OperationResult whose value is the ImportSummary
        """
        mode = RestoreMode.parse(mode)
        return self._execute(
            OperationKind.LOCAL_IMPORT,
            lambda run: self._local_import(run, Path(file_path), mode),
            context,
            mode=mode.value,
        )

    def _local_import(self, run: _Run, file_path: Path, mode: RestoreMode) -> OperationResult:
        context = run.context
        context.report("Starting import...", 0)
        if file_path.suffix.lower() != XLSX_EXTENSION:
            raise StructuralError("Invalid file format. Please select an Excel file (.xlsx)")
        if not file_path.is_file():
            raise StructuralError(f"File not found: {file_path}")
        identity = run.scope(self._identity())

        run.operation.file_name = file_path.name
        run.operation.save(update_fields=["file_name"])

        self.work_dir.mkdir(parents=True, exist_ok=True)
        fd, copy_name = tempfile.mkstemp(prefix="validation", suffix=XLSX_EXTENSION, dir=self.work_dir)
        os.close(fd)
        copy = run.track(Path(copy_name))
        shutil.copyfile(file_path, copy)

        summary = self._validate_and_import(run, copy, identity, mode, validating_percent=10)
        context.report("Import completed successfully!", 100)
        return OperationResult(kind=run.kind, success=True, value=summary, summary=summary)

    def _validate_and_import(
        self,
        run: _Run,
        path: Path,
        identity: Identity,
        mode: RestoreMode,
        validating_percent: int,
    ) -> ImportSummary:
        context = run.context
        run.advance(OperationStatus.VALIDATING)
        context.report("Validating backup file...", validating_percent)

        with WorkbookReader(path) as reader:
            report = validate_structure(reader)
            report.raise_for_errors()
            context.check_cancelled()

            run.advance(OperationStatus.IMPORTING)
            context.report("Importing data...", 60)
            summary = self.importer.import_workbook(reader, identity, mode, context.child(60, 0.3))

        context.report("Cleaning up temporary files...", 90)
        return summary

    def restore_from_source(
        self,
        source: str,
        mode: RestoreMode | str = RestoreMode.MERGE,
        file_path: Path | str | None = None,
        context: OperationContext | None = None,
    ) -> OperationResult:
        """
        Restore from the remote store or from a local workbook.

        Args:
            source: "remote" or "local"
            mode: MERGE or REPLACE
            file_path: Workbook path, required for a local source
        """
        source = str(source).lower()
        if source == SOURCE_LOCAL:
            if file_path is None:
                return OperationResult.failed(
                    OperationKind.LOCAL_IMPORT, StructuralError("No file selected")
                )
            return self.local_import(file_path, mode, context)
        if source != SOURCE_REMOTE:
            return OperationResult.failed(
                OperationKind.REMOTE_RESTORE, ValueError(f"Unknown restore source: {source}")
            )

        mode = RestoreMode.parse(mode)

        def body(run: _Run) -> OperationResult:
            run.context.report("Checking cloud sync availability...", 10)
            if not self._store(self._identity()).exists():
                raise RemoteIOError("No cloud backup found for this store")
            return self._remote_restore(run, mode)

        return self._execute(OperationKind.REMOTE_RESTORE, body, context, mode=mode.value)

    # Local export

    def local_export(
        self,
        destination: Path | str | None = None,
        context: OperationContext | None = None,
    ) -> OperationResult:
        """
        Export the database to a workbook kept on the local filesystem.

        Args:
            destination: Output path; defaults to a timestamped file in SYNC_EXPORT_DIR

        Returns:
            OperationResult whose value and artifact are the workbook path
        """
        return self._execute(
            OperationKind.LOCAL_EXPORT,
            lambda run: self._local_export(run, destination),
            context,
        )

    def _local_export(self, run: _Run, destination: Path | str | None) -> OperationResult:
        context = run.context
        if destination is None:
            export_dir = Path(getattr(settings, "SYNC_EXPORT_DIR", "") or self.work_dir)
            stamp = timezone.now().strftime("%Y%m%d_%H%M%S")
            destination = export_dir / f"jewelsync_export_{stamp}{XLSX_EXTENSION}"
        destination = Path(destination)
        if destination.suffix.lower() != XLSX_EXTENSION:
            destination = destination.with_suffix(XLSX_EXTENSION)

        run.advance(OperationStatus.EXPORTING)
        run.operation.file_name = destination.name
        run.operation.save(update_fields=["file_name"])
        context.report("Exporting database to Excel...", 0)

        self.exporter.export(destination, context.child(0, 0.95))
        context.report("Export completed", 100)
        return OperationResult(kind=run.kind, success=True, value=destination, artifact=destination)

    # Remote housekeeping

    def list_backups(self) -> OperationResult:
        """List the scope's backups, newest first."""
        return self._query(
            "list_backups",
            lambda: self._store(self._identity(need_user=False)).list_backups().unwrap(),
        )

    def backup_exists(self) -> OperationResult:
        """Value is True when the scope has at least one backup."""
        return self._query(
            "backup_exists",
            lambda: self._store(self._identity(need_user=False)).exists(),
        )

    def prune_backups(
        self, keep: int | None = None, context: OperationContext | None = None
    ) -> OperationResult:
        """
        Delete all but the newest ``keep`` backups of the scope.

        Returns:
            OperationResult whose value is the number of backups deleted
        """
        keep = getattr(settings, "SYNC_KEEP_BACKUPS", 5) if keep is None else keep

        def body(run: _Run) -> OperationResult:
            run.context.report("Removing old backups...", 0)
            identity = run.scope(self._identity(need_user=False))
            deleted = self._store(identity).prune_to_recent(keep).unwrap()
            run.context.report("Cleanup completed", 100)
            return OperationResult(kind=run.kind, success=True, value=deleted)

        return self._execute(OperationKind.PRUNE, body, context)
