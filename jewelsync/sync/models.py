"""
Models for tracking backup and restore operations.
"""

from django.db import models
from django.utils import timezone


class OperationKind(models.TextChoices):
    REMOTE_BACKUP = "remote_backup", "Remote Backup"
    REMOTE_RESTORE = "remote_restore", "Remote Restore"
    LOCAL_EXPORT = "local_export", "Local Export"
    LOCAL_IMPORT = "local_import", "Local Import"
    PRUNE = "prune", "Prune Backups"


class OperationStatus(models.TextChoices):
    IDLE = "idle", "Idle"
    STAGING = "staging", "Staging"
    UPLOADING = "uploading", "Uploading"
    DOWNLOADING = "downloading", "Downloading"
    VALIDATING = "validating", "Validating"
    EXPORTING = "exporting", "Exporting"
    IMPORTING = "importing", "Importing"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


TERMINAL_STATUSES = (OperationStatus.COMPLETED, OperationStatus.FAILED)


class SyncOperation(models.Model):
    """
    Records each backup/restore run for audit and debugging.

    Tracks the lifecycle of the run from staging through upload/download,
    validation and import/export. A failed run keeps the first error; a
    completed run keeps its import summary or remote URL.
    """

    kind = models.CharField(max_length=20, choices=OperationKind.choices)
    status = models.CharField(
        max_length=20,
        choices=OperationStatus.choices,
        default=OperationStatus.IDLE,
    )
    mode = models.CharField(max_length=10, blank=True)

    started_at = models.DateTimeField(default=timezone.now)
    completed_at = models.DateTimeField(null=True, blank=True)

    # Scope
    user_id = models.CharField(max_length=64, blank=True)
    store_id = models.CharField(max_length=64, blank=True)

    # Artifacts
    file_name = models.CharField(max_length=255, blank=True)
    remote_url = models.TextField(blank=True)
    artifact_path = models.TextField(blank=True)

    # Outcome
    summary = models.JSONField(default=dict, blank=True)
    error_type = models.CharField(max_length=64, blank=True)
    error_message = models.TextField(blank=True)

    class Meta:
        indexes = [
            models.Index(fields=["kind", "-started_at"]),
            models.Index(fields=["status"]),
        ]
        ordering = ["-started_at"]

    def __str__(self):
        return f"{self.get_kind_display()} - {self.get_status_display()}"

    @property
    def is_finished(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def duration(self):
        if self.completed_at is None:
            return None
        return self.completed_at - self.started_at

    def advance(self, status: str) -> None:
        """Move to a non-terminal state."""
        self.status = status
        self.save(update_fields=["status"])

    def complete(self, summary: dict | None = None, remote_url: str = "", artifact_path: str = "") -> None:
        self.status = OperationStatus.COMPLETED
        self.completed_at = timezone.now()
        if summary is not None:
            self.summary = summary
        if remote_url:
            self.remote_url = remote_url
        if artifact_path:
            self.artifact_path = artifact_path
        self.save()

    def fail(self, error: BaseException, artifact_path: str = "") -> None:
        """Mark the run failed; only the first error is kept."""
        if self.status == OperationStatus.FAILED:
            return
        self.status = OperationStatus.FAILED
        self.completed_at = timezone.now()
        self.error_type = type(error).__name__
        self.error_message = str(error)
        if artifact_path:
            self.artifact_path = artifact_path
        self.save()
