"""
Exceptions for backup, restore and workbook import operations.
"""


class SyncError(Exception):
    """Base exception for sync operations."""

    pass


class StructuralError(SyncError):
    """Workbook cannot be imported (unreadable, wrong extension, missing required columns)."""

    pass


class MissingSheetError(SyncError):
    """An entity sheet is absent from the workbook."""

    def __init__(self, sheet_name: str):
        super().__init__(f"Sheet '{sheet_name}' missing")
        self.sheet_name = sheet_name


class MissingOptionalColumnError(SyncError):
    """
    A sheet lacks a column; the field takes its type default.

    Soft: recorded on the import summary, never raised out of an import.
    """

    def __init__(self, sheet_name: str, column: str):
        super().__init__(f"{sheet_name} has no {column} column")
        self.sheet_name = sheet_name
        self.column = column


class RowParseError(SyncError):
    """A worksheet row could not be turned into a record."""

    pass


class RowPersistError(SyncError):
    """A parsed record could not be written through the data-access layer."""

    pass


class RemoteIOError(SyncError):
    """Upload, download, list or delete against the remote store failed."""

    pass


class ConcurrencyError(SyncError):
    """Another sync operation is already running in this process."""

    pass


class IdentityError(SyncError):
    """No current user or store is configured."""

    pass


class OperationCancelledError(SyncError):
    """The operation was cancelled through its context."""

    pass
