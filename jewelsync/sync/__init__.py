"""
Backup/restore engine: workbook export, import and remote sync.
"""

from jewelsync.sync.conflicts import RestoreMode
from jewelsync.sync.exceptions import (
    ConcurrencyError,
    IdentityError,
    MissingOptionalColumnError,
    MissingSheetError,
    OperationCancelledError,
    RemoteIOError,
    RowParseError,
    RowPersistError,
    StructuralError,
    SyncError,
)
from jewelsync.sync.models import OperationKind, OperationStatus, SyncOperation
from jewelsync.sync.schema import CURRENT_SCHEMA_VERSION, SchemaRegistry

__all__ = [
    "RestoreMode",
    "SchemaRegistry",
    "CURRENT_SCHEMA_VERSION",
    "SyncOperation",
    "OperationKind",
    "OperationStatus",
    "SyncError",
    "StructuralError",
    "MissingSheetError",
    "MissingOptionalColumnError",
    "RowParseError",
    "RowPersistError",
    "RemoteIOError",
    "ConcurrencyError",
    "IdentityError",
    "OperationCancelledError",
]
