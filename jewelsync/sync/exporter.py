"""
Workbook exporter.

Writes every entity table to its own sheet, followed by a Metadata sheet
recording the schema version and the exact headers written, so an importer
on a newer build can tell which columns this export never had.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from django.utils import timezone
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill

from jewelsync.sync.coercion import format_date, write_cell
from jewelsync.sync.context import OperationContext
from jewelsync.sync.schema import (
    CURRENT_SCHEMA_VERSION,
    EXPORT_ORDER,
    HEADER_SEPARATOR,
    HEADERS_KEY_PREFIX,
    METADATA_SHEET,
    SHEETS,
    SheetSchema,
)

if TYPE_CHECKING:
    from jewelsync.sync.access import DataAccess

logger = logging.getLogger(__name__)

HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(start_color="D9D9D9", end_color="D9D9D9", fill_type="solid")


@dataclass
class ExportResult:
    """Result of a workbook export."""

    path: Path
    exported_at: str
    schema_version: int = CURRENT_SCHEMA_VERSION
    row_counts: dict[str, int] = field(default_factory=dict)

    @property
    def total_rows(self) -> int:
        return sum(self.row_counts.values())


class WorkbookExporter:
    """
    Serializes the local database into a versioned workbook.

    Export is all-or-nothing: on any error the partially written file is
    removed and the exception propagates.
    """

    def __init__(self, data_access: DataAccess, sheets: dict[str, SheetSchema] | None = None):
        self.data_access = data_access
        self.sheets = sheets or SHEETS

    def export(self, destination: Path | str, context: OperationContext | None = None) -> ExportResult:
        """
        Export all entities to ``destination``.

        Args:
            destination: Path of the .xlsx file to write (overwritten)
            context: Operation context for progress and cancellation

        Returns:
            ExportResult with per-sheet row counts
        """
        context = context or OperationContext()
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)

        exported_at = format_date(timezone.now())
        result = ExportResult(path=destination, exported_at=exported_at)
        written_headers: dict[str, list[str]] = {}

        logger.info(f"Exporting workbook to {destination}")

        try:
            workbook = Workbook()
            workbook.remove(workbook.active)

            for sheet_name, percent in EXPORT_ORDER:
                context.check_cancelled()
                sheet = self.sheets[sheet_name]
                count = self._write_sheet(workbook, sheet)
                written_headers[sheet_name] = sheet.headers
                result.row_counts[sheet_name] = count
                logger.debug(f"Exported {count} {sheet.label}")
                context.report(f"Exported {sheet.label}", percent)

            self._write_metadata(workbook, exported_at, written_headers)
            workbook.save(destination)

        except Exception:
            if destination.exists():
                destination.unlink()
            raise

        logger.info(
            f"Export complete: {result.total_rows} rows across {len(result.row_counts)} sheets"
        )
        context.report("Export completed", 100)
        return result

    def _write_sheet(self, workbook: Workbook, sheet: SheetSchema) -> int:
        worksheet = workbook.create_sheet(title=sheet.name)
        worksheet.append(sheet.headers)
        for cell in worksheet[1]:
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL

        records = self.data_access.for_sheet(sheet.name).get_all()
        for record in records:
            worksheet.append(
                [write_cell(column.kind, record.get(column.header)) for column in sheet.columns]
            )
        return len(records)

    def _write_metadata(
        self, workbook: Workbook, exported_at: str, headers: dict[str, list[str]]
    ) -> None:
        worksheet = workbook.create_sheet(title=METADATA_SHEET)
        worksheet.append(["key", "value"])
        for cell in worksheet[1]:
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL
        worksheet.append(["schemaVersion", CURRENT_SCHEMA_VERSION])
        worksheet.append(["exportedAt", exported_at])
        for sheet_name, sheet_headers in headers.items():
            worksheet.append(
                [f"{HEADERS_KEY_PREFIX}{sheet_name}", HEADER_SEPARATOR.join(sheet_headers)]
            )
