"""
Workbook reading helpers shared by validation and import.
"""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import Any, Sequence

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from jewelsync.sync.coercion import to_int, to_str
from jewelsync.sync.exceptions import StructuralError
from jewelsync.sync.schema import (
    EARLIEST_KNOWN_VERSION,
    HEADER_SEPARATOR,
    HEADERS_KEY_PREFIX,
    METADATA_SHEET,
    SchemaMetadata,
)

logger = logging.getLogger(__name__)

XLSX_EXTENSION = ".xlsx"
XLSX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

Row = Sequence[Any]


def build_header_map(header_row: Row | None) -> dict[str, int]:
    """Map lowercased, trimmed header names to their column index."""
    header_map: dict[str, int] = {}
    if not header_row:
        return header_map
    for index, value in enumerate(header_row):
        name = to_str(value).lower()
        if name:
            header_map[name] = index
    return header_map


def duplicate_headers(header_row: Row | None) -> list[str]:
    """Lowercased header names that occur more than once in a header row."""
    seen: set[str] = set()
    duplicates: list[str] = []
    for value in header_row or ():
        name = to_str(value).lower()
        if not name:
            continue
        if name in seen and name not in duplicates:
            duplicates.append(name)
        seen.add(name)
    return duplicates


def cell_at(row: Row, index: int | None) -> Any:
    if index is None or index >= len(row):
        return None
    return row[index]


def is_blank_row(row: Row) -> bool:
    return all(to_str(value) == "" for value in row)


class WorkbookReader:
    """
    Read-only view of an exported workbook.

    Rows are loaded per sheet on demand and cached, so validation and
    import can share one reader.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        try:
            self._workbook = load_workbook(self.path, read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
            logger.error(f"Unable to open workbook {self.path.name}: {e}")
            raise StructuralError(f"Unable to read workbook {self.path.name}: {e}") from e
        self._rows: dict[str, list[tuple]] = {}

    def __enter__(self) -> "WorkbookReader":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def close(self) -> None:
        self._workbook.close()

    @property
    def sheet_names(self) -> list[str]:
        return list(self._workbook.sheetnames)

    def has_sheet(self, name: str) -> bool:
        return name in self._workbook.sheetnames

    def rows(self, name: str) -> list[tuple]:
        """All rows of a sheet, header row first."""
        if name not in self._rows:
            worksheet = self._workbook[name]
            self._rows[name] = [tuple(row) for row in worksheet.iter_rows(values_only=True)]
        return self._rows[name]

    def header_map(self, name: str) -> dict[str, int]:
        rows = self.rows(name)
        return build_header_map(rows[0] if rows else None)

    def metadata(self) -> SchemaMetadata:
        """
        Read the Metadata sheet.

        A workbook without one was written before metadata existed and is
        treated as the earliest known schema version.
        """
        if not self.has_sheet(METADATA_SHEET):
            logger.info(
                f"Metadata sheet missing - assuming schema v{EARLIEST_KNOWN_VERSION}"
            )
            return SchemaMetadata()

        metadata = SchemaMetadata()
        for row in self.rows(METADATA_SHEET)[1:]:
            key = to_str(cell_at(row, 0))
            value = cell_at(row, 1)
            lowered = key.lower()
            if lowered == "schemaversion":
                metadata.schema_version = to_int(value, metadata.schema_version)
            elif lowered == "exportedat":
                metadata.exported_at = to_str(value) or None
            elif lowered.startswith(HEADERS_KEY_PREFIX):
                sheet_name = key[len(HEADERS_KEY_PREFIX):].strip()
                if sheet_name:
                    text = to_str(value)
                    metadata.headers[sheet_name] = [
                        h.strip() for h in text.split(HEADER_SEPARATOR) if h.strip()
                    ]

        logger.info(
            f"Metadata loaded (schema v{metadata.schema_version}, "
            f"exportedAt={metadata.exported_at or 'unknown'})"
        )
        return metadata
