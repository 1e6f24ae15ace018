"""
Structural validation of a workbook before import.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from jewelsync.sync.exceptions import StructuralError
from jewelsync.sync.schema import (
    CURRENT_SCHEMA_VERSION,
    SHEETS,
    SchemaMetadata,
    SchemaRegistry,
    registry as default_registry,
)
from jewelsync.sync.workbook import WorkbookReader, build_header_map, duplicate_headers, is_blank_row

logger = logging.getLogger(__name__)


@dataclass
class ValidationReport:
    """Outcome of validating one workbook."""

    metadata: SchemaMetadata
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    missing_sheets: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        if self.errors:
            raise StructuralError("\n".join(self.errors))


def validate_structure(
    reader: WorkbookReader,
    registry: SchemaRegistry | None = None,
) -> ValidationReport:
    """
    Check that every present sheet carries the headers its version requires.

    Missing sheets and gaps in older exports are logged and accepted. A sheet
    that is empty, or a required header missing from or repeated in a
    current-version export, is an error.

    Args:
        reader: Open workbook
        registry: Schema registry (defaults to the shared one)

    Returns:
        ValidationReport; call raise_for_errors() to turn errors into StructuralError
    """
    registry = registry or default_registry
    metadata = reader.metadata()
    report = ValidationReport(metadata=metadata)
    is_current = metadata.schema_version >= CURRENT_SCHEMA_VERSION

    required = registry.determine_required_headers(metadata)

    report.missing_sheets = [name for name in required if not reader.has_sheet(name)]
    if report.missing_sheets:
        _warn(
            report,
            f"Missing sheets (allowed for backward compatibility): "
            f"{', '.join(report.missing_sheets)}",
        )

    for sheet_name, headers in required.items():
        if not reader.has_sheet(sheet_name):
            continue

        rows = reader.rows(sheet_name)
        if not rows:
            report.errors.append(f"Sheet '{sheet_name}' is empty or corrupted")
            continue

        if is_blank_row(rows[0]):
            message = f"Sheet '{sheet_name}' is missing the header row"
            if is_current:
                report.errors.append(message)
            else:
                _warn(report, f"{message}; using column positions (schema v{metadata.schema_version})")
            continue

        header_map = build_header_map(rows[0])
        duplicates = duplicate_headers(rows[0])
        if duplicates:
            message = f"Sheet '{sheet_name}' has duplicate columns: {', '.join(duplicates)}"
            if is_current:
                report.errors.append(message)
            else:
                _warn(report, f"{message}; the last one is used (schema v{metadata.schema_version})")

        missing_required = [h for h in headers if h.lower() not in header_map]
        if missing_required:
            message = (
                f"Sheet '{sheet_name}' missing required columns: {', '.join(missing_required)}"
            )
            if is_current:
                report.errors.append(message)
            else:
                _warn(report, f"{message} (schema v{metadata.schema_version})")

        sheet = SHEETS.get(sheet_name)
        if sheet is None:
            continue

        missing_optional = [h for h in sheet.optional_headers if h.lower() not in header_map]
        if missing_optional:
            _warn(
                report,
                f"Sheet '{sheet_name}' missing optional columns: {', '.join(missing_optional)}",
            )

        if not is_current:
            recorded = {h.lower() for h in metadata.headers.get(sheet_name, [])}
            missing_new = [h for h in sheet.headers if h.lower() not in recorded]
            if missing_new:
                _warn(
                    report,
                    f"Sheet '{sheet_name}' missing new schema columns "
                    f"({', '.join(missing_new)}) for schema v{metadata.schema_version}",
                )

    if report.errors:
        logger.warning(f"Workbook {reader.path.name} failed validation: {report.errors}")
    else:
        logger.info(f"Workbook {reader.path.name} passed validation")
    return report


def _warn(report: ValidationReport, message: str) -> None:
    report.warnings.append(message)
    logger.warning(message)
