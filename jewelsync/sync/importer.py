"""
Workbook importer.

Reads an exported workbook sheet by sheet in dependency order, resolves
columns by header name (falling back to fixed positions for headerless
legacy sheets), coerces cells to typed fields and applies the conflict
policy for each row. Row failures are counted, never fatal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from jewelsync.sync.access import Identity, Record
from jewelsync.sync.coercion import default_for, read_cell
from jewelsync.sync.conflicts import (
    KNOWN_PROTECTION_GAPS,
    POLICIES,
    ConflictResolver,
    EntityPolicy,
    Resolution,
    RestoreMode,
)
from jewelsync.sync.context import OperationContext
from jewelsync.sync.exceptions import (
    MissingOptionalColumnError,
    MissingSheetError,
    RowParseError,
    RowPersistError,
)
from jewelsync.sync.schema import IMPORT_ORDER, SheetSchema, SchemaRegistry, registry as default_registry
from jewelsync.sync.workbook import WorkbookReader, build_header_map, cell_at, is_blank_row

if TYPE_CHECKING:
    from jewelsync.sync.access import DataAccess, EntityAccess

logger = logging.getLogger(__name__)

MAX_RECORDED_ERRORS = 100


@dataclass
class EntityCounts:
    added: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def processed(self) -> int:
        return self.added + self.skipped + self.failed


@dataclass
class ImportSummary:
    """Per-entity counters for one import call."""

    counts: dict[str, EntityCounts] = field(
        default_factory=lambda: {sheet: EntityCounts() for sheet, _ in IMPORT_ORDER}
    )
    missing_sheets: list[str] = field(default_factory=list)
    missing_columns: list[MissingOptionalColumnError] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    schema_version: int | None = None

    def __getitem__(self, sheet_name: str) -> EntityCounts:
        return self.counts[sheet_name]

    @property
    def total_added(self) -> int:
        return sum(c.added for c in self.counts.values())

    @property
    def total_skipped(self) -> int:
        return sum(c.skipped for c in self.counts.values())

    @property
    def total_failed(self) -> int:
        return sum(c.failed for c in self.counts.values())

    @property
    def is_partial(self) -> bool:
        return self.total_failed > 0 or bool(self.missing_sheets)

    def to_dict(self) -> dict:
        return {
            "schema_version": self.schema_version,
            "entities": {
                sheet: {"added": c.added, "skipped": c.skipped, "failed": c.failed}
                for sheet, c in self.counts.items()
            },
            "missing_sheets": list(self.missing_sheets),
            "missing_columns": [str(gap) for gap in self.missing_columns],
            "errors": list(self.errors),
        }

    def __str__(self) -> str:
        parts = [
            f"{sheet}({c.added} added, {c.skipped} skipped, {c.failed} failed)"
            for sheet, c in self.counts.items()
        ]
        text = "Import Summary: " + ", ".join(parts)
        if self.missing_sheets:
            text += f", missing sheets: {', '.join(self.missing_sheets)}"
        return text


class WorkbookImporter:
    """
    Imports a workbook into the local store through a DataAccess.

    One instance can be reused; all per-import state lives in the summary
    and in locals of ``import_workbook``.
    """

    def __init__(
        self,
        data_access: DataAccess,
        registry: SchemaRegistry | None = None,
        policies: dict[str, EntityPolicy] | None = None,
    ):
        self.data_access = data_access
        self.registry = registry or default_registry
        self.policies = policies or POLICIES

    def import_workbook(
        self,
        source: Path | str | WorkbookReader,
        identity: Identity,
        mode: RestoreMode = RestoreMode.MERGE,
        context: OperationContext | None = None,
    ) -> ImportSummary:
        """
        Import every entity sheet.

        Args:
            source: Workbook path or an already open reader
            identity: Current user and store; imported rows land in this scope
            mode: MERGE or REPLACE
            context: Operation context for progress and cancellation

        Returns:
            ImportSummary with per-entity counters and missing sheets

        Raises:
            StructuralError: If the workbook cannot be opened
            OperationCancelledError: If cancelled between entities
        """
        context = context or OperationContext()
        mode = RestoreMode.parse(mode)

        if isinstance(source, WorkbookReader):
            return self._import(source, identity, mode, context)

        with WorkbookReader(source) as reader:
            return self._import(reader, identity, mode, context)

    def _import(
        self,
        reader: WorkbookReader,
        identity: Identity,
        mode: RestoreMode,
        context: OperationContext,
    ) -> ImportSummary:
        context.report("Reading workbook...", 5)
        metadata = reader.metadata()
        summary = ImportSummary(schema_version=metadata.schema_version)
        resolver = ConflictResolver(identity)

        logger.info(
            f"Importing {reader.path.name} (schema v{metadata.schema_version}, mode={mode.value})"
        )

        for sheet_name, percent in IMPORT_ORDER:
            context.check_cancelled()
            sheet = self.registry.sheet(sheet_name)
            context.report(f"Importing {sheet.label}...", percent)
            try:
                self._import_sheet(reader, sheet, resolver, mode, summary)
            except MissingSheetError as e:
                summary.missing_sheets.append(e.sheet_name)
                logger.info(f"{e}; skipping (older export)")

        logger.info(f"Import complete: {summary}")
        return summary

    def _import_sheet(
        self,
        reader: WorkbookReader,
        sheet: SheetSchema,
        resolver: ConflictResolver,
        mode: RestoreMode,
        summary: ImportSummary,
    ) -> None:
        if not reader.has_sheet(sheet.name):
            raise MissingSheetError(sheet.name)

        policy = self.policies[sheet.name]
        counts = summary[sheet.name]
        access = self.data_access.for_sheet(sheet.name)
        rows = reader.rows(sheet.name)
        header_map = build_header_map(rows[0] if rows else None)

        if mode is RestoreMode.REPLACE and sheet.name in KNOWN_PROTECTION_GAPS:
            logger.debug(f"{sheet.name}: no protected record under REPLACE")

        for header in self._absent_columns(sheet, header_map):
            gap = MissingOptionalColumnError(sheet.name, header)
            summary.missing_columns.append(gap)
            logger.info(f"{gap}; using defaults")

        existing = self._existing_index(access, policy, resolver.identity)

        for row_number, row in enumerate(rows[1:], start=2):
            if is_blank_row(row):
                continue
            try:
                record = self.parse_row(sheet, row, header_map)
                if policy.required_field and not record.get(policy.required_field):
                    raise RowParseError(f"blank {policy.required_field}")

                key = policy.incoming_key(record, resolver.identity)
                decision = resolver.resolve(mode, policy, existing.get(key), record)
                if decision is Resolution.SKIP:
                    counts.skipped += 1
                    continue

                scoped = resolver.scoped(policy, record)
                if mode is RestoreMode.MERGE:
                    written = access.insert(scoped)
                else:
                    written = access.insert_or_update(scoped)
                if not written:
                    raise RowPersistError("data access rejected the record")
                counts.added += 1

            except Exception as e:
                counts.failed += 1
                message = f"{sheet.name} row {row_number}: {e}"
                logger.warning(f"Failed to import {message}")
                if len(summary.errors) < MAX_RECORDED_ERRORS:
                    summary.errors.append(message)

        logger.info(
            f"{sheet.name}: {counts.added} added, {counts.skipped} skipped, {counts.failed} failed"
        )

    def _existing_index(
        self, access: EntityAccess, policy: EntityPolicy, identity: Identity
    ) -> dict[str, Record]:
        return {
            policy.existing_key(record): record
            for record in access.get_all()
            if policy.in_scope(record, identity)
        }

    def _absent_columns(self, sheet: SheetSchema, header_map: dict[str, int]) -> list[str]:
        if not header_map:
            return []
        return [h for h in sheet.headers if h.lower() not in header_map]

    def parse_row(self, sheet: SheetSchema, row, header_map: dict[str, int]) -> Record:
        """
        Turn one worksheet row into a record keyed by header name.

        Columns the sheet does not carry take their type default.
        """
        record: Record = {}
        for position, column in enumerate(sheet.columns):
            index = self.registry.column_index(header_map, column.header, position)
            if index is None:
                record[column.header] = default_for(column.kind)
                continue
            try:
                record[column.header] = read_cell(column.kind, cell_at(row, index))
            except (TypeError, ValueError) as e:
                raise RowParseError(f"column {column.header}: {e}") from e
        return record
