"""
Versioned workbook schema.

Every entity table is written to a sheet named after the entity. Each sheet
definition lists its columns in the order they are written; that order is
also the positional fallback used for headerless legacy sheets.

Schema history:
    1: original sheet set.
    2: added CustomerKhataBookPlanEntity and UserAdditionalInfoEntity,
       purchase linkage columns on items and order items, and the optional
       lastUpdated column on users and stores.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from jewelsync.sync.coercion import BOOL, DATE, FLOAT, INT, STRING

CURRENT_SCHEMA_VERSION = 2
EARLIEST_KNOWN_VERSION = 1

METADATA_SHEET = "Metadata"
HEADER_SEPARATOR = "|"
HEADERS_KEY_PREFIX = "headers:"


def _field_name(header: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", header).lower()


@dataclass(frozen=True)
class Column:
    """A single sheet column and the record field it maps to."""

    header: str
    kind: str = STRING
    required: bool = False
    optional: bool = False
    since: int = EARLIEST_KNOWN_VERSION
    field: str = ""

    def __post_init__(self):
        if not self.field:
            object.__setattr__(self, "field", _field_name(self.header))


@dataclass(frozen=True)
class SheetSchema:
    """Definition of one entity sheet."""

    name: str
    label: str
    primary_key: str
    columns: tuple[Column, ...]
    since: int = EARLIEST_KNOWN_VERSION
    _positions: dict = field(default_factory=dict, init=False, compare=False, repr=False)

    def __post_init__(self):
        self._positions.update(
            {column.header.lower(): index for index, column in enumerate(self.columns)}
        )

    @property
    def headers(self) -> list[str]:
        return [column.header for column in self.columns]

    def column(self, header: str) -> Column:
        return self.columns[self._positions[header.lower()]]

    def fallback_index(self, header: str) -> int:
        return self._positions[header.lower()]

    def required_headers(self, version: int) -> list[str]:
        return [
            column.header
            for column in self.columns
            if column.required and column.since <= version
        ]

    @property
    def optional_headers(self) -> list[str]:
        return [column.header for column in self.columns if column.optional]


def _c(header: str, kind: str = STRING, **kwargs) -> Column:
    return Column(header, kind, **kwargs)


def _req(header: str, kind: str = STRING, **kwargs) -> Column:
    return Column(header, kind, required=True, **kwargs)


SHEETS: dict[str, SheetSchema] = {
    sheet.name: sheet
    for sheet in (
        SheetSchema(
            name="UsersEntity",
            label="users",
            primary_key="id",
            columns=(
                _req("id", field="user_id"),
                _req("name"),
                _c("email"),
                _req("mobileNo"),
                _c("token"),
                _c("pin"),
                _c("role"),
                _c("lastUpdated", INT, optional=True, since=2),
            ),
        ),
        SheetSchema(
            name="StoreEntity",
            label="stores",
            primary_key="storeId",
            columns=(
                _req("storeId"),
                _req("userId"),
                _c("proprietor"),
                _req("name"),
                _c("email"),
                _c("phone"),
                _c("address"),
                _c("registrationNo"),
                _c("gstinNo"),
                _c("panNo"),
                _c("image"),
                _c("invoiceNo", INT),
                _c("upiId"),
                _c("lastUpdated", INT, optional=True, since=2),
            ),
        ),
        SheetSchema(
            name="CategoryEntity",
            label="categories",
            primary_key="catId",
            columns=(
                _req("catId"),
                _req("catName"),
                _c("gsWt", FLOAT),
                _c("fnWt", FLOAT),
                _c("userId"),
                _c("storeId"),
            ),
        ),
        SheetSchema(
            name="SubCategoryEntity",
            label="subcategories",
            primary_key="subCatId",
            columns=(
                _req("subCatId"),
                _req("catId"),
                _c("userId"),
                _c("storeId"),
                _c("catName"),
                _req("subCatName"),
                _c("quantity", INT),
                _c("gsWt", FLOAT),
                _c("fnWt", FLOAT),
            ),
        ),
        SheetSchema(
            name="ItemEntity",
            label="items",
            primary_key="itemId",
            columns=(
                _req("itemId"),
                _req("itemAddName"),
                _req("catId"),
                _c("userId"),
                _c("storeId"),
                _c("catName"),
                _req("subCatId"),
                _c("subCatName"),
                _c("entryType"),
                _c("quantity", INT),
                _c("gsWt", FLOAT),
                _c("ntWt", FLOAT),
                _c("fnWt", FLOAT),
                _c("purity"),
                _c("crgType"),
                _c("crg", FLOAT),
                _c("compDes"),
                _c("compCrg", FLOAT),
                _c("cgst", FLOAT),
                _c("sgst", FLOAT),
                _c("igst", FLOAT),
                _c("huid"),
                _c("unit"),
                _c("addDesKey"),
                _c("addDesValue"),
                _c("addDate", DATE),
                _c("modifiedDate", DATE),
                _c("sellerFirmId", since=2),
                _c("purchaseOrderId", since=2),
                _c("purchaseItemId", since=2),
            ),
        ),
        SheetSchema(
            name="CustomerEntity",
            label="customers",
            primary_key="mobileNo",
            columns=(
                _req("mobileNo"),
                _req("name"),
                _c("address"),
                _c("gstin_pan"),
                _c("addDate", DATE),
                _c("lastModifiedDate", DATE),
                _c("totalItemBought", INT),
                _c("totalAmount", FLOAT),
                _c("notes"),
                _c("userId"),
                _c("storeId"),
            ),
        ),
        SheetSchema(
            name="CustomerKhataBookPlanEntity",
            label="khata book plans",
            primary_key="planId",
            since=2,
            columns=(
                _req("planId", since=2),
                _req("name", since=2),
                _c("payMonths", INT, since=2),
                _c("benefitMonths", INT, since=2),
                _c("description", since=2),
                _c("benefitPercentage", FLOAT, since=2),
                _c("userId", since=2),
                _c("storeId", since=2),
                _c("createdAt", DATE, since=2),
                _c("updatedAt", DATE, since=2),
            ),
        ),
        SheetSchema(
            name="CustomerKhataBookEntity",
            label="khata books",
            primary_key="khataBookId",
            columns=(
                _req("khataBookId"),
                _req("customerMobile"),
                _c("planName"),
                _c("startDate", DATE),
                _c("endDate", DATE),
                _c("monthlyAmount", FLOAT),
                _c("totalMonths", INT),
                _c("totalAmount", FLOAT),
                _c("status"),
                _c("notes"),
                _c("userId"),
                _c("storeId"),
            ),
        ),
        SheetSchema(
            name="CustomerTransactionEntity",
            label="transactions",
            primary_key="transactionId",
            columns=(
                _req("transactionId"),
                _req("customerMobile"),
                _c("transactionDate", DATE),
                _req("amount", FLOAT),
                _c("transactionType"),
                _c("category"),
                _c("description"),
                _c("referenceNumber"),
                _c("paymentMethod"),
                _c("khataBookId"),
                _c("monthNumber", INT),
                _c("notes"),
                _c("userId"),
                _c("storeId"),
            ),
        ),
        SheetSchema(
            name="OrderEntity",
            label="orders",
            primary_key="orderId",
            columns=(
                _req("orderId"),
                _req("customerMobile"),
                _c("storeId"),
                _c("userId"),
                _req("orderDate", DATE),
                _c("totalAmount", FLOAT),
                _c("totalTax", FLOAT),
                _c("totalCharge", FLOAT),
                _c("discount", FLOAT),
                _c("note"),
            ),
        ),
        SheetSchema(
            name="OrderItemEntity",
            label="order items",
            primary_key="orderItemId",
            columns=(
                _req("orderItemId"),
                _req("orderId"),
                _c("orderDate", DATE),
                _req("itemId"),
                _c("customerMobile"),
                _c("catId"),
                _c("catName"),
                _c("itemAddName"),
                _c("subCatId"),
                _c("subCatName"),
                _c("entryType"),
                _c("quantity", INT),
                _c("gsWt", FLOAT),
                _c("ntWt", FLOAT),
                _c("fnWt", FLOAT),
                _c("fnMetalPrice", FLOAT),
                _c("purity"),
                _c("crgType"),
                _c("crg", FLOAT),
                _c("compDes"),
                _c("compCrg", FLOAT),
                _c("cgst", FLOAT),
                _c("sgst", FLOAT),
                _c("igst", FLOAT),
                _c("huid"),
                _c("addDesKey"),
                _c("addDesValue"),
                _c("price", FLOAT),
                _c("charge", FLOAT),
                _c("tax", FLOAT),
                _c("sellerFirmId", since=2),
                _c("purchaseOrderId", since=2),
                _c("purchaseItemId", since=2),
            ),
        ),
        SheetSchema(
            name="ExchangeItemEntity",
            label="exchange items",
            primary_key="exchangeItemId",
            columns=(
                _req("exchangeItemId"),
                _req("orderId"),
                _c("orderDate", DATE),
                _c("customerMobile"),
                _c("metalType"),
                _c("purity"),
                _c("grossWeight", FLOAT),
                _c("fineWeight", FLOAT),
                _c("price", FLOAT),
                _c("isExchangedByMetal", BOOL),
                _c("exchangeValue", FLOAT),
                _c("addDate", DATE),
            ),
        ),
        SheetSchema(
            name="FirmEntity",
            label="firms",
            primary_key="firmId",
            columns=(
                _req("firmId"),
                _req("firmName"),
                _c("firmMobileNumber"),
                _c("gstNumber"),
                _c("address"),
            ),
        ),
        SheetSchema(
            name="PurchaseOrderEntity",
            label="purchase orders",
            primary_key="purchaseOrderId",
            columns=(
                _req("purchaseOrderId"),
                _req("sellerId"),
                _c("billNo"),
                _c("billDate"),
                _c("entryDate"),
                _c("extraChargeDescription"),
                _c("extraCharge", FLOAT),
                _c("totalFinalWeight", FLOAT),
                _c("totalFinalAmount", FLOAT),
                _c("notes"),
                _c("cgstPercent", FLOAT),
                _c("sgstPercent", FLOAT),
                _c("igstPercent", FLOAT),
            ),
        ),
        SheetSchema(
            name="PurchaseOrderItemEntity",
            label="purchase order items",
            primary_key="purchaseItemId",
            columns=(
                _req("purchaseItemId"),
                _req("purchaseOrderId"),
                _c("catId"),
                _c("catName"),
                _c("subCatId"),
                _c("subCatName"),
                _c("gsWt", FLOAT),
                _c("purity"),
                _c("ntWt", FLOAT),
                _c("fnWt", FLOAT),
                _c("fnRate", FLOAT),
                _c("wastagePercent", FLOAT),
            ),
        ),
        SheetSchema(
            name="MetalExchangeEntity",
            label="metal exchanges",
            primary_key="exchangeId",
            columns=(
                _req("exchangeId"),
                _req("purchaseOrderId"),
                _c("catId"),
                _c("catName"),
                _c("subCatId"),
                _c("subCatName"),
                _c("fnWeight", FLOAT),
            ),
        ),
        SheetSchema(
            name="UserAdditionalInfoEntity",
            label="user additional info",
            primary_key="userId",
            since=2,
            columns=(
                _req("userId", since=2),
                _c("aadhaarNumber", since=2),
                _c("address", since=2),
                _c("emergencyContactPerson", since=2),
                _c("emergencyContactNumber", since=2),
                _c("governmentIdNumber", since=2),
                _c("governmentIdType", since=2),
                _c("dateOfBirth", since=2),
                _c("bloodGroup", since=2),
                _c("isActive", BOOL, since=2),
                _c("createdAt", DATE, since=2),
                _c("updatedAt", DATE, since=2),
            ),
        ),
    )
}

# (sheet, progress percent reported once the sheet is written)
EXPORT_ORDER: list[tuple[str, int]] = [
    ("StoreEntity", 5),
    ("UsersEntity", 10),
    ("CategoryEntity", 15),
    ("SubCategoryEntity", 20),
    ("ItemEntity", 30),
    ("CustomerEntity", 40),
    ("CustomerKhataBookPlanEntity", 45),
    ("CustomerKhataBookEntity", 50),
    ("CustomerTransactionEntity", 60),
    ("OrderEntity", 70),
    ("OrderItemEntity", 75),
    ("ExchangeItemEntity", 78),
    ("FirmEntity", 80),
    ("PurchaseOrderEntity", 85),
    ("PurchaseOrderItemEntity", 90),
    ("MetalExchangeEntity", 95),
    ("UserAdditionalInfoEntity", 98),
]

# Dependency order; later sheets assume earlier keys already exist.
IMPORT_ORDER: list[tuple[str, int]] = [
    ("UsersEntity", 10),
    ("UserAdditionalInfoEntity", 15),
    ("StoreEntity", 20),
    ("CategoryEntity", 25),
    ("SubCategoryEntity", 30),
    ("ItemEntity", 35),
    ("CustomerEntity", 40),
    ("CustomerKhataBookPlanEntity", 45),
    ("CustomerKhataBookEntity", 50),
    ("CustomerTransactionEntity", 55),
    ("OrderEntity", 60),
    ("OrderItemEntity", 65),
    ("ExchangeItemEntity", 70),
    ("FirmEntity", 75),
    ("PurchaseOrderEntity", 80),
    ("PurchaseOrderItemEntity", 85),
    ("MetalExchangeEntity", 90),
]


@dataclass
class SchemaMetadata:
    """Contents of the Metadata sheet."""

    schema_version: int = EARLIEST_KNOWN_VERSION
    exported_at: str | None = None
    headers: dict[str, list[str]] = field(default_factory=dict)


def _build_required_headers_table() -> dict[int, dict[str, list[str]]]:
    table = {}
    for version in range(EARLIEST_KNOWN_VERSION, CURRENT_SCHEMA_VERSION + 1):
        table[version] = {
            sheet.name: sheet.required_headers(version)
            for sheet in SHEETS.values()
            if sheet.since <= version
        }
    return table


class SchemaRegistry:
    """
    Lookup of required headers per schema version plus column resolution.

    The registry is stateless apart from its version table, so the module
    level ``registry`` instance is shared by the exporter, importer and
    validator.
    """

    def __init__(self, required_headers_by_version: dict[int, dict[str, list[str]]] | None = None):
        self.required_headers_by_version = (
            required_headers_by_version or _build_required_headers_table()
        )

    def sheet(self, name: str) -> SheetSchema:
        return SHEETS[name]

    def target_version(self, detected_version: int) -> int:
        """Greatest registered version not newer than ``detected_version``."""
        candidates = [v for v in self.required_headers_by_version if v <= detected_version]
        return max(candidates) if candidates else CURRENT_SCHEMA_VERSION

    def required_headers(self, version: int, sheet_name: str) -> list[str]:
        table = self.required_headers_by_version.get(self.target_version(version), {})
        return list(table.get(sheet_name, []))

    def column_index(
        self, header_map: dict[str, int], name: str, fallback_index: int
    ) -> int | None:
        """
        Resolve a column position.

        Args:
            header_map: Lowercased header name to column index
            name: Header to look up (any case)
            fallback_index: Position used when the sheet has no header row

        Returns:
            Column index, or None when the sheet has headers but lacks this one
        """
        index = header_map.get(name.strip().lower())
        if index is not None:
            return index
        if not header_map:
            return fallback_index
        return None

    def determine_required_headers(self, metadata: SchemaMetadata) -> dict[str, list[str]]:
        """
        Work out which headers each sheet must carry for this workbook.

        Starts from the registered table for the detected version, adds any
        sheet the workbook recorded that the table does not know, and drops
        headers the exporting build never wrote.
        """
        base = self.required_headers_by_version.get(
            self.target_version(metadata.schema_version),
            self.required_headers_by_version.get(CURRENT_SCHEMA_VERSION, {}),
        )
        recorded = {
            sheet_name: [h.strip().lower() for h in headers]
            for sheet_name, headers in metadata.headers.items()
        }

        combined = {name: list(headers) for name, headers in base.items()}
        for sheet_name, headers in metadata.headers.items():
            if sheet_name not in combined:
                combined[sheet_name] = [h.strip() for h in headers]

        result = {}
        for sheet_name, headers in combined.items():
            emitted = set(recorded.get(sheet_name, []))
            if emitted:
                result[sheet_name] = [h for h in headers if h.strip().lower() in emitted]
            else:
                result[sheet_name] = headers
        return result


registry = SchemaRegistry()
