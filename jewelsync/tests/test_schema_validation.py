"""Tests for the schema registry and workbook validation."""

import shutil
import tempfile
from pathlib import Path

from django.test import SimpleTestCase

from jewelsync.sync.exceptions import StructuralError
from jewelsync.sync.schema import (
    CURRENT_SCHEMA_VERSION,
    SHEETS,
    SchemaMetadata,
    SchemaRegistry,
)
from jewelsync.sync.validation import validate_structure
from jewelsync.sync.workbook import WorkbookReader, build_header_map, duplicate_headers
from jewelsync.tests.helpers import sheet_rows, write_workbook


class SchemaRegistryTests(SimpleTestCase):
    def setUp(self):
        self.registry = SchemaRegistry()

    def test_field_names(self):
        self.assertEqual(SHEETS["ItemEntity"].column("itemAddName").field, "item_add_name")
        self.assertEqual(SHEETS["UsersEntity"].column("id").field, "user_id")
        self.assertEqual(SHEETS["CustomerEntity"].column("gstin_pan").field, "gstin_pan")

    def test_target_version(self):
        self.assertEqual(self.registry.target_version(1), 1)
        self.assertEqual(self.registry.target_version(7), CURRENT_SCHEMA_VERSION)
        self.assertEqual(self.registry.target_version(0), CURRENT_SCHEMA_VERSION)

    def test_v1_has_no_khata_plan_sheet(self):
        self.assertEqual(self.registry.required_headers(1, "CustomerKhataBookPlanEntity"), [])
        self.assertIn("planId", self.registry.required_headers(2, "CustomerKhataBookPlanEntity"))

    def test_column_index(self):
        header_map = {"itemid": 3}
        self.assertEqual(self.registry.column_index(header_map, "ItemId", 0), 3)
        self.assertIsNone(self.registry.column_index(header_map, "catId", 2))
        self.assertEqual(self.registry.column_index({}, "catId", 2), 2)

    def test_recorded_headers_trim_requirements(self):
        """Test that headers the exporting build never wrote are not required."""
        metadata = SchemaMetadata(
            schema_version=2,
            headers={"FirmEntity": ["firmId"], "CustomSheet": ["a", "b"]},
        )

        required = self.registry.determine_required_headers(metadata)

        self.assertEqual(required["FirmEntity"], ["firmId"])
        self.assertEqual(required["CustomSheet"], ["a", "b"])
        self.assertIn("customerMobile", required["OrderEntity"])


class ValidationTests(SimpleTestCase):
    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def validate(self, sheets, **kwargs):
        path = write_workbook(self.temp_dir / "check.xlsx", sheets, **kwargs)
        with WorkbookReader(path) as reader:
            return validate_structure(reader)

    def test_missing_sheets_are_warnings(self):
        report = self.validate(
            {"FirmEntity": sheet_rows("FirmEntity")}, schema_version=CURRENT_SCHEMA_VERSION
        )

        self.assertTrue(report.is_valid)
        self.assertIn("OrderEntity", report.missing_sheets)
        self.assertNotIn("FirmEntity", report.missing_sheets)
        self.assertTrue(any("Missing sheets" in w for w in report.warnings))

    def test_current_version_missing_required_column_fails(self):
        report = self.validate(
            {"FirmEntity": [["firmId"], ["firm-1"]]}, schema_version=CURRENT_SCHEMA_VERSION
        )

        self.assertFalse(report.is_valid)
        self.assertIn("missing required columns: firmName", report.errors[0])
        with self.assertRaises(StructuralError):
            report.raise_for_errors()

    def test_old_version_missing_required_column_warns(self):
        report = self.validate({"FirmEntity": [["firmId"], ["firm-1"]]})

        self.assertTrue(report.is_valid)
        self.assertTrue(any("schema v1" in w for w in report.warnings))

    def test_current_version_blank_header_fails(self):
        report = self.validate(
            {"FirmEntity": [[None] * 5, ["firm-1", "Kumar Gold"]]},
            schema_version=CURRENT_SCHEMA_VERSION,
        )

        self.assertIn("Sheet 'FirmEntity' is missing the header row", report.errors)

    def test_old_version_blank_header_warns(self):
        report = self.validate({"FirmEntity": [[None] * 5, ["firm-1", "Kumar Gold"]]})

        self.assertTrue(report.is_valid)
        self.assertTrue(any("using column positions" in w for w in report.warnings))

    def test_empty_sheet_fails(self):
        report = self.validate({"FirmEntity": []})

        self.assertIn("Sheet 'FirmEntity' is empty or corrupted", report.errors)

    def test_missing_optional_column_warns(self):
        headers = [h for h in SHEETS["UsersEntity"].headers if h != "lastUpdated"]
        report = self.validate(
            {"UsersEntity": sheet_rows("UsersEntity", headers=headers)},
            schema_version=CURRENT_SCHEMA_VERSION,
        )

        self.assertTrue(report.is_valid)
        self.assertTrue(any("missing optional columns: lastUpdated" in w for w in report.warnings))

    def test_metadata_defaults_to_v1(self):
        path = write_workbook(self.temp_dir / "plain.xlsx", {"FirmEntity": sheet_rows("FirmEntity")})

        with WorkbookReader(path) as reader:
            metadata = reader.metadata()

        self.assertEqual(metadata.schema_version, 1)
        self.assertEqual(metadata.headers, {})

    def test_current_version_duplicate_header_fails(self):
        headers = SHEETS["FirmEntity"].headers + ["FIRMNAME"]
        report = self.validate(
            {"FirmEntity": sheet_rows("FirmEntity", headers=headers)},
            schema_version=CURRENT_SCHEMA_VERSION,
        )

        self.assertFalse(report.is_valid)
        self.assertIn("Sheet 'FirmEntity' has duplicate columns: firmname", report.errors)

    def test_old_version_duplicate_header_warns(self):
        report = self.validate({"FirmEntity": [["firmId", "firmName", "firmname"], ["firm-1", "A", "B"]]})

        self.assertTrue(report.is_valid)
        self.assertTrue(any("duplicate columns: firmname" in w for w in report.warnings))


class HeaderMapTests(SimpleTestCase):
    def test_duplicate_headers(self):
        row = ["firmId", "firmName", " FirmName ", None, "firmId", "firmId"]

        self.assertEqual(duplicate_headers(row), ["firmname", "firmid"])
        self.assertEqual(build_header_map(row)["firmname"], 2)

    def test_unique_headers(self):
        self.assertEqual(duplicate_headers(SHEETS["ItemEntity"].headers), [])
        self.assertEqual(duplicate_headers(None), [])
