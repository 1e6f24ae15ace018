"""Tests for the preferences file."""

import json
import os
import shutil
import stat
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from django.test import TestCase, override_settings

from jewelsync import preferences


class PreferencesTests(TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.preferences_file = Path(self.temp_dir) / "preferences.json"
        self.settings_override = override_settings(SYNC_PREFERENCES_FILE=self.preferences_file)
        self.settings_override.enable()

    def tearDown(self):
        self.settings_override.disable()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_identity_defaults_to_empty(self):
        self.assertEqual(
            preferences.get_identity(),
            {"current_user_id": "", "current_store_id": "", "user_mobile": ""},
        )

    def test_set_and_get_identity(self):
        preferences.set_identity(user_id="9999999999", store_id=" store-1 ", user_mobile="9999999999")

        identity = preferences.get_identity()

        self.assertEqual(identity["current_user_id"], "9999999999")
        self.assertEqual(identity["current_store_id"], "store-1")
        self.assertEqual(identity["user_mobile"], "9999999999")

    def test_partial_update_keeps_other_values(self):
        preferences.set_identity(user_id="9999999999", store_id="store-1")

        identity = preferences.set_identity(store_id="store-2")

        self.assertEqual(identity["current_user_id"], "9999999999")
        self.assertEqual(identity["current_store_id"], "store-2")

    def test_file_permissions(self):
        """Test that the preferences file is only readable by its owner."""
        preferences.set_identity(user_id="9999999999")

        mode = os.stat(self.preferences_file).st_mode
        self.assertEqual(stat.S_IMODE(mode), stat.S_IRUSR | stat.S_IWUSR)

    def test_no_temp_files_left(self):
        preferences.set_identity(user_id="9999999999")

        self.assertEqual(os.listdir(self.temp_dir), ["preferences.json"])

    def test_invalid_json(self):
        self.preferences_file.write_text("{not json")

        with self.assertRaises(preferences.PreferencesFileError):
            preferences.get_identity()

    def test_record_and_get_last_sync(self):
        when = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

        preferences.record_sync(device="shop-laptop", when=when)

        self.assertEqual(preferences.get_last_sync(), (when, "shop-laptop"))

    @override_settings(SYNC_DEVICE_LABEL="counter-pc")
    def test_record_sync_defaults(self):
        preferences.record_sync()

        when, device = preferences.get_last_sync()
        self.assertIsNotNone(when)
        self.assertEqual(device, "counter-pc")

    def test_last_sync_never(self):
        self.assertEqual(preferences.get_last_sync(), (None, ""))

    def test_last_sync_garbage(self):
        self.preferences_file.write_text(json.dumps({"last_sync_at": "yesterday"}))

        self.assertEqual(preferences.get_last_sync(), (None, ""))

    def test_record_sync_keeps_identity(self):
        preferences.set_identity(user_id="9999999999", store_id="store-1")
        preferences.record_sync(device="shop-laptop")

        self.assertEqual(preferences.get_identity()["current_store_id"], "store-1")

    def test_identity_provider(self):
        preferences.set_identity(user_id="9999999999", store_id="store-1", user_mobile="8888888888")
        provider = preferences.PreferencesIdentityProvider()

        self.assertEqual(provider.current_user_id(), "9999999999")
        self.assertEqual(provider.current_store_id(), "store-1")
        self.assertEqual(provider.user_mobile(), "8888888888")
