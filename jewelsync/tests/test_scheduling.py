"""Tests for automatic backup scheduling."""

from datetime import timedelta

from django.test import SimpleTestCase, override_settings

from jewelsync.scheduling import AUTOMATIC_BACKUP_ENTRY, SyncFrequency, beat_schedule, configured_frequency


class SyncFrequencyTests(SimpleTestCase):
    def test_parse(self):
        self.assertIs(SyncFrequency.parse("DAILY"), SyncFrequency.DAILY)
        self.assertIs(SyncFrequency.parse("minutes_5"), SyncFrequency.MINUTES_5)
        self.assertIs(SyncFrequency.parse(SyncFrequency.MONTHLY), SyncFrequency.MONTHLY)

    def test_unknown_falls_back_to_weekly(self):
        self.assertIs(SyncFrequency.parse("fortnightly"), SyncFrequency.WEEKLY)
        self.assertIs(SyncFrequency.parse(None), SyncFrequency.WEEKLY)

    def test_intervals(self):
        self.assertEqual(SyncFrequency.DAILY.interval, timedelta(days=1))
        self.assertEqual(SyncFrequency.MINUTES_10.interval, timedelta(minutes=10))
        self.assertIsNone(SyncFrequency.DISABLED.interval)
        self.assertEqual(SyncFrequency.DISABLED.display_name, "Never")

    @override_settings(SYNC_FREQUENCY="monthly")
    def test_configured_frequency(self):
        self.assertIs(configured_frequency(), SyncFrequency.MONTHLY)


class BeatScheduleTests(SimpleTestCase):
    def test_daily(self):
        schedule = beat_schedule("daily")

        self.assertEqual(schedule[AUTOMATIC_BACKUP_ENTRY]["schedule"], 86400.0)
        self.assertEqual(
            schedule[AUTOMATIC_BACKUP_ENTRY]["task"], "jewelsync.tasks.automatic_backup_task"
        )

    def test_disabled(self):
        self.assertEqual(beat_schedule(SyncFrequency.DISABLED), {})

    @override_settings(SYNC_FREQUENCY="minutes_2")
    def test_defaults_to_settings(self):
        self.assertEqual(beat_schedule()[AUTOMATIC_BACKUP_ENTRY]["schedule"], 120.0)
