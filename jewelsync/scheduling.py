"""
Automatic backup frequency and the matching Celery beat schedule.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from enum import Enum

from django.conf import settings

logger = logging.getLogger(__name__)

AUTOMATIC_BACKUP_ENTRY = "jewelsync-automatic-backup"


class SyncFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    MINUTES_2 = "minutes_2"
    MINUTES_5 = "minutes_5"
    MINUTES_10 = "minutes_10"
    DISABLED = "disabled"

    @property
    def display_name(self) -> str:
        return {
            SyncFrequency.DAILY: "Daily",
            SyncFrequency.WEEKLY: "Weekly",
            SyncFrequency.MONTHLY: "Monthly",
            SyncFrequency.MINUTES_2: "Every 2 minutes",
            SyncFrequency.MINUTES_5: "Every 5 minutes",
            SyncFrequency.MINUTES_10: "Every 10 minutes",
            SyncFrequency.DISABLED: "Never",
        }[self]

    @property
    def interval(self) -> timedelta | None:
        """Time between automatic backups; None when disabled."""
        return {
            SyncFrequency.DAILY: timedelta(days=1),
            SyncFrequency.WEEKLY: timedelta(days=7),
            SyncFrequency.MONTHLY: timedelta(days=30),
            SyncFrequency.MINUTES_2: timedelta(minutes=2),
            SyncFrequency.MINUTES_5: timedelta(minutes=5),
            SyncFrequency.MINUTES_10: timedelta(minutes=10),
            SyncFrequency.DISABLED: None,
        }[self]

    @classmethod
    def parse(cls, value: "str | SyncFrequency | None") -> "SyncFrequency":
        """Parse a frequency name; unknown values fall back to WEEKLY."""
        if isinstance(value, SyncFrequency):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            logger.warning(f"Unknown sync frequency {value!r}, using weekly")
            return cls.WEEKLY


def configured_frequency() -> SyncFrequency:
    return SyncFrequency.parse(getattr(settings, "SYNC_FREQUENCY", SyncFrequency.WEEKLY))


def beat_schedule(frequency: SyncFrequency | str | None = None) -> dict:
    """
    Build the Celery beat schedule for automatic backups.

    Args:
        frequency: Backup frequency (SYNC_FREQUENCY if None)

    Returns:
        Dict suitable for CELERY_BEAT_SCHEDULE; empty when disabled
    """
    frequency = SyncFrequency.parse(frequency) if frequency is not None else configured_frequency()
    if frequency.interval is None:
        return {}
    return {
        AUTOMATIC_BACKUP_ENTRY: {
            "task": "jewelsync.tasks.automatic_backup_task",
            "schedule": frequency.interval.total_seconds(),
        },
    }
