"""
Preferences store for the active identity and sync bookkeeping.

The current user, store and user mobile, plus the time and device of the
last successful backup, live in a JSON file with restricted permissions
(600) outside the database. Restores never touch this file.
"""

from __future__ import annotations

import json
import logging
import os
import stat
import tempfile
from datetime import datetime
from pathlib import Path

from django.conf import settings
from django.utils import timezone

logger = logging.getLogger(__name__)

IDENTITY_KEYS = ("current_user_id", "current_store_id", "user_mobile")


class PreferencesError(Exception):
    """Base exception for preferences operations."""

    pass


class PreferencesFileError(PreferencesError):
    """Raised when preferences file operations fail."""

    pass


def _get_preferences_path() -> Path:
    """Get the path to the preferences file."""
    return Path(settings.SYNC_PREFERENCES_FILE)


def _load_preferences() -> dict:
    """
    Load preferences from the preferences file.

    Returns:
        Dict of preferences, empty dict if file doesn't exist
    """
    path = _get_preferences_path()

    if not path.exists():
        return {}

    try:
        with open(path, "r") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in preferences file: {e}")
        raise PreferencesFileError(f"Invalid preferences file format: {e}") from e
    except OSError as e:
        logger.error(f"Failed to read preferences file: {e}")
        raise PreferencesFileError(f"Failed to read preferences file: {e}") from e


def _save_preferences(data: dict) -> None:
    """
    Save preferences atomically (temp file + rename) with permissions 600.
    """
    path = _get_preferences_path()

    try:
        path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(
            dir=path.parent,
            prefix=".preferences_",
            suffix=".tmp",
        )

        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2, default=str)

            os.chmod(tmp_path, stat.S_IRUSR | stat.S_IWUSR)  # 600
            os.replace(tmp_path, path)

        except Exception:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    except OSError as e:
        logger.error(f"Failed to save preferences file: {e}")
        raise PreferencesFileError(f"Failed to save preferences file: {e}") from e


def get_identity() -> dict[str, str]:
    """
    Get the active identity.

    Returns:
        Dict with current_user_id, current_store_id and user_mobile
        (empty strings for anything not set)
    """
    preferences = _load_preferences()
    return {key: str(preferences.get(key) or "") for key in IDENTITY_KEYS}


def set_identity(
    user_id: str | None = None,
    store_id: str | None = None,
    user_mobile: str | None = None,
) -> dict[str, str]:
    """
    Update the active identity. Arguments left as None are unchanged.

    Returns:
        The identity after the update
    """
    preferences = _load_preferences()
    updates = {
        "current_user_id": user_id,
        "current_store_id": store_id,
        "user_mobile": user_mobile,
    }
    for key, value in updates.items():
        if value is not None:
            preferences[key] = value.strip()

    _save_preferences(preferences)
    logger.info(
        f"Identity set to user {preferences.get('current_user_id')!r}, "
        f"store {preferences.get('current_store_id')!r}"
    )
    return {key: str(preferences.get(key) or "") for key in IDENTITY_KEYS}


def record_sync(device: str | None = None, when: datetime | None = None) -> None:
    """
    Remember the time and device of a successful remote backup.

    Args:
        device: Device label, defaults to SYNC_DEVICE_LABEL
        when: Sync time, defaults to now
    """
    preferences = _load_preferences()
    preferences["last_sync_at"] = (when or timezone.now()).isoformat()
    preferences["last_sync_device"] = device or getattr(settings, "SYNC_DEVICE_LABEL", "")
    _save_preferences(preferences)


def get_last_sync() -> tuple[datetime | None, str]:
    """
    Get the last successful remote backup.

    Returns:
        Tuple of (time or None, device label)
    """
    preferences = _load_preferences()
    when = preferences.get("last_sync_at")
    parsed = None
    if when:
        try:
            parsed = datetime.fromisoformat(when)
        except (ValueError, TypeError):
            parsed = None
    return parsed, str(preferences.get("last_sync_device") or "")


class PreferencesIdentityProvider:
    """IdentityProvider reading the preferences file on every call."""

    def current_user_id(self) -> str:
        return get_identity()["current_user_id"]

    def current_store_id(self) -> str:
        return get_identity()["current_store_id"]

    def user_mobile(self) -> str:
        return get_identity()["user_mobile"]

