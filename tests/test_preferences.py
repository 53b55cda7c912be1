"""Tests for persisted backup preferences."""

import json
import threading
from datetime import datetime, timezone

import pytest

from cloud_backup.preferences import JsonPreferences, MemoryPreferences

BACKUP_AT = datetime(2024, 5, 1, 2, 0, tzinfo=timezone.utc)


@pytest.fixture(params=["memory", "json"])
def prefs(request, tmp_path):
    if request.param == "memory":
        return MemoryPreferences()
    return JsonPreferences(tmp_path / "prefs" / "backup-preferences.json")


class TestPreferencesContract:
    """Behaviour shared by every Preferences implementation."""

    def test_defaults(self, prefs):
        assert prefs.is_backup_enabled() is False
        assert prefs.get_last_backup_date() is None

    def test_set_and_get(self, prefs):
        prefs.set_backup_enabled(True)
        prefs.save_last_backup_date(BACKUP_AT)

        assert prefs.is_backup_enabled() is True
        assert prefs.get_last_backup_date() == BACKUP_AT

    def test_clear_last_backup_date(self, prefs):
        prefs.save_last_backup_date(BACKUP_AT)
        prefs.save_last_backup_date(None)

        assert prefs.get_last_backup_date() is None

    def test_reset_backup_state(self, prefs):
        prefs.set_backup_enabled(True)
        prefs.save_last_backup_date(BACKUP_AT)

        prefs.reset_backup_state()

        assert prefs.is_backup_enabled() is False
        assert prefs.get_last_backup_date() is None

    def test_conditional_save_writes_when_condition_holds(self, prefs):
        assert prefs.save_last_backup_date_if(BACKUP_AT, lambda: True) is True
        assert prefs.get_last_backup_date() == BACKUP_AT

    def test_conditional_save_skipped_when_condition_fails(self, prefs):
        prefs.set_backup_enabled(True)

        assert prefs.save_last_backup_date_if(BACKUP_AT, lambda: False) is False

        assert prefs.get_last_backup_date() is None
        assert prefs.is_backup_enabled() is True

    def test_conditional_save_excludes_reset(self, prefs):
        """A reset cannot land between the check and the write."""
        entered = threading.Event()
        release = threading.Event()

        def slow_condition():
            entered.set()
            release.wait(5)
            return True

        saver = threading.Thread(
            target=prefs.save_last_backup_date_if, args=(BACKUP_AT, slow_condition)
        )
        saver.start()
        assert entered.wait(5)
        resetter = threading.Thread(target=prefs.reset_backup_state)
        resetter.start()
        release.set()
        saver.join(5)
        resetter.join(5)

        assert prefs.get_last_backup_date() is None


class TestJsonPreferences:
    """Tests specific to the JSON file store."""

    def test_values_survive_new_instance(self, tmp_path):
        path = tmp_path / "backup-preferences.json"
        JsonPreferences(path).set_backup_enabled(True)
        JsonPreferences(path).save_last_backup_date(BACKUP_AT)

        reopened = JsonPreferences(path)
        assert reopened.is_backup_enabled() is True
        assert reopened.get_last_backup_date() == BACKUP_AT

    def test_reset_is_single_write(self, tmp_path):
        """Both fields change in one document replacement."""
        prefs = JsonPreferences(tmp_path / "backup-preferences.json")
        prefs.set_backup_enabled(True)
        prefs.save_last_backup_date(BACKUP_AT)
        writes = []
        original_save = prefs._save

        def recording_save(data):
            writes.append(dict(data))
            original_save(data)

        prefs._save = recording_save
        prefs.reset_backup_state()

        assert writes == [{"backup_enabled": False, "last_backup_date": None}]

    def test_naive_date_read_as_utc(self, tmp_path):
        path = tmp_path / "backup-preferences.json"
        path.write_text(json.dumps({"last_backup_date": "2024-05-01T02:00:00"}))

        assert JsonPreferences(path).get_last_backup_date() == BACKUP_AT

    def test_corrupt_file_ignored(self, tmp_path):
        path = tmp_path / "backup-preferences.json"
        path.write_text("{oops")
        prefs = JsonPreferences(path)

        assert prefs.is_backup_enabled() is False
        prefs.set_backup_enabled(True)
        assert prefs.is_backup_enabled() is True

    def test_invalid_date_ignored(self, tmp_path):
        path = tmp_path / "backup-preferences.json"
        path.write_text(json.dumps({"last_backup_date": "yesterday"}))

        assert JsonPreferences(path).get_last_backup_date() is None
