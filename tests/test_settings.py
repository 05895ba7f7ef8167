"""Tests for settings loading and saving."""

import json
import os
import sys
import tempfile

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from utils.logging import update_log_file_path

from config.settings import Settings, load_settings, save_settings

update_log_file_path(tempfile.mkdtemp(prefix="settings_tests_"))


def test_defaults_fill_paths():
    settings = Settings()
    assert settings.menu_data_dir.endswith("menu_data")
    assert settings.backup_dir.endswith("dat_backups")
    assert settings.proceed_without_backup is False
    assert settings.resample_filter == "bicubic"
    print("  PASS: test_defaults_fill_paths")


def test_from_dict_ignores_unknown_keys():
    settings = Settings.from_dict({"backup_dir": "/tmp/b", "view_type": "grid"})
    assert settings.backup_dir == "/tmp/b"
    assert not hasattr(settings, "view_type")
    assert Settings(resample_filter="sharpest").resample_filter == "bicubic"
    print("  PASS: test_from_dict_ignores_unknown_keys")


def test_load_creates_missing_file():
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "conf", "config.json")
        loaded = load_settings(path)
        assert os.path.exists(path)
        with open(path) as f:
            assert json.load(f) == loaded
    print("  PASS: test_load_creates_missing_file")


def test_load_merges_over_defaults():
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "config.json")
        assert save_settings({"proceed_without_backup": True}, path)
        loaded = load_settings(path)
        assert loaded["proceed_without_backup"] is True
        assert loaded["resample_filter"] == "bicubic"
    print("  PASS: test_load_merges_over_defaults")


def test_load_corrupt_file_uses_defaults():
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "config.json")
        with open(path, "w") as f:
            f.write("{not json")
        loaded = load_settings(path)
        assert loaded == Settings().to_dict()
    print("  PASS: test_load_corrupt_file_uses_defaults")


if __name__ == "__main__":
    tests = [
        test_defaults_fill_paths,
        test_from_dict_ignores_unknown_keys,
        test_load_creates_missing_file,
        test_load_merges_over_defaults,
        test_load_corrupt_file_uses_defaults,
    ]
    failed = 0
    for test in tests:
        try:
            test()
        except Exception as e:
            failed += 1
            print(f"  FAIL: {test.__name__}: {e}")
    print(f"\nResults: {len(tests) - failed} passed, {failed} failed")
    sys.exit(1 if failed else 0)
