"""Tests for user settings."""

import json

import pytest

from tracking.settings import UserSettings, load_settings, save_settings


def test_defaults():
    settings = UserSettings()

    assert settings.focus_duration == 25
    assert settings.distraction_threshold == 3
    assert settings.pause_on_distraction is True
    assert settings.camera_enabled is False


def test_from_dict_accepts_camel_case_and_merges_defaults():
    settings = UserSettings.from_dict({
        "focusDuration": 50,
        "focusGainPerSec": 2.5,
        "pauseOnDistraction": False,
        "theme": "dark",
    })

    assert settings.focus_duration == 50
    assert settings.focus_gain_per_sec == 2.5
    assert settings.pause_on_distraction is False
    assert settings.short_break_duration == 5


def test_from_dict_accepts_snake_case():
    settings = UserSettings.from_dict({"no_face_loss_per_sec": 10, "min_focus_confidence": 50})

    assert settings.no_face_loss_per_sec == 10
    assert settings.min_focus_confidence == 50


def test_whole_float_minutes_become_ints():
    assert UserSettings.from_dict({"focusDuration": 30.0}).focus_duration == 30


@pytest.mark.parametrize("key,value", [
    ("focus_duration", 4),
    ("focus_duration", 121),
    ("distraction_threshold", 11),
    ("min_focus_confidence", 101),
    ("focus_gain_per_sec", 21),
    ("defocus_loss_per_sec", -1),
    ("no_face_loss_per_sec", 41),
    ("focus_gain_per_sec", "fast"),
])
def test_out_of_range_values_raise(key, value):
    with pytest.raises(ValueError, match=key):
        UserSettings.from_dict({key: value})


def test_focus_rates_follow_settings():
    rates = UserSettings(focus_gain_per_sec=2, defocus_loss_per_sec=3, no_face_loss_per_sec=5,
                         min_focus_confidence=60).focus_rates()

    assert rates.focus_gain_per_sec == 2.0
    assert rates.defocus_loss_per_sec == 3.0
    assert rates.no_face_loss_per_sec == 5.0
    assert rates.min_focus_confidence == 60.0


def test_save_and_load(tmp_path):
    path = tmp_path / "settings.json"
    save_settings(UserSettings(focus_duration=45, camera_enabled=True), path)

    loaded = load_settings(path)

    assert loaded.focus_duration == 45
    assert loaded.camera_enabled is True


def test_load_missing_file_returns_defaults(tmp_path):
    assert load_settings(tmp_path / "missing.json") == UserSettings()


def test_load_corrupt_file_returns_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{not json")

    assert load_settings(path) == UserSettings()


def test_load_rejects_out_of_range_file(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"distractionThreshold": 50}))

    with pytest.raises(ValueError):
        load_settings(path)
