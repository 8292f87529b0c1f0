"""Tests for settings loading."""
from __future__ import annotations

from pathlib import Path

import pytest

from escape_velocity.config import Settings, SettingsLoader, get_settings


MINIMAL_SETTINGS = """
turn:
  focus_slots: 4
passive:
  morale_decay: 1.0
difficulties:
  IndieBootstrap:
    bank: 1000
    burn: 100
    compliance_risk: 5
"""


def test_default_settings_match_bundled_presets():
    settings = get_settings()

    assert settings.focus_slots == 3
    assert settings.history_limit == 52
    assert settings.victory_streak_weeks == 12
    indie = settings.preset("IndieBootstrap")
    assert (indie.bank, indie.burn, indie.compliance_risk) == (50_000, 8_000, 20)
    assert settings.preset("VCTrack").bank == 1_000_000
    assert settings.preset("RegulatedFintech").compliance_risk == 80
    assert settings.preset("InfraDevTool").burn == 25_000


def test_get_settings_is_cached():
    assert get_settings() is get_settings()


def test_loader_fills_defaults_for_missing_sections(tmp_path: Path):
    path = tmp_path / "settings.yaml"
    path.write_text(MINIMAL_SETTINGS, encoding="utf-8")

    settings = SettingsLoader(path).load()

    assert settings.focus_slots == 4
    assert settings.morale_decay == 1.0
    assert settings.history_limit == 52
    assert settings.fundraise_max_probability == 0.8
    assert settings.preset("IndieBootstrap").ipo_deadline_weeks == 104
    assert settings.starting_actions == []


def test_loader_force_reload_picks_up_changes(tmp_path: Path):
    path = tmp_path / "settings.yaml"
    path.write_text(MINIMAL_SETTINGS, encoding="utf-8")
    loader = SettingsLoader(path)
    first = loader.load()

    path.write_text(MINIMAL_SETTINGS.replace("focus_slots: 4", "focus_slots: 6"), encoding="utf-8")

    assert loader.load() is first
    assert loader.load(force=True).focus_slots == 6


def test_unknown_preset_raises():
    settings = Settings.from_dict({"difficulties": {}})
    with pytest.raises(KeyError):
        settings.preset("Nope")
