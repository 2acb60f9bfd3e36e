"""
Tests for engine settings.
"""

import pytest

from metaform.config import (
    EngineSettings,
    SettingsError,
    load_settings,
    settings_from_dict,
    settings_from_yaml,
    settings_to_yaml,
)
from metaform.remote import DEFAULT_TIMEOUT, DEFAULT_WORKERS


class TestSettingsFromDict:
    """Test building settings from plain data."""

    def test_defaults(self):
        s = settings_from_dict(None)
        assert s == EngineSettings()
        assert s.async_timeout == DEFAULT_TIMEOUT
        assert s.async_workers == DEFAULT_WORKERS

    def test_values(self):
        s = settings_from_dict({
            "async_timeout": 2,
            "async_workers": "8",
            "force_lower_case": True,
            "variables": {"CUTOFF": "2020-01-01", "LIMIT": 5},
        })
        assert s.async_timeout == 2.0
        assert s.async_workers == 8
        assert s.force_lower_case is True
        assert s.variables == {"CUTOFF": "2020-01-01", "LIMIT": "5"}

    def test_unknown_key_warns(self):
        with pytest.warns(UserWarning, match="colour"):
            s = settings_from_dict({"colour": "blue"})
        assert s == EngineSettings()

    @pytest.mark.parametrize("bad", [
        ["not", "a", "mapping"],
        {"variables": ["x"]},
        {"async_timeout": "soon"},
    ])
    def test_unusable(self, bad):
        with pytest.raises(SettingsError):
            settings_from_dict(bad)


class TestYaml:
    """Test the YAML form of settings."""

    def test_round_trip(self):
        s = EngineSettings(async_timeout=3.5, variables={"TODAY": "2021-01-01"})
        assert settings_from_yaml(settings_to_yaml(s)) == s

    def test_empty_document(self):
        assert settings_from_yaml("") == EngineSettings()

    def test_invalid_yaml(self):
        with pytest.raises(SettingsError):
            settings_from_yaml("async_timeout: [1, 2")

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "metaform.yaml"
        path.write_text("async_workers: 2\nforce_lower_case: yes\n")
        s = load_settings(path)
        assert s.async_workers == 2
        assert s.force_lower_case is True
