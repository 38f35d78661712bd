"""Tests for Settings and the settings file."""

import json

import pytest
from pydantic import ValidationError

from querya.config import DEFAULT_BASE_URL, DEFAULT_MODEL, Settings, load_settings, save_settings


class TestDefaults:
    def test_provider_and_model(self):
        s = Settings()
        assert s.provider == "aipipe"
        assert s.model == DEFAULT_MODEL
        assert s.api_key == ""

    def test_generation_parameters(self):
        s = Settings()
        assert s.max_tokens == 2000
        assert s.temperature == 0.7

    def test_loop_limits(self):
        s = Settings()
        assert s.max_turns == 5
        assert s.tool_role_mode == "native"
        assert s.auto_save is True


class TestValidation:
    def test_temperature_upper_bound(self):
        with pytest.raises(ValidationError):
            Settings(temperature=2.5)

    def test_max_turns_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(max_turns=0)

    def test_tool_role_mode_is_restricted(self):
        with pytest.raises(ValidationError):
            Settings(tool_role_mode="merge")


class TestPaths:
    def test_api_root_strips_trailing_slash(self):
        assert Settings(base_url="https://example.org//").api_root == "https://example.org"

    def test_default_api_root(self):
        assert Settings().api_root == DEFAULT_BASE_URL

    def test_data_paths(self, tmp_path):
        s = Settings(data_dir=tmp_path)
        assert s.conversations_path == tmp_path / "conversations.json"
        assert s.settings_path == tmp_path / "settings.json"


class TestSettingsFile:
    def test_missing_file_gives_defaults(self, tmp_path):
        s = load_settings(tmp_path / "nope.json")
        assert s.model == DEFAULT_MODEL

    def test_stored_values_override_defaults(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"model": "openai/gpt-4o", "temperature": 0.2}))
        s = load_settings(path)
        assert s.model == "openai/gpt-4o"
        assert s.temperature == 0.2
        assert s.max_tokens == 2000

    def test_unknown_keys_are_ignored(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"theme": "dark", "maxTokens": 10}))
        assert load_settings(path).max_tokens == 2000

    def test_overrides_win_over_file(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"max_turns": 3}))
        assert load_settings(path, max_turns=7).max_turns == 7

    def test_corrupt_file_falls_back(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{not json")
        assert load_settings(path).model == DEFAULT_MODEL

    def test_invalid_values_fall_back(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"temperature": 9}))
        assert load_settings(path).temperature == 0.7

    def test_save_then_load(self, tmp_path):
        path = tmp_path / "nested" / "settings.json"
        save_settings(Settings(api_key="tok", max_turns=2), path)
        assert path.exists()
        loaded = load_settings(path)
        assert loaded.api_key == "tok"
        assert loaded.max_turns == 2
