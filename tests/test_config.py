"""Tests for configuration loading."""

import json

import pytest

from constellation.config import (
    ENV_MAX_DEGREE,
    ENV_MAX_HOPS,
    ENV_MIN_HOPS,
    ConfigError,
    ConnectionsConfig,
    load_config,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (ENV_MAX_DEGREE, ENV_MIN_HOPS, ENV_MAX_HOPS):
        monkeypatch.delenv(name, raising=False)


def _write(tmp_path, data):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data) if not isinstance(data, str) else data)
    return path


class TestLoadConfig:
    """Tests for load_config function."""

    def test_defaults(self):
        """Test defaults when no file is given."""
        config = load_config()

        assert config == ConnectionsConfig()
        assert config.graph.max_degree == 5
        assert config.challenge.min_hops == 3
        assert config.challenge.max_hops == 6
        assert config.input.autocomplete_limit == 8
        assert config.scoring.hint_cost == 50

    def test_file_sections(self, tmp_path):
        """Test that file values override defaults section by section."""
        path = _write(
            tmp_path,
            {
                "challenge": {"min_hops": 2, "max_hops": 4},
                "competitive": {"time_limit": 120},
                "gameplay": {"allow_backtrack": False},
            },
        )

        config = load_config(path)

        assert config.challenge.min_hops == 2
        assert config.challenge.prefer_popular is True
        assert config.scoring.time_limit == 120
        assert config.gameplay.allow_backtrack is False

    def test_missing_file(self, tmp_path):
        """Test that a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="File not found"):
            load_config(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        """Test that malformed JSON raises ConfigError."""
        with pytest.raises(ConfigError, match="Invalid JSON"):
            load_config(_write(tmp_path, "{not json"))

    def test_unknown_section(self, tmp_path):
        """Test that unknown sections are rejected."""
        with pytest.raises(ConfigError, match="Unknown config section: layout"):
            load_config(_write(tmp_path, {"layout": {}}))

    def test_unknown_key(self, tmp_path):
        """Test that unknown keys in a section are rejected."""
        with pytest.raises(ConfigError, match="Unknown keys in 'graph' section: colour"):
            load_config(_write(tmp_path, {"graph": {"colour": "red"}}))

    def test_section_not_object(self, tmp_path):
        """Test that a section must be a JSON object."""
        with pytest.raises(ConfigError, match="must be an object"):
            load_config(_write(tmp_path, {"graph": [1, 2]}))

    def test_invalid_hop_band(self, tmp_path):
        """Test that min_hops above max_hops is rejected."""
        path = _write(tmp_path, {"challenge": {"min_hops": 5, "max_hops": 2}})
        with pytest.raises(ConfigError, match="min_hops must not exceed"):
            load_config(path)

    def test_invalid_degree(self, tmp_path):
        """Test that a degree cap below one is rejected."""
        with pytest.raises(ConfigError, match="max_degree"):
            load_config(_write(tmp_path, {"graph": {"max_degree": 0}}))


class TestEnvOverrides:
    """Tests for environment variable overrides."""

    def test_overrides(self, monkeypatch):
        """Test that env vars replace config values."""
        monkeypatch.setenv(ENV_MAX_DEGREE, "3")
        monkeypatch.setenv(ENV_MIN_HOPS, "2")

        config = load_config()

        assert config.graph.max_degree == 3
        assert config.challenge.min_hops == 2
        assert config.challenge.max_hops == 6

    def test_env_beats_file(self, monkeypatch, tmp_path):
        """Test that env vars are applied after the file."""
        monkeypatch.setenv(ENV_MAX_HOPS, "4")
        config = load_config(_write(tmp_path, {"challenge": {"max_hops": 5}}))
        assert config.challenge.max_hops == 4

    def test_non_integer(self, monkeypatch):
        """Test that a non-integer env value raises ConfigError."""
        monkeypatch.setenv(ENV_MAX_DEGREE, "lots")
        with pytest.raises(ConfigError, match="must be an integer"):
            load_config()
