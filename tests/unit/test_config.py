"""Tests for settings loading."""

import os

import pytest

from batchstate.config import BatchStateSettings, load_settings
from batchstate.core.serialization import JsonContextSerializer, PickleContextSerializer
from batchstate.core.state.backends import DuckDBStateBackend
from batchstate.exceptions import ConfigurationError


def _write(path, content):
    with open(path, "w") as f:
        f.write(content)
    return str(path)


class TestBatchStateSettings:
    """Test the settings dataclass."""

    def test_defaults(self):
        """Test default values."""
        settings = BatchStateSettings()

        assert settings.serializer == "pickle"
        assert settings.track_equal_puts is True
        assert settings.state_database == ":memory:"
        assert settings.log_level == "info"

    def test_invalid_serializer(self):
        """Test rejecting an unknown serializer."""
        with pytest.raises(ConfigurationError):
            BatchStateSettings(serializer="xml")

    def test_invalid_log_level(self):
        """Test rejecting an unknown log level."""
        with pytest.raises(ConfigurationError):
            BatchStateSettings(log_level="loud")

    def test_negative_protocol(self):
        """Test rejecting a negative pickle protocol."""
        with pytest.raises(ConfigurationError):
            BatchStateSettings(pickle_protocol=-1)

    def test_new_context_uses_dirty_policy(self):
        """Test that contexts follow the configured dirty policy."""
        context = BatchStateSettings(track_equal_puts=False).new_context({"a": 1})

        assert context.track_equal_puts is False
        assert context.get("a") == 1

    def test_build_serializer(self):
        """Test building the configured serializer."""
        pickle_serializer = BatchStateSettings(pickle_protocol=3).build_serializer()
        json_serializer = BatchStateSettings(serializer="json").build_serializer()

        assert isinstance(pickle_serializer, PickleContextSerializer)
        assert pickle_serializer.protocol == 3
        assert isinstance(json_serializer, JsonContextSerializer)

    def test_build_backend(self):
        """Test building the DuckDB backend."""
        backend = BatchStateSettings().build_backend()
        try:
            assert isinstance(backend, DuckDBStateBackend)
        finally:
            backend.close()


class TestLoadSettings:
    """Test layered settings resolution."""

    def test_defaults_without_sources(self):
        """Test loading with no file and an empty environment."""
        assert load_settings(environ={}) == BatchStateSettings()

    def test_yaml_section(self, tmp_path):
        """Test reading a nested batchstate section."""
        path = _write(
            tmp_path / "settings.yml",
            """
batchstate:
  serializer: json
  track_equal_puts: false
  state_database: state.duckdb
""",
        )

        settings = load_settings(path, environ={})

        assert settings.serializer == "json"
        assert settings.track_equal_puts is False
        assert settings.state_database == "state.duckdb"

    def test_flat_yaml(self, tmp_path):
        """Test reading a flat mapping and ignoring unknown keys."""
        path = _write(tmp_path / "settings.yml", "pickle_protocol: 4\nunknown: 1\n")

        settings = load_settings(path, environ={})

        assert settings.pickle_protocol == 4

    def test_environment_overrides_file(self, tmp_path):
        """Test that environment variables win over the file."""
        path = _write(tmp_path / "settings.yml", "serializer: json\n")
        environ = {
            "BATCHSTATE_SERIALIZER": "pickle",
            "BATCHSTATE_TRACK_EQUAL_PUTS": "no",
            "BATCHSTATE_PICKLE_PROTOCOL": "2",
            "BATCHSTATE_LOG_LEVEL": "debug",
        }

        settings = load_settings(path, environ=environ)

        assert settings.serializer == "pickle"
        assert settings.track_equal_puts is False
        assert settings.pickle_protocol == 2
        assert settings.log_level == "debug"

    def test_reads_os_environ_by_default(self, monkeypatch):
        """Test that os.environ is used when no mapping is given."""
        monkeypatch.setitem(os.environ, "BATCHSTATE_STATE_DATABASE", "env.duckdb")

        assert load_settings().state_database == "env.duckdb"

    def test_invalid_boolean(self):
        """Test rejecting a malformed boolean."""
        with pytest.raises(ConfigurationError):
            load_settings(environ={"BATCHSTATE_TRACK_EQUAL_PUTS": "maybe"})

    def test_invalid_integer(self):
        """Test rejecting a malformed integer."""
        with pytest.raises(ConfigurationError):
            load_settings(environ={"BATCHSTATE_PICKLE_PROTOCOL": "high"})

    def test_missing_file(self, tmp_path):
        """Test loading a file that does not exist."""
        with pytest.raises(ConfigurationError):
            load_settings(str(tmp_path / "missing.yml"), environ={})

    def test_invalid_yaml(self, tmp_path):
        """Test loading malformed YAML."""
        path = _write(tmp_path / "settings.yml", "serializer: [unclosed\n")

        with pytest.raises(ConfigurationError):
            load_settings(path, environ={})

    def test_non_mapping_yaml(self, tmp_path):
        """Test loading YAML that is not a mapping."""
        path = _write(tmp_path / "settings.yml", "- a\n- b\n")

        with pytest.raises(ConfigurationError):
            load_settings(path, environ={})
