"""
Tests for proxygen.config.loader module.

Tests configuration loading including:
- Environment variable references and the missing-variable check
- JSON and YAML parsing
- Environment precedence over file values
- Required key validation
- Error handling for missing and invalid files
"""

from __future__ import annotations

import io

import pytest

from proxygen.config import find_env_references, load_effective_config, require_keys
from proxygen.exceptions import (
    ConfigNotFound,
    ConfigParseError,
    MissingEnvironmentVariable,
    MissingRequiredConfigKey,
)
from proxygen.logging import DefaultLogger, set_global_logger

pytestmark = pytest.mark.unit


class TestFindEnvReferences:
    """Tests for scanning configuration text for env references."""

    def test_finds_both_forms_in_order(self):
        """Test that {{= }} and {{- }} references are found, deduplicated."""
        text = '{"a": "{{= env.A }}", "b": "{{-env.B}}", "c": "{{= env.A }}"}'
        assert find_env_references(text) == ["A", "B"]

    def test_ignores_statements(self):
        """Test that bare {{ }} statements are not treated as references."""
        assert find_env_references("{{ if env.DEBUG }}{{ endif }}") == []

    def test_no_references(self):
        """Test plain configuration text."""
        assert find_env_references('{"proxyname": "x"}') == []


class TestLoadEffectiveConfig:
    """Tests for load_effective_config."""

    def test_json_with_env_reference(self, create_config_file):
        """Test that env references are evaluated before parsing."""
        path = create_config_file(
            "config.json",
            '{"proxyname": "{{= env.NAME }}", "basepath": "/v1"}',
        )

        config = load_effective_config(path, environ={"NAME": "orders"})

        assert config["proxyname"] == "orders"
        assert config["basepath"] == "/v1"

    def test_environment_is_merged(self, create_config_file, sample_config):
        """Test that every environment variable appears in the result."""
        path = create_config_file("config.json", sample_config)

        config = load_effective_config(path, environ={"TARGET_HOST": "h"})

        assert config["TARGET_HOST"] == "h"
        assert config["proxyname"] == "myproxy"

    def test_environment_wins_on_collision(self, create_config_file, sample_config):
        """Test that environment values replace file values."""
        path = create_config_file("config.json", sample_config)

        config = load_effective_config(path, environ={"proxyname": "fromenv"})

        assert config["proxyname"] == "fromenv"

    def test_missing_variables_all_reported(self, create_config_file):
        """Test that every missing variable is named, in order."""
        path = create_config_file(
            "config.json",
            '{"proxyname": "{{= env.FOO }}", "basepath": "{{= env.BAR }}"}',
        )

        with pytest.raises(MissingEnvironmentVariable) as excinfo:
            load_effective_config(path, environ={})

        assert excinfo.value.names == ["FOO", "BAR"]
        assert "FOO" in str(excinfo.value)
        assert "BAR" in str(excinfo.value)

    def test_empty_variable_counts_as_missing(self, create_config_file):
        """Test that a variable set to an empty string is reported."""
        path = create_config_file("config.json", '{"proxyname": "{{= env.FOO }}"}')

        with pytest.raises(MissingEnvironmentVariable, match="FOO"):
            load_effective_config(path, environ={"FOO": ""})

    def test_yaml_config(self, create_config_file):
        """Test that .yaml files are parsed as YAML."""
        path = create_config_file(
            "config.yaml",
            "proxyname: {{= env.NAME }}\nbasepath: /v1\ntargets:\n  - a\n  - b\n",
        )

        config = load_effective_config(path, environ={"NAME": "orders"})

        assert config["proxyname"] == "orders"
        assert config["targets"] == ["a", "b"]

    def test_statements_in_config(self, create_config_file):
        """Test that config files may use conditional statements."""
        path = create_config_file(
            "config.json",
            '{"proxyname": "p", "basepath": '
            '"{{ if env.STAGE == \'prod\' }}/v1{{ else }}/beta{{ endif }}"}',
        )

        config = load_effective_config(path, environ={"STAGE": "prod"})

        assert config["basepath"] == "/v1"

    def test_debug_logs_evaluated_text(self, create_config_file):
        """Test that the evaluated configuration is logged at debug level."""
        path = create_config_file(
            "config.json", '{"proxyname": "{{= env.NAME }}", "basepath": "/v1"}'
        )
        stream = io.StringIO()
        set_global_logger(DefaultLogger(debug=True, stream=stream))

        load_effective_config(path, environ={"NAME": "orders"})

        out = stream.getvalue()
        assert "[CONFIG] --- Evaluated configuration ---" in out
        assert '"proxyname": "orders"' in out

    def test_file_not_found(self, tmp_test_dir):
        """Test that a missing file raises ConfigNotFound."""
        with pytest.raises(ConfigNotFound, match="not found"):
            load_effective_config(tmp_test_dir / "nope.json", environ={})

    def test_invalid_json(self, create_config_file):
        """Test that text that does not parse raises ConfigParseError."""
        path = create_config_file("config.json", '{"proxyname": ')

        with pytest.raises(ConfigParseError, match="config.json"):
            load_effective_config(path, environ={})

    def test_top_level_must_be_object(self, create_config_file):
        """Test that a top-level list is rejected."""
        path = create_config_file("config.json", '["proxyname"]')

        with pytest.raises(ConfigParseError, match="object"):
            load_effective_config(path, environ={})


class TestRequireKeys:
    """Tests for require_keys."""

    def test_all_present(self, sample_config):
        """Test that a complete configuration passes."""
        require_keys(sample_config)

    def test_reports_every_missing_key(self):
        """Test that all missing keys are listed."""
        with pytest.raises(MissingRequiredConfigKey) as excinfo:
            require_keys({})

        assert excinfo.value.keys == ["proxyname", "basepath"]

    def test_empty_value_is_missing(self):
        """Test that an empty value does not satisfy the requirement."""
        with pytest.raises(MissingRequiredConfigKey, match="basepath"):
            require_keys({"proxyname": "p", "basepath": ""})
